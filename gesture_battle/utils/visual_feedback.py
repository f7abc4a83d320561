"""
Battle HUD overlay.

Draws a BattleState snapshot onto the camera frame: HP bars, clocks, the
committed moves, the latest commentary line and the final result.
"""

import cv2
import numpy as np
import time
from typing import Optional, Sequence
from dataclasses import dataclass

from gesture_battle.detectors.gesture_detectors import Gesture, HandObservation
from gesture_battle.engine.battle_state import BattleState, Outcome, Phase


@dataclass
class UIColors:
    """Color palette for HUD elements (BGR)."""
    # Hand colors
    left_hand = (0, 255, 255)    # Cyan
    right_hand = (255, 128, 0)   # Orange

    # Move colors
    fist = (60, 60, 255)         # Red
    open_palm = (255, 200, 60)   # Blue
    peace = (60, 220, 60)        # Green
    swipe = (0, 255, 255)        # Yellow

    # UI elements
    background = (30, 20, 20)         # Dark blue-grey
    text_primary = (255, 255, 255)    # White
    text_secondary = (200, 180, 180)  # Light grey
    accent = (255, 200, 0)            # Bright cyan

    # HP bars
    hp_high = (0, 200, 0)
    hp_mid = (0, 200, 255)
    hp_low = (0, 0, 255)
    hp_empty = (60, 60, 60)

    # Outcomes
    win = (0, 255, 0)
    loss = (50, 50, 255)
    tie = (180, 180, 180)
    finisher = (255, 0, 255)


HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (0, 9), (9, 10), (10, 11), (11, 12),
    (0, 13), (13, 14), (14, 15), (15, 16),
    (0, 17), (17, 18), (18, 19), (19, 20),
    (5, 9), (9, 13), (13, 17),
]


def gesture_label(gesture: Gesture) -> str:
    """Display text for a move; an idle hand reads as READY."""
    if gesture == Gesture.NONE:
        return "READY"
    return gesture.value.replace('_', ' ').upper()


class BattleHUD:
    def __init__(self, config=None):
        self.colors = UIColors()
        if config:
            self.show_landmarks = config.get('display', 'show_landmarks', default=True)
            self.max_hp = config.get('battle', 'max_hp', default=100)
            self.player_name = config.get('battle', 'player_name', default='Player')
            self.enemy_name = config.get('battle', 'enemy_name', default='Opponent')
        else:
            self.show_landmarks = True
            self.max_hp = 100
            self.player_name = 'Player'
            self.enemy_name = 'Opponent'

        self.bar_height = 18
        self.margin = 12
        self.overlay_alpha = 0.6

    def draw(self, frame: np.ndarray, state: BattleState, gesture: Gesture = Gesture.NONE,
             hands: Optional[Sequence[HandObservation]] = None):
        """Render the full HUD in place."""
        if self.show_landmarks and hands:
            for hand in hands:
                self.draw_hand(frame, hand)

        self._draw_panel(frame)
        self._draw_hp_bars(frame, state)
        self._draw_clocks(frame, state)
        self._draw_moves(frame, state, gesture)
        self._draw_commentary(frame, state)

        if state.phase == Phase.PAUSED:
            self._draw_banner(frame, "PAUSED", self.colors.accent)
        elif state.phase == Phase.FINISHED and state.result is not None:
            self._draw_result(frame, state)
        elif state.last_finisher:
            intensity = 0.5 + 0.5 * np.sin(time.time() * 4 * np.pi)
            color = self._blend_colors(self.colors.finisher, self.colors.text_primary, intensity)
            self._draw_banner(frame, "FINISHER!", color)

    def draw_hand(self, frame: np.ndarray, hand: HandObservation):
        h, w = frame.shape[:2]
        landmarks = hand.landmarks
        if landmarks.shape[0] < 21:
            return
        color = self.colors.left_hand if hand.handedness == 'left' else self.colors.right_hand
        for start_idx, end_idx in HAND_CONNECTIONS:
            start = (int(landmarks[start_idx][0] * w), int(landmarks[start_idx][1] * h))
            end = (int(landmarks[end_idx][0] * w), int(landmarks[end_idx][1] * h))
            cv2.line(frame, start, end, color, 2)

    def _draw_panel(self, frame: np.ndarray):
        h, w = frame.shape[:2]
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, 0), (w, 90), self.colors.background, -1)
        cv2.addWeighted(overlay, self.overlay_alpha, frame, 1 - self.overlay_alpha, 0, frame)

    def _hp_color(self, hp: int):
        ratio = hp / float(self.max_hp) if self.max_hp else 0.0
        if ratio > 0.5:
            return self.colors.hp_high
        if ratio > 0.25:
            return self.colors.hp_mid
        return self.colors.hp_low

    def _draw_bar(self, frame, x: int, y: int, width: int, hp: int, name: str, right_align: bool = False):
        cv2.rectangle(frame, (x, y), (x + width, y + self.bar_height), self.colors.hp_empty, -1)
        filled = int(width * max(0, min(hp, self.max_hp)) / float(self.max_hp))
        if right_align:
            cv2.rectangle(frame, (x + width - filled, y), (x + width, y + self.bar_height), self._hp_color(hp), -1)
        else:
            cv2.rectangle(frame, (x, y), (x + filled, y + self.bar_height), self._hp_color(hp), -1)
        cv2.rectangle(frame, (x, y), (x + width, y + self.bar_height), self.colors.text_secondary, 1)
        cv2.putText(frame, f"{name} {hp}", (x, y - 6),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, self.colors.text_primary, 1, cv2.LINE_AA)

    def _draw_hp_bars(self, frame, state: BattleState):
        h, w = frame.shape[:2]
        bar_width = max(60, w // 3)
        y = self.margin + 16
        self._draw_bar(frame, self.margin, y, bar_width, state.player_hp, self.player_name)
        self._draw_bar(frame, w - self.margin - bar_width, y, bar_width, state.enemy_hp,
                       self.enemy_name, right_align=True)

    def _draw_clocks(self, frame, state: BattleState):
        h, w = frame.shape[:2]
        text = f"{state.match_seconds_remaining}s"
        cv2.putText(frame, text, (w // 2 - 20, self.margin + 30),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, self.colors.accent, 2, cv2.LINE_AA)
        cv2.putText(frame, f"Turn {state.turn_count}  Streak {state.player_win_streak}",
                    (w // 2 - 70, self.margin + 60),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.45, self.colors.text_secondary, 1, cv2.LINE_AA)

        if state.phase == Phase.COUNTDOWN and state.turn_seconds_remaining > 0:
            cv2.putText(frame, str(state.turn_seconds_remaining), (w // 2 - 20, h // 2),
                        cv2.FONT_HERSHEY_SIMPLEX, 2.5, self.colors.text_primary, 4, cv2.LINE_AA)

    def _draw_moves(self, frame, state: BattleState, gesture: Gesture):
        h, w = frame.shape[:2]
        y = h - 60
        revealed = state.phase in (Phase.REVEAL, Phase.RESOLVING) or (
            state.phase == Phase.PAUSED and state.paused_phase in (Phase.REVEAL, Phase.RESOLVING)
        )
        player = state.player_move if revealed else gesture
        cv2.putText(frame, gesture_label(player), (self.margin, y),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.9, self._get_move_color(player), 2, cv2.LINE_AA)
        if revealed:
            text = gesture_label(state.enemy_move)
            (tw, _), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.9, 2)
            cv2.putText(frame, text, (w - self.margin - tw, y),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.9, self._get_move_color(state.enemy_move), 2, cv2.LINE_AA)

    def _draw_commentary(self, frame, state: BattleState):
        if not state.battle_log or state.phase == Phase.COUNTDOWN:
            return
        h, w = frame.shape[:2]
        record = state.battle_log[0]
        color = {
            Outcome.WIN: self.colors.win,
            Outcome.LOSS: self.colors.loss,
            Outcome.TIE: self.colors.tie,
        }[record.outcome]
        cv2.putText(frame, record.message[:80], (self.margin, h - 20),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA)

    def _draw_banner(self, frame, text: str, color):
        h, w = frame.shape[:2]
        (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 1.6, 3)
        cv2.putText(frame, text, ((w - tw) // 2, (h + th) // 2),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.6, color, 3, cv2.LINE_AA)

    def _draw_result(self, frame, state: BattleState):
        result = state.result
        if result.winner == 'player':
            self._draw_banner(frame, "VICTORY", self.colors.win)
        elif result.winner == 'enemy':
            self._draw_banner(frame, "DEFEAT", self.colors.loss)
        else:
            self._draw_banner(frame, "DRAW", self.colors.tie)
        h, w = frame.shape[:2]
        summary = f"{result.wins}W {result.losses}L {result.ties}T in {result.turns} turns  (R to restart)"
        cv2.putText(frame, summary, (self.margin, h // 2 + 50),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.55, self.colors.text_primary, 1, cv2.LINE_AA)

    def _blend_colors(self, color1, color2, t):
        """Blend two colors by factor t (0..1)."""
        return tuple(int(c1 * (1 - t) + c2 * t) for c1, c2 in zip(color1, color2))

    def _get_move_color(self, gesture: Gesture):
        color_map = {
            Gesture.FIST: self.colors.fist,
            Gesture.OPEN_PALM: self.colors.open_palm,
            Gesture.PEACE: self.colors.peace,
            Gesture.SWIPE: self.colors.swipe,
        }
        return color_map.get(gesture, self.colors.text_secondary)
