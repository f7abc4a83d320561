#!/usr/bin/env python3
"""
Gesture Battle - Main Application

Rock-paper-scissors style battle played with hand gestures in front of a
webcam. Wires the camera source, the gesture pipeline, the turn engine and
its asyncio session, and shows the HUD in an OpenCV window.
"""

import argparse
import asyncio
import os
import random
import sys

import cv2

from gesture_battle.app.command_dispatcher import CommandDispatcher
from gesture_battle.app.commentary import CannedCommentary, GeminiCommentary
from gesture_battle.config.config_manager import config
from gesture_battle.detectors.gesture_pipeline import FramePump, GesturePipeline
from gesture_battle.engine.battle_rules import BattleSettings
from gesture_battle.engine.battle_session import BattleSession
from gesture_battle.engine.battle_state import BattleEvent
from gesture_battle.engine.opponents import FixedOpponent, RandomOpponent
from gesture_battle.engine.turn_engine import TurnEngine
from gesture_battle.utils.visual_feedback import BattleHUD


OPPONENT_CHOICES = ('random', 'fist', 'open_palm', 'peace')


def build_opponent(name: str = 'random', seed=None):
    if name == 'random':
        return RandomOpponent(random.Random(seed))
    return FixedOpponent(name)


class BattleApplication:
    """Main gesture battle controller."""

    def __init__(self, source=None, camera_idx=None, opponent=None, enable_commentary=True,
                 show_window=True):
        """
        Args:
            source: landmark source; a MediaPipeLandmarkSource on the camera by default
            camera_idx: camera device index (overrides config)
            opponent: opponent strategy (RandomOpponent by default)
            enable_commentary: request announcer lines from Gemini
            show_window: draw the HUD in an OpenCV window
        """
        print("\n" + "=" * 60)
        print("GESTURE BATTLE")
        print("=" * 60 + "\n")

        self.config = config
        self.config_path = config.path
        try:
            self.last_config_mtime = os.path.getmtime(self.config_path)
        except OSError:
            self.last_config_mtime = 0

        if source is None:
            from gesture_battle.app.landmark_source import MediaPipeLandmarkSource
            source = MediaPipeLandmarkSource(config, camera_idx=camera_idx)
        self.source = source

        self.pipeline = GesturePipeline.from_config(config)
        self.frame_pump = FramePump(
            self.source, self.pipeline,
            interval=config.get('timing', 'frame_interval', default=1 / 60),
        )
        print("✓ Gesture pipeline initialized")

        self.engine = TurnEngine(
            self.pipeline.current_gesture,
            opponent=opponent,
            settings=BattleSettings.from_config(config),
        )
        self.engine.add_listener(self._on_event)

        commentary = None
        if enable_commentary and config.get('commentary', 'enabled', default=True):
            commentary = GeminiCommentary.from_config(config)
            if not commentary.api_key:
                print("⚠ No commentary API key set, using canned commentary")
                commentary = None
        if commentary is None:
            commentary = CannedCommentary()
        self.session = BattleSession.from_config(
            self.engine, config, commentary=commentary, frame_pump=self.frame_pump
        )
        print("✓ Battle session initialized")

        self.dispatcher = CommandDispatcher(self.session)
        self.dispatcher.load_map(config.get('controls', default=[]))

        self.hud = BattleHUD(config)
        self.show_window = show_window
        self.window_name = config.get('display', 'window_name', default='Gesture Battle')
        self.refresh_interval = config.get('display', 'refresh_interval', default=1 / 30)

        self.running = True
        self.paused_via_config = False
        self.frame_count = 0

    def _on_event(self, event: BattleEvent):
        state = event.state
        if event.kind == 'reveal':
            print(f"  ⚔ Turn {state.turn_count}: {state.player_move} vs {state.enemy_move}")
        elif event.kind == 'turn_resolved' and event.record is not None:
            record = event.record
            finisher = " FINISHER!" if record.finisher else ""
            print(f"    {record.outcome.value.upper()}{finisher} "
                  f"(HP {state.player_hp}/{state.enemy_hp}) {record.message}")
        elif event.kind == 'paused':
            print("⏸ PAUSED")
        elif event.kind == 'resumed':
            print("▶ RESUMED")
        elif event.kind == 'restarted':
            print("🔄 Match restarted")
        elif event.kind == 'finished' and event.result is not None:
            result = event.result
            print(f"\n🏁 Match over ({result.reason}): winner={result.winner} "
                  f"turns={result.turns} W/L/T={result.wins}/{result.losses}/{result.ties}\n")

    def check_app_control(self):
        """Hot-reload config.json and apply the app_control flags."""
        try:
            current_mtime = os.path.getmtime(self.config_path)
        except OSError as e:
            print(f"⚠ Error checking config update: {e}")
            return
        if current_mtime == self.last_config_mtime:
            return

        print("\n🔄 Config change detected, reloading...")
        self.last_config_mtime = current_mtime
        self.config.reload()
        self.dispatcher.load_map(self.config.get('controls', default=[]))

        if self.config.get('app_control', 'restart', default=False):
            self.config.set('app_control', 'restart', value=False)
            if self.session.restart_match():
                # A restarted match starts unpaused
                self.config.set('app_control', 'pause', value=False)
            self.config.save()
            try:
                self.last_config_mtime = os.path.getmtime(self.config_path)
            except OSError:
                pass

        config_pause = bool(self.config.get('app_control', 'pause', default=False))
        if config_pause != self.paused_via_config:
            if config_pause:
                self.session.pause()
                # Refused once the match is over; retried on the next reload
                self.paused_via_config = self.engine.state.paused
            else:
                self.session.resume()
                self.paused_via_config = False

        if self.config.get('app_control', 'exit', default=False):
            print("\n🛑 Exit signal received via config")
            self.running = False

    def render(self):
        frame = self.source.last_frame
        if frame is None:
            return
        display = frame.copy()
        self.hud.draw(display, self.session.snapshot(), self.pipeline.current_gesture(),
                      getattr(self.source, 'last_hands', None))
        cv2.imshow(self.window_name, display)
        key = cv2.waitKey(1)
        self.dispatcher.dispatch_key(key)

    async def run(self):
        """Main application loop."""
        self.print_controls()
        self.session.start()
        try:
            while self.running and self.session.running:
                self.frame_count += 1
                if self.frame_count % 30 == 0:
                    self.check_app_control()
                if self.show_window:
                    self.render()
                await asyncio.sleep(self.refresh_interval)
        finally:
            self.session.quit_match()
            await self.frame_pump.drain()
            self.cleanup()
        return self.engine.result

    def cleanup(self):
        """Clean up resources."""
        print("\n🧹 Cleaning up...")
        self.session.quit_match()
        release = getattr(self.source, 'release', None)
        if release is not None:
            release()
        if self.show_window:
            cv2.destroyAllWindows()
        print("✓ Gesture battle stopped\n")

    def print_controls(self):
        print("\n" + "=" * 60)
        print("KEYBOARD CONTROLS")
        print("=" * 60)
        for key, entry in sorted(self.dispatcher.key_map.items()):
            args = entry.get('args')
            suffix = f" {args}" if args else ""
            print(f"  {key.upper()} - {entry['command']}{suffix}")
        print("\n" + "=" * 60)
        print("MOVES")
        print("=" * 60)
        print("  ✊ Fist beats Peace")
        print("  ✌ Peace beats Open palm")
        print("  ✋ Open palm beats Fist")
        print("  ☝ Swipe (index only) loses to fist, peace and open palm")
        print("=" * 60 + "\n")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Gesture Battle - rock-paper-scissors with your webcam"
    )
    parser.add_argument(
        '--camera', type=int, default=None,
        help='Camera device index (default: from config)'
    )
    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to config.json (default: bundled config)'
    )
    parser.add_argument(
        '--opponent', choices=OPPONENT_CHOICES, default='random',
        help='Opponent strategy (default: random)'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Seed for the random opponent'
    )
    parser.add_argument(
        '--no-commentary', action='store_true',
        help='Never call the commentary API'
    )

    args = parser.parse_args()

    if args.config:
        from gesture_battle.config.config_manager import Config
        Config(args.config)

    try:
        app = BattleApplication(
            camera_idx=args.camera,
            opponent=build_opponent(args.opponent, args.seed),
            enable_commentary=not args.no_commentary,
        )
    except RuntimeError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\n⚠ Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
