"""
Turn resolution rules: who beats whom and how hard it hurts.

Cycle: fist beats peace, peace beats open_palm, open_palm beats fist.
Swipe is a valid gesture but sits outside the cycle and loses to every
cycle move, whichever side plays it.
"""

from typing import Tuple
from dataclasses import dataclass

from gesture_battle.detectors.gesture_detectors import Gesture
from gesture_battle.engine.battle_state import Outcome


BEATS = {
    Gesture.FIST: Gesture.PEACE,
    Gesture.PEACE: Gesture.OPEN_PALM,
    Gesture.OPEN_PALM: Gesture.FIST,
}

# Moves the opponent may legally play
PLAYABLE_MOVES = (Gesture.FIST, Gesture.OPEN_PALM, Gesture.PEACE, Gesture.SWIPE)


@dataclass(frozen=True)
class BattleSettings:
    """Tunable match constants."""
    max_hp: int = 100
    turn_seconds: int = 3
    match_seconds: int = 60
    win_damage: int = 20
    streak_bonus: int = 10
    finisher_streak: int = 3
    finisher_bonus: int = 30
    loss_damage: int = 20
    # Failing to gesture in time costs less than losing a fair exchange
    no_gesture_damage: int = 10

    def __post_init__(self):
        for name in ('max_hp', 'turn_seconds', 'match_seconds', 'finisher_streak'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        for name in ('win_damage', 'streak_bonus', 'finisher_bonus', 'loss_damage', 'no_gesture_damage'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

    @classmethod
    def from_config(cls, config) -> 'BattleSettings':
        defaults = cls()
        kwargs = {}
        for name in defaults.__dataclass_fields__:
            kwargs[name] = int(config.get('battle', name, default=getattr(defaults, name)))
        return cls(**kwargs)


@dataclass(frozen=True)
class TurnResolution:
    outcome: Outcome
    streak: int           # player win streak after this turn
    player_damage: int
    enemy_damage: int
    finisher: bool


def coerce_gesture(move) -> Gesture:
    """Validate an externally supplied move; anything unknown becomes Gesture.NONE."""
    if isinstance(move, Gesture):
        return move
    try:
        return Gesture(str(move).strip().lower())
    except ValueError:
        return Gesture.NONE


def decide_outcome(player_move: Gesture, enemy_move: Gesture) -> Outcome:
    if player_move == Gesture.NONE:
        return Outcome.LOSS
    if player_move == enemy_move:
        return Outcome.TIE
    if enemy_move not in BEATS:
        # Opponent failed to produce a valid move, or swiped against a cycle move
        return Outcome.WIN
    if BEATS.get(player_move) == enemy_move:
        return Outcome.WIN
    return Outcome.LOSS


def resolve_turn_damage(
    player_move: Gesture,
    enemy_move: Gesture,
    streak: int,
    settings: BattleSettings,
) -> TurnResolution:
    """
    Apply the outcome table.

    A win extends the streak and deals win_damage + (streak - 1) * streak_bonus,
    plus finisher_bonus once the streak reaches finisher_streak. Ties and
    losses reset the streak.
    """
    outcome = decide_outcome(player_move, enemy_move)

    if outcome == Outcome.WIN:
        new_streak = streak + 1
        damage = settings.win_damage + (new_streak - 1) * settings.streak_bonus
        finisher = new_streak >= settings.finisher_streak
        if finisher:
            damage += settings.finisher_bonus
        return TurnResolution(outcome, new_streak, 0, damage, finisher)

    if outcome == Outcome.LOSS:
        damage = settings.no_gesture_damage if player_move == Gesture.NONE else settings.loss_damage
        return TurnResolution(outcome, 0, damage, 0, False)

    return TurnResolution(outcome, 0, 0, 0, False)


def clamp_hp(value: int, max_hp: int) -> int:
    return max(0, min(int(max_hp), int(value)))


def apply_damage(player_hp: int, enemy_hp: int, resolution: TurnResolution,
                 max_hp: int) -> Tuple[int, int]:
    return (
        clamp_hp(player_hp - resolution.player_damage, max_hp),
        clamp_hp(enemy_hp - resolution.enemy_damage, max_hp),
    )
