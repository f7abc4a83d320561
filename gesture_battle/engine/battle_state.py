"""
Battle data model.

BattleState is owned and mutated by TurnEngine only; everything else gets
copies from TurnEngine.snapshot().
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from gesture_battle.detectors.gesture_detectors import Gesture


class Phase(str, Enum):
    COUNTDOWN = 'countdown'
    REVEAL = 'reveal'
    RESOLVING = 'resolving'
    PAUSED = 'paused'
    FINISHED = 'finished'


class Outcome(str, Enum):
    WIN = 'win'
    LOSS = 'loss'
    TIE = 'tie'


@dataclass(frozen=True)
class TurnRecord:
    """One resolved turn. Never modified after it is appended to the log."""
    turn_number: int
    player_move: Gesture
    enemy_move: Gesture
    outcome: Outcome
    message: str
    player_damage: int = 0  # as dealt by the rules, before HP clamping
    enemy_damage: int = 0
    streak: int = 0
    finisher: bool = False


@dataclass(frozen=True)
class MatchResult:
    winner: str  # 'player', 'enemy' or 'tie'
    turns: int
    wins: int
    losses: int
    ties: int
    player_hp: int
    enemy_hp: int
    reason: str  # 'knockout' or 'time'


@dataclass
class BattleState:
    """Authoritative combat record."""
    player_hp: int = 100
    enemy_hp: int = 100
    player_win_streak: int = 0
    turn_count: int = 1
    match_seconds_remaining: int = 60
    turn_seconds_remaining: int = 3
    phase: Phase = Phase.COUNTDOWN
    battle_log: List[TurnRecord] = field(default_factory=list)  # newest first

    # Phase to return to when the pause overlay is lifted
    paused_phase: Optional[Phase] = None

    # Moves committed at reveal, cleared when the next countdown starts
    player_move: Gesture = Gesture.NONE
    enemy_move: Gesture = Gesture.NONE
    last_finisher: bool = False
    result: Optional[MatchResult] = None

    @property
    def paused(self) -> bool:
        return self.phase == Phase.PAUSED

    @property
    def finished(self) -> bool:
        return self.phase == Phase.FINISHED

    def copy(self) -> 'BattleState':
        # TurnRecord/MatchResult are frozen, a shallow copy of the log is enough
        snap = copy.copy(self)
        snap.battle_log = list(self.battle_log)
        return snap

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view for presentation layers."""
        return {
            'player_hp': self.player_hp,
            'enemy_hp': self.enemy_hp,
            'player_win_streak': self.player_win_streak,
            'turn_count': self.turn_count,
            'match_seconds_remaining': self.match_seconds_remaining,
            'turn_seconds_remaining': self.turn_seconds_remaining,
            'phase': self.phase.value,
            'player_move': self.player_move.value,
            'enemy_move': self.enemy_move.value,
            'finisher': self.last_finisher,
            'battle_log': [
                {
                    'turn_number': r.turn_number,
                    'player_move': r.player_move.value,
                    'enemy_move': r.enemy_move.value,
                    'outcome': r.outcome.value,
                    'message': r.message,
                    'finisher': r.finisher,
                }
                for r in self.battle_log
            ],
            'result': None if self.result is None else {
                'winner': self.result.winner,
                'turns': self.result.turns,
                'wins': self.result.wins,
                'losses': self.result.losses,
                'ties': self.result.ties,
                'reason': self.result.reason,
            },
        }


@dataclass(frozen=True)
class BattleEvent:
    """Notification emitted by the engine after a state change."""
    kind: str  # countdown, reveal, turn_resolved, next_turn, paused, resumed, restarted, finished
    state: BattleState
    record: Optional[TurnRecord] = None
    result: Optional[MatchResult] = None
