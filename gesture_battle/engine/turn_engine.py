"""
Turn Engine - the battle state machine.

    COUNTDOWN(3..0) -> REVEAL -> RESOLVING -> COUNTDOWN | FINISHED

with PAUSED as an overlay that freezes whichever phase was active and
hands it back untouched on resume.

The engine is synchronous and has no timers of its own: a driver calls
tick() once per second, resolve() after the reveal dwell and next_turn()
after the result dwell (see battle_session.py). Commands come in through
methods, state leaves as snapshots and BattleEvents, which keeps the whole
thing testable without a camera, a clock or an event loop.
"""

from typing import Callable, List, Optional

from gesture_battle.detectors.gesture_detectors import Gesture
from gesture_battle.engine.battle_state import (
    BattleEvent,
    BattleState,
    MatchResult,
    Outcome,
    Phase,
    TurnRecord,
)
from gesture_battle.engine.battle_rules import (
    BattleSettings,
    PLAYABLE_MOVES,
    TurnResolution,
    apply_damage,
    coerce_gesture,
    resolve_turn_damage,
)
from gesture_battle.engine.opponents import RandomOpponent


DEFAULT_TURN_MESSAGE = "The battle rages on!"

PAUSABLE_PHASES = (Phase.COUNTDOWN, Phase.REVEAL, Phase.RESOLVING)
RESTARTABLE_PHASES = (Phase.PAUSED, Phase.COUNTDOWN, Phase.FINISHED)


class TurnEngine:
    """
    Single writer of BattleState.

    Args:
        gesture_source: callable returning the player's current stabilized
                        gesture; sampled exactly once per turn, at reveal.
        opponent: strategy with next_move() -> Gesture (RandomOpponent by default)
        settings: BattleSettings tunables
    """

    def __init__(
        self,
        gesture_source: Callable[[], Gesture],
        opponent=None,
        settings: Optional[BattleSettings] = None,
    ):
        self.settings = settings or BattleSettings()
        self.gesture_source = gesture_source
        self.opponent = opponent or RandomOpponent()
        self.listeners: List[Callable[[BattleEvent], None]] = []
        self._opponent_override: Optional[Gesture] = None
        self.state = self._initial_state()

    def _initial_state(self) -> BattleState:
        return BattleState(
            player_hp=self.settings.max_hp,
            enemy_hp=self.settings.max_hp,
            match_seconds_remaining=self.settings.match_seconds,
            turn_seconds_remaining=self.settings.turn_seconds,
        )

    # ------------------------------------------------------------------ output
    def add_listener(self, listener: Callable[[BattleEvent], None]):
        self.listeners.append(listener)

    def remove_listener(self, listener: Callable[[BattleEvent], None]):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def _emit(self, kind: str, record: Optional[TurnRecord] = None,
              result: Optional[MatchResult] = None):
        event = BattleEvent(kind=kind, state=self.state.copy(), record=record, result=result)
        for listener in list(self.listeners):
            listener(event)

    def snapshot(self) -> BattleState:
        return self.state.copy()

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def finisher_triggered(self) -> bool:
        return self.state.last_finisher

    @property
    def result(self) -> Optional[MatchResult]:
        return self.state.result

    # ------------------------------------------------------------------ clock
    def tick(self) -> bool:
        """
        One second of match time. Ignored while paused or finished.

        The match clock always runs; the turn clock only counts down during
        COUNTDOWN and triggers the reveal when it reaches zero.
        """
        s = self.state
        if s.phase in (Phase.PAUSED, Phase.FINISHED):
            return False

        if s.match_seconds_remaining > 0:
            s.match_seconds_remaining -= 1
        if s.match_seconds_remaining == 0:
            self._finish('time')
            return True

        if s.phase == Phase.COUNTDOWN:
            s.turn_seconds_remaining = max(0, s.turn_seconds_remaining - 1)
            if s.turn_seconds_remaining == 0:
                self.reveal()
            else:
                self._emit('countdown')
        return True

    # ------------------------------------------------------------------ turn
    def _next_enemy_move(self) -> Gesture:
        if self._opponent_override is not None:
            return self._opponent_override
        return coerce_gesture(self.opponent.next_move())

    def reveal(self) -> bool:
        """Commit both moves. The player's gesture is not sampled again this turn."""
        s = self.state
        if s.phase != Phase.COUNTDOWN:
            return False

        s.player_move = coerce_gesture(self.gesture_source())
        s.enemy_move = self._next_enemy_move()
        s.turn_seconds_remaining = 0
        s.phase = Phase.REVEAL
        self._emit('reveal')
        return True

    def preview(self) -> Optional[TurnResolution]:
        """Outcome of the committed moves, without applying it."""
        s = self.state
        phase = s.paused_phase if s.phase == Phase.PAUSED else s.phase
        if phase != Phase.REVEAL:
            return None
        return resolve_turn_damage(s.player_move, s.enemy_move, s.player_win_streak, self.settings)

    def resolve(self, message: Optional[str] = None) -> Optional[TurnRecord]:
        """
        Score the revealed moves: HP, streak and the log entry change
        together, then the engine enters RESOLVING (or FINISHED on a knockout).
        """
        s = self.state
        if s.phase != Phase.REVEAL:
            return None

        resolution = resolve_turn_damage(s.player_move, s.enemy_move, s.player_win_streak, self.settings)
        player_hp, enemy_hp = apply_damage(s.player_hp, s.enemy_hp, resolution, self.settings.max_hp)
        record = TurnRecord(
            turn_number=s.turn_count,
            player_move=s.player_move,
            enemy_move=s.enemy_move,
            outcome=resolution.outcome,
            message=message or DEFAULT_TURN_MESSAGE,
            player_damage=resolution.player_damage,
            enemy_damage=resolution.enemy_damage,
            streak=resolution.streak,
            finisher=resolution.finisher,
        )

        s.player_hp = player_hp
        s.enemy_hp = enemy_hp
        s.player_win_streak = resolution.streak
        s.last_finisher = resolution.finisher
        s.battle_log.insert(0, record)
        s.phase = Phase.RESOLVING

        knockout = s.player_hp == 0 or s.enemy_hp == 0
        if knockout:
            self._settle('knockout')
        self._emit('turn_resolved', record=record)
        if knockout:
            self._emit('finished', result=s.result)
        return record

    def next_turn(self) -> bool:
        s = self.state
        if s.phase != Phase.RESOLVING:
            return False
        s.turn_count += 1
        s.turn_seconds_remaining = self.settings.turn_seconds
        s.player_move = Gesture.NONE
        s.enemy_move = Gesture.NONE
        s.last_finisher = False
        s.phase = Phase.COUNTDOWN
        self._emit('next_turn')
        return True

    def _finish(self, reason: str):
        self._settle(reason)
        self._emit('finished', result=self.state.result)

    def _settle(self, reason: str):
        s = self.state
        if s.player_hp > s.enemy_hp:
            winner = 'player'
        elif s.enemy_hp > s.player_hp:
            winner = 'enemy'
        else:
            winner = 'tie'

        outcomes = [r.outcome for r in s.battle_log]
        s.result = MatchResult(
            winner=winner,
            turns=len(s.battle_log),
            wins=outcomes.count(Outcome.WIN),
            losses=outcomes.count(Outcome.LOSS),
            ties=outcomes.count(Outcome.TIE),
            player_hp=s.player_hp,
            enemy_hp=s.enemy_hp,
            reason=reason,
        )
        s.phase = Phase.FINISHED
        s.paused_phase = None

    # ------------------------------------------------------------------ commands
    def pause(self) -> bool:
        s = self.state
        if s.phase not in PAUSABLE_PHASES:
            return False
        s.paused_phase = s.phase
        s.phase = Phase.PAUSED
        self._emit('paused')
        return True

    def resume(self) -> bool:
        s = self.state
        if s.phase != Phase.PAUSED:
            return False
        s.phase = s.paused_phase or Phase.COUNTDOWN
        s.paused_phase = None
        self._emit('resumed')
        return True

    def restart_match(self) -> bool:
        if self.state.phase not in RESTARTABLE_PHASES:
            return False
        self.state = self._initial_state()
        self._emit('restarted')
        return True

    def set_opponent_move_override(self, move) -> bool:
        """
        Force the enemy move for every following reveal; None clears it.

        Returns False when the move is not a playable gesture; the enemy
        then plays Gesture.NONE until the override is replaced.
        """
        if move is None:
            self._opponent_override = None
            return True
        gesture = coerce_gesture(move)
        self._opponent_override = gesture
        return gesture in PLAYABLE_MOVES
