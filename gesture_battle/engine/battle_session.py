"""
Asyncio driver for a TurnEngine.

Runs on one event loop with at most three tasks per match:
- the ticker: one tick per tick_interval, cancelled on pause and re-armed
  on resume, so missed seconds are never replayed;
- the turn task: reveal dwell -> commentary (bounded) -> resolve ->
  result dwell -> next turn;
- the frame pump (optional): camera polling into the gesture pipeline.

Restart and quit cancel every task before anything new is armed, so two
tick streams can never overlap.
"""

import asyncio
from typing import Optional

from gesture_battle.engine.battle_state import BattleEvent, MatchResult
from gesture_battle.engine.turn_engine import TurnEngine, DEFAULT_TURN_MESSAGE


class BattleSession:

    def __init__(
        self,
        engine: TurnEngine,
        commentary=None,
        frame_pump=None,
        tick_interval: float = 1.0,
        reveal_dwell: float = 1.5,
        result_dwell: float = 2.5,
        finisher_dwell: float = 4.0,
        commentary_timeout: float = 3.0,
        fallback_line: str = DEFAULT_TURN_MESSAGE,
        player_name: str = 'Player',
        enemy_name: str = 'Opponent',
    ):
        self.engine = engine
        self.commentary = commentary
        self.frame_pump = frame_pump
        self.tick_interval = tick_interval
        self.reveal_dwell = reveal_dwell
        self.result_dwell = result_dwell
        self.finisher_dwell = finisher_dwell
        self.commentary_timeout = commentary_timeout
        self.fallback_line = fallback_line
        self.player_name = player_name
        self.enemy_name = enemy_name

        self._tick_task: Optional[asyncio.Task] = None
        self._turn_task: Optional[asyncio.Task] = None
        self._frame_task: Optional[asyncio.Task] = None

        # Both events are kept so dwells can wait for either edge
        self._unpaused = asyncio.Event()
        self._paused = asyncio.Event()
        self._closed = asyncio.Event()
        self.running = False

        self.engine.add_listener(self._on_event)

    @classmethod
    def from_config(cls, engine: TurnEngine, config, commentary=None, frame_pump=None) -> 'BattleSession':
        return cls(
            engine,
            commentary=commentary,
            frame_pump=frame_pump,
            tick_interval=config.get('timing', 'tick_interval', default=1.0),
            reveal_dwell=config.get('timing', 'reveal_dwell', default=1.5),
            result_dwell=config.get('timing', 'result_dwell', default=2.5),
            finisher_dwell=config.get('timing', 'finisher_dwell', default=4.0),
            commentary_timeout=config.get('commentary', 'timeout', default=3.0),
            fallback_line=config.get('commentary', 'fallback', default=DEFAULT_TURN_MESSAGE),
            player_name=config.get('battle', 'player_name', default='Player'),
            enemy_name=config.get('battle', 'enemy_name', default='Opponent'),
        )

    # ------------------------------------------------------------------ tasks
    def start(self):
        """Arm the match timers. Must be called from inside the running loop."""
        self._stop_all()
        self._closed.clear()
        self._set_paused(self.engine.state.paused)
        self.running = True
        self._arm_frame_pump()
        if not self.engine.state.paused and not self.engine.state.finished:
            self._arm_ticker()

    def _arm_ticker(self):
        if self._tick_task is not None:
            self._tick_task.cancel()
        self._tick_task = self._watch(asyncio.create_task(self._tick_loop(), name='battle-ticker'))

    def _arm_frame_pump(self):
        if self.frame_pump is None:
            return
        if self._frame_task is not None:
            self._frame_task.cancel()
        self._frame_task = self._watch(asyncio.create_task(self.frame_pump.run(), name='frame-pump'))

    def _cancel_ticker(self):
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    def _cancel_turn(self):
        if self._turn_task is not None:
            self._turn_task.cancel()
            self._turn_task = None

    def _stop_all(self):
        self._cancel_ticker()
        self._cancel_turn()
        if self._frame_task is not None:
            self._frame_task.cancel()
            self._frame_task = None

    def _set_paused(self, paused: bool):
        if paused:
            self._unpaused.clear()
            self._paused.set()
        else:
            self._paused.clear()
            self._unpaused.set()

    def _watch(self, task: asyncio.Task) -> asyncio.Task:
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        if task.cancelled() or task.exception() is None:
            return
        print(f"✗ {task.get_name()} failed: {task.exception()!r}")
        self.quit_match()

    async def _tick_loop(self):
        # Deadlines, not plain sleeps, so a late wake-up never stretches the match
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            deadline += self.tick_interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            self.engine.tick()

    def _on_event(self, event: BattleEvent):
        if event.kind == 'reveal':
            self._cancel_turn()
            self._turn_task = self._watch(asyncio.create_task(self._run_turn(), name='battle-turn'))
        elif event.kind == 'finished':
            # The turn task may be the caller; cancel() only takes effect at its next await
            self._cancel_ticker()
            self._cancel_turn()
            self._closed.set()

    async def _dwell(self, seconds: float):
        """Sleep for `seconds` of unpaused time."""
        loop = asyncio.get_running_loop()
        remaining = seconds
        while remaining > 0:
            await self._unpaused.wait()
            started = loop.time()
            try:
                await asyncio.wait_for(self._paused.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return
            remaining -= loop.time() - started

    async def _run_turn(self):
        await self._dwell(self.reveal_dwell)

        resolution = self.engine.preview()
        if resolution is None:
            return
        state = self.engine.state
        message = await self.request_commentary(state.player_move, state.enemy_move, resolution.outcome)

        await self._unpaused.wait()
        record = self.engine.resolve(message)
        if record is None or self.engine.state.finished:
            return

        await self._dwell(self.finisher_dwell if record.finisher else self.result_dwell)
        await self._unpaused.wait()
        self.engine.next_turn()

    async def request_commentary(self, player_move, enemy_move, outcome) -> str:
        if self.commentary is None:
            return self.fallback_line
        try:
            line = await asyncio.wait_for(
                self.commentary.request_line(
                    self.player_name, self.enemy_name, player_move, enemy_move, outcome
                ),
                timeout=self.commentary_timeout,
            )
        except asyncio.TimeoutError:
            print(f"⚠ Commentary timed out after {self.commentary_timeout:.1f}s, using fallback line")
            return self.fallback_line
        except Exception as e:
            print(f"⚠ Commentary provider failed: {e}")
            return self.fallback_line

        if not isinstance(line, str) or not line.strip():
            return self.fallback_line
        return line.strip()

    # ------------------------------------------------------------------ commands
    def pause(self) -> bool:
        if not self.engine.pause():
            return False
        self._cancel_ticker()
        self._set_paused(True)
        return True

    def resume(self) -> bool:
        if not self.engine.resume():
            return False
        self._set_paused(False)
        if self.running:
            self._arm_ticker()
        return True

    def toggle_pause(self) -> bool:
        return self.resume() if self.engine.state.paused else self.pause()

    def restart_match(self) -> bool:
        if not self.engine.restart_match():
            return False
        self._stop_all()
        if self.frame_pump is not None:
            self.frame_pump.pipeline.reset()
        if self.running:
            self.start()
        return True

    def quit_match(self):
        self._stop_all()
        self.running = False
        self._closed.set()

    def set_opponent_move_override(self, move) -> bool:
        return self.engine.set_opponent_move_override(move)

    def snapshot(self):
        return self.engine.snapshot()

    @property
    def active_tasks(self) -> int:
        return sum(
            1 for t in (self._tick_task, self._turn_task, self._frame_task)
            if t is not None and not t.done()
        )

    async def wait_closed(self) -> Optional[MatchResult]:
        """Wait until the match finishes or is quit; returns the result if any."""
        await self._closed.wait()
        return self.engine.result

    async def run(self) -> Optional[MatchResult]:
        self.start()
        return await self.wait_closed()
