"""
Opponent move strategies.

Anything with a `next_move() -> Gesture` method can drive the enemy side:
the built-in random opponent, a fixed move for tests, a scripted sequence,
or a bridge fed by a remote player.
"""

import random
from collections import deque
from typing import Iterable, Optional

from gesture_battle.detectors.gesture_detectors import Gesture
from gesture_battle.engine.battle_rules import coerce_gesture


# The synthetic opponent never plays swipe
RANDOM_MOVES = (Gesture.FIST, Gesture.OPEN_PALM, Gesture.PEACE)


class RandomOpponent:
    """Uniform draw among fist, open_palm and peace."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def next_move(self) -> Gesture:
        return self.rng.choice(RANDOM_MOVES)


class FixedOpponent:
    def __init__(self, move):
        self.move = coerce_gesture(move)

    def next_move(self) -> Gesture:
        return self.move


class ScriptedOpponent:
    """
    Plays a fixed sequence of moves, then defers to the `fallback`
    strategy (or plays Gesture.NONE without one) once the script runs out.
    """

    def __init__(self, moves: Iterable, fallback=None):
        self.moves = deque(coerce_gesture(m) for m in moves)
        self.fallback = fallback

    def push(self, move):
        self.moves.append(coerce_gesture(move))

    def next_move(self) -> Gesture:
        if self.moves:
            return self.moves.popleft()
        if self.fallback is not None:
            return coerce_gesture(self.fallback.next_move())
        return Gesture.NONE
