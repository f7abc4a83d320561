"""
Majority-vote debouncing of per-frame gesture labels.

A single noisy frame must not flip the gesture the game sees, while a
sustained change (min_votes of the last history_size frames) propagates.
"""

import math
from collections import Counter, deque

from gesture_battle.detectors.gesture_detectors import Gesture


class GestureStabilizer:
    """
    Keeps the last `history_size` raw labels for one hand slot and exposes
    the debounced label.

    The modal label is adopted once it reaches `min_votes`
    (ceil(history_size * confidence_ratio), 3 of 5 by default); below that
    the previous stabilized value is kept.
    """

    def __init__(self, history_size: int = 5, confidence_ratio: float = 0.6):
        if history_size < 1:
            raise ValueError("history_size must be >= 1")
        if not 0.0 < confidence_ratio <= 1.0:
            raise ValueError("confidence_ratio must be in (0, 1]")
        self.history_size = int(history_size)
        self.confidence_ratio = float(confidence_ratio)
        self.min_votes = max(1, math.ceil(self.history_size * self.confidence_ratio - 1e-9))
        self.history = deque(maxlen=self.history_size)
        self._current = Gesture.NONE

    @property
    def current(self) -> Gesture:
        return self._current

    def observe(self, raw_label: Gesture) -> Gesture:
        """Push one raw label and return the stabilized gesture."""
        self.history.append(Gesture(raw_label))

        label, count = Counter(self.history).most_common(1)[0]
        if count >= self.min_votes:
            self._current = label
        return self._current

    def reset(self):
        """Forget the history; a hand that left the frame is not gesturing."""
        self.history.clear()
        self._current = Gesture.NONE
