"""
Per-frame perception pipeline: landmarks -> raw gesture -> stabilized gesture.

Handles up to two hands through a fixed pair of slots, so each hand keeps
its own history and nothing is allocated per frame beyond the landmark
arrays themselves.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from gesture_battle.detectors.gesture_detectors import Gesture, HandObservation, classify_gesture
from gesture_battle.detectors.gesture_stabilizer import GestureStabilizer


MAX_HAND_SLOTS = 2


@dataclass
class HandSlot:
    index: int
    stabilizer: GestureStabilizer
    handedness: Optional[str] = None  # None = free
    raw_gesture: Gesture = Gesture.NONE

    @property
    def occupied(self) -> bool:
        return self.handedness is not None

    def release(self):
        self.handedness = None
        self.raw_gesture = Gesture.NONE
        self.stabilizer.reset()


class HandSlots:
    """
    Fixed array of hand slots.

    Reuse rules per frame:
    1. A hand whose handedness matches an occupied slot keeps that slot.
    2. Remaining hands take the lowest-index free slot.
    3. Occupied slots that matched no hand this frame are released.
    Hands beyond the slot count are ignored.
    """

    def __init__(self, stabilizer_factory: Callable[[], GestureStabilizer], size: int = MAX_HAND_SLOTS):
        self.slots = [HandSlot(index=i, stabilizer=stabilizer_factory()) for i in range(size)]

    def assign(self, hands: Sequence[HandObservation]) -> Dict[int, HandObservation]:
        """Bind this frame's hands to slots. Returns {slot_index: hand}."""
        assigned: Dict[int, HandObservation] = {}
        pending: List[HandObservation] = []

        for hand in hands[:len(self.slots)]:
            label = (hand.handedness or 'Unknown').lower()
            match = next(
                (s for s in self.slots if s.handedness == label and s.index not in assigned),
                None
            )
            if match is not None:
                assigned[match.index] = hand
            else:
                pending.append(hand)

        for hand in pending:
            free = next(
                (s for s in self.slots if s.index not in assigned and not s.occupied),
                None
            )
            if free is None:
                # A stale slot with another label is reclaimed before it is released below
                free = next((s for s in self.slots if s.index not in assigned), None)
                if free is None:
                    break
                free.release()
            free.handedness = (hand.handedness or 'Unknown').lower()
            assigned[free.index] = hand

        for slot in self.slots:
            if slot.occupied and slot.index not in assigned:
                slot.release()

        return assigned

    def release_all(self):
        for slot in self.slots:
            slot.release()

    def occupied(self) -> List[HandSlot]:
        return [s for s in self.slots if s.occupied]


class GesturePipeline:
    """
    Classifier + stabilizer chain fed once per admitted video frame.

    Frames are admitted only if their timestamp strictly advances past the
    last processed one, so polling faster than the camera updates never
    counts the same frame twice.
    """

    def __init__(
        self,
        history_size: int = 5,
        confidence_ratio: float = 0.6,
        extension_ratio: float = 1.0,
        use_depth: bool = False,
        preferred_hand: str = 'any',
        max_hands: int = MAX_HAND_SLOTS,
    ):
        self.extension_ratio = extension_ratio
        self.use_depth = use_depth
        self.preferred_hand = (preferred_hand or 'any').lower()
        self.slots = HandSlots(
            lambda: GestureStabilizer(history_size, confidence_ratio),
            size=max(1, min(int(max_hands), MAX_HAND_SLOTS)),
        )
        self.last_timestamp: Optional[float] = None
        self.frames_processed = 0

    @classmethod
    def from_config(cls, config) -> 'GesturePipeline':
        return cls(
            history_size=config.get('gesture', 'history_size', default=5),
            confidence_ratio=config.get('gesture', 'confidence_ratio', default=0.6),
            extension_ratio=config.get('gesture', 'extension_ratio', default=1.0),
            use_depth=config.get('gesture', 'use_depth', default=False),
            preferred_hand=config.get('gesture', 'preferred_hand', default='any'),
            max_hands=config.get('gesture', 'max_hands', default=MAX_HAND_SLOTS),
        )

    def admits(self, timestamp: float) -> bool:
        return self.last_timestamp is None or timestamp > self.last_timestamp

    def process_frame(self, timestamp: float, hands: Optional[Sequence[HandObservation]]) -> bool:
        """
        Feed one frame's detections.

        Returns False (and changes nothing) when the frame is stale.
        """
        if not self.admits(timestamp):
            return False
        self.last_timestamp = timestamp
        self.frames_processed += 1

        if not hands:
            self.slots.release_all()
            return True

        for index, hand in self.slots.assign(hands).items():
            slot = self.slots.slots[index]
            slot.raw_gesture = classify_gesture(
                hand, extension_ratio=self.extension_ratio, use_depth=self.use_depth
            )
            slot.stabilizer.observe(slot.raw_gesture)
        return True

    def slot_gestures(self) -> Dict[int, Gesture]:
        return {s.index: s.stabilizer.current for s in self.slots.slots}

    def primary_slot(self) -> Optional[HandSlot]:
        occupied = self.slots.occupied()
        if not occupied:
            return None
        if self.preferred_hand != 'any':
            for slot in occupied:
                if slot.handedness == self.preferred_hand:
                    return slot
        return occupied[0]

    def current_gesture(self) -> Gesture:
        """Stabilized gesture of the player's hand, Gesture.NONE without one."""
        slot = self.primary_slot()
        return slot.stabilizer.current if slot is not None else Gesture.NONE

    def reset(self):
        self.slots.release_all()
        self.last_timestamp = None
        self.frames_processed = 0


class FramePump:
    """
    Cooperative polling loop from a landmark source into a GesturePipeline.

    The source must provide `current_timestamp() -> Optional[float]` and
    `detect(timestamp) -> list[HandObservation]`. Both may block (camera
    read, model inference), so `run()` calls them in a worker thread and
    only the pipeline update happens on the event loop. The loop never
    touches battle state; cancel the task running `run()` to stop it, then
    `drain()` before releasing the source.
    """

    def __init__(self, source, pipeline: GesturePipeline, interval: float = 1 / 60):
        self.source = source
        self.pipeline = pipeline
        self.interval = interval
        self._pending: Optional[asyncio.Future] = None

    def poll_once(self) -> bool:
        timestamp = self.source.current_timestamp()
        if timestamp is None or not self.pipeline.admits(timestamp):
            return False
        hands = self.source.detect(timestamp) or []
        return self.pipeline.process_frame(timestamp, hands)

    async def _offload(self, func, *args):
        # A cancelled caller leaves the worker call running; drain() waits for it
        self._pending = asyncio.ensure_future(asyncio.to_thread(func, *args))
        return await asyncio.shield(self._pending)

    async def poll(self) -> bool:
        """poll_once() with the source calls kept off the event loop."""
        timestamp = await self._offload(self.source.current_timestamp)
        if timestamp is None or not self.pipeline.admits(timestamp):
            return False
        hands = await self._offload(self.source.detect, timestamp) or []
        return self.pipeline.process_frame(timestamp, hands)

    async def drain(self):
        """Wait until no source call is running in a worker thread."""
        if self._pending is not None and not self._pending.done():
            await asyncio.wait([self._pending])

    async def run(self):
        while True:
            await self.poll()
            await asyncio.sleep(self.interval)
