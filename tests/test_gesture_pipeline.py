import asyncio
import time
import unittest
from unittest.mock import MagicMock
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from gesture_battle.detectors.gesture_detectors import Gesture, HandObservation
from gesture_battle.detectors.gesture_pipeline import FramePump, GesturePipeline, HandSlots
from gesture_battle.detectors.gesture_stabilizer import GestureStabilizer
from hand_fixtures import fist, open_palm, peace, swipe


def hand(landmarks, handedness='right'):
    return HandObservation.from_landmarks(landmarks, handedness=handedness)


class TestGesturePipeline(unittest.TestCase):
    def setUp(self):
        self.pipeline = GesturePipeline()
        self.ts = 0.0

    def feed(self, hands, frames=1):
        for _ in range(frames):
            self.ts += 1 / 30
            self.pipeline.process_frame(self.ts, hands)

    def test_stabilized_after_three_frames(self):
        self.feed([hand(peace())], frames=2)
        self.assertEqual(self.pipeline.current_gesture(), Gesture.NONE)
        self.feed([hand(peace())])
        self.assertEqual(self.pipeline.current_gesture(), Gesture.PEACE)

    def test_stale_frames_are_rejected(self):
        self.assertTrue(self.pipeline.process_frame(1.0, [hand(fist())]))
        self.assertFalse(self.pipeline.process_frame(1.0, [hand(fist())]))
        self.assertFalse(self.pipeline.process_frame(0.5, [hand(fist())]))
        self.assertEqual(self.pipeline.frames_processed, 1)
        self.assertEqual(len(self.pipeline.slots.slots[0].stabilizer.history), 1)

    def test_zero_hands_resets(self):
        self.feed([hand(fist())], frames=5)
        self.assertEqual(self.pipeline.current_gesture(), Gesture.FIST)
        self.feed([])
        self.assertEqual(self.pipeline.current_gesture(), Gesture.NONE)
        self.assertEqual(self.pipeline.slots.occupied(), [])
        self.feed(None)
        self.assertEqual(self.pipeline.current_gesture(), Gesture.NONE)

    def test_two_hands_are_independent(self):
        self.feed([hand(fist(), 'left'), hand(peace(), 'right')], frames=3)
        self.assertEqual(self.pipeline.slot_gestures(), {0: Gesture.FIST, 1: Gesture.PEACE})

    def test_slots_follow_handedness(self):
        self.feed([hand(fist(), 'left'), hand(peace(), 'right')], frames=3)
        # Detector order flips; each hand keeps its own slot and history
        self.feed([hand(peace(), 'right'), hand(fist(), 'left')], frames=2)
        self.assertEqual(self.pipeline.slot_gestures(), {0: Gesture.FIST, 1: Gesture.PEACE})
        self.assertEqual(self.pipeline.slots.slots[0].handedness, 'left')

    def test_lost_hand_releases_its_slot(self):
        self.feed([hand(fist(), 'left'), hand(peace(), 'right')], frames=3)
        self.feed([hand(peace(), 'right')])
        left_slot = self.pipeline.slots.slots[0]
        self.assertFalse(left_slot.occupied)
        self.assertEqual(left_slot.stabilizer.current, Gesture.NONE)
        self.assertEqual(self.pipeline.slots.slots[1].stabilizer.current, Gesture.PEACE)

    def test_extra_hands_are_ignored(self):
        hands = [hand(fist(), 'left'), hand(peace(), 'right'), hand(open_palm(), 'right')]
        self.feed(hands, frames=3)
        self.assertEqual(len(self.pipeline.slots.occupied()), 2)
        self.assertNotIn(Gesture.OPEN_PALM, self.pipeline.slot_gestures().values())

    def test_preferred_hand(self):
        pipeline = GesturePipeline(preferred_hand='right')
        for i in range(3):
            pipeline.process_frame(float(i + 1), [hand(fist(), 'left'), hand(swipe(), 'right')])
        self.assertEqual(pipeline.current_gesture(), Gesture.SWIPE)

        pipeline = GesturePipeline(preferred_hand='any')
        for i in range(3):
            pipeline.process_frame(float(i + 1), [hand(fist(), 'left'), hand(swipe(), 'right')])
        self.assertEqual(pipeline.current_gesture(), Gesture.FIST)

    def test_preferred_hand_missing_falls_back(self):
        pipeline = GesturePipeline(preferred_hand='left')
        for i in range(3):
            pipeline.process_frame(float(i + 1), [hand(open_palm(), 'right')])
        self.assertEqual(pipeline.current_gesture(), Gesture.OPEN_PALM)

    def test_single_hand_mode(self):
        pipeline = GesturePipeline(max_hands=1)
        self.assertEqual(len(pipeline.slots.slots), 1)

    def test_malformed_hand_counts_as_none(self):
        bad = HandObservation(landmarks=fist()[:10], handedness='right')
        self.feed([bad], frames=3)
        self.assertEqual(self.pipeline.slots.slots[0].raw_gesture, Gesture.NONE)
        self.assertEqual(self.pipeline.current_gesture(), Gesture.NONE)

    def test_depth_aware_classification(self):
        points = fist()
        points[8, 2] = -0.3  # index extended towards the camera only
        observation = HandObservation.from_landmarks(points, handedness='right', use_depth=True)

        pipeline = GesturePipeline(use_depth=True)
        for i in range(1, 4):
            pipeline.process_frame(i / 30, [observation])
        self.assertEqual(pipeline.current_gesture(), Gesture.SWIPE)

        self.feed([observation], frames=3)
        self.assertEqual(self.pipeline.current_gesture(), Gesture.FIST)

    def test_reset(self):
        self.feed([hand(fist())], frames=3)
        self.pipeline.reset()
        self.assertIsNone(self.pipeline.last_timestamp)
        self.assertEqual(self.pipeline.current_gesture(), Gesture.NONE)
        self.assertTrue(self.pipeline.process_frame(0.01, [hand(fist())]))

    def test_from_config(self):
        config = MagicMock()
        values = {'history_size': 7, 'confidence_ratio': 0.5, 'preferred_hand': 'Left'}
        config.get.side_effect = lambda section, key, default=None: values.get(key, default)
        pipeline = GesturePipeline.from_config(config)
        self.assertEqual(pipeline.preferred_hand, 'left')
        self.assertEqual(pipeline.slots.slots[0].stabilizer.history_size, 7)
        self.assertEqual(pipeline.slots.slots[0].stabilizer.min_votes, 4)


class TestHandSlots(unittest.TestCase):
    def test_unknown_handedness_takes_free_slots(self):
        slots = HandSlots(GestureStabilizer)
        assigned = slots.assign([hand(fist(), None), hand(peace(), None)])
        self.assertEqual(sorted(assigned), [0, 1])

    def test_release_all(self):
        slots = HandSlots(GestureStabilizer)
        slots.assign([hand(fist(), 'left')])
        slots.release_all()
        self.assertEqual(slots.occupied(), [])


class FakeSource:
    def __init__(self, timestamps, hands=None):
        self.timestamps = list(timestamps)
        self.hands = hands if hands is not None else [hand(fist())]
        self.detect_calls = []

    def current_timestamp(self):
        return self.timestamps.pop(0) if self.timestamps else None

    def detect(self, timestamp):
        self.detect_calls.append(timestamp)
        return self.hands


class TestFramePump(unittest.TestCase):
    def test_duplicate_timestamps_skip_detection(self):
        source = FakeSource([0.1, 0.1, 0.2, None, 0.15, 0.3])
        pump = FramePump(source, GesturePipeline())
        results = [pump.poll_once() for _ in range(6)]
        self.assertEqual(results, [True, False, True, False, False, True])
        self.assertEqual(source.detect_calls, [0.1, 0.2, 0.3])
        self.assertEqual(pump.pipeline.current_gesture(), Gesture.FIST)

    def test_empty_detection(self):
        source = FakeSource([0.1], hands=[])
        pump = FramePump(source, GesturePipeline())
        self.assertTrue(pump.poll_once())
        self.assertEqual(pump.pipeline.current_gesture(), Gesture.NONE)


class TestFramePumpTask(unittest.IsolatedAsyncioTestCase):
    async def test_run_is_cancellable(self):
        source = FakeSource([i * 0.01 for i in range(1, 1000)])
        pump = FramePump(source, GesturePipeline(), interval=0.001)
        task = asyncio.create_task(pump.run())
        await asyncio.sleep(0.02)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        await pump.drain()
        polled = len(source.detect_calls)
        self.assertGreater(polled, 0)
        await asyncio.sleep(0.01)
        self.assertEqual(len(source.detect_calls), polled)

    async def test_blocking_source_runs_off_the_loop(self):
        class SlowSource(FakeSource):
            def detect(self, timestamp):
                time.sleep(0.05)
                return super().detect(timestamp)

        pump = FramePump(SlowSource([0.1]), GesturePipeline())
        beats = []

        async def heartbeat():
            while True:
                beats.append(1)
                await asyncio.sleep(0.005)

        task = asyncio.create_task(heartbeat())
        await asyncio.sleep(0)
        self.assertTrue(await pump.poll())
        task.cancel()
        self.assertGreater(len(beats), 3)
        self.assertEqual(pump.source.detect_calls, [0.1])


if __name__ == '__main__':
    unittest.main()
