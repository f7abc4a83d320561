import asyncio
import json
import os
import sys
import tempfile
import time
import unittest
from contextlib import redirect_stdout
from io import StringIO
from unittest.mock import patch

import numpy as np

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from gesture_battle.app.battle_app import BattleApplication, build_opponent
from gesture_battle.app.commentary import CannedCommentary, GeminiCommentary
from gesture_battle.config.config_manager import Config, config
from gesture_battle.detectors.gesture_detectors import Gesture, HandObservation
from gesture_battle.engine.battle_state import BattleState, MatchResult, Outcome, Phase, TurnRecord
from gesture_battle.engine.opponents import FixedOpponent, RandomOpponent
from gesture_battle.utils.visual_feedback import BattleHUD, gesture_label
from hand_fixtures import peace


class FakeCameraSource:
    def __init__(self):
        self.t = 0.0
        self.last_frame = np.zeros((120, 160, 3), dtype=np.uint8)
        self.last_hands = []
        self.released = False

    def current_timestamp(self):
        self.t += 0.01
        return self.t

    def detect(self, timestamp):
        self.last_hands = [HandObservation.from_landmarks(peace(), handedness='right')]
        return self.last_hands

    def release(self):
        self.released = True


def quiet_app(**kwargs):
    kwargs.setdefault('enable_commentary', False)
    with redirect_stdout(StringIO()):
        return BattleApplication(source=FakeCameraSource(), show_window=False, **kwargs)


class TestBattleApplication(unittest.TestCase):
    def setUp(self):
        self.original_path = config.path
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'config.json')
        with open(self.original_path) as f:
            self.data = json.load(f)
        self.write()
        self.mtime_offset = 0
        with redirect_stdout(StringIO()):
            Config(self.path)
        self.app = quiet_app(opponent=FixedOpponent('fist'))

    def tearDown(self):
        with redirect_stdout(StringIO()):
            Config(self.original_path)
        self.tmpdir.cleanup()

    def write(self):
        with open(self.path, 'w') as f:
            json.dump(self.data, f)

    def touch_config(self, **flags):
        for name, value in flags.items():
            self.data['app_control'][name] = [value, ""]
        self.write()
        self.mtime_offset += 10
        future = time.time() + self.mtime_offset
        os.utime(self.path, (future, future))

    def test_wiring(self):
        self.assertEqual(self.app.config_path, self.path)
        self.assertIs(self.app.engine.gesture_source.__self__, self.app.pipeline)
        self.assertIs(self.app.session.frame_pump.pipeline, self.app.pipeline)
        self.assertIn('p', self.app.dispatcher.key_map)

    def test_pause_flag(self):
        with redirect_stdout(StringIO()):
            self.touch_config(pause=True)
            self.app.check_app_control()
        self.assertTrue(self.app.engine.state.paused)

        with redirect_stdout(StringIO()):
            self.touch_config(pause=False)
            os.utime(self.path, (time.time() + 100, time.time() + 100))
            self.app.check_app_control()
        self.assertFalse(self.app.engine.state.paused)

    def test_restart_flag_is_cleared(self):
        self.app.engine.state.player_hp = 40
        with redirect_stdout(StringIO()):
            self.touch_config(restart=True)
            self.app.check_app_control()
        self.assertEqual(self.app.engine.state.player_hp, 100)
        with open(self.path) as f:
            self.assertFalse(json.load(f)['app_control']['restart'][0])

    def test_pause_is_retried_after_refusal(self):
        self.app.engine.state.phase = Phase.FINISHED
        with redirect_stdout(StringIO()):
            self.touch_config(pause=True)
            self.app.check_app_control()
        self.assertFalse(self.app.paused_via_config)

        self.app.engine.state.phase = Phase.COUNTDOWN
        with redirect_stdout(StringIO()):
            self.touch_config(pause=True)
            self.app.check_app_control()
        self.assertTrue(self.app.engine.state.paused)
        self.assertTrue(self.app.paused_via_config)

    def test_restart_clears_pause_flag(self):
        with redirect_stdout(StringIO()):
            self.touch_config(pause=True)
            self.app.check_app_control()
            self.touch_config(restart=True)
            self.app.check_app_control()

        self.assertFalse(self.app.engine.state.paused)
        self.assertFalse(self.app.paused_via_config)
        with open(self.path) as f:
            flags = json.load(f)['app_control']
        self.assertFalse(flags['pause'][0])
        self.assertFalse(flags['restart'][0])

    def test_commentary_provider_choice(self):
        self.assertIsInstance(self.app.session.commentary, CannedCommentary)
        with patch.dict(os.environ, {'GEMINI_API_KEY': ''}):
            app = quiet_app(enable_commentary=True)
        self.assertIsInstance(app.session.commentary, CannedCommentary)
        with patch.dict(os.environ, {'GEMINI_API_KEY': 'key'}):
            app = quiet_app(enable_commentary=True)
        self.assertIsInstance(app.session.commentary, GeminiCommentary)

    def test_exit_flag(self):
        with redirect_stdout(StringIO()):
            self.touch_config(exit=True)
            self.app.check_app_control()
        self.assertFalse(self.app.running)

    def test_unchanged_file_is_not_reloaded(self):
        with redirect_stdout(StringIO()) as out:
            self.app.check_app_control()
        self.assertEqual(out.getvalue(), "")

    def test_build_opponent(self):
        self.assertIsInstance(build_opponent('random', seed=1), RandomOpponent)
        self.assertEqual(build_opponent('peace').next_move(), Gesture.PEACE)


class TestApplicationLoop(unittest.IsolatedAsyncioTestCase):
    async def test_run_and_quit(self):
        app = quiet_app()
        app.refresh_interval = 0.005

        with redirect_stdout(StringIO()):
            task = asyncio.create_task(app.run())
            for _ in range(200):
                await asyncio.sleep(0.005)
                if app.pipeline.current_gesture() == Gesture.PEACE:
                    break
            self.assertEqual(app.pipeline.current_gesture(), Gesture.PEACE)
            app.session.quit_match()
            await asyncio.wait_for(task, timeout=1)

        self.assertTrue(app.source.released)
        self.assertEqual(app.session.active_tasks, 0)


class TestBattleHUD(unittest.TestCase):
    def setUp(self):
        self.hud = BattleHUD()
        self.frame = np.zeros((480, 640, 3), dtype=np.uint8)

    def test_gesture_label(self):
        self.assertEqual(gesture_label(Gesture.NONE), "READY")
        self.assertEqual(gesture_label(Gesture.OPEN_PALM), "OPEN PALM")

    def test_draws_countdown(self):
        self.hud.draw(self.frame, BattleState(), Gesture.FIST)
        self.assertGreater(int(self.frame.sum()), 0)

    def test_draws_every_phase(self):
        record = TurnRecord(1, Gesture.FIST, Gesture.PEACE, Outcome.WIN, "Boom!", enemy_damage=20,
                            streak=3, finisher=True)
        states = [
            BattleState(phase=Phase.REVEAL, player_move=Gesture.FIST, enemy_move=Gesture.PEACE),
            BattleState(phase=Phase.RESOLVING, battle_log=[record], last_finisher=True, enemy_hp=10),
            BattleState(phase=Phase.PAUSED, paused_phase=Phase.REVEAL),
            BattleState(phase=Phase.FINISHED, player_hp=0, battle_log=[record],
                        result=MatchResult('enemy', 1, 0, 1, 0, 0, 100, 'knockout')),
        ]
        for state in states:
            with self.subTest(phase=state.phase):
                frame = np.zeros((480, 640, 3), dtype=np.uint8)
                self.hud.draw(frame, state, Gesture.NONE,
                              hands=[HandObservation.from_landmarks(peace(), handedness='left')])
                self.assertGreater(int(frame.sum()), 0)


if __name__ == '__main__':
    unittest.main()
