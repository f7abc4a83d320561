import unittest
from unittest.mock import MagicMock, create_autospec
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gesture_battle.app.command_dispatcher import CommandDispatcher
from gesture_battle.engine.battle_session import BattleSession


class TestCommandDispatcher(unittest.TestCase):
    def setUp(self):
        # Mock BattleSession with autospec to support introspection
        self.mock_session = create_autospec(BattleSession, instance=True)
        self.dispatcher = CommandDispatcher(self.mock_session)

    def test_load_map(self):
        controls = [
            {"key": "P", "command": "toggle_pause"},
            {"key": "r", "command": "restart_match"},
            {"key": "x", "command": "format_disk"},
            {"command": "quit_match"},
        ]
        self.dispatcher.load_map(controls)

        self.assertIn("p", self.dispatcher.key_map)
        self.assertIn("r", self.dispatcher.key_map)
        self.assertNotIn("x", self.dispatcher.key_map)
        self.assertEqual(len(self.dispatcher.key_map), 2)

    def test_dispatch_key_codes(self):
        self.dispatcher.load_map([{"key": "q", "command": "quit_match"}])

        self.dispatcher.dispatch_key(ord('Q'))
        self.mock_session.quit_match.assert_called_once_with()

    def test_no_key_pressed(self):
        self.dispatcher.load_map([{"key": "q", "command": "quit_match"}])

        self.assertIsNone(self.dispatcher.dispatch_key(-1))
        self.assertIsNone(self.dispatcher.dispatch_key(255))
        self.assertIsNone(self.dispatcher.dispatch_key(None))
        self.assertIsNone(self.dispatcher.dispatch_key('z'))
        self.mock_session.quit_match.assert_not_called()

    def test_dispatch_args_from_config(self):
        self.dispatcher.load_map([
            {"key": "1", "command": "set_opponent_move_override", "args": {"move": "fist"}},
            {"key": "0", "command": "set_opponent_move_override", "args": {"move": None}},
        ])

        self.dispatcher.dispatch_key('1')
        self.mock_session.set_opponent_move_override.assert_called_with(move="fist")
        self.dispatcher.dispatch_key('0')
        self.mock_session.set_opponent_move_override.assert_called_with(move=None)

    def test_unknown_args_are_dropped(self):
        self.dispatcher.dispatch("restart_match", {"hard": True})
        self.mock_session.restart_match.assert_called_once_with()

    def test_returns_command_result(self):
        self.mock_session.pause.return_value = True
        self.assertTrue(self.dispatcher.dispatch("pause"))

    def test_unknown_command(self):
        self.assertIsNone(self.dispatcher.dispatch("self_destruct"))

    def test_command_error_is_contained(self):
        session = MagicMock()
        session.toggle_pause.side_effect = ValueError("bad state")
        dispatcher = CommandDispatcher(session)
        self.assertIsNone(dispatcher.dispatch("toggle_pause"))


if __name__ == '__main__':
    unittest.main()
