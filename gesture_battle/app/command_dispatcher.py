"""
Command Dispatcher for the gesture battle

Decouples input (keyboard, hot-reloaded config flags) from the match.
Key bindings come from the `controls` list in config.json; each entry names
a BattleSession command and optional arguments:

    {"key": "1", "command": "set_opponent_move_override", "args": {"move": "fist"}}

Lookups are a plain dict keyed by the lower-cased key character.
"""

import inspect
from typing import Any, Dict, List, Optional


# Session methods that may be bound to an input
SESSION_COMMANDS = (
    'pause',
    'resume',
    'toggle_pause',
    'restart_match',
    'quit_match',
    'set_opponent_move_override',
)


class CommandDispatcher:
    def __init__(self, session):
        """
        Args:
            session: BattleSession (or anything exposing SESSION_COMMANDS)
        """
        self.session = session
        self.key_map: Dict[str, Dict] = {}

    def load_map(self, controls: List[Dict]):
        """
        Build the key lookup from the raw configuration list.

        Entries without a key, or naming an unknown command, are skipped.
        """
        self.key_map.clear()
        if not controls:
            return

        skipped = 0
        for entry in controls:
            key = str(entry.get('key', '')).lower()
            command = entry.get('command')
            if not key or command not in SESSION_COMMANDS:
                skipped += 1
                continue
            self.key_map[key] = entry

        print(f"✓ Command Dispatcher loaded: {len(self.key_map)} key bindings"
              + (f" ({skipped} skipped)" if skipped else ""))

    @staticmethod
    def normalize_key(key) -> Optional[str]:
        """cv2.waitKey code or character -> lower-case character, None for no key."""
        if key is None:
            return None
        if isinstance(key, int):
            if key < 0 or (key & 0xFF) == 0xFF:
                return None
            try:
                return chr(key & 0xFF).lower()
            except ValueError:
                return None
        return str(key).lower() or None

    def dispatch_key(self, key) -> Any:
        """Run the command bound to `key`. Returns the command's result, None if unbound."""
        k = self.normalize_key(key)
        if k is None or k not in self.key_map:
            return None
        entry = self.key_map[k]
        return self.dispatch(entry['command'], entry.get('args'))

    def dispatch(self, command: str, args: Optional[Dict] = None) -> Any:
        """Call a session command by name with the arguments it accepts."""
        if command not in SESSION_COMMANDS:
            print(f"⚠ Unknown command: {command}")
            return None

        func = getattr(self.session, command, None)
        if func is None:
            return None

        kwargs = {}
        if isinstance(args, dict):
            params = inspect.signature(func).parameters
            kwargs = {k: v for k, v in args.items() if k in params}

        try:
            return func(**kwargs)
        except (TypeError, ValueError) as e:
            print(f"⚠ Error executing {command}: {e}")
            return None
