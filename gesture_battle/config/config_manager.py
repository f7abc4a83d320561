"""
Configuration Management for the gesture battle

Loads and provides access to configuration from config.json.
Entries may be plain values or [value, description] pairs.
"""

import json
from typing import Dict, Any, Optional, Tuple
from pathlib import Path


class Config:
    """
    Singleton configuration manager that loads from config.json
    """
    _instance = None
    _config_data: Dict[str, Any] = {}
    _config_path: str = ""

    def __new__(cls, *args, **kwargs):
        # Config(path) must still hand back the shared instance
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from JSON file.

        Args:
            config_path: Path to config.json. If provided, force reload from
                         that path. If None, load from the default location
                         only on first initialization.
        """
        if config_path is not None:
            self._config_path = str(config_path)
            self.reload()
            return

        if not self._config_data:  # Only load once
            self._config_path = str(Path(__file__).parent / "config.json")
            self.reload()

    @property
    def path(self) -> str:
        return self._config_path

    def reload(self):
        """Reload configuration from file."""
        try:
            with open(self._config_path, 'r') as f:
                self._config_data = json.load(f)
            print(f"✓ Loaded configuration from {self._config_path}")
        except FileNotFoundError:
            print(f"⚠ Config file not found: {self._config_path}")
            print("  Using default values")
            self._config_data = self._get_defaults()
        except json.JSONDecodeError as e:
            print(f"⚠ Error parsing config file: {e}")
            print("  Using default values")
            self._config_data = self._get_defaults()

    def save(self):
        """Save current configuration back to file."""
        try:
            with open(self._config_path, 'w') as f:
                json.dump(self._config_data, f, indent=2)
            print(f"✓ Saved configuration to {self._config_path}")
        except OSError as e:
            print(f"✗ Error saving config: {e}")

    def get(self, *keys, default=None) -> Any:
        """
        Get configuration value by key path.

        Examples:
            config.get('battle', 'max_hp')          # Returns 100
            config.get('timing', 'reveal_dwell')    # Returns 1.5

        Args:
            keys: Path to value (e.g., 'gesture', 'history_size')
            default: Default value if path doesn't exist

        Returns:
            Configuration value or default
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        # [value, description] pairs; a list of dicts (e.g. controls) is a plain value
        if isinstance(current, list) and len(current) >= 1 and not isinstance(current[0], dict):
            return current[0]

        return current

    def get_with_description(self, *keys, default=None) -> Tuple[Any, str]:
        """
        Get configuration value AND description.

        Returns:
            Tuple of (value, description) or (default, "")
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return (default, "")

        if isinstance(current, list) and current and not isinstance(current[0], dict):
            if len(current) >= 2:
                return (current[0], current[1])
            return (current[0], "")

        return (current, "")

    def set(self, *keys, value):
        """
        Set configuration value by key path. Keeps an existing description.

        Example:
            config.set('battle', 'match_seconds', value=90)
        """
        if len(keys) == 0:
            return

        current = self._config_data
        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        existing = current.get(keys[-1])
        if isinstance(existing, list) and len(existing) == 2 and isinstance(existing[1], str):
            current[keys[-1]] = [value, existing[1]]
        else:
            current[keys[-1]] = value

    def _get_defaults(self) -> Dict:
        """Return default configuration values."""
        return {
            "gesture": {
                "history_size": 5,
                "confidence_ratio": 0.6,
                "extension_ratio": 1.0,
                "use_depth": False,
                "max_hands": 2,
                "preferred_hand": "any"
            },
            "battle": {
                "max_hp": 100,
                "turn_seconds": 3,
                "match_seconds": 60,
                "win_damage": 20,
                "streak_bonus": 10,
                "finisher_streak": 3,
                "finisher_bonus": 30,
                "loss_damage": 20,
                "no_gesture_damage": 10,
                "player_name": "Player",
                "enemy_name": "Shadow Fighter"
            },
            "timing": {
                "tick_interval": 1.0,
                "reveal_dwell": 1.5,
                "result_dwell": 2.5,
                "finisher_dwell": 4.0,
                "frame_interval": 1 / 60
            },
            "commentary": {
                "enabled": True,
                "model": "gemini-1.5-flash",
                "api_key_env": "GEMINI_API_KEY",
                "timeout": 3.0,
                "http_timeout": 5.0,
                "fallback": "The battle rages on!"
            },
            "camera": {
                "index": 0,
                "width": 640,
                "height": 480,
                "flip_horizontal": True
            },
            "performance": {
                "use_gpu": False,
                "min_detection_confidence": 0.5,
                "min_tracking_confidence": 0.5,
                "model_path": ""
            },
            "display": {
                "window_name": "Gesture Battle",
                "show_landmarks": True,
                "refresh_interval": 1 / 30
            },
            "controls": [
                {"key": "p", "command": "toggle_pause"},
                {"key": "r", "command": "restart_match"},
                {"key": "q", "command": "quit_match"},
                {"key": "1", "command": "set_opponent_move_override", "args": {"move": "fist"}},
                {"key": "2", "command": "set_opponent_move_override", "args": {"move": "open_palm"}},
                {"key": "3", "command": "set_opponent_move_override", "args": {"move": "peace"}},
                {"key": "0", "command": "set_opponent_move_override", "args": {"move": None}}
            ],
            "app_control": {
                "pause": False,
                "exit": False,
                "restart": False
            }
        }

    @property
    def data(self) -> Dict:
        """Get entire configuration dictionary."""
        return self._config_data


# Global configuration instance
config = Config()


# Convenience functions for common access patterns
def get_gesture_setting(param_name: str, default=None):
    """Get a perception parameter."""
    return config.get('gesture', param_name, default=default)


def get_battle_setting(param_name: str, default=None):
    """Get a battle rule parameter."""
    return config.get('battle', param_name, default=default)


def get_timing_setting(param_name: str, default=None):
    """Get a session timing parameter (seconds)."""
    return config.get('timing', param_name, default=default)


def get_commentary_setting(param_name: str, default=None):
    """Get a commentary provider parameter."""
    return config.get('commentary', param_name, default=default)
