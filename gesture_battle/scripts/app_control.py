#!/usr/bin/env python3
"""
app_control.py - CLI tool to control a running gesture battle via config.json

Usage:
    python -m gesture_battle.scripts.app_control --pause true
    python -m gesture_battle.scripts.app_control --pause false
    python -m gesture_battle.scripts.app_control --restart
    python -m gesture_battle.scripts.app_control --exit true
    python -m gesture_battle.scripts.app_control --config /path/to/config.json --status

Modifies the app_control fields in config.json; the running application
notices the file change and applies them.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional


FLAG_DESCRIPTIONS = {
    'pause': "Set to true to pause the match (hot-reloaded)",
    'exit': "Set to true to gracefully exit the application (hot-reloaded)",
    'restart': "Set to true to restart the match (hot-reloaded, cleared after use)",
}


def str_to_bool(value: str) -> bool:
    """Convert string to boolean."""
    if value.lower() in ('true', '1', 'yes', 'on'):
        return True
    elif value.lower() in ('false', '0', 'no', 'off'):
        return False
    else:
        raise ValueError(f"Invalid boolean value: {value}")


def _flag_value(app_control: dict, name: str) -> bool:
    entry = app_control.get(name, False)
    if isinstance(entry, list):
        return bool(entry[0]) if entry else False
    return bool(entry)


def update_config(config_path: str, exit_val: Optional[bool] = None,
                  pause_val: Optional[bool] = None, restart_val: Optional[bool] = None) -> bool:
    """
    Update the app_control fields in config.json.

    Args:
        config_path: Path to config.json
        exit_val: Value for app_control.exit (None = don't change)
        pause_val: Value for app_control.pause (None = don't change)
        restart_val: Value for app_control.restart (None = don't change)

    Returns:
        True if successful, False otherwise
    """
    try:
        with open(config_path, 'r') as f:
            config = json.load(f)

        app_control = config.setdefault('app_control', {})

        for name, value in (('exit', exit_val), ('pause', pause_val), ('restart', restart_val)):
            if value is None:
                continue
            entry = app_control.get(name)
            if isinstance(entry, list) and entry:
                entry[0] = value
            else:
                app_control[name] = [value, FLAG_DESCRIPTIONS[name]]
            print(f"✓ Set app_control.{name} = {value}")

        with open(config_path, 'w') as f:
            json.dump(config, f, indent=2)

        print(f"✓ Config saved to {config_path}")
        return True

    except FileNotFoundError:
        print(f"✗ Config file not found: {config_path}", file=sys.stderr)
        return False
    except json.JSONDecodeError as e:
        print(f"✗ Invalid JSON in config file: {e}", file=sys.stderr)
        return False
    except OSError as e:
        print(f"✗ Error updating config: {e}", file=sys.stderr)
        return False


def read_status(config_path: str) -> dict:
    with open(config_path, 'r') as f:
        config = json.load(f)
    app_control = config.get('app_control', {})
    return {name: _flag_value(app_control, name) for name in FLAG_DESCRIPTIONS}


def get_default_config_path() -> str:
    """Get the default config.json path."""
    script_dir = Path(__file__).parent

    candidates = [
        script_dir.parent / 'config' / 'config.json',  # gesture_battle/config/config.json
        Path.cwd() / 'gesture_battle' / 'config' / 'config.json',  # From project root
        Path.cwd() / 'config.json',  # Current directory
    ]

    for path in candidates:
        if path.exists():
            return str(path)

    return str(candidates[0])


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Control a running gesture battle via config.json",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
app_control.py --pause true           # Pause the match
app_control.py --pause false          # Resume the match
app_control.py --restart              # Start a fresh match
app_control.py --exit true            # Signal app to exit
app_control.py --status               # Show current values
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Path to config.json (default: auto-detect)'
    )
    parser.add_argument(
        '--exit', '-e',
        type=str,
        default=None,
        metavar='BOOL',
        help='Set app_control.exit (true/false)'
    )
    parser.add_argument(
        '--pause', '-p',
        type=str,
        default=None,
        metavar='BOOL',
        help='Set app_control.pause (true/false)'
    )
    parser.add_argument(
        '--restart', '-r',
        action='store_true',
        help='Request a match restart'
    )
    parser.add_argument(
        '--status', '-s',
        action='store_true',
        help='Show current app_control values'
    )

    args = parser.parse_args(argv)

    config_path = args.config if args.config else get_default_config_path()

    if args.status:
        try:
            status = read_status(config_path)
        except (OSError, json.JSONDecodeError) as e:
            print(f"✗ Error reading config: {e}", file=sys.stderr)
            return 1
        print(f"Config: {config_path}")
        for name, value in status.items():
            print(f"  app_control.{name:<7} = {value}")
        return 0

    if args.exit is None and args.pause is None and not args.restart:
        parser.print_help()
        print("\nError: At least one of --exit, --pause or --restart must be specified", file=sys.stderr)
        return 1

    try:
        exit_val = str_to_bool(args.exit) if args.exit is not None else None
        pause_val = str_to_bool(args.pause) if args.pause is not None else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    success = update_config(
        config_path,
        exit_val=exit_val,
        pause_val=pause_val,
        restart_val=True if args.restart else None,
    )
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
