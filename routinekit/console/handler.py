import json
import logging
from typing import List

from routinekit.comm import send_command
from routinekit.config import effective_settings as config
from routinekit.log import set_console_level

log = logging.getLogger(__name__)

VERBOSE_LOGGING = False


def display_reply(command: str, reply) -> None:
    """Prints a command reply, pretty-printing JSON payloads."""
    if reply is None:
        print(f"Command '{command}' could not be delivered. Is the process running?")
        return
    try:
        payload = json.loads(reply)
    except ValueError:
        print(reply)
        return
    if isinstance(payload, (dict, list)):
        print(json.dumps(payload, indent=2, sort_keys=True))
    else:
        print(reply)


def forward_command(host: str, port: int, command_line: str) -> None:
    """Sends a command line to the process and prints its reply."""
    reply = send_command(host, port, command_line)
    display_reply(command_line, reply)


def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    global VERBOSE_LOGGING
    VERBOSE_LOGGING = not VERBOSE_LOGGING
    new_level = logging.DEBUG if VERBOSE_LOGGING else logging.INFO

    status = "ON" if VERBOSE_LOGGING else "OFF"
    if set_console_level(new_level):
        print(f"Verbose console logging is now {status}.")
        log.debug("Debug logging test: This message should only appear when verbose is ON.")
    else:
        print("Could not find console handler to modify level.")


def _config_show() -> None:
    """Displays the modifiable settings as this console resolves them."""
    print("\n--- Current Configuration ---")
    print(f"(Overrides file: {config.OVERRIDES_JSON_PATH})")
    for key in sorted(config.MODIFIABLE_SETTINGS):
        print(f"  {key} = {config.get(key, 'N/A')}")
    print("---")
    print("Use 'config set <KEY> <VALUE>' to change a setting.")
    print("Processes pick up changes on their next start.\n")


def _config_set(args: List[str]) -> None:
    """Persists one setting to the overrides file, keeping the other modifiable values."""
    if len(args) < 2:
        print("Usage: config set <SETTING_NAME> <VALUE>")
        return

    key, value_str = args[0].upper(), " ".join(args[1:])
    if key not in config.MODIFIABLE_SETTINGS:
        print(f"Error: '{key}' is not a modifiable setting.")
        return

    overrides = {name: config.get(name) for name in config.MODIFIABLE_SETTINGS}
    overrides[key] = value_str
    config.save_overrides(overrides)
    config.reload()
    print(f"Setting '{key}' saved to {config.OVERRIDES_JSON_PATH}. Restart processes to apply it.")


def _config_help() -> None:
    print("\nConfig Command Help:")
    print("  config show                - Display all modifiable settings.")
    print("  config set KEY VALUE       - Persist a setting to the overrides file.")
    print("  config help                - Show this help message.")


def handle_config_command(args: List[str]) -> None:
    """
    Handles the sub-commands of the local 'config' command.

    :param args: The arguments following 'config'.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")


def print_help() -> None:
    """Prints the main help text for the console."""
    print("\nLocal commands:")
    print("  help                   - Show this help message.")
    print("  verbose                - Toggle detailed DEBUG log output in the console.")
    print("  config show|set|help   - Show or persist modifiable settings.")
    print("  exit | quit            - Exit the management console.")
    print("\nAny other input is sent to the process as a command, for example:")
    print("  status                 - Show process figures.")
    print("  list_workers           - List the loaded workers.")
    print("  add_worker | del_worker")
    print("  start_worker:<n> | stop_worker:<n> | restart_worker:<n>")
    print("  exit!                  - Ask the process itself to exit.")
    print()
