import argparse
import logging
import sys
import threading
from typing import List, Optional

import routinekit.console as console
from routinekit.config import effective_settings as config
from routinekit.log import setup_logging

log = logging.getLogger("console")

CONSOLE_LOCK = threading.Lock()


def main(argv: Optional[List[str]] = None) -> int:
    """The entry point of the management console."""
    parser = argparse.ArgumentParser(description="Send commands to a running routinekit process.")
    parser.add_argument("--host", default=config.COMMAND_API_HOST, help="command listener host")
    parser.add_argument("--port", type=int, default=config.COMMAND_API_PORT, help="command listener port")
    parser.add_argument("--verbose", action="store_true", help="enable debug logs")
    parser.add_argument("command", nargs="*", help="run one command and exit")
    args = parser.parse_args(argv)

    setup_logging(logging.INFO)
    if args.verbose:
        console.toggle_verbose_logging()

    # Non-interactive mode for one-off commands
    if args.command:
        console.execute_command(" ".join(args.command), args.host, args.port)
        return 0

    # Interactive mode
    print("--- Process Management Console ---")
    print(f"Connected to http://{args.host}:{args.port}. Type 'help' for a list of commands.")
    while True:
        try:
            # The input prompt must be outside the lock to not block background threads
            command_line = input("> ")
            with CONSOLE_LOCK:
                if console.execute_command(command_line, args.host, args.port):
                    break
        except (KeyboardInterrupt, EOFError):
            with CONSOLE_LOCK:
                log.warning("Exiting console.")
                break
        except Exception as e:
            with CONSOLE_LOCK:
                log.error(f"An unexpected error occurred in the console: {e}", exc_info=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
