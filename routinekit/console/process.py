import logging

from routinekit.console.handler import forward_command, handle_config_command, print_help, toggle_verbose_logging

log = logging.getLogger(__name__)

# Sending 'exit' would close the console, so the remote exit is spelled 'exit!'.
REMOTE_ALIASES = {"exit!": "exit"}


def execute_command(command_line: str, host: str, port: int) -> bool:
    """
    Executes a single console input line.

    Local commands are handled here; everything else is forwarded to the
    process listening on host:port.

    :param command_line: The raw input line.
    :param host: The process's command listener host.
    :param port: The process's command listener port.
    :return bool: True if the console should exit, False otherwise.
    """
    command_line = command_line.strip()
    if not command_line:
        return False

    command = command_line.lower()
    log.debug(f"Executing command: {command_line}")
    local_commands = {
        "help": print_help,
        "verbose": toggle_verbose_logging,
    }

    if command in ("exit", "quit"):
        return True
    if command in local_commands:
        local_commands[command]()
        return False
    if command.split()[0] == "config":
        handle_config_command(command_line.split()[1:])
        return False

    forward_command(host, port, REMOTE_ALIASES.get(command, command_line))
    return False
