import logging
from typing import Optional

import requests

from routinekit.config import effective_settings as config

log = logging.getLogger(__name__)


def command_url(host: str, port: int) -> str:
    return f"http://{host}:{port}{config.COMMAND_API_PATH}"


def send_command(host: str, port: int, command: str, timeout: Optional[float] = None) -> Optional[str]:
    """
    Sends one command string to a running process and returns its reply.

    :param host: The host of the process's command listener.
    :param port: The port of the process's command listener.
    :param command: The command string, e.g. 'list_workers'.
    :param timeout: Seconds to wait for the reply, defaults to `COMMAND_TIMEOUT`.
    :return: The reply string, or None if the command could not be delivered.
    """
    url = command_url(host, port)
    try:
        response = requests.post(
            url,
            data=command.encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
            timeout=timeout or config.COMMAND_TIMEOUT,
        )
        response.raise_for_status()
        response.encoding = "utf-8"
        reply = response.text.strip()
        log.debug(f"Command '{command}' to '{url}' replied '{reply}'.")
        return reply
    except requests.exceptions.RequestException as e:
        log.error(f"Failed to send command '{command}' to '{url}': {e}")
        return None
