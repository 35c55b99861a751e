"""
The command channel package.
Carries command strings from operators to a running process and its replies
back, over a local HTTP endpoint.
"""

from .listener import CommandListener, HttpCommandListener
from .client import send_command

__all__ = ["CommandListener", "HttpCommandListener", "send_command"]
