"""
This module contains the default configuration settings for routinekit.
It defines lifecycle timings, the command channel endpoint and the logging
configuration shared by every handler, process and routine manager.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)

#* --- Core Paths ---
BASE_DIR = pathlib.Path(os.getenv("ROUTINEKIT_HOME", pathlib.Path.cwd()))
OVERRIDES_JSON_PATH = BASE_DIR / "routinekit.overrides.json"

#* --- Tasklet Lifecycle Settings ---
EXEC_INTERVAL = float(os.getenv("ROUTINEKIT_EXEC_INTERVAL", "0"))  # seconds between executes
TERM_DELAY = float(os.getenv("ROUTINEKIT_TERM_DELAY", "10"))       # terminate grace budget, <= 0 is unbounded

#* --- Routine Manager Settings ---
MONITOR_INTERVAL = float(os.getenv("ROUTINEKIT_MONITOR_INTERVAL", "300"))  # 5 minutes
STOP_DELAY = float(os.getenv("ROUTINEKIT_STOP_DELAY", "3"))
STOP_POLL_INTERVAL = 0.1
MAX_WORKERS = 10

#* --- Process Settings ---
DISPATCH_JOIN_TIMEOUT = 2  # seconds to wait for the command dispatch thread on exit

#* --- Command Channel Settings ---
COMMAND_API_HOST = os.getenv("ROUTINEKIT_CMD_HOST", "127.0.0.1")
COMMAND_API_PORT = int(os.getenv("ROUTINEKIT_CMD_PORT", "8765"))
COMMAND_API_PATH = "/command"
COMMAND_POLL_INTERVAL = 0.5
COMMAND_TIMEOUT = 5

#* --- Logging Settings ---
LOG_LEVEL = os.getenv("ROUTINEKIT_LOG_LEVEL", "INFO").upper()
LOG_FILE_PATH = os.getenv("ROUTINEKIT_LOG_FILE", "")
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 3
TRACE_EXCERPT_DEPTH = 8  # frames kept in panic traces

#* --- Runtime-Modifiable Settings ---
# Only these keys may be changed through the overrides file.
MODIFIABLE_SETTINGS = {
    # Lifecycle
    "EXEC_INTERVAL", "TERM_DELAY",
    # Routine manager
    "MONITOR_INTERVAL", "STOP_DELAY", "MAX_WORKERS",
    # Command channel
    "COMMAND_API_HOST", "COMMAND_API_PORT", "COMMAND_TIMEOUT",
    # Logging
    "LOG_LEVEL", "LOG_FILE_PATH",
}
