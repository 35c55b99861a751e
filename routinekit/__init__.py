"""
routinekit: cooperative lifecycle management for long-running work.

A Tasklet is driven by a TaskletHandler; a Process adds OS signal routing and
command dispatch; a RoutineManager supervises named routines.
"""

from .proc import (
    Tasklet, TaskletHandler, Process, Routine, RoutineHandler, RoutineManager,
    TaskletError, RoutineError,
)

__version__ = "0.1.0"

__all__ = [
    "Tasklet", "TaskletHandler", "Process", "Routine", "RoutineHandler", "RoutineManager",
    "TaskletError", "RoutineError", "__version__",
]
