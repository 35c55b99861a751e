"""
The proc package.
Cooperative lifecycle management for long-running work units.

This package contains the Tasklet contract, the TaskletHandler driving it,
the Process adding signal routing and command dispatch, and the
RoutineManager supervising named routines.
"""
from .errors import (
    RoutinekitError, TaskletError, RoutineError, NoRoutinesError,
    DuplicateRoutineError, InvalidRoutineError, RoutineActiveError,
)
from .tasklet import Tasklet, TaskletHandler
from .process import Process
from .routine import Routine, RoutineHandler, RoutineManager

__all__ = [
    'Tasklet', 'TaskletHandler', 'Process', 'Routine', 'RoutineHandler', 'RoutineManager',
    'RoutinekitError', 'TaskletError', 'RoutineError', 'NoRoutinesError',
    'DuplicateRoutineError', 'InvalidRoutineError', 'RoutineActiveError',
]
