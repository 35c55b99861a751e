class RoutinekitError(Exception):
    """Base class for all routinekit errors."""


class TaskletError(RoutinekitError):
    """
    Raised by tasklet callbacks to report an ordinary failure.

    Handlers log it at ERROR level. Any other exception escaping a callback
    is treated as a panic and logged with a traceback excerpt.
    """


class RoutineError(RoutinekitError):
    """Base class for routine administration errors."""


class NoRoutinesError(RoutineError, TaskletError):
    """Raised by `RoutineManager.initialize` when no routine is loaded."""

    def __init__(self, message: str = "no routines loaded") -> None:
        super().__init__(message)


class DuplicateRoutineError(RoutineError):
    def __init__(self, message: str = "duplicate routine name") -> None:
        super().__init__(message)


class InvalidRoutineError(RoutineError):
    def __init__(self, message: str = "invalid routine name") -> None:
        super().__init__(message)


class RoutineActiveError(RoutineError):
    def __init__(self, name: str) -> None:
        super().__init__(f"failed to stop routine: {name}")
        self.name = name
