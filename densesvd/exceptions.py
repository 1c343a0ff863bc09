class PipelineError(Exception):
    """Base class for failures that end a run with a non-zero exit code."""

    exit_code = 1


class UsageError(PipelineError):
    exit_code = 2


class MatrixIOError(PipelineError, OSError):
    """Input unreadable, or output / log path unwritable."""


class AllocationError(PipelineError, MemoryError):
    """The dense buffer cannot be allocated at the requested size."""


class FactorizationFailure(PipelineError):
    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class MatrixFormatError(PipelineError, ValueError):
    """A matrix cannot be written in the results record layout."""
