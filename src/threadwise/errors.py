"""Error types raised by threadwise."""


class ThreadwiseError(Exception):
    """Base class for all threadwise errors."""


class InvalidArgument(ThreadwiseError, ValueError):
    """A caller passed a value the stores cannot accept (e.g. an empty fact key)."""


class NotReady(ThreadwiseError):
    """The embedding or query backend is unavailable.

    The assembler treats this as a degraded mode: the memory section is
    left empty and the request still succeeds.
    """


class MaintenanceFailure(ThreadwiseError):
    """Summarization or fact extraction failed.

    Raised by the capability adapters and caught by the maintenance worker,
    which logs it and retries on the next trigger. Never reaches the request
    path.
    """
