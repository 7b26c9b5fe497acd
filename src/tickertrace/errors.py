"""Exception hierarchy."""


class TickerTraceError(Exception):
    """Base exception for tickertrace errors."""


class MalformedContextError(TickerTraceError, ValueError):
    """A session context was derived from a missing parent."""


class RecorderError(TickerTraceError):
    """The logging backend could not accept a call record."""
