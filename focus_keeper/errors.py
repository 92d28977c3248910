class FocusError(Exception):
    """Base class for errors raised by the session engine."""


class InvalidStateError(FocusError):
    """A mutation was attempted on a session or tracker that cannot accept it."""


class PreconditionError(FocusError, ValueError):
    """An argument was out of range (negative duration, empty target, ...)."""
