"""Errors raised by the persistence and realtime layers.

Routes translate these into HTTP responses; the voting coordinator turns them
into failure notices so nothing reaches the user as a crash.
"""


class PlanitError(Exception):
    """Base class for every error the service raises on purpose."""


class PersistenceError(PlanitError):
    """A read or write against the backing store failed."""


class RecordNotFoundError(PersistenceError):
    pass


class PermissionDeniedError(PersistenceError):
    """The acting user is not allowed to touch the row."""


class InvalidRecordError(PersistenceError):
    """A record carried a value the table does not accept (unknown enum, bad column)."""


class ConflictError(PersistenceError):
    """A write violated a uniqueness or integrity constraint."""


class ChangeFeedError(PlanitError):
    pass


class ActionBlockedError(PlanitError):
    """The activity is not in a state that allows the requested action."""
