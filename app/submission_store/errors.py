"""
Errors raised by the submission store.
"""


class StoreError(Exception):
    """Base class for submission store failures."""


class NotFound(StoreError):
    """No submission exists with the requested id."""


class Forbidden(StoreError):
    """The caller does not own the requested submission."""


class InvalidRevision(StoreError):
    """A revision touched non-analysis fields or produced an invalid analysis."""


class PreconditionFailed(StoreError):
    """The create precondition rejected the owner's current submissions."""


class PersistenceError(StoreError):
    """The backing storage could not be read or written."""


class InvalidOwner(StoreError):
    """The owner id is not usable as a storage key."""
