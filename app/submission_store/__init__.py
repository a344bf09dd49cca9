"""
Submission store: append/revise-only history of scored texts per user.
"""

from .errors import (
    StoreError,
    InvalidOwner,
    NotFound,
    Forbidden,
    InvalidRevision,
    PreconditionFailed,
    PersistenceError,
)
from .models import Submission, DEFAULT_TITLE
from .store import SubmissionStore, is_valid_owner_id

__all__ = [
    "StoreError",
    "InvalidOwner",
    "NotFound",
    "Forbidden",
    "InvalidRevision",
    "PreconditionFailed",
    "PersistenceError",
    "Submission",
    "DEFAULT_TITLE",
    "SubmissionStore",
    "is_valid_owner_id",
]
