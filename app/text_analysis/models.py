from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any

from app.quota.models import UsageState
from app.submission_store.models import Submission


class SubmissionState(Enum):
    """Lifecycle of one submit call."""
    VALIDATING = "validating"
    CHECKING_QUOTA = "checking_quota"
    SCORING = "scoring"
    PERSISTING = "persisting"
    COMPLETED = "completed"  # terminal
    REJECTED = "rejected"    # terminal, caller must change input or plan
    FAILED = "failed"        # terminal, safe to retry


class SubmissionError(Enum):
    INVALID_OWNER = "invalid_owner"
    TEXT_TOO_SHORT = "text_too_short"
    QUOTA_EXHAUSTED = "quota_exhausted"
    SCORING_ERROR = "scoring_error"
    PERSISTENCE_ERROR = "persistence_error"


class RecordError(Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_REVISION = "invalid_revision"
    PERSISTENCE_ERROR = "persistence_error"


@dataclass
class SubmissionOutcome:
    """Result of a submit call."""
    state: SubmissionState
    submission: Optional[Submission] = None
    error: Optional[SubmissionError] = None
    message: Optional[str] = None
    usage: Optional[UsageState] = None

    @property
    def success(self) -> bool:
        return self.state == SubmissionState.COMPLETED

    @property
    def retryable(self) -> bool:
        return self.state == SubmissionState.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "state": self.state.value,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "retryable": self.retryable,
            "submission": self.submission.to_dict() if self.submission else None,
            "usage": self.usage.to_dict() if self.usage else None,
        }


@dataclass
class RecordOutcome:
    """Result of fetching or revising an existing submission."""
    success: bool
    submission: Optional[Submission] = None
    error: Optional[RecordError] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "submission": self.submission.to_dict() if self.submission else None,
        }
