import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Optional, Dict, Any, Callable, List, TYPE_CHECKING

from pydantic import ValidationError

from scoring_service.models import AnalysisResult
from scoring_service.scorer import Scorer, ScoringError
from app.quota.accountant import UsageAccountant
from app.quota.gate import SubmissionGate
from app.quota.models import UsageState
from app.submission_store import (
    SubmissionStore,
    Submission,
    is_valid_owner_id,
    NotFound,
    Forbidden,
    InvalidRevision,
    PreconditionFailed,
    PersistenceError,
)
from .models import (
    SubmissionState,
    SubmissionError,
    SubmissionOutcome,
    RecordError,
    RecordOutcome,
)

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Runs a submission through validation, quota, scoring and persistence.

    The store write is the single commit point: every failure before it
    leaves no record behind, so a FAILED submit can simply be retried.
    """

    def __init__(self,
                 store: SubmissionStore,
                 accountant: UsageAccountant,
                 gate: SubmissionGate,
                 scorer: Scorer,
                 scorer_timeout: Optional[float] = 60.0,
                 strict_quota: bool = False,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.accountant = accountant
        self.gate = gate
        self.scorer = scorer
        self.scorer_timeout = scorer_timeout  # None waits forever
        self.strict_quota = strict_quota  # Re-check quota under the store lock
        self.clock = clock or (lambda: datetime.now().astimezone())

    def submit(self, owner_id: str, title: Optional[str], text: str,
               now: Optional[datetime] = None) -> SubmissionOutcome:
        """Submit a text for analysis.

        Args:
            owner_id: Current user ID
            title: Optional display title
            text: Text to analyse
            now: Time used for usage accounting (defaults to the clock)
        """
        now = now or self.clock()

        self._log_state(owner_id, SubmissionState.VALIDATING)
        if not is_valid_owner_id(owner_id):
            return self._rejected(owner_id, SubmissionError.INVALID_OWNER, "Invalid user id")

        decision = self.gate.validate_text(text)
        if not decision.allowed:
            return self._rejected(owner_id, SubmissionError.TEXT_TOO_SHORT, decision.message)

        self._log_state(owner_id, SubmissionState.CHECKING_QUOTA)
        try:
            usage = self.accountant.usage_for(owner_id, as_of=now)
        except PersistenceError as e:
            return self._failed(owner_id, SubmissionError.PERSISTENCE_ERROR, str(e))

        decision = self.gate.admit(usage, now)
        if not decision.allowed:
            return self._rejected(owner_id, SubmissionError.QUOTA_EXHAUSTED, decision.message, usage)

        self._log_state(owner_id, SubmissionState.SCORING)
        try:
            analysis = self._score(text)
        except ScoringError as e:
            return self._failed(owner_id, SubmissionError.SCORING_ERROR, str(e), usage)

        self._log_state(owner_id, SubmissionState.PERSISTING)
        precondition = self._quota_precondition(owner_id, now) if self.strict_quota else None
        try:
            submission = self.store.create(owner_id, title, text, analysis, precondition=precondition)
        except PreconditionFailed:
            return self._rejected(
                owner_id,
                SubmissionError.QUOTA_EXHAUSTED,
                "Your monthly analysis quota was used up by another request. Upgrade your plan to continue.",
                usage,
            )
        except PersistenceError as e:
            return self._failed(owner_id, SubmissionError.PERSISTENCE_ERROR, str(e), usage)

        self._log_state(owner_id, SubmissionState.COMPLETED)
        return SubmissionOutcome(
            state=SubmissionState.COMPLETED,
            submission=submission,
            message="Analysis complete",
            usage=self._usage_after(usage),
        )

    def revise(self, submission_id: str, caller_id: str, analysis_partial: Dict[str, Any]) -> RecordOutcome:
        """Revise the analysis of an existing submission."""
        try:
            submission = self.store.revise(submission_id, caller_id, analysis_partial)
        except (NotFound, Forbidden, InvalidRevision, PersistenceError) as e:
            return self._record_failure(submission_id, caller_id, e)
        return RecordOutcome(success=True, submission=submission, message="Submission revised")

    def get_submission(self, submission_id: str, caller_id: str) -> RecordOutcome:
        """Fetch one of the caller's submissions."""
        try:
            submission = self.store.get(submission_id, caller_id)
        except (NotFound, Forbidden, PersistenceError) as e:
            return self._record_failure(submission_id, caller_id, e)
        return RecordOutcome(success=True, submission=submission)

    def get_usage(self, owner_id: str, as_of: Optional[datetime] = None) -> UsageState:
        """Current usage, tier and remaining quota for display.

        An id that cannot own submissions has no history.
        """
        as_of = as_of or self.clock()
        if not is_valid_owner_id(owner_id):
            return self.accountant.usage_from(owner_id, [], as_of)
        return self.accountant.usage_for(owner_id, as_of=as_of)

    # =====================
    # Private helpers
    # =====================

    def _score(self, text: str) -> AnalysisResult:
        """Call the scorer, bounded by ``scorer_timeout``."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scorer")
        try:
            future = executor.submit(self.scorer.score, text)
            result = future.result(timeout=self.scorer_timeout)
        except FutureTimeoutError as e:
            raise ScoringError(f"Scorer did not respond within {self.scorer_timeout} seconds") from e
        except ScoringError:
            raise
        except Exception as e:
            logger.exception("Scorer raised an unexpected error")
            raise ScoringError(f"Scorer failed: {e}") from e
        finally:
            # A hung scorer keeps its worker thread; do not wait for it
            executor.shutdown(wait=False)

        if isinstance(result, AnalysisResult):
            return result
        try:
            return AnalysisResult.model_validate(result)
        except ValidationError as e:
            raise ScoringError(f"Scorer returned an invalid analysis: {e}") from e

    def _quota_precondition(self, owner_id: str, now: datetime) -> Callable[[List[Submission]], bool]:
        """Gate check evaluated against the store's snapshot under its write lock."""
        def precondition(submissions: List[Submission]) -> bool:
            usage = self.accountant.usage_from(owner_id, submissions, now)
            return self.gate.admit(usage, now).allowed
        return precondition

    def _usage_after(self, usage: UsageState) -> UsageState:
        """Usage including the submission just created."""
        count = usage.submission_count_in_period + 1
        tier = self.accountant.tier_for(usage.owner_id, count)
        return UsageState(
            owner_id=usage.owner_id,
            period_start=usage.period_start,
            next_reset=usage.next_reset,
            submission_count_in_period=count,
            tier=tier,
            limit=self.accountant.config.limit_for(tier),
        )

    def _log_state(self, owner_id: str, state: SubmissionState) -> None:
        logger.info(f"Submission uid={owner_id} -> {state.value}")

    def _rejected(self, owner_id: str, error: SubmissionError, message: str,
                  usage: Optional[UsageState] = None) -> SubmissionOutcome:
        logger.info(f"Submission uid={owner_id} rejected: {error.value}")
        return SubmissionOutcome(state=SubmissionState.REJECTED, error=error, message=message, usage=usage)

    def _failed(self, owner_id: str, error: SubmissionError, message: str,
                usage: Optional[UsageState] = None) -> SubmissionOutcome:
        logger.warning(f"Submission uid={owner_id} failed: {error.value}: {message}")
        return SubmissionOutcome(state=SubmissionState.FAILED, error=error, message=message, usage=usage)

    def _record_failure(self, submission_id: str, caller_id: str, error: Exception) -> RecordOutcome:
        if isinstance(error, NotFound):
            code, message = RecordError.NOT_FOUND, "Submission not found"
        elif isinstance(error, Forbidden):
            code, message = RecordError.FORBIDDEN, "You do not have access to this submission"
        elif isinstance(error, InvalidRevision):
            code, message = RecordError.INVALID_REVISION, str(error)
        else:
            code, message = RecordError.PERSISTENCE_ERROR, "Could not access stored submissions"
        logger.info(f"Submission {submission_id} request by {caller_id} failed: {code.value}")
        return RecordOutcome(success=False, error=code, message=message)
