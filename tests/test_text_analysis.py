"""
Tests for the submission pipeline: validation, quota, scoring, persistence.
"""

import threading
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import MagicMock, patch

from scoring_service.models import AnalysisResult
from scoring_service.scorer import ScoringError
from app.submission_store import SubmissionStore, PersistenceError, DEFAULT_TITLE
from app.quota.models import QuotaConfig, UsageState, PlanTier, TierPolicy
from app.quota.accountant import UsageAccountant, billing_period_start, next_period_start
from app.quota.gate import SubmissionGate
from app.text_analysis.models import SubmissionState, SubmissionError, RecordError
from app.text_analysis.services import AnalysisOrchestrator

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)

VALID_TEXT = "Writing clearly takes practice, patience and a willingness to revise. " * 3  # > 150 chars


def make_analysis(**overrides):
    data = {"ai_influence": 25, "quality_score": 8.0, "readability": {"score": 75, "level": "Intermediate"}}
    data.update(overrides)
    return AnalysisResult.model_validate(data)


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestAnalysisOrchestrator:
    """Test the submit state machine end to end against a real store."""

    def setup_method(self):
        self.clock = Clock(NOW)

    def _build(self, tmp_path, scorer=None, strict_quota=False, scorer_timeout=5.0, **quota):
        self.store = SubmissionStore(tmp_path / "submissions", clock=self.clock)
        self.accountant = UsageAccountant(self.store, QuotaConfig(**quota), clock=self.clock)
        self.gate = SubmissionGate(min_text_length=100)
        if scorer is None:
            scorer = MagicMock()
            scorer.score.return_value = make_analysis()
        self.scorer = scorer
        return AnalysisOrchestrator(
            store=self.store,
            accountant=self.accountant,
            gate=self.gate,
            scorer=scorer,
            scorer_timeout=scorer_timeout,
            strict_quota=strict_quota,
            clock=self.clock,
        )

    def _seed(self, owner_id, count, at=None):
        previous = self.clock.now
        self.clock.now = at or NOW - timedelta(days=1)
        for i in range(count):
            self.store.create(owner_id, f"Essay {i}", VALID_TEXT, make_analysis())
        self.clock.now = previous

    def test_first_submission_completes(self, tmp_path):
        orchestrator = self._build(tmp_path)

        outcome = orchestrator.submit("user1", "My Essay", VALID_TEXT)

        assert outcome.state == SubmissionState.COMPLETED
        assert outcome.success
        assert outcome.submission.created_at == NOW
        assert outcome.submission.updated_at is None
        assert outcome.submission.analysis.quality_score == 8.0
        assert outcome.usage.submission_count_in_period == 1
        assert outcome.usage.quota_remaining == 19
        self.scorer.score.assert_called_once_with(VALID_TEXT)
        assert len(self.store.list_by_owner("user1")) == 1

    def test_missing_title_gets_placeholder(self, tmp_path):
        orchestrator = self._build(tmp_path)
        outcome = orchestrator.submit("user1", None, VALID_TEXT)
        assert outcome.submission.title == DEFAULT_TITLE

    def test_quota_exhausted_skips_scorer(self, tmp_path):
        orchestrator = self._build(tmp_path)
        self._seed("user1", 20)

        outcome = orchestrator.submit("user1", "One more", VALID_TEXT)

        assert outcome.state == SubmissionState.REJECTED
        assert outcome.error == SubmissionError.QUOTA_EXHAUSTED
        assert not outcome.retryable
        assert outcome.usage.display_remaining == 0
        self.scorer.score.assert_not_called()
        assert len(self.store.list_by_owner("user1")) == 20

    def test_short_text_rejected_before_quota_check(self, tmp_path):
        orchestrator = self._build(tmp_path)
        with patch.object(self.accountant, "usage_for") as usage_for:
            outcome = orchestrator.submit("user1", "Short", "x" * 50)

        assert outcome.state == SubmissionState.REJECTED
        assert outcome.error == SubmissionError.TEXT_TOO_SHORT
        usage_for.assert_not_called()
        self.scorer.score.assert_not_called()

    def test_scoring_error_leaves_no_record_and_retry_succeeds(self, tmp_path):
        scorer = MagicMock()
        scorer.score.side_effect = [ScoringError("upstream 500"), make_analysis()]
        orchestrator = self._build(tmp_path, scorer=scorer)

        failed = orchestrator.submit("user1", "Essay", VALID_TEXT)
        assert failed.state == SubmissionState.FAILED
        assert failed.error == SubmissionError.SCORING_ERROR
        assert failed.retryable
        assert self.store.list_by_owner("user1") == []

        retried = orchestrator.submit("user1", "Essay", VALID_TEXT)
        assert retried.state == SubmissionState.COMPLETED
        assert len(self.store.list_by_owner("user1")) == 1

    def test_unexpected_scorer_exception(self, tmp_path):
        scorer = MagicMock()
        scorer.score.side_effect = RuntimeError("connection reset")
        orchestrator = self._build(tmp_path, scorer=scorer)

        outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.error == SubmissionError.SCORING_ERROR
        assert "connection reset" in outcome.message

    def test_scorer_timeout(self, tmp_path):
        release = threading.Event()
        scorer = MagicMock()
        scorer.score.side_effect = lambda text: release.wait(5)
        orchestrator = self._build(tmp_path, scorer=scorer, scorer_timeout=0.05)

        try:
            outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)
        finally:
            release.set()

        assert outcome.state == SubmissionState.FAILED
        assert outcome.error == SubmissionError.SCORING_ERROR
        assert self.store.list_by_owner("user1") == []

    def test_scorer_returning_dict_is_validated(self, tmp_path):
        scorer = MagicMock()
        scorer.score.return_value = {"aiInfluence": 12, "score": 9.1, "readabilityScore": 80}
        orchestrator = self._build(tmp_path, scorer=scorer)

        outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.success
        assert outcome.submission.analysis.ai_influence == 12

    def test_scorer_returning_invalid_result(self, tmp_path):
        scorer = MagicMock()
        scorer.score.return_value = {"ai_influence": 150}
        orchestrator = self._build(tmp_path, scorer=scorer)

        outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.error == SubmissionError.SCORING_ERROR

    def test_persistence_failure_on_write(self, tmp_path):
        orchestrator = self._build(tmp_path)
        with patch.object(self.store, "create", side_effect=PersistenceError("disk full")):
            outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.state == SubmissionState.FAILED
        assert outcome.error == SubmissionError.PERSISTENCE_ERROR
        assert outcome.retryable

    def test_persistence_failure_on_usage_read(self, tmp_path):
        orchestrator = self._build(tmp_path)
        (tmp_path / "submissions" / "user1.json").write_text("garbage", encoding="utf-8")

        outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.error == SubmissionError.PERSISTENCE_ERROR
        self.scorer.score.assert_not_called()

    def test_new_period_resets_quota(self, tmp_path):
        orchestrator = self._build(tmp_path)
        self._seed("user1", 20, at=datetime(2025, 2, 20, tzinfo=timezone.utc))

        outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.success
        assert outcome.usage.submission_count_in_period == 1

    def test_premium_subscription_is_unbounded(self, tmp_path):
        orchestrator = self._build(
            tmp_path, tier_policy=TierPolicy.SUBSCRIPTION, premium_users=["vip"]
        )
        self._seed("vip", 60)

        outcome = orchestrator.submit("vip", "Essay", VALID_TEXT)

        assert outcome.success
        assert outcome.usage.is_unlimited

    def _stale_usage(self, owner_id, count):
        period_start = billing_period_start(NOW)
        return UsageState(
            owner_id=owner_id,
            period_start=period_start,
            next_reset=next_period_start(period_start),
            submission_count_in_period=count,
            tier=PlanTier.FREE,
            limit=20,
        )

    def test_advisory_gate_allows_single_overshoot(self, tmp_path):
        orchestrator = self._build(tmp_path)
        self._seed("user1", 20)

        # Another request landed between the usage read and the write
        with patch.object(self.accountant, "usage_for", return_value=self._stale_usage("user1", 19)):
            outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.success
        assert len(self.store.list_by_owner("user1")) == 21

    def test_strict_quota_rechecks_under_store_lock(self, tmp_path):
        orchestrator = self._build(tmp_path, strict_quota=True)
        self._seed("user1", 20)

        with patch.object(self.accountant, "usage_for", return_value=self._stale_usage("user1", 19)):
            outcome = orchestrator.submit("user1", "Essay", VALID_TEXT)

        assert outcome.state == SubmissionState.REJECTED
        assert outcome.error == SubmissionError.QUOTA_EXHAUSTED
        assert len(self.store.list_by_owner("user1")) == 20

    def test_strict_quota_allows_under_limit(self, tmp_path):
        orchestrator = self._build(tmp_path, strict_quota=True)
        self._seed("user1", 5)

        assert orchestrator.submit("user1", "Essay", VALID_TEXT).success

    def _submit_concurrently(self, orchestrator, count):
        """Run ``count`` submits whose usage reads all happen before any write."""
        outcomes = []
        threads = [
            threading.Thread(target=lambda i=i: outcomes.append(orchestrator.submit("user1", f"Race {i}", VALID_TEXT)))
            for i in range(count)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        return outcomes

    def _barrier_scorer(self, parties):
        barrier = threading.Barrier(parties)
        scorer = MagicMock()

        def score(text):
            barrier.wait(timeout=5)
            return make_analysis()

        scorer.score.side_effect = score
        return scorer

    def test_concurrent_advisory_submits_overshoot_by_one(self, tmp_path):
        orchestrator = self._build(tmp_path, scorer=self._barrier_scorer(2), scorer_timeout=10.0)
        self._seed("user1", 19)

        outcomes = self._submit_concurrently(orchestrator, 2)

        assert [o.state for o in outcomes] == [SubmissionState.COMPLETED] * 2
        assert len(self.store.list_by_owner("user1")) == 21

    def test_concurrent_strict_submits_never_overshoot(self, tmp_path):
        orchestrator = self._build(tmp_path, scorer=self._barrier_scorer(5), scorer_timeout=10.0, strict_quota=True)
        self._seed("user1", 19)

        outcomes = self._submit_concurrently(orchestrator, 5)

        assert len(outcomes) == 5
        assert sum(1 for o in outcomes if o.success) == 1
        rejected = [o for o in outcomes if not o.success]
        assert all(o.error == SubmissionError.QUOTA_EXHAUSTED for o in rejected)
        assert len(self.store.list_by_owner("user1")) == 20

    def test_get_usage(self, tmp_path):
        orchestrator = self._build(tmp_path)
        self._seed("user1", 3)
        usage = orchestrator.get_usage("user1")
        assert usage.submission_count_in_period == 3
        assert usage.tier == PlanTier.FREE

    @pytest.mark.parametrize("owner_id", ["../evil", "", "a/b", "x" * 129])
    def test_invalid_owner_is_rejected(self, tmp_path, owner_id):
        orchestrator = self._build(tmp_path)

        outcome = orchestrator.submit(owner_id, "Essay", VALID_TEXT)

        assert outcome.state == SubmissionState.REJECTED
        assert outcome.error == SubmissionError.INVALID_OWNER
        assert not outcome.retryable
        self.scorer.score.assert_not_called()
        assert list((tmp_path / "submissions").iterdir()) == []

    def test_get_usage_for_invalid_owner(self, tmp_path):
        orchestrator = self._build(tmp_path)
        usage = orchestrator.get_usage("../evil")
        assert usage.submission_count_in_period == 0
        assert usage.tier == PlanTier.FREE

    def test_outcome_to_dict(self, tmp_path):
        orchestrator = self._build(tmp_path)
        data = orchestrator.submit("user1", "Essay", VALID_TEXT).to_dict()
        assert data["success"] is True
        assert data["state"] == "completed"
        assert data["error"] is None
        assert data["submission"]["title"] == "Essay"
        assert data["usage"]["remaining"] == 19


class TestRecordOperations:
    """Test fetching and revising through the orchestrator."""

    def setup_method(self):
        self.clock = Clock(NOW)

    def _build(self, tmp_path):
        self.store = SubmissionStore(tmp_path / "submissions", clock=self.clock)
        accountant = UsageAccountant(self.store, QuotaConfig(), clock=self.clock)
        return AnalysisOrchestrator(self.store, accountant, SubmissionGate(), MagicMock(), clock=self.clock)

    def test_revise(self, tmp_path):
        orchestrator = self._build(tmp_path)
        created = self.store.create("user1", "Essay", VALID_TEXT, make_analysis())

        outcome = orchestrator.revise(created.id, "user1", {"ai_influence": 5})

        assert outcome.success
        assert outcome.submission.analysis.ai_influence == 5
        assert outcome.submission.is_revised

    @pytest.mark.parametrize("caller,submission_id,partial,expected", [
        ("user2", None, {"ai_influence": 5}, RecordError.FORBIDDEN),
        ("user1", "missing", {"ai_influence": 5}, RecordError.NOT_FOUND),
        ("user1", None, {"text": "new"}, RecordError.INVALID_REVISION),
    ])
    def test_revise_failures(self, tmp_path, caller, submission_id, partial, expected):
        orchestrator = self._build(tmp_path)
        created = self.store.create("user1", "Essay", VALID_TEXT, make_analysis())

        outcome = orchestrator.revise(submission_id or created.id, caller, partial)

        assert not outcome.success
        assert outcome.error == expected
        assert outcome.to_dict()["error"] == expected.value

    def test_get_submission(self, tmp_path):
        orchestrator = self._build(tmp_path)
        created = self.store.create("user1", "Essay", VALID_TEXT, make_analysis())

        assert orchestrator.get_submission(created.id, "user1").submission == created
        assert orchestrator.get_submission(created.id, "user2").error == RecordError.FORBIDDEN
        assert orchestrator.get_submission("missing", "user1").error == RecordError.NOT_FOUND
