"""
Tests for progress aggregation and filtering.
"""

import pytest
from datetime import datetime, timezone, timedelta

from scoring_service.models import AnalysisResult
from app.submission_store import SubmissionStore, Submission
from app.progress.models import ProgressFilter, ProgressSummary
from app.progress.services import ProgressAggregator, summarize_submissions, filter_submissions

T0 = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_submission(index, quality_score, ai_influence, revised=False):
    created_at = T0 + timedelta(hours=index)
    return Submission(
        id=f"s{index}",
        owner_id="user1",
        title=f"Essay {index}",
        text="text",
        created_at=created_at,
        analysis=AnalysisResult(
            ai_influence=ai_influence,
            quality_score=quality_score,
            readability={"score": 70},
        ),
        updated_at=created_at + timedelta(days=1) if revised else None,
    )


@pytest.fixture()
def submissions():
    return [
        make_submission(0, 6.0, 10),
        make_submission(1, 8.0, 30, revised=True),
        make_submission(2, 10.0, 80),
    ]


class TestSummarize:
    """Test summary statistics."""

    def test_means(self, submissions):
        summary = summarize_submissions(submissions)
        assert summary.average_quality_score == 8.0
        assert summary.average_ai_influence == 40.0
        assert summary.total_submissions == 3
        assert summary.revised_submissions == 1

    def test_empty(self):
        summary = summarize_submissions([])
        assert summary.average_quality_score == 0
        assert summary.average_ai_influence == 0
        assert summary.total_submissions == 0

    @pytest.mark.parametrize("quality,expected", [(8.0, "excellent"), (6.5, "good"), (5.9, "needs_work")])
    def test_quality_band(self, quality, expected):
        assert ProgressSummary(quality, 0, 1, 0).quality_band == expected

    @pytest.mark.parametrize("ai,expected", [(20, "excellent"), (50, "good"), (50.1, "needs_work")])
    def test_originality_band(self, ai, expected):
        assert ProgressSummary(0, ai, 1, 0).originality_band == expected

    def test_to_dict_rounds(self):
        data = ProgressSummary(7.3333333, 41.66666, 3, 0).to_dict()
        assert data["average_quality_score"] == 7.33
        assert data["average_ai_influence"] == 41.67


class TestFilter:
    """Test submission filters."""

    def test_all(self, submissions):
        assert filter_submissions(submissions, ProgressFilter.ALL) == submissions

    def test_high_ai_influence(self, submissions):
        assert [s.id for s in filter_submissions(submissions, ProgressFilter.HIGH_AI_INFLUENCE)] == ["s2"]

    def test_low_ai_influence(self, submissions):
        assert [s.id for s in filter_submissions(submissions, ProgressFilter.LOW_AI_INFLUENCE)] == ["s0"]

    def test_high_quality(self, submissions):
        assert [s.id for s in filter_submissions(submissions, ProgressFilter.HIGH_QUALITY)] == ["s1", "s2"]

    def test_revised_preserves_order(self):
        items = [
            make_submission(0, 5, 5, revised=True),
            make_submission(1, 5, 5),
            make_submission(2, 5, 5, revised=True),
        ]
        assert [s.id for s in filter_submissions(items, ProgressFilter.REVISED)] == ["s0", "s2"]

    def test_boundaries(self):
        items = [make_submission(0, 7.99, 50), make_submission(1, 8.0, 20.5)]
        assert filter_submissions(items, ProgressFilter.HIGH_AI_INFLUENCE) == []
        assert filter_submissions(items, ProgressFilter.LOW_AI_INFLUENCE) == []
        assert [s.id for s in filter_submissions(items, ProgressFilter.HIGH_QUALITY)] == ["s1"]

    def test_input_not_mutated(self, submissions):
        before = list(submissions)
        filter_submissions(submissions, ProgressFilter.HIGH_QUALITY)
        assert submissions == before

    @pytest.mark.parametrize("value,expected", [
        ("", ProgressFilter.ALL),
        ("all", ProgressFilter.ALL),
        ("high-ai", ProgressFilter.HIGH_AI_INFLUENCE),
        ("low_ai_influence", ProgressFilter.LOW_AI_INFLUENCE),
        ("High-Score", ProgressFilter.HIGH_QUALITY),
        ("updated", ProgressFilter.REVISED),
        ("revised", ProgressFilter.REVISED),
    ])
    def test_from_value(self, value, expected):
        assert ProgressFilter.from_value(value) == expected

    def test_from_value_unknown(self):
        with pytest.raises(ValueError):
            ProgressFilter.from_value("best")


class TestProgressAggregator:
    """Test aggregation against the store."""

    def test_progress_view(self, tmp_path):
        store = SubmissionStore(tmp_path)
        store.import_submissions([
            make_submission(0, 6.0, 10),
            make_submission(1, 8.0, 30, revised=True),
            make_submission(2, 10.0, 80),
        ])
        aggregator = ProgressAggregator(store)

        view = aggregator.progress_view("user1", ProgressFilter.REVISED)

        assert view["filter"] == "revised"
        assert view["summary"]["average_quality_score"] == 8.0
        assert view["summary"]["average_ai_influence"] == 40.0
        assert [row["id"] for row in view["submissions"]] == ["s1"]
        row = view["submissions"][0]
        assert row["status"] == "revised"
        assert row["ai_influence_band"] == "moderate"
        assert "text" not in row

    def test_view_is_newest_first(self, tmp_path):
        store = SubmissionStore(tmp_path)
        store.import_submissions([make_submission(i, 7, 10) for i in range(3)])

        view = ProgressAggregator(store).progress_view("user1")

        assert [row["id"] for row in view["submissions"]] == ["s2", "s1", "s0"]

    def test_summarize_empty_user(self, tmp_path):
        summary = ProgressAggregator(SubmissionStore(tmp_path)).summarize("nobody")
        assert summary.total_submissions == 0
        assert summary.average_quality_score == 0
