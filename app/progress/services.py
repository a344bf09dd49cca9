"""
Progress aggregation over a user's submission history.

Everything here is a pure fold over the store's current snapshot and is
recomputed on every call.
"""

from typing import Callable, Dict, List, Sequence

from app.submission_store import Submission, SubmissionStore
from .models import ProgressFilter, ProgressSummary

FILTER_PREDICATES: Dict[ProgressFilter, Callable[[Submission], bool]] = {
    ProgressFilter.ALL: lambda s: True,
    ProgressFilter.HIGH_AI_INFLUENCE: lambda s: s.analysis.ai_influence > 50,
    ProgressFilter.LOW_AI_INFLUENCE: lambda s: s.analysis.ai_influence <= 20,
    ProgressFilter.HIGH_QUALITY: lambda s: s.analysis.quality_score >= 8,
    ProgressFilter.REVISED: lambda s: s.updated_at is not None,
}


def summarize_submissions(submissions: Sequence[Submission]) -> ProgressSummary:
    """Means over a submission set; 0 for an empty set."""
    total = len(submissions)
    if total == 0:
        return ProgressSummary(0.0, 0.0, 0, 0)

    return ProgressSummary(
        average_quality_score=sum(s.analysis.quality_score for s in submissions) / total,
        average_ai_influence=sum(s.analysis.ai_influence for s in submissions) / total,
        total_submissions=total,
        revised_submissions=sum(1 for s in submissions if s.is_revised),
    )


def filter_submissions(submissions: Sequence[Submission], kind: ProgressFilter) -> List[Submission]:
    """Select a subset without reordering or mutating the input."""
    predicate = FILTER_PREDICATES[kind]
    return [s for s in submissions if predicate(s)]


class ProgressAggregator:
    """Builds progress dashboards from the submission store."""

    def __init__(self, store: SubmissionStore):
        self.store = store

    def summarize(self, owner_id: str) -> ProgressSummary:
        return summarize_submissions(self.store.list_by_owner(owner_id))

    def filter(self, submissions: Sequence[Submission], kind: ProgressFilter) -> List[Submission]:
        return filter_submissions(submissions, kind)

    def progress_view(self, owner_id: str, kind: ProgressFilter = ProgressFilter.ALL) -> dict:
        """Summary plus the filtered submission list, newest first."""
        submissions = self.store.list_by_owner(owner_id)
        filtered = filter_submissions(submissions, kind)
        return {
            "summary": summarize_submissions(submissions).to_dict(),
            "filter": kind.value,
            "submissions": [_list_entry(s) for s in filtered],
        }


def _list_entry(submission: Submission) -> dict:
    """Compact row for the progress table (no full text)."""
    return {
        "id": submission.id,
        "title": submission.title,
        "created_at": submission.created_at.isoformat(),
        "updated_at": submission.updated_at.isoformat() if submission.updated_at else None,
        "quality_score": submission.analysis.quality_score,
        "ai_influence": submission.analysis.ai_influence,
        "ai_influence_band": submission.analysis.ai_influence_band(),
        "status": "revised" if submission.is_revised else "original",
    }
