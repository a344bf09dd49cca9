"""
Progress dashboard: summary statistics and filtered views of past submissions.
"""

from .models import ProgressFilter, ProgressSummary
from .services import ProgressAggregator, summarize_submissions, filter_submissions

__all__ = [
    "ProgressFilter",
    "ProgressSummary",
    "ProgressAggregator",
    "summarize_submissions",
    "filter_submissions",
]
