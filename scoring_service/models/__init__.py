"""
Models package for text analysis results.
"""

from .analysis_models import (
    AnalysisResult,
    FeedbackItem,
    Readability,
    LEGACY_ANALYSIS_KEYS,
)

__all__ = [
    "AnalysisResult",
    "FeedbackItem",
    "Readability",
    "LEGACY_ANALYSIS_KEYS",
]
