"""
Text analysis: submit a text, score it and save the result.
"""

from .models import SubmissionState, SubmissionError, SubmissionOutcome, RecordError, RecordOutcome
from .services import AnalysisOrchestrator

__all__ = [
    "SubmissionState",
    "SubmissionError",
    "SubmissionOutcome",
    "RecordError",
    "RecordOutcome",
    "AnalysisOrchestrator",
]
