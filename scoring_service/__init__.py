# Scoring service package: analysis models, scorers and shared logging

from .models import AnalysisResult, FeedbackItem, Readability
from .scorer import (
    Scorer,
    ScoringError,
    LLMScorer,
    PlaceholderScorer,
    create_scorer,
    parse_analysis,
)
from .llm_utils import (
    LLMProvider,
    clean_ollama_response,
    extract_json_from_response,
)
from .logging_config import (
    setup_logging,
    stop_logging,
    get_logger,
    ThreadSafeLoggingConfig,
)

__all__ = [
    "AnalysisResult",
    "FeedbackItem",
    "Readability",
    "Scorer",
    "ScoringError",
    "LLMScorer",
    "PlaceholderScorer",
    "create_scorer",
    "parse_analysis",
    "LLMProvider",
    "clean_ollama_response",
    "extract_json_from_response",
    "setup_logging",
    "stop_logging",
    "get_logger",
    "ThreadSafeLoggingConfig",
]
