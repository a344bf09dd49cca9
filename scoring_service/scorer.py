"""
Scorers produce an AnalysisResult for a piece of submitted text.

The orchestrator only depends on the ``Scorer`` protocol; ``LLMScorer`` is the
production implementation and ``PlaceholderScorer`` is the demo generator the
product shipped with before a model was wired in.
"""

import json
import logging
import random
from pathlib import Path
from typing import Optional, Protocol

from langchain_core.messages import HumanMessage
from langchain_core.prompts import PromptTemplate
from pydantic import ValidationError

from .llm_utils import LLMProvider, extract_json_from_response
from .models import AnalysisResult

logger = logging.getLogger(__name__)

PROMPT_FILE = "text_analysis.md"

PLACEHOLDER_SUGGESTIONS = [
    {"label": "Try varying your sentence structures more", "category": "structure"},
    {"label": "Consider adding more personal perspectives", "category": "voice"},
    {"label": "Use more specific examples to illustrate your points", "category": "evidence"},
    {"label": "Add some transitional phrases between paragraphs", "category": "flow"},
]

PLACEHOLDER_STRENGTHS = [
    {"label": "Good vocabulary usage", "category": "vocabulary"},
    {"label": "Clear organization of ideas", "category": "structure"},
    {"label": "Effective use of examples", "category": "evidence"},
]


class ScoringError(Exception):
    """Raised when a scorer cannot produce a valid analysis."""


class Scorer(Protocol):
    """Interface for anything that can analyse a text."""

    def score(self, text: str) -> AnalysisResult:
        """Return the analysis for ``text`` or raise ScoringError."""


class PlaceholderScorer:
    """Non-deterministic demo scorer; not a real model."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def score(self, text: str) -> AnalysisResult:
        return AnalysisResult(
            ai_influence=self._random.randrange(70),
            quality_score=7 + self._random.random() * 3,
            readability={"score": 65 + self._random.randrange(25), "level": "Intermediate"},
            suggestions=PLACEHOLDER_SUGGESTIONS,
            strengths=PLACEHOLDER_STRENGTHS,
        )


class LLMScorer:
    """Scores text by prompting an LLM and validating its JSON answer."""

    def __init__(self, llm_config, prompts_dir: Path, provider: Optional[LLMProvider] = None):
        self.llm_config = llm_config
        self.prompts_dir = Path(prompts_dir)
        self.provider = provider or LLMProvider.from_config(llm_config, json_mode=True)

    def _build_prompt(self, text: str) -> str:
        prompt_template = PromptTemplate.from_file(
            self.prompts_dir / PROMPT_FILE,
            encoding="utf-8",
        )
        return prompt_template.format(text=text[: self.llm_config.max_input_char])

    def score(self, text: str) -> AnalysisResult:
        try:
            prompt_content = self._build_prompt(text)
            response = self.provider.invoke([HumanMessage(content=prompt_content)])
        except Exception as e:
            logger.warning(f"LLM scoring call failed: {e}")
            raise ScoringError(f"LLM call failed: {e}") from e

        return parse_analysis(response.content, self.provider.provider)


def parse_analysis(content: str, provider: str = "deepseek") -> AnalysisResult:
    """Parse an LLM response into an AnalysisResult."""
    raw = extract_json_from_response(str(content), provider)
    try:
        return AnalysisResult.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Unparseable analysis response: {raw[:200]!r}")
        raise ScoringError(f"Invalid analysis response: {e}") from e


def create_scorer(kind: str, llm_config=None, prompts_dir: Optional[Path] = None) -> Scorer:
    """Create the scorer named in configuration ("llm" or "placeholder")."""
    kind = (kind or "placeholder").lower()
    if kind == "llm":
        if llm_config is None or prompts_dir is None:
            raise ValueError("LLM scorer requires llm_config and prompts_dir")
        return LLMScorer(llm_config, prompts_dir)
    if kind == "placeholder":
        logger.warning("Using placeholder scorer; analysis results are random")
        return PlaceholderScorer()
    raise ValueError(f"Unknown scorer: {kind}")
