"""
Analysis result data models.

This module contains Pydantic models for the structured result a scorer
returns for a piece of text, including the legacy shapes older records
were stored with.
"""

from typing import Any, Callable, List

from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_CATEGORY = "general"

# Flat keys written by the original front-end, mapped to model field names
LEGACY_ANALYSIS_KEYS = {
    "aiInfluence": "ai_influence",
    "score": "quality_score",
    "qualityScore": "quality_score",
}


class FeedbackItem(BaseModel):
    """A single suggestion or strength shown to the writer."""
    label: str = Field(description="Human readable feedback text")
    category: str = Field(default=DEFAULT_CATEGORY, description="Severity or category tag")

    @model_validator(mode="before")
    @classmethod
    def _coerce_legacy(cls, data: Any) -> Any:
        # Plain strings and {text, color} dicts both predate the label/category shape
        if isinstance(data, str):
            return {"label": data, "category": DEFAULT_CATEGORY}
        if isinstance(data, dict) and "label" not in data and "text" in data:
            return {
                "label": data["text"],
                "category": data.get("category") or data.get("color") or DEFAULT_CATEGORY,
            }
        return data


class Readability(BaseModel):
    """Readability score and level."""
    score: float = Field(ge=0, le=100, description="Readability score (0-100)")
    level: str = Field(default="Unknown", description="Readability level label")


class AnalysisResult(BaseModel):
    """Complete analysis of a submitted text."""
    ai_influence: float = Field(ge=0, le=100, description="Estimated AI influence percentage")
    quality_score: float = Field(ge=0, le=10, description="Writing quality score (0-10)")
    readability: Readability = Field(description="Readability score and level")
    suggestions: List[FeedbackItem] = Field(default_factory=list, description="Improvement suggestions")
    strengths: List[FeedbackItem] = Field(default_factory=list, description="Writing strengths")

    @model_validator(mode="before")
    @classmethod
    def _coerce_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy_key, field_name in LEGACY_ANALYSIS_KEYS.items():
            if legacy_key in data and field_name not in data:
                data[field_name] = data.pop(legacy_key)
        if "readability" not in data and "readabilityScore" in data:
            data["readability"] = {"score": data.pop("readabilityScore")}
        return data

    @field_validator("suggestions", "strengths", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def ai_influence_band(self) -> str:
        """Classify AI influence as high (>50), moderate (>20) or low."""
        if self.ai_influence > 50:
            return "high"
        if self.ai_influence > 20:
            return "moderate"
        return "low"

    def to_markdown(self, literal: Callable[[str], str] = str) -> str:
        """Render the analysis as markdown for export.

        ``literal`` is applied to free-text values (feedback labels and the
        readability level) so callers can keep them from being read as markup.
        """
        md_lines = []

        md_lines.append("### AI Influence")
        md_lines.append(f"{self.ai_influence:g}% ({self.ai_influence_band()} AI influence)")
        md_lines.append("")
        md_lines.append("### Quality Score")
        md_lines.append(f"{self.quality_score:.1f}/10")
        md_lines.append("")
        md_lines.append("### Readability")
        md_lines.append(f"{self.readability.score:g}/100 ({literal(self.readability.level)} level)")

        if self.suggestions:
            md_lines.append("")
            md_lines.append("### Improvement Suggestions")
            md_lines.append("")
            for item in self.suggestions:
                md_lines.append(f"* {literal(item.label)}")

        if self.strengths:
            md_lines.append("")
            md_lines.append("### Writing Strengths")
            md_lines.append("")
            for item in self.strengths:
                md_lines.append(f"* {literal(item.label)}")

        return "\n".join(md_lines)
