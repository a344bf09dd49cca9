"""
Progress dashboard models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any


class ProgressFilter(Enum):
    """Submission filters offered on the progress page."""
    ALL = "all"
    HIGH_AI_INFLUENCE = "high_ai_influence"  # ai_influence > 50
    LOW_AI_INFLUENCE = "low_ai_influence"    # ai_influence <= 20
    HIGH_QUALITY = "high_quality"            # quality_score >= 8
    REVISED = "revised"                      # updated_at present

    @classmethod
    def from_value(cls, value: str) -> "ProgressFilter":
        """Parse a filter name, accepting the dashboard's short aliases."""
        if not value:
            return cls.ALL
        value = value.strip().lower()
        aliases = {
            "high-ai": cls.HIGH_AI_INFLUENCE,
            "low-ai": cls.LOW_AI_INFLUENCE,
            "high-score": cls.HIGH_QUALITY,
            "updated": cls.REVISED,
        }
        if value in aliases:
            return aliases[value]
        return cls(value.replace("-", "_"))


@dataclass
class ProgressSummary:
    """Aggregate statistics over a user's submissions."""
    average_quality_score: float
    average_ai_influence: float
    total_submissions: int
    revised_submissions: int

    @property
    def quality_band(self) -> str:
        if self.average_quality_score >= 8:
            return "excellent"
        if self.average_quality_score >= 6:
            return "good"
        return "needs_work"

    @property
    def originality_band(self) -> str:
        if self.average_ai_influence <= 20:
            return "excellent"
        if self.average_ai_influence <= 50:
            return "good"
        return "needs_work"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_quality_score": round(self.average_quality_score, 2),
            "average_ai_influence": round(self.average_ai_influence, 2),
            "total_submissions": self.total_submissions,
            "revised_submissions": self.revised_submissions,
            "quality_band": self.quality_band,
            "originality_band": self.originality_band,
        }
