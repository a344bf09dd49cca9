"""
Submission record model and timestamp helpers.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from scoring_service.models import AnalysisResult, LEGACY_ANALYSIS_KEYS

DEFAULT_TITLE = "Untitled Analysis"

# Keys the original front-end stored flat on the submission document
_LEGACY_FLAT_KEYS = set(LEGACY_ANALYSIS_KEYS) | {
    "readabilityScore",
    "readability",
    "suggestions",
    "strengths",
}


def ensure_aware(value: datetime) -> datetime:
    """Return an aware datetime; naive values are taken as local time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp (or pass through a datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    # Accept 'Z' by replacing with +00:00
    return ensure_aware(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def normalize_title(title: Optional[str]) -> str:
    """Use the placeholder title when none was given."""
    if title is None or not str(title).strip():
        return DEFAULT_TITLE
    return str(title).strip()


@dataclass
class Submission:
    """A scored piece of text owned by one user."""
    id: str
    owner_id: str
    title: str
    text: str
    created_at: datetime
    analysis: AnalysisResult
    updated_at: Optional[datetime] = None  # Set on first revision

    @property
    def is_revised(self) -> bool:
        return self.updated_at is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "analysis": self.analysis.model_dump(mode="json"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        """Create a Submission from a stored record.

        Tolerates the legacy document shape where the analysis fields
        (``aiInfluence``, ``score``, ``readabilityScore``, ``suggestions``,
        ``strengths``) sit at the top level next to ``userId`` and
        ``createdAt``.
        """
        raw_analysis = data.get("analysis")
        if raw_analysis is None:
            raw_analysis = {k: v for k, v in data.items() if k in _LEGACY_FLAT_KEYS}

        created_at = parse_timestamp(data.get("created_at") or data.get("createdAt"))
        if created_at is None:
            raise ValueError(f"Submission {data.get('id')} has no creation time")

        return cls(
            id=str(data["id"]),
            owner_id=str(data.get("owner_id") or data["userId"]),
            title=normalize_title(data.get("title")),
            text=data.get("text", ""),
            created_at=created_at,
            updated_at=parse_timestamp(data.get("updated_at") or data.get("updatedAt")),
            analysis=AnalysisResult.model_validate(raw_analysis),
        )
