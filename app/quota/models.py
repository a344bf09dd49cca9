"""
Data models for usage metering and admission control.
"""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List


class PlanTier(Enum):
    """Plan tiers, ordered from smallest to largest allowance."""
    FREE = "free"
    STANDARD = "standard"
    PREMIUM = "premium"  # Unbounded


class TierPolicy(Enum):
    """Where a user's tier comes from."""
    DERIVED = "derived"            # Live from submissions in the current period
    SUBSCRIPTION = "subscription"  # From configured standard/premium user lists


class DenyReason(Enum):
    """Why a submission was not admitted."""
    TEXT_TOO_SHORT = "text_too_short"
    QUOTA_EXHAUSTED = "quota_exhausted"


@dataclass
class QuotaConfig:
    """Configuration for tier limits and tier policy."""
    free_limit: int = 20
    standard_limit: int = 50
    tier_policy: TierPolicy = TierPolicy.DERIVED
    standard_users: List[str] = field(default_factory=list)
    premium_users: List[str] = field(default_factory=list)

    def limit_for(self, tier: PlanTier) -> Optional[int]:
        """Per-period limit for a tier; None means unbounded."""
        if tier == PlanTier.PREMIUM:
            return None
        if tier == PlanTier.STANDARD:
            return self.standard_limit
        return self.free_limit

    @classmethod
    def from_dict(cls, data: dict) -> "QuotaConfig":
        """Create QuotaConfig from dictionary."""
        return cls(
            free_limit=int(data.get("free_limit", 20)),
            standard_limit=int(data.get("standard_limit", 50)),
            tier_policy=TierPolicy(data.get("tier_policy", TierPolicy.DERIVED.value)),
            standard_users=list(data.get("standard_users", [])),
            premium_users=list(data.get("premium_users", [])),
        )


@dataclass
class UsageState:
    """Usage of one user in one billing period. Derived, never stored."""
    owner_id: str
    period_start: datetime
    next_reset: datetime
    submission_count_in_period: int
    tier: PlanTier
    limit: Optional[int]  # None for unbounded tiers

    @property
    def is_unlimited(self) -> bool:
        return self.limit is None

    @property
    def quota_remaining(self) -> Optional[int]:
        """Raw remaining quota; negative after an overshoot."""
        if self.limit is None:
            return None
        return self.limit - self.submission_count_in_period

    @property
    def display_remaining(self) -> Optional[int]:
        """Remaining quota floored at 0, for display."""
        if self.limit is None:
            return None
        return max(0, self.quota_remaining)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "tier": self.tier.value,
            "limit": self.limit,
            "used": self.submission_count_in_period,
            "remaining": self.display_remaining,
            "is_unlimited": self.is_unlimited,
            "period_start": self.period_start.isoformat(),
            "next_reset": self.next_reset.isoformat(),
        }


@dataclass
class GateDecision:
    """Result of an admission check."""
    allowed: bool
    reason: Optional[DenyReason] = None
    message: Optional[str] = None  # User-facing message

    @classmethod
    def allow(cls, message: Optional[str] = None) -> "GateDecision":
        return cls(allowed=True, message=message)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "GateDecision":
        return cls(allowed=False, reason=reason, message=message)

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }
