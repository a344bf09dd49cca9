"""
Usage metering and admission control.
Derives per-month usage and Free/Standard/Premium tiers from submission history.
"""

from .models import PlanTier, TierPolicy, DenyReason, QuotaConfig, UsageState, GateDecision
from .accountant import UsageAccountant, billing_period_start, next_period_start, derive_tier
from .gate import SubmissionGate

__all__ = [
    "PlanTier",
    "TierPolicy",
    "DenyReason",
    "QuotaConfig",
    "UsageState",
    "GateDecision",
    "UsageAccountant",
    "billing_period_start",
    "next_period_start",
    "derive_tier",
    "SubmissionGate",
]
