"""
Submission gate: the admission check performed before a text is scored.
"""

import logging
from datetime import datetime
from typing import Optional

from .accountant import billing_period_start
from .models import DenyReason, GateDecision, PlanTier, UsageState

logger = logging.getLogger(__name__)

DEFAULT_MIN_TEXT_LENGTH = 100


class SubmissionGate:
    """
    Decides whether a submission may proceed.

    The quota check is advisory: usage is read before scoring and the write
    happens afterwards, so two concurrent submits at the boundary can both be
    admitted (at most one overshoot per race). Exact enforcement re-runs
    ``admit`` inside the store's create precondition.
    """

    def __init__(self, min_text_length: int = DEFAULT_MIN_TEXT_LENGTH):
        self.min_text_length = min_text_length

    def validate_text(self, text: Optional[str]) -> GateDecision:
        """Minimum-length check; runs before any usage accounting."""
        length = len(text or "")
        if length < self.min_text_length:
            return GateDecision.deny(
                DenyReason.TEXT_TOO_SHORT,
                f"Text must be at least {self.min_text_length} characters long",
            )
        return GateDecision.allow()

    def admit(self, usage: UsageState, now: Optional[datetime] = None) -> GateDecision:
        """
        Quota check against a usage snapshot.

        Args:
            usage: UsageState from the accountant
            now: Decision time; a snapshot from an earlier billing period
                no longer binds, since usage resets each month
        """
        if now is not None and billing_period_start(now) > usage.period_start:
            return GateDecision.allow("New billing period")

        if usage.tier == PlanTier.PREMIUM or usage.limit is None:
            return GateDecision.allow("Unlimited plan")

        if usage.submission_count_in_period >= usage.limit:
            logger.info(
                f"Quota exhausted: uid={usage.owner_id}, tier={usage.tier.value}, "
                f"count={usage.submission_count_in_period}/{usage.limit}"
            )
            return GateDecision.deny(
                DenyReason.QUOTA_EXHAUSTED,
                f"You have used all {usage.limit} analyses in your {usage.tier.value} plan "
                f"this month. Upgrade your plan to continue.",
            )

        return GateDecision.allow(f"{usage.quota_remaining} analyses remaining this month")
