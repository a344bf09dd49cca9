"""
Factory for creating quota management components.
"""

from typing import List

from app.submission_store import SubmissionStore
from .models import QuotaConfig, TierPolicy
from .accountant import UsageAccountant
from .gate import SubmissionGate, DEFAULT_MIN_TEXT_LENGTH


def create_quota_module(
    store: SubmissionStore,
    free_limit: int = 20,
    standard_limit: int = 50,
    tier_policy: str = TierPolicy.DERIVED.value,
    standard_users: List[str] = None,
    premium_users: List[str] = None,
    min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
) -> dict:
    """
    Create quota management module.

    Args:
        store: Submission store usage is derived from
        free_limit: Monthly limit for Free tier
        standard_limit: Monthly limit for Standard tier
        tier_policy: "derived" or "subscription"
        standard_users: Standard user IDs (subscription policy)
        premium_users: Premium user IDs (subscription policy)
        min_text_length: Minimum characters a submission needs

    Returns:
        Dictionary with:
        - accountant: UsageAccountant instance
        - gate: SubmissionGate instance
        - config: QuotaConfig instance
    """
    config = QuotaConfig(
        free_limit=free_limit,
        standard_limit=standard_limit,
        tier_policy=TierPolicy(tier_policy),
        standard_users=standard_users or [],
        premium_users=premium_users or [],
    )

    return {
        "accountant": UsageAccountant(store=store, config=config),
        "gate": SubmissionGate(min_text_length=min_text_length),
        "config": config,
    }
