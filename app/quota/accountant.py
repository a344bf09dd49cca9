"""
Usage accountant: derives a user's billing-period usage, tier and quota
from their submission history.

Usage is recomputed from the store on every query instead of being kept in
a counter, so it cannot drift from the submissions that actually exist.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, TYPE_CHECKING

from app.submission_store.models import Submission
from .models import PlanTier, QuotaConfig, TierPolicy, UsageState

if TYPE_CHECKING:
    from app.submission_store import SubmissionStore

logger = logging.getLogger(__name__)


def _is_local_time(value: datetime) -> bool:
    """Naive values and non-UTC fixed offsets (what ``astimezone()`` yields) are local time."""
    if value.tzinfo is None:
        return True
    return isinstance(value.tzinfo, timezone) and value.utcoffset() != timedelta(0)


def _month_start(as_of: datetime, months_ahead: int = 0) -> datetime:
    """Midnight on the 1st, ``months_ahead`` months after ``as_of``'s month.

    Local times are re-localised so the offset is the one in force on the
    1st, not the one carried by ``as_of`` across a DST change.
    """
    local = _is_local_time(as_of)
    wall = as_of.astimezone().replace(tzinfo=None) if local and as_of.tzinfo else as_of
    month_index = wall.month - 1 + months_ahead
    start = wall.replace(
        year=wall.year + month_index // 12,
        month=month_index % 12 + 1,
        day=1, hour=0, minute=0, second=0, microsecond=0,
    )
    return start.astimezone() if local else start


def billing_period_start(as_of: datetime) -> datetime:
    """First instant of the calendar month containing ``as_of``."""
    return _month_start(as_of)


def next_period_start(period_start: datetime) -> datetime:
    """First instant of the month after ``period_start``."""
    return _month_start(period_start, months_ahead=1)


def derive_tier(count: int, config: Optional[QuotaConfig] = None) -> PlanTier:
    """
    Map a period submission count to a tier.

    Thresholds are strict: with the default limits, 21-50 is Standard and
    51+ is Premium. Monotonic in ``count``.
    """
    config = config or QuotaConfig()
    if count > config.standard_limit:
        return PlanTier.PREMIUM
    if count > config.free_limit:
        return PlanTier.STANDARD
    return PlanTier.FREE


class UsageAccountant:
    """
    Computes UsageState for a user.

    Tier policy:
    - DERIVED: tier comes from the period count via ``derive_tier``. Note the
      gate denies Free users at their limit, so a user only reaches Standard
      or Premium through pre-existing history or a concurrent overshoot.
    - SUBSCRIPTION: tier comes from the configured premium/standard user
      lists and ignores usage.
    The same tier drives the displayed limit and the gated limit.
    """

    def __init__(
        self,
        store: "SubmissionStore",
        config: QuotaConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.config = config
        self.clock = clock or (lambda: datetime.now().astimezone())

    def tier_for(self, owner_id: str, count: int) -> PlanTier:
        """Resolve the tier under the configured policy."""
        if self.config.tier_policy == TierPolicy.SUBSCRIPTION:
            if owner_id in self.config.premium_users:
                return PlanTier.PREMIUM
            if owner_id in self.config.standard_users:
                return PlanTier.STANDARD
            return PlanTier.FREE
        return derive_tier(count, self.config)

    def usage_for(self, owner_id: str, as_of: Optional[datetime] = None) -> UsageState:
        """Fetch the owner's submissions and compute usage as of ``as_of``."""
        as_of = as_of or self.clock()
        period_start = billing_period_start(as_of)
        submissions = self.store.list_by_owner(owner_id, since=period_start)
        usage = self._build(owner_id, len(submissions), period_start)
        logger.info(
            f"Usage: uid={owner_id}, count={usage.submission_count_in_period}, "
            f"tier={usage.tier.value}, remaining={usage.quota_remaining}"
        )
        return usage

    def usage_from(
        self,
        owner_id: str,
        submissions: Iterable[Submission],
        as_of: Optional[datetime] = None,
    ) -> UsageState:
        """Compute usage from an already-loaded snapshot, without I/O."""
        period_start = billing_period_start(as_of or self.clock())
        count = sum(1 for s in submissions if s.created_at >= period_start)
        return self._build(owner_id, count, period_start)

    def _build(self, owner_id: str, count: int, period_start: datetime) -> UsageState:
        tier = self.tier_for(owner_id, count)
        return UsageState(
            owner_id=owner_id,
            period_start=period_start,
            next_reset=next_period_start(period_start),
            submission_count_in_period=count,
            tier=tier,
            limit=self.config.limit_for(tier),
        )
