"""Daily per-user action quota with premium bypass"""
import logging
from datetime import datetime
from typing import Callable, Optional

from ..models.user import DailyUsage, UserProfile
from ..repositories.users import UserRepository
from ..utils.dates import parse_subscription_end

logger = logging.getLogger(__name__)

FREE_DAILY_LIMIT = 10
PREMIUM = "premium"


def effective_count(stored: Optional[DailyUsage], today: str) -> int:
    """Stored count for today; a record from any other day counts as zero"""
    if stored is None or stored.date != today:
        return 0
    return stored.view_count


def is_premium(profile: Optional[UserProfile], now: datetime) -> bool:
    """Premium tier with an end date not yet passed; unparsable dates are not premium"""
    if profile is None or profile.subscription_type != PREMIUM:
        return False
    end = parse_subscription_end(profile.subscription_end_date)
    if end is None:
        return False
    return now <= end


def _local_now() -> datetime:
    return datetime.now().astimezone()


class QuotaTracker:
    """
    Gates every accept/reject.

    Free users get `daily_limit` actions per local calendar day; the counter
    resets implicitly when the stored date is not today. Premium users are
    never limited and never counted.
    """

    def __init__(
        self,
        users: UserRepository,
        daily_limit: int = FREE_DAILY_LIMIT,
        clock: Callable[[], datetime] = _local_now
    ):
        """
        Args:
            users: Profile source and daily-usage sink
            daily_limit: Actions per day for free users
            clock: Returns the current timezone-aware local time
        """
        self.users = users
        self.daily_limit = daily_limit
        self.clock = clock

    def today(self) -> str:
        return self.clock().date().isoformat()

    def is_premium(self, profile: Optional[UserProfile]) -> bool:
        return is_premium(profile, self.clock())

    def has_reached_limit(self, profile: Optional[UserProfile]) -> bool:
        """
        Check the limit against a loaded profile (no I/O)

        Returns:
            True if a free user has used today's allowance
        """
        if profile is None or self.is_premium(profile):
            return False
        reached = effective_count(profile.daily_usage, self.today()) >= self.daily_limit
        if reached:
            logger.info(f"Daily limit reached for user {profile.uid}")
        return reached

    def remaining(self, profile: Optional[UserProfile]) -> Optional[int]:
        """
        Actions left today

        Returns:
            None for premium users (unlimited), otherwise 0..daily_limit
        """
        if profile is not None and self.is_premium(profile):
            return None
        stored = profile.daily_usage if profile is not None else None
        return max(0, self.daily_limit - effective_count(stored, self.today()))

    async def consume(self, profile: UserProfile) -> bool:
        """
        Count one action against today's quota

        The profile is re-read from the store before counting, and the passed
        profile's daily usage is updated in place on success.

        Returns:
            True if the action may proceed. False when the limit is reached OR
            the store failed; the two are deliberately indistinguishable.
        """
        if self.has_reached_limit(profile):
            return False

        try:
            fresh = await self.users.get(profile.uid)
            if fresh is None:
                logger.error(f"Cannot track usage: no profile for user {profile.uid}")
                return False

            if self.is_premium(fresh):
                return True

            today = self.today()
            count = effective_count(fresh.daily_usage, today)
            if count >= self.daily_limit:
                logger.warning(f"Usage blocked for user {profile.uid}: {count}/{self.daily_limit}")
                profile.daily_usage = fresh.daily_usage
                return False

            usage = DailyUsage(date=today, view_count=count + 1)
            await self.users.update_daily_usage(profile.uid, usage)
            profile.daily_usage = usage

            logger.info(f"Usage for user {profile.uid}: {usage.view_count}/{self.daily_limit}")
            return True

        except Exception as e:
            logger.error(f"Failed to track usage for user {profile.uid}: {e}")
            return False
