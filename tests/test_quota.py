"""Tests for the daily action quota"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tripmatch.discovery.quota import QuotaTracker, effective_count, is_premium
from tripmatch.models.user import DailyUsage
from tripmatch.repositories.users import UserRepository
from tripmatch.utils.errors import StoreError

from tests.factories import FIXED_NOW, TODAY, as_profile, fixed_clock, make_store, premium_until, user_doc


def make_tracker(users=None, daily_limit=10):
    store = make_store(users=users or {})
    return QuotaTracker(UserRepository(store), daily_limit=daily_limit, clock=fixed_clock), store


def load(tracker, uid):
    return asyncio.run(tracker.users.get(uid))


def test_effective_count_resets_on_other_days():
    assert effective_count(None, TODAY) == 0
    assert effective_count(DailyUsage(date="2026-10-18", view_count=9), TODAY) == 0
    assert effective_count(DailyUsage(date=TODAY, view_count=4), TODAY) == 4


def test_free_user_limited_after_daily_allowance():
    tracker, store = make_tracker({"alice": user_doc("alice")}, daily_limit=3)
    profile = load(tracker, "alice")

    results = [asyncio.run(tracker.consume(profile)) for _ in range(4)]

    assert results == [True, True, True, False]
    assert store.collections["users"]["alice"]["dailyUsage"] == {"date": TODAY, "viewCount": 3}
    assert tracker.has_reached_limit(profile)
    assert tracker.remaining(profile) == 0


def test_stale_usage_resets_to_one():
    tracker, store = make_tracker({
        "alice": user_doc("alice", dailyUsage={"date": "2026-10-18", "viewCount": 10})
    })
    profile = load(tracker, "alice")

    assert not tracker.has_reached_limit(profile)
    assert asyncio.run(tracker.consume(profile)) is True
    assert store.collections["users"]["alice"]["dailyUsage"] == {"date": TODAY, "viewCount": 1}


@pytest.mark.parametrize("end_date", [
    premium_until(timedelta(days=30)),
    {"_seconds": int((FIXED_NOW + timedelta(days=1)).timestamp()), "_nanoseconds": 0},
    (FIXED_NOW + timedelta(days=2)).isoformat(),
    int((FIXED_NOW + timedelta(hours=3)).timestamp() * 1000),
])
def test_premium_never_limited_or_counted(end_date):
    tracker, store = make_tracker({
        "pat": user_doc(
            "pat",
            subscriptionType="premium",
            subscriptionEndDate=end_date,
            dailyUsage={"date": TODAY, "viewCount": 50},
        )
    })
    profile = load(tracker, "pat")

    assert tracker.is_premium(profile)
    assert not tracker.has_reached_limit(profile)
    assert tracker.remaining(profile) is None
    assert asyncio.run(tracker.consume(profile)) is True
    assert store.collections["users"]["pat"]["dailyUsage"]["viewCount"] == 50


def test_expired_premium_is_free_tier():
    profile = as_profile("pat", user_doc(
        "pat",
        subscriptionType="premium",
        subscriptionEndDate=premium_until(timedelta(days=-1)),
        dailyUsage={"date": TODAY, "viewCount": 10},
    ))
    assert not is_premium(profile, FIXED_NOW)
    tracker, _ = make_tracker()
    assert tracker.has_reached_limit(profile)


@pytest.mark.parametrize("end_date", ["not a date", None, {"seconds": "soon"}, ["2027-01-01"]])
def test_unparsable_end_date_is_not_premium(end_date):
    profile = as_profile("pat", user_doc("pat", subscriptionType="premium", subscriptionEndDate=end_date))
    assert not is_premium(profile, FIXED_NOW)


def test_other_tier_is_not_premium():
    profile = as_profile("pat", user_doc(
        "pat", subscriptionType="free", subscriptionEndDate=premium_until(timedelta(days=30))
    ))
    assert not is_premium(profile, FIXED_NOW)


def test_store_failure_denies_action():
    tracker, store = make_tracker({"alice": user_doc("alice")})
    profile = load(tracker, "alice")

    async def broken_update(collection, doc_id, updates):
        raise StoreError("write failed")

    store.update = broken_update

    assert asyncio.run(tracker.consume(profile)) is False
    assert profile.daily_usage is None


def test_missing_profile_denies_action():
    tracker, _ = make_tracker()
    ghost = as_profile("ghost", user_doc("ghost"))
    assert asyncio.run(tracker.consume(ghost)) is False


def test_limit_on_loaded_profile_skips_store():
    tracker, store = make_tracker({"alice": user_doc("alice")})
    profile = as_profile("alice", user_doc("alice", dailyUsage={"date": TODAY, "viewCount": 10}))

    async def unexpected_get(collection, doc_id):
        raise AssertionError("store should not be read")

    store.get = unexpected_get

    assert asyncio.run(tracker.consume(profile)) is False


def test_consume_uses_fresh_count():
    # Another device already used the allowance; the cached profile is stale
    tracker, _ = make_tracker({
        "alice": user_doc("alice", dailyUsage={"date": TODAY, "viewCount": 10})
    })
    stale = as_profile("alice", user_doc("alice"))

    assert asyncio.run(tracker.consume(stale)) is False
    assert stale.daily_usage.view_count == 10


def test_remaining_counts_down():
    tracker, _ = make_tracker({"alice": user_doc("alice")})
    profile = load(tracker, "alice")
    assert tracker.remaining(profile) == 10
    for _ in range(3):
        asyncio.run(tracker.consume(profile))
    assert tracker.remaining(profile) == 7


def test_today_follows_clock():
    tracker, _ = make_tracker()
    tracker.clock = lambda: datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)
    assert tracker.today() == "2026-12-31"
