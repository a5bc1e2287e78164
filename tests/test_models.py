"""Tests for document models and date helpers"""
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from tripmatch.models.itinerary import Itinerary
from tripmatch.models.search import NO_PREFERENCE, Preference, SearchCriteria
from tripmatch.models.user import UserProfile
from tripmatch.utils.dates import calculate_age, parse_subscription_end, to_day_timestamp
from tripmatch.utils.errors import InvalidInputError, require_id

from tests.factories import as_itinerary, itinerary_doc


def test_itinerary_reads_store_field_names():
    doc = itinerary_doc("x", "alice")
    doc["likes"] = None
    itinerary = as_itinerary(doc)
    assert itinerary.owner_uid == "alice"
    assert itinerary.likes == []
    assert itinerary.user_info.sexual_orientation == "Heterosexual"
    assert itinerary.to_document()["userInfo"]["uid"] == "alice"


def test_itinerary_rejects_reversed_dates():
    with pytest.raises(ValidationError):
        as_itinerary(itinerary_doc("x", "alice", start=5, end=2))


def test_itinerary_rejects_reversed_age_range():
    with pytest.raises(ValidationError):
        as_itinerary(itinerary_doc("x", "alice", lowerRange=40, upperRange=20))


def test_itinerary_rejects_fractional_day():
    with pytest.raises(ValidationError):
        Itinerary.model_validate({"id": "x", "startDay": 1.5})


@pytest.mark.parametrize("key", ["metadata", "response"])
def test_itinerary_rejects_serialized_payloads(key):
    with pytest.raises(ValidationError):
        Itinerary.model_validate({"id": "x", key: '{"a": 1}'})


def test_itinerary_days_from_dates():
    itinerary = Itinerary.model_validate({
        "id": "x",
        "startDate": "2026-05-01T00:00:00Z",
        "endDate": "2026-05-04T00:00:00Z",
    })
    assert itinerary.start_day == int(datetime(2026, 5, 1, tzinfo=timezone.utc).timestamp() * 1000)
    assert itinerary.end_day - itinerary.start_day == 3 * 86_400_000


def test_owner_age_prefers_stored_age():
    assert as_itinerary(itinerary_doc("x", "alice", age=33)).owner_age() == 33
    assert as_itinerary(itinerary_doc("x", "alice", dob=None)).owner_age() is None


def test_legacy_user_id_owner():
    itinerary = Itinerary.model_validate({"id": "x", "userId": "legacy"})
    assert itinerary.owner_uid == "legacy"


def test_preference_from_raw():
    assert Preference.from_raw(None).is_any
    assert Preference.from_raw("").is_any
    assert Preference.from_raw(NO_PREFERENCE).is_any
    assert Preference.from_raw("Female") == Preference.exactly("Female")
    assert Preference.from_raw("Female").accepts("Female")
    assert not Preference.from_raw("Female").accepts("Male")
    assert Preference.any().accepts(None)


def test_criteria_round_trips_through_rpc_params():
    doc = itinerary_doc("x", "me", end=9)
    doc["status"] = "Single"
    criteria = SearchCriteria.from_itinerary(as_itinerary(doc), "me", frozenset({"a"}))
    assert SearchCriteria.from_rpc_params(criteria.to_rpc_params(10)) == criteria


def test_user_profile_aliases():
    profile = UserProfile.model_validate({
        "uid": "alice",
        "subscriptionType": "premium",
        "dailyUsage": {"date": "2026-10-19", "viewCount": 3},
    })
    assert profile.subscription_type == "premium"
    assert profile.daily_usage.view_count == 3


def test_calculate_age():
    today = date(2026, 10, 19)
    assert calculate_age("2000-10-19", today) == 26
    assert calculate_age("2000-10-20", today) == 25
    assert calculate_age("garbage", today) is None
    assert calculate_age(None, today) is None


def test_to_day_timestamp():
    assert to_day_timestamp(1_700_000_000_000) == 1_700_000_000_000
    assert to_day_timestamp("2026-01-01T00:00:00Z") == 1_767_225_600_000
    assert to_day_timestamp("not a date") is None
    assert to_day_timestamp(True) is None


def test_parse_subscription_end_encodings():
    expected = datetime(2027, 1, 1, tzinfo=timezone.utc)
    seconds = int(expected.timestamp())
    assert parse_subscription_end({"seconds": seconds, "nanoseconds": 0}) == expected
    assert parse_subscription_end({"_seconds": seconds}) == expected
    assert parse_subscription_end(seconds * 1000) == expected
    assert parse_subscription_end("2027-01-01T00:00:00Z") == expected
    assert parse_subscription_end(expected) == expected
    assert parse_subscription_end("someday") is None
    assert parse_subscription_end({"nanoseconds": 5}) is None
    assert parse_subscription_end(None) is None


def test_require_id():
    assert require_id("  abc ", "user ID") == "abc"
    with pytest.raises(InvalidInputError) as exc:
        require_id(42, "user ID")
    assert exc.value.details == {"field": "user ID"}
