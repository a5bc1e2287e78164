"""End-to-end discovery flows over the in-memory store"""
import asyncio

import pytest

from tripmatch.discovery.matching import ErrorKind, MatchStatus, RejectStatus
from tripmatch.utils.errors import InvalidInputError

from tests.factories import TODAY, as_itinerary, itinerary_doc, make_registry, make_store, user_doc


def paris_store(bob_usage=None, mine_likes=()):
    return make_store(
        [
            itinerary_doc("b_trip", "bob", start=0, end=10, likes=list(mine_likes)),
            itinerary_doc("a_trip", "alice", start=1, end=3),
            itinerary_doc("c_trip", "cara", start=2, end=6),
            itinerary_doc("r_trip", "dan", destination="Rome", start=1, end=3),
        ],
        users={
            "alice": user_doc("alice"),
            "cara": user_doc("cara"),
            "bob": user_doc("bob", **({"dailyUsage": bob_usage} if bob_usage else {})),
        },
    )


def start(registry, uid="bob", itinerary_id="b_trip"):
    async def scenario():
        profile = await registry.users.get(uid)
        session = registry.new_session(profile)
        mine = await registry.itineraries.get(itinerary_id)
        error = await session.search(mine)
        return session, error

    return asyncio.run(scenario())


def test_search_returns_overlapping_paris_candidates():
    registry = make_registry(paris_store())
    session, error = start(registry)

    assert error is None
    assert [c.id for c in session.cursor.buffer] == ["a_trip", "c_trip"]
    assert session.current().id == "a_trip"


def test_accept_at_quota_does_not_advance():
    registry = make_registry(paris_store(bob_usage={"date": TODAY, "viewCount": 10}))
    session, _ = start(registry)
    assert session.has_reached_limit()

    outcome = asyncio.run(session.accept())

    assert outcome.status == MatchStatus.ERROR
    assert outcome.error_kind == ErrorKind.ACTION_FAILED
    assert session.current().id == "a_trip"
    assert registry.store.collections["itineraries"]["a_trip"]["likes"] == []


def test_mutual_accept_matches_and_advances():
    registry = make_registry(paris_store(mine_likes=["alice"]))
    session, _ = start(registry)

    outcome = asyncio.run(session.accept())

    assert outcome.status == MatchStatus.MATCHED
    assert outcome.connection.id == "alice_bob"
    assert session.current().id == "c_trip"
    assert session.remaining_today() == 9


def test_reject_at_quota_keeps_position():
    registry = make_registry(paris_store(bob_usage={"date": TODAY, "viewCount": 10}))
    session, _ = start(registry)
    index = session.cursor.index

    outcome = asyncio.run(session.reject())

    assert outcome.status == RejectStatus.ERROR
    assert session.cursor.index == index
    assert not asyncio.run(registry.viewed_cache("bob").has("a_trip"))


def test_reject_advances_and_hides_on_next_search():
    registry = make_registry(paris_store())
    session, _ = start(registry)

    outcome = asyncio.run(session.reject())
    assert outcome.status == RejectStatus.ACCEPTED
    assert session.current().id == "c_trip"

    session, _ = start(registry)
    assert [c.id for c in session.cursor.buffer] == ["c_trip"]


def test_advance_skips_without_counting():
    registry = make_registry(paris_store())
    session, _ = start(registry)

    nxt = asyncio.run(session.advance())
    end = asyncio.run(session.advance())

    assert nxt.id == "c_trip"
    assert end is None
    assert session.remaining_today() == 10


def test_accept_past_end_is_invalid():
    registry = make_registry(paris_store())
    session, _ = start(registry)

    async def exhaust():
        await session.advance()
        await session.advance()
        await session.accept()

    with pytest.raises(InvalidInputError):
        asyncio.run(exhaust())


def test_explicit_candidate_accept():
    registry = make_registry(paris_store())
    session, _ = start(registry)
    target = as_itinerary(registry.store.collections["itineraries"]["c_trip"])

    outcome = asyncio.run(session.accept(target))

    assert outcome.status == MatchStatus.NO_MATCH
    assert registry.store.collections["itineraries"]["c_trip"]["likes"] == ["bob"]


def test_registry_keeps_one_session_per_user():
    registry = make_registry(paris_store())
    first, _ = start(registry)
    second, _ = start(registry)

    fresh_profile = asyncio.run(registry.users.get("bob"))
    assert registry.get_session(fresh_profile) is second
    assert second.profile is fresh_profile
    assert first is not second

    registry.end_session("bob")
    assert registry.get_session(fresh_profile) is None


def test_viewed_caches_are_per_user():
    registry = make_registry(paris_store())
    assert registry.viewed_cache("bob") is registry.viewed_cache("bob")
    assert registry.viewed_cache("bob").key != registry.viewed_cache("alice").key


def test_registry_from_settings_memory_backend(tmp_path):
    from tripmatch.config import Settings
    from tripmatch.discovery.session import SessionRegistry
    from tripmatch.store.memory import InMemoryDocumentStore

    settings = Settings(
        STORE_BACKEND="memory",
        USE_RPC=True,
        FREE_DAILY_LIMIT=3,
        SEARCH_PAGE_SIZE=7,
        VIEWED_STORAGE_PATH=str(tmp_path / "viewed.json"),
    )
    registry = SessionRegistry.from_settings(settings)

    assert isinstance(registry.store, InMemoryDocumentStore)
    assert registry.itineraries.use_rpc is True
    assert registry.quota.daily_limit == 3
    assert registry.page_size == 7


def test_registry_rejects_unknown_backend():
    from tripmatch.config import Settings
    from tripmatch.discovery.session import SessionRegistry

    with pytest.raises(ValueError):
        SessionRegistry.from_settings(Settings(STORE_BACKEND="cassandra"))


def test_own_itinerary_reads():
    store = paris_store()
    store.collections["itineraries"]["b_old"] = itinerary_doc("b_old", "bob", start=-9, end=-5)
    store.collections["itineraries"]["b_bad"] = itinerary_doc("b_bad", "bob", metadata="{}")
    registry = make_registry(store)

    mine = asyncio.run(registry.itineraries.list_for_user("bob"))

    assert [i.id for i in mine] == ["b_old", "b_trip"]
    assert asyncio.run(registry.itineraries.get("b_bad")) is None
    assert asyncio.run(registry.itineraries.get("missing")) is None
