"""Per-user discovery flow and the registry that wires it to a store"""
import logging
from typing import Dict, Optional

from ..config import Settings
from ..models.itinerary import Itinerary
from ..models.user import UserProfile
from ..repositories.connections import ConnectionRepository
from ..repositories.itineraries import ItineraryRepository
from ..repositories.rpc_server import LocalRpcClient
from ..repositories.users import UserRepository
from ..store.base import DocumentStore
from ..store.rpc import RpcClient
from ..utils.errors import InvalidInputError
from ..utils.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from .connections import ConnectionFactory
from .matching import MatchCoordinator, MatchOutcome, RejectOutcome
from .quota import FREE_DAILY_LIMIT, QuotaTracker
from .search_cursor import PAGE_SIZE, SearchCursor
from .viewed_cache import VIEWED_STORAGE_KEY, ViewedCache

logger = logging.getLogger(__name__)


class DiscoverySession:
    """
    The operations the UI drives: search, current, advance, accept, reject,
    and the quota queries.

    accept/reject advance the cursor themselves when the outcome allows it.
    """

    def __init__(
        self,
        profile: UserProfile,
        cursor: SearchCursor,
        coordinator: MatchCoordinator,
        quota: QuotaTracker
    ):
        self.profile = profile
        self.cursor = cursor
        self.coordinator = coordinator
        self.quota = quota

    @property
    def user_id(self) -> str:
        return self.profile.uid

    @property
    def itinerary(self) -> Optional[Itinerary]:
        return self.cursor.itinerary

    async def search(self, itinerary: Itinerary) -> Optional[str]:
        """
        Start browsing candidates for one of the user's itineraries

        Returns:
            User-facing error message if the first page failed, else None
        """
        await self.cursor.search(itinerary, self.user_id)
        return self.cursor.error

    async def refresh(self) -> Optional[str]:
        await self.cursor.refresh()
        return self.cursor.error

    def current(self) -> Optional[Itinerary]:
        return self.cursor.current()

    async def advance(self) -> Optional[Itinerary]:
        await self.cursor.advance()
        return self.cursor.current()

    def _target(self, candidate: Optional[Itinerary]) -> Itinerary:
        target = candidate or self.cursor.current()
        if target is None:
            raise InvalidInputError("No candidate to act on")
        return target

    async def accept(self, candidate: Optional[Itinerary] = None) -> MatchOutcome:
        """Accept the given candidate, defaulting to the current one"""
        if self.cursor.itinerary is None:
            raise InvalidInputError("Search with one of your itineraries first")
        target = self._target(candidate)
        outcome = await self.coordinator.accept(target, self.profile, self.cursor.itinerary.id)
        if outcome.should_advance:
            await self.cursor.advance()
        return outcome

    async def reject(self, candidate: Optional[Itinerary] = None) -> RejectOutcome:
        """Reject the given candidate, defaulting to the current one"""
        target = self._target(candidate)
        outcome = await self.coordinator.reject(target, self.profile)
        if outcome.should_advance:
            await self.cursor.advance()
        return outcome

    def has_reached_limit(self) -> bool:
        return self.quota.has_reached_limit(self.profile)

    def remaining_today(self) -> Optional[int]:
        return self.quota.remaining(self.profile)


class SessionRegistry:
    """
    Owns the repositories and shared components for one store and hands out
    one DiscoverySession per user. A new search replaces the user's session.
    """

    def __init__(
        self,
        store: DocumentStore,
        rpc: Optional[RpcClient] = None,
        use_rpc: bool = False,
        viewed_storage: Optional[KeyValueStorage] = None,
        daily_limit: int = FREE_DAILY_LIMIT,
        page_size: int = PAGE_SIZE,
        quota: Optional[QuotaTracker] = None
    ):
        self.store = store
        self.itineraries = ItineraryRepository(store, rpc=rpc, use_rpc=use_rpc)
        self.users = UserRepository(store)
        self.connections = ConnectionRepository(store)
        self.quota = quota or QuotaTracker(self.users, daily_limit=daily_limit)
        self.factory = ConnectionFactory(self.connections)
        self.viewed_storage = viewed_storage or MemoryStorage()
        self.page_size = page_size
        self._viewed: Dict[str, ViewedCache] = {}
        self._sessions: Dict[str, DiscoverySession] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionRegistry":
        """Build the registry for the configured backend"""
        if settings.store_backend == "supabase":
            from ..store.rpc import SupabaseRpcClient
            from ..store.supabase_store import SupabaseDocumentStore
            store = SupabaseDocumentStore()
            rpc = SupabaseRpcClient(store.supabase)
        elif settings.store_backend == "memory":
            from ..store.memory import InMemoryDocumentStore
            store = InMemoryDocumentStore()
            rpc = LocalRpcClient(store)
        else:
            raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")

        logger.info(f"Discovery store backend: {settings.store_backend} (use_rpc={settings.use_rpc})")
        return cls(
            store,
            rpc=rpc,
            use_rpc=settings.use_rpc,
            viewed_storage=JsonFileStorage(settings.viewed_storage_path),
            daily_limit=settings.free_daily_limit,
            page_size=settings.search_page_size,
        )

    def viewed_cache(self, user_id: str) -> ViewedCache:
        """One viewed set per user (per device, in the client apps)"""
        if user_id not in self._viewed:
            self._viewed[user_id] = ViewedCache(self.viewed_storage, key=f"{VIEWED_STORAGE_KEY}:{user_id}")
        return self._viewed[user_id]

    def new_session(self, profile: UserProfile) -> DiscoverySession:
        viewed = self.viewed_cache(profile.uid)
        cursor = SearchCursor(self.itineraries, viewed=viewed, page_size=self.page_size)
        coordinator = MatchCoordinator(self.itineraries, self.quota, self.factory, viewed=viewed)
        session = DiscoverySession(profile, cursor, coordinator, self.quota)
        self._sessions[profile.uid] = session
        return session

    def get_session(self, profile: UserProfile) -> Optional[DiscoverySession]:
        """The user's live session, bound to the freshly loaded profile"""
        session = self._sessions.get(profile.uid)
        if session is not None:
            session.profile = profile
        return session

    def end_session(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)
