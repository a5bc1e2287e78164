"""Accept/reject actions and mutual-match detection"""
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..models.connection import Connection
from ..models.itinerary import Itinerary
from ..models.user import UserProfile
from ..repositories.itineraries import ItineraryRepository
from ..utils.errors import DiscoveryError, InvalidInputError, StoreError, require_id
from .connections import ConnectionFactory
from .quota import QuotaTracker
from .viewed_cache import ViewedCache

logger = logging.getLogger(__name__)

ACTION_FAILED_MESSAGE = (
    "Daily limit reached or your action could not be saved. "
    "Please try again, or upgrade to Premium for unlimited matching."
)
MATCH_SETUP_FAILED_MESSAGE = "It's a match, but setting it up had issues. Check your matches list."


class MatchStatus(str, Enum):
    NO_MATCH = "no_match"
    MATCHED = "matched"
    ERROR = "error"


class RejectStatus(str, Enum):
    ACCEPTED = "accepted"
    ERROR = "error"


class ErrorKind(str, Enum):
    # Quota exhausted, or quota/like persistence failed: same message for both
    ACTION_FAILED = "action_failed"
    # Mutual like detected but the connection write failed
    MATCH_SETUP_FAILED = "match_setup_failed"


class MatchOutcome(BaseModel):
    """Result of an accept action"""
    status: MatchStatus
    connection: Optional[Connection] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def should_advance(self) -> bool:
        """The cursor moves on unless the like itself was not recorded"""
        return self.status != MatchStatus.ERROR or self.error_kind == ErrorKind.MATCH_SETUP_FAILED

    @classmethod
    def no_match(cls) -> "MatchOutcome":
        return cls(status=MatchStatus.NO_MATCH)

    @classmethod
    def matched(cls, connection: Connection) -> "MatchOutcome":
        return cls(status=MatchStatus.MATCHED, connection=connection)

    @classmethod
    def error(cls, kind: ErrorKind) -> "MatchOutcome":
        message = MATCH_SETUP_FAILED_MESSAGE if kind == ErrorKind.MATCH_SETUP_FAILED else ACTION_FAILED_MESSAGE
        return cls(status=MatchStatus.ERROR, error_kind=kind, message=message)


class RejectOutcome(BaseModel):
    """Result of a reject action"""
    status: RejectStatus
    message: Optional[str] = None

    @property
    def should_advance(self) -> bool:
        return self.status == RejectStatus.ACCEPTED


def _validate_candidate(candidate: Optional[Itinerary]) -> str:
    if candidate is None:
        raise InvalidInputError("No candidate to act on")
    owner = candidate.owner_uid
    if not owner:
        raise InvalidInputError("Candidate has no owner", details={"itinerary_id": candidate.id})
    return owner


class MatchCoordinator:
    """
    Runs one accept or reject.

    Accept is mutate-then-verify: the like is persisted first, then the
    acting user's own itinerary is re-read to see whether the candidate's
    owner already liked it. Two users accepting each other at the same moment
    can both miss the match; whichever acts next on either itinerary detects it.
    """

    def __init__(
        self,
        itineraries: ItineraryRepository,
        quota: QuotaTracker,
        factory: ConnectionFactory,
        viewed: Optional[ViewedCache] = None
    ):
        self.itineraries = itineraries
        self.quota = quota
        self.factory = factory
        self.viewed = viewed

    async def accept(self, candidate: Itinerary, acting_user: UserProfile, my_itinerary_id: str) -> MatchOutcome:
        """
        Like a candidate and create a connection on a mutual like

        Args:
            candidate: Itinerary being accepted
            acting_user: Profile of the user accepting (quota is counted against it)
            my_itinerary_id: The acting user's itinerary the search was run for

        Returns:
            MatchOutcome; the caller advances the cursor when
            `outcome.should_advance` is true

        Raises:
            InvalidInputError: Before any I/O, for a missing candidate, owner or ID
        """
        owner = _validate_candidate(candidate)
        my_itinerary_id = require_id(my_itinerary_id, "itinerary ID")
        user_id = require_id(acting_user.uid if acting_user else None, "user ID")

        if not await self.quota.consume(acting_user):
            return MatchOutcome.error(ErrorKind.ACTION_FAILED)

        try:
            await self.itineraries.add_like(candidate, user_id)
        except StoreError as e:
            # The quota increment is not rolled back
            logger.error(f"Failed to save like on {candidate.id} by {user_id}: {e.message}")
            return MatchOutcome.error(ErrorKind.ACTION_FAILED)

        if self.viewed is not None:
            await self.viewed.add(candidate.id)

        try:
            mine = await self.itineraries.get(my_itinerary_id)
        except StoreError as e:
            logger.error(f"Could not re-read itinerary {my_itinerary_id} for match check: {e.message}")
            return MatchOutcome.no_match()

        if mine is None or owner not in mine.likes:
            return MatchOutcome.no_match()

        logger.info(f"Mutual like between {user_id} and {owner}")
        try:
            connection = await self.factory.create(
                user_id, owner, my_itinerary_id, candidate.id, mine, candidate
            )
        except DiscoveryError as e:
            logger.error(f"Match detected but connection setup failed for {user_id}/{owner}: {e.message}")
            return MatchOutcome.error(ErrorKind.MATCH_SETUP_FAILED)

        return MatchOutcome.matched(connection)

    async def reject(self, candidate: Itinerary, acting_user: UserProfile) -> RejectOutcome:
        """
        Pass on a candidate

        Returns:
            ACCEPTED once the action is counted and the candidate recorded as
            viewed; ERROR when the quota refused it
        """
        _validate_candidate(candidate)
        require_id(acting_user.uid if acting_user else None, "user ID")

        if not await self.quota.consume(acting_user):
            return RejectOutcome(status=RejectStatus.ERROR, message=ACTION_FAILED_MESSAGE)

        if self.viewed is not None:
            await self.viewed.add(candidate.id)
        return RejectOutcome(status=RejectStatus.ACCEPTED)
