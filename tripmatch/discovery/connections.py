"""Idempotent creation of connections between mutually matched users"""
import logging
from datetime import datetime, timezone
from typing import Callable

from ..models.connection import Connection
from ..models.itinerary import Itinerary
from ..repositories.connections import ConnectionRepository
from ..utils.errors import ConnectionCreationError, InvalidInputError, StoreError, require_id

logger = logging.getLogger(__name__)


def connection_id(user1: str, user2: str) -> str:
    """Deterministic ID for an unordered user pair: sorted IDs joined by "_" """
    first, second = sorted((user1, user2))
    return f"{first}_{second}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionFactory:
    """
    Creates at most one connection per user pair.

    create() checks for an existing record first and returns it untouched;
    only when absent does it build a new record and issue a single
    conditional write. Write failures always propagate.
    """

    def __init__(self, connections: ConnectionRepository, clock: Callable[[], datetime] = _utc_now):
        self.connections = connections
        self.clock = clock

    async def create(
        self,
        user1: str,
        user2: str,
        itinerary1_id: str,
        itinerary2_id: str,
        itinerary1: Itinerary,
        itinerary2: Itinerary
    ) -> Connection:
        """
        Get or create the connection for (user1, user2)

        Returns:
            The existing connection if one exists, otherwise the new one

        Raises:
            InvalidInputError: If any ID is missing or both users are the same
            ConnectionCreationError: If the store read or write fails
        """
        user1 = require_id(user1, "user ID")
        user2 = require_id(user2, "user ID")
        itinerary1_id = require_id(itinerary1_id, "itinerary ID")
        itinerary2_id = require_id(itinerary2_id, "itinerary ID")
        if user1 == user2:
            raise InvalidInputError("Cannot connect a user with themselves")

        pair_id = connection_id(user1, user2)

        try:
            existing = await self.connections.get(pair_id)
            if existing is not None:
                logger.info(f"Connection {pair_id} already exists")
                return existing

            connection = Connection(
                id=pair_id,
                users=[user1, user2],
                itinerary_ids=[itinerary1_id, itinerary2_id],
                itineraries=[itinerary1.to_document(), itinerary2.to_document()],
                created_at=self.clock(),
                unread_counts={user1: 0, user2: 0},
            )

            if not await self.connections.create_if_absent(connection):
                # Lost a race with the other user's create; theirs is equivalent
                winner = await self.connections.get(pair_id)
                if winner is None:
                    raise ConnectionCreationError(f"Connection {pair_id} vanished after a conflicting write")
                return winner

        except ConnectionCreationError:
            raise
        except StoreError as e:
            logger.error(f"Failed to create connection {pair_id}: {e.message}")
            raise ConnectionCreationError(
                "Failed to create connection. Please try again.",
                details={"connection_id": pair_id, "cause": e.message}
            ) from e

        logger.info(f"Created connection {pair_id} for itineraries {itinerary1_id}, {itinerary2_id}")
        return connection

