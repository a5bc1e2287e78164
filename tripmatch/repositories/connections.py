"""Connection data access"""
import logging
from typing import List, Optional

from pydantic import ValidationError

from ..models.connection import Connection
from ..store.base import CONNECTIONS, DocumentStore
from ..store.query import FieldFilter, Query
from ..utils.errors import StoreError, require_id

logger = logging.getLogger(__name__)


class ConnectionRepository:
    """Reads and writes the `connections` collection"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, connection_id: str) -> Optional[Connection]:
        """
        Get a connection by ID

        Raises:
            StoreError: If the read fails or the stored record is malformed
        """
        connection_id = require_id(connection_id, "connection ID")
        document = await self.store.get(CONNECTIONS, connection_id)
        if document is None:
            return None
        try:
            return Connection.model_validate(document)
        except ValidationError as e:
            logger.warning(f"Malformed connection {connection_id}: {e.error_count()} validation errors")
            raise StoreError(
                f"Stored connection {connection_id} is malformed",
                details={"connection_id": connection_id}
            )

    async def create_if_absent(self, connection: Connection) -> bool:
        """
        Conditionally write a new connection

        Returns:
            True if written, False if a connection with this ID already exists

        Raises:
            StoreError: If the write fails
        """
        return await self.store.create(CONNECTIONS, connection.id, connection.to_document())

    async def list_for_user(self, user_id: str) -> List[Connection]:
        """All connections a user belongs to"""
        user_id = require_id(user_id, "user ID")
        page = await self.store.query(Query(
            collection=CONNECTIONS,
            filters=[FieldFilter("users", "array-contains", user_id)],
        ))
        connections = []
        for document in page.documents:
            try:
                connections.append(Connection.model_validate(document))
            except ValidationError:
                logger.warning(f"Skipping malformed connection {document.get('id')}")
        return connections

    async def mark_read(self, connection_id: str, user_id: str) -> None:
        """Reset a user's unread count; failures are logged, not raised"""
        connection_id = require_id(connection_id, "connection ID")
        user_id = require_id(user_id, "user ID")
        try:
            await self.store.update(CONNECTIONS, connection_id, {f"unreadCounts.{user_id}": 0})
        except StoreError as e:
            logger.error(f"Failed to mark {connection_id} read for {user_id}: {e.message}")
