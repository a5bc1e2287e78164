"""User profile data access"""
import logging
from typing import Optional

from pydantic import ValidationError

from ..models.user import DailyUsage, UserProfile
from ..store.base import USERS, DocumentStore
from ..utils.errors import require_id

logger = logging.getLogger(__name__)


class UserRepository:
    """Reads profiles and writes daily usage on the `users` collection"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, user_id: str) -> Optional[UserProfile]:
        """
        Get a user profile by ID

        Returns:
            Profile if found and well-formed, None otherwise

        Raises:
            StoreError: If the read fails
        """
        user_id = require_id(user_id, "user ID")
        document = await self.store.get(USERS, user_id)
        if document is None:
            return None
        try:
            return UserProfile.model_validate({**document, "uid": user_id})
        except ValidationError as e:
            logger.warning(f"Stored profile {user_id} is malformed: {e.error_count()} errors")
            return None

    async def update_daily_usage(self, user_id: str, usage: DailyUsage) -> None:
        """
        Persist the daily usage record

        Raises:
            StoreError: If the write fails
        """
        await self.store.update(USERS, user_id, {"dailyUsage": usage.model_dump(by_alias=True)})
