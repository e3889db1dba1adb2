"""
Subscription (follow) repository.

A subscription links a user to a conversation they follow. Followers are what
`readable_by` / `writable_by` consult for private conversations.
"""

import logging

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.subscription import Subscription
from forum.models.user import User
from forum.exceptions.mapper import db_error_handler
from .base_repository import BaseRepository, RepositoryError

logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[Subscription]):

    def __init__(self, db: AsyncSession):
        super().__init__(Subscription, db)

    # =================================================================================================================
    # Write Operations
    # =================================================================================================================

    async def add_subscription(self, conversation_id: int, user_id: int) -> Subscription:
        """
        Make `user_id` follow the conversation. Idempotent: an existing link is returned
        as-is.

        Raises:
            RepositoryError: If the database write fails.
        """
        existing = await self.find_subscription(conversation_id, user_id)
        if existing is not None:
            logger.debug("subscription.exists", extra={"conversation_id": conversation_id, "user_id": user_id})
            return existing

        # a concurrent follow that wins the race makes this raise DuplicateError (unique constraint)
        subscription = await self.create(conversation_id=conversation_id, user_id=user_id)

        logger.info("subscription.added", extra={"conversation_id": conversation_id, "user_id": user_id})
        return subscription

    async def remove_subscription(self, conversation_id: int, user_id: int) -> bool | int:
        """
        Stop following. Deletes every matching link.

        Returns:
            True when there was nothing to delete, otherwise the number of rows removed
            (always truthy). Callers treat any truthy result as success.
        """
        async with db_error_handler(self.db, Subscription.__name__):
            result = await self.db.execute(
                delete(Subscription).where(
                    Subscription.conversation_id == conversation_id,
                    Subscription.user_id == user_id,
                )
            )

        removed = result.rowcount or 0
        logger.info(
            "subscription.removed",
            extra={"conversation_id": conversation_id, "user_id": user_id, "removed": removed},
        )
        return removed if removed else True

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def find_subscription(self, conversation_id: int, user_id: int) -> Subscription | None:
        try:
            result = await self.db.execute(
                select(Subscription)
                .where(Subscription.conversation_id == conversation_id, Subscription.user_id == user_id)
                .limit(1)
            )
            return result.scalar_one_or_none()

        except Exception as e:
            logger.error(f"Error retrieving subscription of user {user_id} to conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve subscription") from e

    async def is_following(self, conversation_id: int, user_id: int | None) -> bool:
        if user_id is None:
            return False
        return await self.find_subscription(conversation_id, user_id) is not None

    async def followers(self, conversation_id: int) -> list[User]:
        """
        Distinct users following the conversation, by login (A→Z).
        """
        try:
            query = (
                select(User)
                .join(Subscription, Subscription.user_id == User.id)
                .where(Subscription.conversation_id == conversation_id)
                .distinct()
                .order_by(User.login.asc())
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(f"Error retrieving followers of conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve followers") from e

    async def recent_followers(self, conversation_id: int, limit: int = 10) -> list[User]:
        """
        The most recent followers, newest subscription first.
        """
        try:
            query = (
                select(User)
                .join(Subscription, Subscription.user_id == User.id)
                .where(Subscription.conversation_id == conversation_id)
                .order_by(Subscription.created_at.desc(), Subscription.id.desc())
                .limit(limit)
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(f"Error retrieving recent followers of conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve followers") from e

    async def count_followers(self, conversation_id: int) -> int:
        try:
            result = await self.db.execute(
                select(func.count(func.distinct(Subscription.user_id)))
                .where(Subscription.conversation_id == conversation_id)
            )
            return result.scalar() or 0

        except Exception as e:
            logger.error(f"Error counting followers of conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to count followers") from e
