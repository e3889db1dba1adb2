"""
User repository for handling user-specific database operations.

The conversation layer needs little from users: creating them (tests, seeding),
looking them up by login, finding their personal conversation and maintaining the
conversations counter cache.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.user import User
from forum.models.conversation import Conversation
from forum.exceptions.base import NotFoundError
from forum.exceptions.mapper import db_error_handler
from .base_repository import BaseRepository, RepositoryError

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for User entity operations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create_user(self, login: str, email: str, name: str | None = None) -> User:
        """
        Create a new user.

        Args:
            login: Unique login handle (surrounding whitespace is removed)
            email: Unique email address (normalized to lowercase)
            name: Optional display name

        Raises:
            DuplicateError: If a user with the same login or email already exists
            RepositoryError: For any unexpected database errors
        """
        logger.info("user.create", extra={"login": login.strip()})

        return await self.create(
            login=login.strip(),
            email=email.strip().lower(),
            name=name.strip() if name else None,
        )

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get_by_login(self, login: str) -> User | None:
        """
        Get a user by login (case-sensitive).
        """
        return await self.find_by_field("login", login.strip())

    async def get_personal_conversation(self, user_id: int) -> Conversation | None:
        """
        The user's personal conversation, if one was created.

        Raises:
            RepositoryError: If a database error occurs.
        """
        try:
            query = (
                select(Conversation)
                .where(Conversation.user_id == user_id, Conversation.personal_conversation.is_(True))
                .order_by(Conversation.id)
                .limit(1)
            )
            result = await self.db.execute(query)
            conversation = result.scalar_one_or_none()
            logger.debug(f"Personal conversation for user {user_id}: {conversation.id if conversation else None}")
            return conversation

        except Exception as e:
            logger.error(f"Error retrieving personal conversation for user {user_id}: {e}")
            raise RepositoryError("Failed to retrieve personal conversation") from e

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def increment_conversations_count(self, user_id: int) -> int:
        """
        Bump the user's conversations counter cache by one.

        Done as a single `SET conversations_count = conversations_count + 1` so concurrent
        conversation creations do not lose increments.

        Returns:
            The new counter value

        Raises:
            NotFoundError: If the user does not exist.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(conversations_count=User.conversations_count + 1)
            .execution_options(synchronize_session=False)
        )
        async with db_error_handler(self.db, User.__name__):
            result = await self.db.execute(stmt)

        if result.rowcount == 0:
            raise NotFoundError(f"User with ID {user_id} not found")

        # reload so a User already in the session sees the new value
        user = (
            await self.db.execute(select(User).where(User.id == user_id).execution_options(populate_existing=True))
        ).scalar_one()
        count = user.conversations_count
        logger.debug("user.conversations_count_incremented", extra={"user_id": user_id, "count": count})
        return count
