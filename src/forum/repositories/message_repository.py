"""
Message repository for handling message-specific database operations.

Besides creation it provides the id-window pagination used by the conversation view:
pages of published messages strictly before or after a given message id, always
returned newest first, plus cheap existence checks for "load older / load newer".
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from forum.models.message import Message
from forum.models.conversation import Conversation
from .base_repository import BaseRepository, NotFoundError, RepositoryError
from .scopes import published_messages

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class MessageRepository(BaseRepository[Message]):
    """
    Repository for Message entity operations.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Message, db)

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create_message(
        self,
        conversation_id: int,
        user_id: int,
        text: str,
        system_message: bool = False
    ) -> Message:
        """
        Post a message in a conversation.

        Args:
            conversation_id: Conversation the message belongs to.
            user_id: Author.
            text: Message body (may contain HTML for system messages).
            system_message: True for notices generated by the application.

        Raises:
            NotFoundError: If the conversation does not exist.
            RepositoryError: If any database-related error occurs.
        """
        logger.info(
            "message.create",
            extra={"conversation_id": conversation_id, "user_id": user_id, "system_message": system_message},
        )

        try:
            conversation_result = await self.db.execute(
                select(Conversation.id).where(Conversation.id == conversation_id)
            )
            found = conversation_result.scalar_one_or_none() is not None
        except Exception as e:
            logger.error(f"Failed to look up conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to create message") from e

        if not found:
            raise NotFoundError(f"Conversation with ID {conversation_id} not found")

        return await self.create(
            conversation_id=conversation_id,
            user_id=user_id,
            message=text,
            system_message=system_message,
        )

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get_conversation_messages(
        self,
        conversation_id: int,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        published_only: bool = True
    ) -> list[Message]:
        """
        Messages of a conversation in posting order (oldest first).
        """
        try:
            query = select(Message).where(Message.conversation_id == conversation_id)
            if published_only:
                query = published_messages(query)
            query = query.options(selectinload(Message.user)).order_by(Message.id).offset(offset).limit(limit)

            result = await self.db.execute(query)
            messages = list(result.scalars().all())
            logger.debug(f"Retrieved {len(messages)} messages for conversation {conversation_id}")
            return messages

        except Exception as e:
            logger.error(f"Error retrieving messages for conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve conversation messages") from e

    # =================================================================================================================
    # Pagination Windows
    # =================================================================================================================

    def _window(self, conversation_id: int):
        return published_messages(select(Message).where(Message.conversation_id == conversation_id))

    async def get_before(
        self,
        conversation_id: int,
        message_id: int,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> list[Message]:
        """
        Up to `limit` published messages with id < message_id, newest first.
        """
        try:
            query = (
                self._window(conversation_id)
                .where(Message.id < message_id)
                .options(selectinload(Message.user))
                .order_by(Message.id.desc())
                .limit(limit)
            )
            result = await self.db.execute(query)
            messages = list(result.scalars().all())
            logger.debug(
                "message.page_before",
                extra={"conversation_id": conversation_id, "message_id": message_id, "count": len(messages)},
            )
            return messages

        except Exception as e:
            logger.error(f"Error paginating before message {message_id} in conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve messages") from e

    async def get_after(
        self,
        conversation_id: int,
        message_id: int,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> list[Message]:
        """
        Up to `limit` published messages with id > message_id, newest first.

        The window is the `limit` messages right after message_id (selected oldest first),
        then reversed so both directions return the same ordering.
        """
        try:
            query = (
                self._window(conversation_id)
                .where(Message.id > message_id)
                .options(selectinload(Message.user))
                .order_by(Message.id.asc())
                .limit(limit)
            )
            result = await self.db.execute(query)
            messages = list(result.scalars().all())
            messages.reverse()
            logger.debug(
                "message.page_after",
                extra={"conversation_id": conversation_id, "message_id": message_id, "count": len(messages)},
            )
            return messages

        except Exception as e:
            logger.error(f"Error paginating after message {message_id} in conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve messages") from e

    async def exists_before(self, conversation_id: int, message_id: int) -> bool:
        return await self._exists_where(conversation_id, Message.id < message_id)

    async def exists_after(self, conversation_id: int, message_id: int) -> bool:
        return await self._exists_where(conversation_id, Message.id > message_id)

    async def _exists_where(self, conversation_id: int, condition) -> bool:
        try:
            query = published_messages(
                select(Message.id).where(Message.conversation_id == conversation_id, condition)
            ).limit(1)
            result = await self.db.execute(query)
            return result.scalar_one_or_none() is not None

        except Exception as e:
            logger.error(f"Error checking messages in conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to check messages") from e
