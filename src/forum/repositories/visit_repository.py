"""
Visit counter repository.

One row per (user, conversation); repeat visits bump `visits_count` and move
`updated_at`, which the popularity ranking windows on.
"""

import logging

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.conversation_visit import ConversationVisit
from forum.exceptions.mapper import db_error_handler
from .base_repository import BaseRepository, RepositoryError

logger = logging.getLogger(__name__)


class VisitRepository(BaseRepository[ConversationVisit]):

    def __init__(self, db: AsyncSession):
        super().__init__(ConversationVisit, db)

    async def add_visit(self, conversation_id: int, user_id: int) -> ConversationVisit:
        """
        Record one visit of `user_id` to the conversation.

        The increment is a single UPDATE (`visits_count = visits_count + 1`) so concurrent
        visits are not lost; the row is created with a count of 1 on the first visit.
        """
        stmt = (
            update(ConversationVisit)
            .where(
                ConversationVisit.conversation_id == conversation_id,
                ConversationVisit.user_id == user_id,
            )
            .values(visits_count=ConversationVisit.visits_count + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        async with db_error_handler(self.db, ConversationVisit.__name__):
            result = await self.db.execute(stmt)

        if result.rowcount == 0:
            visit = await self.create(conversation_id=conversation_id, user_id=user_id, visits_count=1)
            logger.debug("visit.first", extra={"conversation_id": conversation_id, "user_id": user_id})
            return visit

        visit = await self.find_visit(conversation_id, user_id, reload=True)
        logger.debug(
            "visit.incremented",
            extra={"conversation_id": conversation_id, "user_id": user_id, "visits_count": visit.visits_count},
        )
        return visit

    async def find_visit(self, conversation_id: int, user_id: int, reload: bool = False) -> ConversationVisit | None:
        """`reload` overwrites a copy already in the session with the stored row."""
        query = (
            select(ConversationVisit)
            .where(ConversationVisit.conversation_id == conversation_id, ConversationVisit.user_id == user_id)
            .limit(1)
        )
        if reload:
            query = query.execution_options(populate_existing=True)
        try:
            result = await self.db.execute(query)
            return result.scalar_one_or_none()

        except Exception as e:
            logger.error(f"Error retrieving visit of user {user_id} to conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve visit") from e

    async def total_visits(self, conversation_id: int) -> int:
        """Sum of all users' visit counts for the conversation."""
        try:
            result = await self.db.execute(
                select(func.coalesce(func.sum(ConversationVisit.visits_count), 0))
                .where(ConversationVisit.conversation_id == conversation_id)
            )
            return int(result.scalar() or 0)

        except Exception as e:
            logger.error(f"Error summing visits for conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to count visits") from e
