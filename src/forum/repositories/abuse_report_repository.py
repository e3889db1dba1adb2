"""
Abuse report repository: one report per (reporter, conversation).
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from forum.models.abuse_report import AbuseReport
from .base_repository import BaseRepository, RepositoryError

logger = logging.getLogger(__name__)


class AbuseReportRepository(BaseRepository[AbuseReport]):

    def __init__(self, db: AsyncSession):
        super().__init__(AbuseReport, db)

    async def find_by_reporter(self, conversation_id: int, user_id: int) -> AbuseReport | None:
        try:
            result = await self.db.execute(
                select(AbuseReport)
                .where(AbuseReport.conversation_id == conversation_id, AbuseReport.user_id == user_id)
                .limit(1)
            )
            return result.scalar_one_or_none()

        except Exception as e:
            logger.error(f"Error retrieving abuse report of user {user_id} on conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to retrieve abuse report") from e

    async def file_report(self, conversation_id: int, user_id: int) -> tuple[AbuseReport, bool]:
        """
        Find-or-create the reporter's report.

        Returns:
            (report, created) where `created` is False when the user had already
            reported this conversation.

        Raises:
            DuplicateError: If a concurrent request inserted the same report first.
        """
        existing = await self.find_by_reporter(conversation_id, user_id)
        if existing is not None:
            logger.info("abuse_report.already_filed", extra={"conversation_id": conversation_id, "user_id": user_id})
            return existing, False

        report = await self.create(conversation_id=conversation_id, user_id=user_id)
        logger.info(
            "abuse_report.filed",
            extra={"conversation_id": conversation_id, "user_id": user_id, "abuse_report_id": report.id},
        )
        return report, True

    async def count_for_conversation(self, conversation_id: int) -> int:
        try:
            result = await self.db.execute(
                select(func.count(AbuseReport.id)).where(AbuseReport.conversation_id == conversation_id)
            )
            return result.scalar() or 0

        except Exception as e:
            logger.error(f"Error counting abuse reports for conversation {conversation_id}: {e}")
            raise RepositoryError("Failed to count abuse reports") from e
