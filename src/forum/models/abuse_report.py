from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from datetime import datetime
from forum.database.base import Base


class AbuseReport(Base):
    """
    A complaint filed by a user against a conversation.

    At most one report per (reporter, conversation). When enough reports pile up, or
    the owner reports their own conversation, the conversation points back at the
    report that disabled it (Conversation.abuse_report_id).
    """
    __tablename__ = "abuse_reports"
    __table_args__ = (
        UniqueConstraint("user_id", "conversation_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Reporter
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )

    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conversations.id"),
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<AbuseReport(id={self.id!r}, user_id={self.user_id!r}, conversation_id={self.conversation_id!r})>"
