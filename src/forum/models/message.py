from sqlalchemy import DateTime, ForeignKey, Text, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from datetime import datetime
from forum.database.base import Base
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .conversation import Conversation
    from .user import User


class Message(Base):
    """
    SQLAlchemy model representing a message posted in a conversation.

    Ids are monotonically increasing, which is what the before/after pagination
    windows rely on. System messages are generated by the application itself
    (e.g. "new conversation spawned" notices).
    """
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Message body (may contain HTML for system messages)
    message: Mapped[str] = mapped_column(
        Text,
        nullable=False
    )

    # Author
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

    system_message: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False
    )

    # Set when the message was taken down; only published messages are paginated
    abuse_report_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("abuse_reports.id"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    # --- Relationships ---

    conversation: Mapped["Conversation"] = relationship(
        "Conversation",
        back_populates="messages",
        foreign_keys=[conversation_id]
    )

    # Loaded eagerly by the pagination queries (selectinload)
    user: Mapped["User"] = relationship("User")

    @property
    def is_published(self) -> bool:
        return self.abuse_report_id is None

    def __repr__(self) -> str:
        return f"<Message(id={self.id!r}, conversation_id={self.conversation_id!r}, system={self.system_message!r})>"
