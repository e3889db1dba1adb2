from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from forum.database.base import Base, TimestampMixin
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .user import User


class Subscription(TimestampMixin, Base):
    """
    Follow link between a user and a conversation.

    Followers can read private conversations and write to private ones. One row per
    (user, conversation): the unique constraint closes the double-follow race of
    concurrent requests.
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "conversation_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

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

    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<Subscription(user_id={self.user_id!r}, conversation_id={self.conversation_id!r})>"
