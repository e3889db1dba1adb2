from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from forum.database.base import Base, TimestampMixin


class ConversationVisit(TimestampMixin, Base):
    """
    Per (user, conversation) visit counter.

    `updated_at` moves on every increment, which is what the trailing-window popularity
    ranking filters on.
    """
    __tablename__ = "conversation_visits"
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

    visits_count: Mapped[int] = mapped_column(
        Integer,
        default=1,
        server_default="1",
        nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationVisit(user_id={self.user_id!r}, conversation_id={self.conversation_id!r}, "
            f"visits_count={self.visits_count!r})>"
        )
