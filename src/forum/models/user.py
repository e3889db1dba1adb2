from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship
from forum.database.base import Base, TimestampMixin
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .conversation import Conversation


class User(TimestampMixin, Base):
    """
    SQLAlchemy model for User.

    Only the parts of a forum account the conversation layer needs: the login (which
    doubles as the name of the user's personal conversation and as an owner tag),
    an optional display name, and the conversations counter cache.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Login handle (must be unique and non-null)
    login: Mapped[str] = mapped_column(
        String(40),
        unique=True,
        index=True,
        nullable=False
    )

    # Optional display name, falls back to login in user-facing text
    name: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True
    )

    email: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False
    )

    # Counter cache of owned conversations
    conversations_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False
    )

    # --- Relationships ---

    # One-to-Many: conversations owned by this user
    conversations: Mapped[list["Conversation"]] = relationship(
        "Conversation",
        back_populates="owner",
        foreign_keys="Conversation.user_id",
        lazy="select"
    )

    @property
    def display_name(self) -> str:
        return self.name or self.login

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, login={self.login!r})>"
