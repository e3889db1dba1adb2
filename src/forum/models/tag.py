from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from datetime import datetime
from forum.database.base import Base


# Tagging contexts used on conversations
TAGS_CONTEXT = "tags"
BOOKMARKS_CONTEXT = "bookmarks"

TAG_NAME_MAX_LENGTH = 100


class Tag(Base):
    """A tag name shared by every tagging that uses it."""
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(TAG_NAME_MAX_LENGTH),
        unique=True,
        index=True,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id!r}, name={self.name!r})>"


class Tagging(Base):
    """
    Attaches a Tag to a Conversation within a context ("tags" or "bookmarks").

    `tagger_id` is NULL for the conversation's own tag list and set to a user id for
    tags applied by that user (e.g. the owner's tags, a user's bookmarks).
    """
    __tablename__ = "taggings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    tag_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tags.id"),
        nullable=False,
        index=True
    )

    conversation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("conversations.id"),
        nullable=False,
        index=True
    )

    tagger_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=True,
        index=True
    )

    context: Mapped[str] = mapped_column(
        String(40),
        default=TAGS_CONTEXT,
        nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    tag: Mapped["Tag"] = relationship("Tag")

    def __repr__(self) -> str:
        return (
            f"<Tagging(tag_id={self.tag_id!r}, conversation_id={self.conversation_id!r}, "
            f"tagger_id={self.tagger_id!r}, context={self.context!r})>"
        )
