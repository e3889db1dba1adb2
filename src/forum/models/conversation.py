from sqlalchemy import String, Text, Boolean, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from forum.database.base import Base, TimestampMixin
from forum.utils.text import escape_for_html, parameterize
from typing import TYPE_CHECKING

# Avoid circular import issues when using type hints for related models
if TYPE_CHECKING:
    from .user import User
    from .message import Message


class Conversation(TimestampMixin, Base):
    """
    SQLAlchemy model for a Conversation.

    A named, ownable discussion thread. Besides its messages it carries visibility
    flags (private / read-only), the personal-conversation marker, the message it was
    spawned from (if any) and the abuse report that disabled it (if any).

    Only pure predicates and string transforms live here; everything that needs a
    query (follower checks, abuse counting, pagination) is on ConversationRepository.
    """
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Personal conversations are named after the owner's login, so no length limit here
    # beyond the column size; the 3..100 rule is enforced by the validator.
    name: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False
    )

    # Owner
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )

    # Message this conversation was spawned from. use_alter breaks the
    # conversations <-> messages foreign key cycle at DDL time.
    parent_message_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("messages.id", use_alter=True),
        nullable=True
    )

    private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    personal_conversation: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # The abuse report that disabled this conversation (NULL while published)
    abuse_report_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("abuse_reports.id", use_alter=True),
        nullable=True,
        index=True
    )

    # Search index dirty flag: set whenever an indexed field changes, cleared by the indexer
    delta: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # --- Relationships ---

    # Many-to-One: each conversation belongs to a single user
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="conversations",
        foreign_keys=[user_id]
    )

    # One-to-Many: a conversation has many messages. Explicit foreign_keys because
    # messages and conversations reference each other (parent_message_id).
    messages: Mapped[list["Message"]] = relationship(
        "Message",
        back_populates="conversation",
        foreign_keys="Message.conversation_id",
        lazy="select",
        order_by="Message.id"
    )

    # --- Predicates ---

    @property
    def owner_id(self) -> int:
        return self.user_id

    @property
    def is_published(self) -> bool:
        return self.abuse_report_id is None

    @property
    def is_disabled_by_abuse_report(self) -> bool:
        return self.abuse_report_id is not None

    @property
    def is_private(self) -> bool:
        return bool(self.private)

    @property
    def is_personal(self) -> bool:
        return bool(self.personal_conversation)

    @property
    def is_spawned(self) -> bool:
        return self.parent_message_id is not None

    def is_owned_by(self, user: "User | None") -> bool:
        return user is not None and user.id == self.user_id

    # --- Presentation helpers ---

    @property
    def escaped_name(self) -> str:
        return escape_for_html(self.name)

    @property
    def escaped_description(self) -> str:
        return escape_for_html(self.description)

    def to_param(self) -> str:
        """Routing key, e.g. "42-hello-world"."""
        return f"{self.id}-{parameterize(self.name)}"

    def date_time12(self) -> str:
        return self.created_at.strftime("%m/%d/%Y %I:%M%p")

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id!r}, name={self.name!r}, user_id={self.user_id!r})>"
