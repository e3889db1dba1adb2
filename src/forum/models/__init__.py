r"""
Centralized access to all database models of the forum.

Importing this package registers every model with `Base.metadata`, which the
relationship string references ("Message.conversation_id", ...) and `create_all`
both rely on.

    from forum.models import User, Conversation, Message, Subscription
"""

from .user import User
from .conversation import Conversation
from .message import Message
from .subscription import Subscription
from .abuse_report import AbuseReport
from .conversation_visit import ConversationVisit
from .tag import Tag, Tagging, TAGS_CONTEXT, BOOKMARKS_CONTEXT

# search-index hooks attach mapper events to Conversation
from forum.search import indexing  # noqa: E402,F401

__all__ = [
    "User",
    "Conversation",
    "Message",
    "Subscription",
    "AbuseReport",
    "ConversationVisit",
    "Tag",
    "Tagging",
    "TAGS_CONTEXT",
    "BOOKMARKS_CONTEXT",
]
