"""
Repository layer initialization module.

Exports every repository class. Repositories wrap an AsyncSession, flush but never
commit, and raise the app-level exceptions from forum.exceptions.

Usage:
    from forum.repositories import ConversationRepository, SubscriptionRepository
"""

from .base_repository import BaseRepository
from .user_repository import UserRepository
from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository
from .subscription_repository import SubscriptionRepository
from .abuse_report_repository import AbuseReportRepository
from .visit_repository import VisitRepository
from .tag_repository import TagRepository, parse_tag_list

__all__ = [
    "BaseRepository",
    "UserRepository",
    "ConversationRepository",
    "MessageRepository",
    "SubscriptionRepository",
    "AbuseReportRepository",
    "VisitRepository",
    "TagRepository",
    "parse_tag_list",
]
