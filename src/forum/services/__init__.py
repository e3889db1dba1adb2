from .conversation_service import ConversationService

__all__ = ["ConversationService"]
