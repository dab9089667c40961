"""Database models shared across the backend."""

from claude_chat.models.ai_settings import AISettings
from claude_chat.models.base import Base
from claude_chat.models.chat import DEFAULT_CHAT_TITLE, Chat, Message, MessageFile
from claude_chat.models.subscription import (
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    Transaction,
    TransactionStatus,
)
from claude_chat.models.usage_stats import UsageStats
from claude_chat.models.user import User

__all__ = [
    "AISettings",
    "Base",
    "Chat",
    "DEFAULT_CHAT_TITLE",
    "Message",
    "MessageFile",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "Transaction",
    "TransactionStatus",
    "UsageStats",
    "User",
]
