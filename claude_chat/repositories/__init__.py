"""Data access layer abstractions and implementations."""

from claude_chat.repositories.ai_settings import AISettingsRepository
from claude_chat.repositories.chat import ChatRepository, MessageRepository
from claude_chat.repositories.subscription import SubscriptionRepository
from claude_chat.repositories.usage_stats import UsageStatsRepository
from claude_chat.repositories.user import UserRepository

__all__ = [
    "AISettingsRepository",
    "ChatRepository",
    "MessageRepository",
    "SubscriptionRepository",
    "UsageStatsRepository",
    "UserRepository",
]
