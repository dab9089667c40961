"""Business logic services orchestrating domain operations."""

from claude_chat.services.chat import ChatService
from claude_chat.services.dialog import DialogService
from claude_chat.services.llm import AICompletionClient, CompletionError, LLMProvider
from claude_chat.services.payments import PaymentGatewayError, YooKassaClient
from claude_chat.services.settings import SettingsService
from claude_chat.services.storage import AttachmentStorage
from claude_chat.services.subscription import SubscriptionService
from claude_chat.services.user import UserService

__all__ = [
    "AICompletionClient",
    "AttachmentStorage",
    "ChatService",
    "CompletionError",
    "DialogService",
    "LLMProvider",
    "PaymentGatewayError",
    "SettingsService",
    "SubscriptionService",
    "UserService",
    "YooKassaClient",
]
