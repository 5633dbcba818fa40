"""Telegram delivery for settlement announcements."""

from .client import MAX_MESSAGE_LENGTH, TelegramClient, split_message
from .config import TelegramConfig
from .exceptions import TelegramAuthError, TelegramConfigError, TelegramError
from .models import NotificationResult

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "TelegramClient",
    "split_message",
    "TelegramConfig",
    "NotificationResult",
    "TelegramError",
    "TelegramAuthError",
    "TelegramConfigError",
]
