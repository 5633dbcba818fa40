"""Telegram announcement settings."""

from pydantic import BaseModel


class TelegramConfig(BaseModel):
    """Bot credentials and delivery behaviour for announcements."""

    bot_token: str = ""
    default_chat_id: str = ""
    parse_mode: str = "HTML"
    timeout_seconds: float = 10.0
    max_attempts: int = 2
    retry_delay_seconds: float = 2.0
