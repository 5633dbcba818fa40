"""Telegram client exceptions."""


class TelegramError(Exception):
    """Base error for announcement delivery."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TelegramAuthError(TelegramError):
    """Bot token rejected or bot could not start."""


class TelegramConfigError(TelegramError):
    """Missing token or chat id."""
