"""Telegram client used to publish settlement announcements."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from telegram import Bot
from telegram.error import InvalidToken, RetryAfter
from telegram.error import TelegramError as BotError

from .config import TelegramConfig
from .exceptions import TelegramAuthError, TelegramConfigError
from .models import NotificationResult

logger = logging.getLogger(__name__)

# Telegram rejects longer message texts
MAX_MESSAGE_LENGTH = 4096


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """
    Split an announcement into chunks Telegram accepts.

    Breaks on line boundaries so HTML tags (which never span lines in our
    announcements) stay balanced; a single over-long line is hard-cut.
    """
    chunks: list[str] = []
    current = ""

    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]

        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate

    if current or not chunks:
        chunks.append(current)
    return chunks


class TelegramClient:
    """Async wrapper around ``telegram.Bot`` for announcement delivery."""

    def __init__(self, config: TelegramConfig):
        if not config.bot_token:
            raise TelegramConfigError("Telegram bot_token is not configured")

        self.config = config
        self._bot: Bot | None = None

    async def __aenter__(self) -> TelegramClient:
        try:
            self._bot = Bot(token=self.config.bot_token)
            await self._bot.initialize()
        except InvalidToken as e:
            raise TelegramAuthError(f"Telegram rejected the bot token: {e}", status_code=401)
        except BotError as e:
            raise TelegramAuthError(f"Telegram bot could not be initialized: {e}")
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._bot:
            await self._bot.shutdown()
            self._bot = None

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError("TelegramClient must be used as an async context manager")
        return self._bot

    async def _send_chunk(self, chat_id: str, text: str) -> tuple[int | None, str | None, int]:
        """Send one chunk; returns (message_id, error, retries used)."""
        error: str | None = None

        for attempt in range(self.config.max_attempts):
            try:
                sent = await self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode=self.config.parse_mode,
                    disable_web_page_preview=True,
                    read_timeout=self.config.timeout_seconds,
                    write_timeout=self.config.timeout_seconds,
                )
                return sent.message_id, None, attempt
            except RetryAfter as e:
                error = f"rate limited for {e.retry_after}s"
                delay = e.retry_after
                if not isinstance(delay, (int, float)):
                    delay = delay.total_seconds()
            except BotError as e:
                error = e.message or type(e).__name__
                delay = self.config.retry_delay_seconds

            logger.warning(
                f"Telegram send to {chat_id} failed "
                f"(attempt {attempt + 1}/{self.config.max_attempts}): {error}"
            )
            if attempt + 1 < self.config.max_attempts:
                await asyncio.sleep(delay)

        return None, error, self.config.max_attempts - 1

    async def send_message(self, message: str, chat_id: str | None = None) -> NotificationResult:
        """
        Deliver ``message`` to ``chat_id`` (or the default chat).

        Long messages go out as several consecutive messages; delivery stops
        at the first chunk that still fails after its retries.
        """
        target = chat_id or self.config.default_chat_id
        if not target:
            raise TelegramConfigError("No chat_id given and no default chat configured")

        message_ids: list[int] = []
        retries = 0

        for chunk in split_message(message):
            message_id, error, used = await self._send_chunk(target, chunk)
            retries += used
            if message_id is None:
                return NotificationResult(
                    success=False,
                    recipient=target,
                    message_ids=message_ids,
                    error=error or "send failed",
                    retry_count=retries,
                )
            message_ids.append(message_id)

        logger.info(f"Announcement delivered to {target} in {len(message_ids)} message(s)")
        return NotificationResult(
            success=True,
            recipient=target,
            message_ids=message_ids,
            retry_count=retries,
        )
