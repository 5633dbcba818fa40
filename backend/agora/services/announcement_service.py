"""Settlement announcements rendered as Telegram HTML."""

import html
import logging
from typing import Optional

from agora.clients.telegram import TelegramClient, TelegramConfig, TelegramError
from agora.config import Settings
from agora.models import EventStatus, PayoutKind, PayoutOutcome
from agora.schemas.settlement import SettlementResult

logger = logging.getLogger(__name__)


def _short(value: Optional[str], keep: int = 8) -> str:
    if not value:
        return "-"
    return value if len(value) <= keep * 2 else f"{value[:keep]}...{value[-4:]}"


def render_result(summary: SettlementResult) -> str:
    """HTML message for a completed or cancelled event."""
    title = html.escape(summary.title)

    if summary.status == EventStatus.CANCELLED:
        lines = [
            f"🚫 <b>{title}</b> was cancelled",
            f"Reason: {html.escape(summary.cancel_reason or 'unknown')}",
            f"Participants: {summary.participant_count} (required {summary.min_participants})",
        ]
        refunds = [p for p in summary.payouts if p.kind == PayoutKind.REFUND]
        if refunds:
            lines.append("")
            lines.append("<b>Refunds</b>")
            lines.extend(_payout_line(p) for p in refunds)
        return "\n".join(lines)

    lines = [f"🏁 <b>{title}</b> results"]

    total = sum(t.count for t in summary.option_tallies)
    if summary.option_tallies:
        lines.append("")
        lines.append("<b>Breakdown</b>")
        for tally in summary.option_tallies:
            pct = (tally.count / total * 100) if total else 0.0
            marker = "🏆 " if tally.option_id == summary.winning_option_id else ""
            lines.append(f"{marker}{html.escape(tally.label)}: {tally.count} ({pct:.1f}%)")

    lines.append("")
    if summary.winning_option_label:
        lines.append(f"Winning option: <b>{html.escape(summary.winning_option_label)}</b>")
    if summary.winner_user_ids:
        lines.append(f"Winners ({len(summary.winner_user_ids)}): " + ", ".join(
            html.escape(u) for u in summary.winner_user_ids
        ))
    else:
        lines.append("No winners this time.")

    prizes = [p for p in summary.payouts if p.kind == PayoutKind.PRIZE]
    if prizes:
        lines.append(f"Prize per winner: {prizes[-1].amount} {prizes[-1].currency}")
        lines.append("")
        lines.append("<b>Distribution</b>")
        lines.extend(_payout_line(p) for p in prizes)

    if summary.draw_proof:
        lines.append("")
        lines.append(
            f"Seed <code>{summary.draw_proof.get('server_seed')}</code> "
            f"(hash <code>{_short(summary.draw_proof.get('server_seed_hash'))}</code>)"
        )

    return "\n".join(lines)


def _payout_line(payout) -> str:
    who = html.escape(payout.recipient)
    if payout.outcome == PayoutOutcome.CONFIRMED:
        return f"✅ {who}: {payout.amount} {payout.currency} (tx <code>{_short(payout.transfer_id)}</code>)"
    return f"❌ {who}: {payout.amount} {payout.currency} ({html.escape(payout.failure_reason or 'failed')})"


class LoggingAnnouncementSink:
    """Writes announcements to the log; used when Telegram is not configured."""

    async def publish_result(self, event_id, summary: SettlementResult) -> None:
        logger.info(f"Announcement for event {event_id}:\n{render_result(summary)}")


class TelegramAnnouncementSink:
    """Delivers announcements to the event's channel or the default chat."""

    def __init__(self, config: TelegramConfig):
        self.config = config

    async def publish_result(self, event_id, summary: SettlementResult) -> None:
        chat_id = summary.announcement_channel or self.config.default_chat_id
        message = render_result(summary)

        try:
            async with TelegramClient(config=self.config) as client:
                result = await client.send_message(message, chat_id=chat_id)
        except TelegramError as e:
            logger.warning(f"Telegram unavailable for event {event_id}: {e}")
            return

        if not result.success:
            logger.warning(f"Announcement for event {event_id} not delivered: {result.error}")


def build_announcement_sink(settings: Settings):
    """Telegram when a bot token is configured, otherwise the log."""
    if settings.telegram_bot_token:
        return TelegramAnnouncementSink(
            TelegramConfig(
                bot_token=settings.telegram_bot_token,
                default_chat_id=settings.telegram_chat_id,
            )
        )
    logger.info("Telegram not configured; announcements go to the log")
    return LoggingAnnouncementSink()
