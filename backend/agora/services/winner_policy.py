"""
Winner determination policies.

Vote events pick the administrator favorite when one is set, otherwise the
plurality option (ties go to the lowest display order). Wager events draw
one slot with a provably-fair HMAC draw committed to at publish time.
"""

import hashlib
import hmac
import logging
import secrets
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence
from uuid import UUID

from agora.models import Entry, Event, EventKind, EventOption
from agora.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class WinnerSelection:
    """Winning option, winners in payout order, and per-option tallies."""

    winning_option_id: Optional[UUID]
    winners: list[Entry] = field(default_factory=list)
    tallies: dict[UUID, int] = field(default_factory=dict)
    draw_proof: Optional[dict[str, Any]] = None

    @property
    def winner_count(self) -> int:
        return len(self.winners)

    @property
    def winner_user_ids(self) -> list[str]:
        return [e.user_id for e in self.winners]


class WinnerPolicy(Protocol):
    def determine_winners(
        self,
        event: Event,
        options: Sequence[EventOption],
        entries: Sequence[Entry],
    ) -> WinnerSelection:
        ...


def payout_order(entries: Sequence[Entry]) -> list[Entry]:
    """Earliest joiner first, then user id; the first winner absorbs rounding."""
    return sorted(
        entries,
        key=lambda e: (ensure_utc(e.joined_at) or _EPOCH, e.user_id),
    )


def tally_choices(options: Sequence[EventOption], entries: Sequence[Entry]) -> dict[UUID, int]:
    counts = Counter(e.chosen_option_id for e in entries if e.chosen_option_id is not None)
    return {opt.id: counts.get(opt.id, 0) for opt in options}


def _select(selection_option: Optional[UUID], entries: Sequence[Entry]) -> list[Entry]:
    if selection_option is None:
        return []
    return payout_order([e for e in entries if e.chosen_option_id == selection_option])


class VoteWinnerPolicy:
    """Favorite if set, else plurality with lowest-display-order tie-break."""

    def determine_winners(
        self,
        event: Event,
        options: Sequence[EventOption],
        entries: Sequence[Entry],
    ) -> WinnerSelection:
        tallies = tally_choices(options, entries)

        if event.admin_favorite_option_id is not None:
            winning = event.admin_favorite_option_id
            logger.info(f"Event {event.id}: administrator favorite {winning} wins")
        else:
            winning = None
            best = 0
            for opt in sorted(options, key=lambda o: o.display_order):
                if tallies[opt.id] > best:
                    best = tallies[opt.id]
                    winning = opt.id
            if winning is None:
                logger.info(f"Event {event.id}: no votes cast, no winning option")

        return WinnerSelection(
            winning_option_id=winning,
            winners=_select(winning, entries),
            tallies=tallies,
        )


# Provably-fair draw


def generate_server_seed() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def hash_seed(server_seed: str) -> str:
    return hashlib.sha256(server_seed.encode("utf-8")).hexdigest()


def client_seed_for(entries: Sequence[Entry]) -> str:
    """Deterministic seed derived from who picked what."""
    lines = sorted(f"{e.user_id}:{e.chosen_option_id}" for e in entries)
    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()


def draw(event_id: UUID, server_seed: str, client_seed: str, option_count: int) -> dict[str, Any]:
    """Draw an option index and return the full proof."""
    if option_count <= 0:
        raise ValueError("option_count must be positive")

    message = f"{event_id}:{client_seed}".encode("utf-8")
    digest = hmac.new(server_seed.encode("utf-8"), message, hashlib.sha256).hexdigest()
    index = int(digest[:16], 16) % option_count

    return {
        "event_id": str(event_id),
        "server_seed": server_seed,
        "server_seed_hash": hash_seed(server_seed),
        "client_seed": client_seed,
        "digest": digest,
        "index": index,
    }


def verify_draw(proof: dict[str, Any], option_count: int) -> bool:
    """Recompute a draw from its proof."""
    try:
        expected = draw(
            proof["event_id"], proof["server_seed"], proof["client_seed"], option_count
        )
    except (KeyError, ValueError):
        return False

    return (
        expected["server_seed_hash"] == proof.get("server_seed_hash")
        and expected["digest"] == proof.get("digest")
        and expected["index"] == proof.get("index")
    )


class WagerWinnerPolicy:
    """One slot drawn from the committed server seed."""

    def determine_winners(
        self,
        event: Event,
        options: Sequence[EventOption],
        entries: Sequence[Entry],
    ) -> WinnerSelection:
        ordered = sorted(options, key=lambda o: o.display_order)
        tallies = tally_choices(ordered, entries)

        if not event.server_seed:
            # Events published before seeding commit here instead
            event.server_seed = generate_server_seed()
            event.server_seed_hash = hash_seed(event.server_seed)

        proof = draw(event.id, event.server_seed, client_seed_for(entries), len(ordered))
        winning = ordered[proof["index"]].id
        logger.info(f"Event {event.id}: drew slot {proof['index']} ({ordered[proof['index']].label})")

        return WinnerSelection(
            winning_option_id=winning,
            winners=_select(winning, entries),
            tallies=tallies,
            draw_proof=proof,
        )


_POLICIES: dict[str, WinnerPolicy] = {
    EventKind.VOTE.value: VoteWinnerPolicy(),
    EventKind.WAGER.value: WagerWinnerPolicy(),
}


def policy_for(kind: str) -> WinnerPolicy:
    """Winner policy for an event kind."""
    try:
        return _POLICIES[EventKind(kind).value]
    except (KeyError, ValueError) as e:
        raise ValueError(f"No winner policy for event kind {kind!r}") from e
