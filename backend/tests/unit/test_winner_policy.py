"""Unit tests for vote and wager winner determination."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from agora.models import Entry, Event, EventOption
from agora.services.winner_policy import (
    VoteWinnerPolicy,
    WagerWinnerPolicy,
    client_seed_for,
    draw,
    generate_server_seed,
    hash_seed,
    policy_for,
    verify_draw,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _options(*labels):
    return [EventOption(id=uuid4(), display_order=i, label=label) for i, label in enumerate(labels)]


def _entry(user_id, option, minutes=0):
    return Entry(
        user_id=user_id,
        chosen_option_id=option.id if option else None,
        joined_at=T0 + timedelta(minutes=minutes),
    )


def test_plurality_wins() -> None:
    a, b = _options("A", "B")
    event = Event(id=uuid4(), kind="vote", admin_favorite_option_id=None)
    entries = [_entry("u1", a, 3), _entry("u2", a, 1), _entry("u3", b, 2), _entry("u4", a, 4)]

    selection = VoteWinnerPolicy().determine_winners(event, [a, b], entries)

    assert selection.winning_option_id == a.id
    assert selection.winner_user_ids == ["u2", "u1", "u4"]
    assert selection.tallies == {a.id: 3, b.id: 1}


def test_tie_goes_to_lowest_display_order() -> None:
    a, b, c = _options("A", "B", "C")
    event = Event(id=uuid4(), kind="vote", admin_favorite_option_id=None)
    entries = [_entry("u1", c), _entry("u2", b), _entry("u3", c), _entry("u4", b)]

    selection = VoteWinnerPolicy().determine_winners(event, [c, a, b], entries)

    assert selection.winning_option_id == b.id
    assert sorted(selection.winner_user_ids) == ["u2", "u4"]


def test_favorite_overrides_plurality() -> None:
    a, b = _options("A", "B")
    event = Event(id=uuid4(), kind="vote", admin_favorite_option_id=b.id)
    entries = [_entry("u1", a), _entry("u2", a), _entry("u3", b)]

    selection = VoteWinnerPolicy().determine_winners(event, [a, b], entries)

    assert selection.winning_option_id == b.id
    assert selection.winner_user_ids == ["u3"]


def test_favorite_nobody_picked_means_zero_winners() -> None:
    a, b = _options("A", "B")
    event = Event(id=uuid4(), kind="vote", admin_favorite_option_id=b.id)

    selection = VoteWinnerPolicy().determine_winners(event, [a, b], [_entry("u1", a)])

    assert selection.winning_option_id == b.id
    assert selection.winner_count == 0


def test_no_votes_no_winning_option() -> None:
    a, b = _options("A", "B")
    event = Event(id=uuid4(), kind="vote", admin_favorite_option_id=None)

    selection = VoteWinnerPolicy().determine_winners(event, [a, b], [_entry("u1", None)])

    assert selection.winning_option_id is None
    assert selection.winners == []


def test_wager_draw_is_deterministic_and_verifiable() -> None:
    slots = _options("Red", "Black", "Green")
    seed = generate_server_seed()
    event = Event(id=uuid4(), kind="wager", server_seed=seed, server_seed_hash=hash_seed(seed))
    entries = [_entry("u1", slots[0]), _entry("u2", slots[1]), _entry("u3", slots[2])]

    first = WagerWinnerPolicy().determine_winners(event, slots, entries)
    second = WagerWinnerPolicy().determine_winners(event, slots, entries)

    assert first.winning_option_id == second.winning_option_id
    assert first.winning_option_id == slots[first.draw_proof["index"]].id
    assert first.winner_count == 1
    assert first.draw_proof["server_seed_hash"] == event.server_seed_hash
    assert verify_draw(first.draw_proof, len(slots))


def test_tampered_proof_fails_verification() -> None:
    event_id = uuid4()
    proof = draw(event_id, generate_server_seed(), "client", 4)
    proof["index"] = (proof["index"] + 1) % 4

    assert not verify_draw(proof, 4)
    assert not verify_draw({"event_id": str(event_id)}, 4)


def test_client_seed_ignores_entry_order() -> None:
    a, b = _options("A", "B")
    entries = [_entry("u1", a), _entry("u2", b)]
    assert client_seed_for(entries) == client_seed_for(list(reversed(entries)))


def test_unseeded_wager_gets_a_seed() -> None:
    slots = _options("Red", "Black")
    event = Event(id=uuid4(), kind="wager", server_seed=None, server_seed_hash=None)

    selection = WagerWinnerPolicy().determine_winners(event, slots, [_entry("u1", slots[0])])

    assert event.server_seed is not None
    assert event.server_seed_hash == hash_seed(event.server_seed)
    assert selection.draw_proof["server_seed"] == event.server_seed


def test_policy_for_kind() -> None:
    assert isinstance(policy_for("vote"), VoteWinnerPolicy)
    assert isinstance(policy_for("wager"), WagerWinnerPolicy)
