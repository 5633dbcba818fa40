"""Unit tests for payout splitting and pot accounting."""

from decimal import Decimal

from agora.models import Entry, PrizeMode
from agora.services.payout_calculator import (
    committed_pot,
    compute_payout_plan,
    quantize_down,
    split_evenly,
    to_native,
)


def test_house_prize_splits_evenly() -> None:
    plan = compute_payout_plan(
        mode=PrizeMode.HOUSE,
        winner_count=3,
        prize_amount=Decimal("30"),
        pot=Decimal("0"),
        house_cut_pct=0.10,
        decimals=9,
    )
    assert plan.shares == [Decimal("10")] * 3
    assert plan.house_cut == 0


def test_rounding_remainder_goes_to_first_winner() -> None:
    shares = split_evenly(Decimal("10"), 3, 9)
    assert shares[0] == Decimal("3.333333334")
    assert shares[1:] == [Decimal("3.333333333")] * 2
    assert sum(shares) == Decimal("10")


def test_pot_keeps_house_cut() -> None:
    plan = compute_payout_plan(
        mode=PrizeMode.POT,
        winner_count=2,
        prize_amount=Decimal("0"),
        pot=Decimal("40"),
        house_cut_pct=0.10,
        decimals=9,
    )
    assert plan.shares == [Decimal("18"), Decimal("18")]
    assert plan.house_cut == Decimal("4")
    assert plan.total_paid + plan.house_cut == Decimal("40")


def test_pot_sum_matches_ninety_percent_for_awkward_amounts() -> None:
    plan = compute_payout_plan(
        mode=PrizeMode.POT,
        winner_count=7,
        prize_amount=Decimal("0"),
        pot=Decimal("12.345678912"),
        house_cut_pct=0.10,
        decimals=9,
    )
    assert plan.total_paid == plan.distributable
    assert plan.distributable == quantize_down(Decimal("12.345678912") * Decimal("0.9"), 9)


def test_fiat_total_converted_once_with_rate() -> None:
    plan = compute_payout_plan(
        mode=PrizeMode.POT,
        winner_count=2,
        prize_amount=Decimal("0"),
        pot=Decimal("40"),
        house_cut_pct=0.10,
        decimals=9,
        exchange_rate=Decimal("100"),
    )
    assert plan.gross_total == Decimal("0.4")
    assert plan.shares == [Decimal("0.18"), Decimal("0.18")]
    assert plan.exchange_rate == Decimal("100")


def test_no_winners_no_shares() -> None:
    plan = compute_payout_plan(
        mode=PrizeMode.HOUSE,
        winner_count=0,
        prize_amount=Decimal("30"),
        pot=Decimal("0"),
        house_cut_pct=0.10,
        decimals=9,
    )
    assert plan.shares == []
    assert plan.total_paid == 0


def test_committed_pot_counts_only_committed_entries() -> None:
    entries = [
        Entry(user_id="a", fee_commitment_state="committed", committed_amount=Decimal("10")),
        Entry(user_id="b", fee_commitment_state="committed", committed_amount=Decimal("10")),
        Entry(user_id="c", fee_commitment_state="none", committed_amount=Decimal("0")),
        Entry(user_id="d", fee_commitment_state="pending", committed_amount=Decimal("0")),
    ]
    assert committed_pot(entries) == Decimal("20")


def test_to_native_rounds_down() -> None:
    assert to_native(Decimal("10"), 9, Decimal("3")) == Decimal("3.333333333")
    assert to_native(Decimal("2.5"), 9) == Decimal("2.5")
