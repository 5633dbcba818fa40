"""
Payout computation.

All amounts are native ledger units rounded down to the ledger's smallest
unit. Even splits hand the rounding remainder to the first winner, so the
shares always add up exactly to the distributable total.
"""

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal
from typing import Iterable, Optional

from agora.models import Entry, FeeCommitmentState, PrizeMode


def quantize_down(amount: Decimal, decimals: int) -> Decimal:
    """Round ``amount`` down to ``decimals`` places."""
    return Decimal(amount).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)


def split_evenly(total: Decimal, winner_count: int, decimals: int) -> list[Decimal]:
    """Split ``total`` into ``winner_count`` shares; remainder to the first share."""
    if winner_count <= 0:
        return []

    total = quantize_down(total, decimals)
    base_share = quantize_down(total / winner_count, decimals)
    shares = [base_share] * winner_count
    shares[0] += total - base_share * winner_count
    return shares


def committed_pot(entries: Iterable[Entry]) -> Decimal:
    """Sum of committed entry fees, winners and losers alike."""
    return sum(
        (
            Decimal(e.committed_amount or 0)
            for e in entries
            if e.fee_commitment_state == FeeCommitmentState.COMMITTED.value
        ),
        Decimal("0"),
    )


@dataclass
class PayoutPlan:
    """Per-winner amounts for one settlement, in native units."""

    mode: PrizeMode
    gross_total: Decimal
    distributable: Decimal
    house_cut: Decimal
    shares: list[Decimal] = field(default_factory=list)
    exchange_rate: Optional[Decimal] = None

    @property
    def total_paid(self) -> Decimal:
        return sum(self.shares, Decimal("0"))


def compute_payout_plan(
    mode: PrizeMode,
    winner_count: int,
    prize_amount: Decimal,
    pot: Decimal,
    house_cut_pct: float,
    decimals: int,
    exchange_rate: Optional[Decimal] = None,
) -> PayoutPlan:
    """
    Compute what each winner receives.

    House mode splits ``prize_amount``; pot mode splits the pot minus the
    house cut. When ``exchange_rate`` is given the event is fiat-denominated
    and the gross total is converted once (native = fiat / rate) before the
    split.
    """
    gross = Decimal(prize_amount) if mode == PrizeMode.HOUSE else Decimal(pot)
    if exchange_rate is not None:
        gross = gross / exchange_rate
    gross = quantize_down(gross, decimals)

    if mode == PrizeMode.POT:
        keep = Decimal(1) - Decimal(str(house_cut_pct))
        distributable = quantize_down(gross * keep, decimals)
    else:
        distributable = gross

    return PayoutPlan(
        mode=mode,
        gross_total=gross,
        distributable=distributable,
        house_cut=gross - distributable,
        shares=split_evenly(distributable, winner_count, decimals),
        exchange_rate=exchange_rate,
    )


def to_native(amount: Decimal, decimals: int, exchange_rate: Optional[Decimal] = None) -> Decimal:
    """Convert an event-currency amount to native units (refunds)."""
    amount = Decimal(amount)
    if exchange_rate is not None:
        amount = amount / exchange_rate
    return quantize_down(amount, decimals)
