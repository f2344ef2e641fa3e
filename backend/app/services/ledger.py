"""
Financial ledger: fee accumulation and prize/organizer split.

Pure Decimal arithmetic, rounded to the cent with ROUND_HALF_UP. No I/O.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_CHAMPION_PERCENTAGE = Decimal("70")
DEFAULT_RUNNER_UP_PERCENTAGE = Decimal("30")


@dataclass(frozen=True)
class LedgerTotals:
    total_collected: Decimal
    organizer_amount: Decimal
    prize_pool: Decimal


@dataclass(frozen=True)
class FinancialSnapshot:
    total_collected: Decimal
    organizer_amount: Decimal
    prize_pool: Decimal
    champion_prize: Decimal
    runner_up_prize: Decimal
    third_place_prize: Decimal
    fourth_place_prize: Decimal


def to_decimal(value) -> Decimal:
    """Coerce int/str/Decimal to Decimal. Floats go through str() so 0.1 stays 0.1."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_currency(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def fee_for(*candidates: Optional[Decimal]) -> Decimal:
    """First configured fee wins (e.g. late_entry_fee, then entry_fee); 0 when none is set."""
    for candidate in candidates:
        if candidate is not None:
            return round_currency(candidate)
    return ZERO.quantize(CENT)


def split_total(total_collected: Decimal, organizer_percentage: Optional[Decimal]) -> LedgerTotals:
    total = round_currency(total_collected)
    organizer_amount = round_currency(total * to_decimal(organizer_percentage) / HUNDRED)
    return LedgerTotals(
        total_collected=total,
        organizer_amount=organizer_amount,
        prize_pool=round_currency(total - organizer_amount),
    )


def apply_fee(
    total_collected: Optional[Decimal], fee: Decimal, organizer_percentage: Optional[Decimal]
) -> LedgerTotals:
    """Add one fee to the running total and recompute the organizer/prize split."""
    if to_decimal(fee) < ZERO:
        raise ValueError("fee must be >= 0")
    return split_total(to_decimal(total_collected) + to_decimal(fee), organizer_percentage)


def calculate_financials(
    total_collected: Optional[Decimal],
    organizer_percentage: Optional[Decimal],
    champion_percentage: Optional[Decimal] = None,
    runner_up_percentage: Optional[Decimal] = None,
    third_place_percentage: Optional[Decimal] = None,
    fourth_place_percentage: Optional[Decimal] = None,
) -> FinancialSnapshot:
    """
    Full prize breakdown for a tournament.

    The organizer cut is taken first; placement prizes are percentages of the
    remaining prize pool. Champion/runner-up default to 70/30 when unset.
    """
    totals = split_total(to_decimal(total_collected), organizer_percentage)
    champion_pct = DEFAULT_CHAMPION_PERCENTAGE if champion_percentage is None else to_decimal(champion_percentage)
    runner_up_pct = DEFAULT_RUNNER_UP_PERCENTAGE if runner_up_percentage is None else to_decimal(runner_up_percentage)

    def share(percentage) -> Decimal:
        return round_currency(totals.prize_pool * to_decimal(percentage) / HUNDRED)

    return FinancialSnapshot(
        total_collected=totals.total_collected,
        organizer_amount=totals.organizer_amount,
        prize_pool=totals.prize_pool,
        champion_prize=share(champion_pct),
        runner_up_prize=share(runner_up_pct),
        third_place_prize=share(third_place_percentage),
        fourth_place_prize=share(fourth_place_percentage),
    )


def charge(tournament, fee: Decimal) -> LedgerTotals:
    """Apply a late-entry/rebuy fee to a tournament's running totals in place."""
    totals = apply_fee(tournament.total_collected, fee, tournament.organizer_percentage)
    tournament.total_collected = totals.total_collected
    tournament.organizer_amount = totals.organizer_amount
    tournament.prize_pool = totals.prize_pool
    return totals
