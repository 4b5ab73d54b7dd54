"""Utility functions for the remortgage comparator.

This module provides the lenient numeric parsing used for every user-entered
field, the years/months duration helper and the positional option labelling
("Option A", "Option B", ...). Nothing here raises on bad numeric input: a
field that cannot be read as a number counts as zero.
"""

from __future__ import annotations

import math
import re
from dataclasses import replace
from decimal import Decimal
from typing import List, Sequence

from .data_models import CurrentMortgage, FeeHandling, LoanOption, NumericInput, RepaymentType

# Leading numeric prefix, the way browsers' parseFloat reads "12.5abc" as 12.5.
_NUMBER_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_decimal(value: NumericInput) -> float:
    """Convert a user-entered value into a float, or ``0.0`` if impossible.

    Commas used as thousands separators are stripped first ("250,000" reads as
    250000). Only the leading numeric part of a string is used. ``None``, empty
    strings, text and non-finite numbers all give ``0.0``.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    cleaned = str(value).replace(",", "")
    match = _NUMBER_PREFIX.match(cleaned)
    if not match:
        return 0.0
    try:
        number = float(match.group(1))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_total_months(years: NumericInput, months: NumericInput) -> int:
    """Return ``round(years * 12 + months)``, never less than zero."""
    total = parse_decimal(years) * 12 + parse_decimal(months)
    if not math.isfinite(total):
        return 0
    # round half up
    return max(0, int(math.floor(total + 0.5)))


def mortgage_from_years_months(
    outstanding_balance: NumericInput, years: NumericInput, months: NumericInput
) -> CurrentMortgage:
    """Current mortgage with its remaining term given as years plus extra months."""
    return CurrentMortgage(outstanding_balance, to_total_months(years, months))


def option_label(index: int) -> str:
    """Label for the option at ``index``: 0 -> "Option A", 26 -> "Option AA"."""
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return f"Option {letters}"


def relabel_options(options: Sequence[LoanOption]) -> List[LoanOption]:
    """Return copies of ``options`` labelled by their position."""
    return [replace(opt, label=option_label(i)) for i, opt in enumerate(options)]


def default_option(label: str) -> LoanOption:
    """A new offer pre-filled with typical two-year fix values."""
    return LoanOption(
        label=label,
        repayment_type=RepaymentType.REPAYMENT,
        rate="4.99",
        fee_amount="999",
        fee_handling=FeeHandling.ADD_TO_LOAN,
        fixed_years="2",
        fixed_months="0",
        overpayment="0",
        erc_amount="0",
        apply_erc=False,
        reversion_rate="6.00",
    )


def default_options() -> List[LoanOption]:
    """The starting pair of offers shown before the user edits anything."""
    return [
        default_option(option_label(0)),
        replace(default_option(option_label(1)), rate="5.29", fee_amount="0", fixed_years="5"),
    ]


DEFAULT_OUTSTANDING_BALANCE = "250000"
DEFAULT_REMAINING_YEARS = "25"
DEFAULT_REMAINING_MONTHS = "0"
