"""Data models for the remortgage comparator.

This module defines the dataclasses exchanged between the calculation engine
and its callers: the current mortgage, one configurable offer (``LoanOption``),
the month-by-month schedule rows and the per-option ``Metrics`` record. Option
fields hold raw user values (strings or numbers); the engine parses them
leniently so a half-typed field never breaks a computation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Tuple, Union

NumericInput = Union[str, int, float, Decimal, None]


class RepaymentType(str, Enum):
    """How the scheduled monthly payment is worked out."""

    REPAYMENT = "repayment"
    INTEREST_ONLY = "interestOnly"

    @classmethod
    def parse(cls, value: Union[str, "RepaymentType"]) -> "RepaymentType":
        """Accept enum members, their values or names, and snake_case spellings."""
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key in (member.value, member.name) or key.lower() == member.name.lower():
                return member
        if key.lower().replace("-", "_") == "interest_only":
            return cls.INTEREST_ONLY
        raise ValueError(f"Unknown repayment type: {value}")


class FeeHandling(str, Enum):
    """Whether a product fee is borrowed or paid in cash."""

    ADD_TO_LOAN = "add"
    PAID_UPFRONT = "upfront"

    @classmethod
    def parse(cls, value: Union[str, "FeeHandling"]) -> "FeeHandling":
        if isinstance(value, cls):
            return value
        key = str(value).strip()
        for member in cls:
            if key in (member.value, member.name) or key.lower() == member.name.lower():
                return member
        aliases = {"addtoloan": cls.ADD_TO_LOAN, "paidupfront": cls.PAID_UPFRONT}
        normalized = key.lower().replace("_", "").replace("-", "")
        if normalized in aliases:
            return aliases[normalized]
        raise ValueError(f"Unknown fee handling: {value}")


@dataclass
class CurrentMortgage:
    """The borrower's existing loan, shared by every option under comparison."""

    outstanding_balance: NumericInput
    remaining_term_months: int


@dataclass
class LoanOption:
    """One remortgage offer as entered by the user.

    Attributes
    ----------
    label: str
        Display name, derived from the option's position ("Option A", ...).
    repayment_type: RepaymentType
        ``REPAYMENT`` amortizes over the remaining term, ``INTEREST_ONLY``
        pays the monthly interest only.
    rate: NumericInput
        Annual rate in percent during the fixed term.
    fee_amount / fee_handling:
        Product fee and whether it is added to the loan or paid up front.
    fixed_years / fixed_months:
        Fixed-term length; combined into total months by the engine.
    overpayment: NumericInput
        Voluntary extra payment made every month of the fixed term.
    erc_amount / apply_erc:
        Early repayment charge, included in the fixed-term total only when
        ``apply_erc`` is set.
    reversion_rate: NumericInput
        Annual rate in percent after the fixed term. Zero means "use ``rate``".
    """

    label: str
    repayment_type: RepaymentType = RepaymentType.REPAYMENT
    rate: NumericInput = "0"
    fee_amount: NumericInput = "0"
    fee_handling: FeeHandling = FeeHandling.ADD_TO_LOAN
    fixed_years: NumericInput = "0"
    fixed_months: NumericInput = "0"
    overpayment: NumericInput = "0"
    erc_amount: NumericInput = "0"
    apply_erc: bool = False
    reversion_rate: NumericInput = "0"


@dataclass(frozen=True)
class ScheduleRow:
    """One simulated month. ``balance`` is the balance after the payment."""

    month: int
    balance: float
    payment: float
    interest: float
    principal: float


@dataclass(frozen=True)
class Metrics:
    """Everything the comparator displays for one option."""

    monthly_payment: float
    total_paid_during_fixed: float
    end_balance: float
    starting_balance: float
    added_to_loan: float
    upfront_fee: float
    fixed_term_months: int
    fixed_schedule: Tuple[ScheduleRow, ...] = ()
    after_fixed_payment: float = 0.0
    after_fixed_total: float = 0.0
    # excludes redeeming the balance left at the end of the full term
    total_cost_full_term: float = 0.0


@dataclass(frozen=True)
class OptionResult:
    label: str
    metrics: Metrics
