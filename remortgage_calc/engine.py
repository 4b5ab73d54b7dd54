"""Core calculation engine for the remortgage comparator.

This module implements the financial logic used to compare offers: the level
annuity payment, a month-by-month simulation of the fixed-rate period with
optional overpayments, and the aggregation of one option's figures (fees,
fixed-term totals, balance left, post-fixed projection at the reversion rate)
into a ``Metrics`` record. All functions are pure: the same inputs always give
the same outputs and nothing is read from or written to the outside world.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from .data_models import (
    CurrentMortgage,
    FeeHandling,
    LoanOption,
    Metrics,
    OptionResult,
    RepaymentType,
    ScheduleRow,
)
from .utils import parse_decimal, to_total_months

logger = logging.getLogger(__name__)


def _monthly_rate(annual_rate_percent: float) -> float:
    return annual_rate_percent / 100 / 12


def amortized_payment(principal: float, annual_rate_percent: float, n_months: int) -> float:
    """Return the level monthly payment that repays ``principal`` in ``n_months``.

    The formula is:

        payment = P * r / (1 - (1 + r)^-n)

    where ``P`` is the principal, ``r`` the monthly rate (annual percent / 100
    / 12) and ``n`` the number of payments. A zero rate gives the straight-line
    ``P / n`` and a non-positive ``n`` gives ``0``.
    """
    if n_months <= 0:
        return 0.0
    r = _monthly_rate(annual_rate_percent)
    if r == 0:
        return principal / n_months
    return principal * r / (1 - (1 + r) ** -n_months)


def simulate_schedule(
    balance: float,
    annual_rate_percent: float,
    months: int,
    repayment_type: RepaymentType,
    base_payment: float,
    overpayment: float = 0.0,
) -> List[ScheduleRow]:
    """Simulate up to ``months`` monthly payments on ``balance``.

    Interest accrues monthly on the balance carried into the month. The
    scheduled payment is the interest itself for interest-only loans and
    ``base_payment`` otherwise; ``overpayment`` is added on top. The final
    payment is trimmed so it never takes more principal than is owed, and the
    schedule stops as soon as the balance reaches zero (remaining months are
    not padded).
    """
    r = _monthly_rate(annual_rate_percent)
    rows: List[ScheduleRow] = []
    b = balance
    for month in range(1, months + 1):
        interest = b * r
        scheduled = interest if repayment_type is RepaymentType.INTEREST_ONLY else base_payment
        payment = scheduled + overpayment
        principal = max(0.0, payment - interest)
        if principal > b:
            principal = b
            payment = interest + principal
        b = max(0.0, b - principal)
        rows.append(ScheduleRow(month=month, balance=b, payment=payment, interest=interest, principal=principal))
        if b <= 0:
            break
    return rows


def compute_option_metrics(current: CurrentMortgage, option: LoanOption) -> Metrics:
    """Compute the comparison figures for one offer.

    Parameters
    ----------
    current: CurrentMortgage
        The outstanding balance and remaining term shared by all offers.
    option: LoanOption
        The offer to evaluate. Its numeric fields may be raw strings; anything
        unreadable counts as zero.

    Returns
    -------
    Metrics
        Fixed-term schedule and totals plus the post-fixed estimate. The
        full-term cost leaves out redeeming the balance still owed at the end
        of the term.
    """
    repayment_type = RepaymentType.parse(option.repayment_type)
    fee_handling = FeeHandling.parse(option.fee_handling)
    # rates are never negative
    rate = max(0.0, parse_decimal(option.rate))

    fixed_term_months = to_total_months(option.fixed_years, option.fixed_months)

    fee = parse_decimal(option.fee_amount)
    added_to_loan = fee if fee_handling is FeeHandling.ADD_TO_LOAN else 0.0
    upfront_fee = fee if fee_handling is FeeHandling.PAID_UPFRONT else 0.0

    starting_balance = parse_decimal(current.outstanding_balance) + added_to_loan

    # at least one month so the annuity formula never divides by zero
    remaining_months = max(1, int(parse_decimal(current.remaining_term_months)))
    if repayment_type is RepaymentType.REPAYMENT:
        base_payment = amortized_payment(starting_balance, rate, remaining_months)
    else:
        base_payment = 0.0
    overpayment = max(0.0, parse_decimal(option.overpayment))

    fixed_schedule = simulate_schedule(
        balance=starting_balance,
        annual_rate_percent=rate,
        months=fixed_term_months,
        repayment_type=repayment_type,
        base_payment=base_payment,
        overpayment=overpayment,
    )

    end_balance = fixed_schedule[-1].balance if fixed_schedule else starting_balance
    if repayment_type is RepaymentType.INTEREST_ONLY:
        monthly_payment = starting_balance * _monthly_rate(rate) + overpayment
    else:
        monthly_payment = base_payment + overpayment

    fixed_paid = sum(row.payment for row in fixed_schedule)
    erc = parse_decimal(option.erc_amount) if option.apply_erc else 0.0
    total_paid_during_fixed = fixed_paid + upfront_fee + erc

    remaining_after_fixed = max(0, remaining_months - fixed_term_months)
    reversion_rate = max(0.0, parse_decimal(option.reversion_rate)) or rate
    after_fixed_payment = 0.0
    after_fixed_total = 0.0
    if remaining_after_fixed > 0:
        if repayment_type is RepaymentType.REPAYMENT:
            after_fixed_payment = amortized_payment(end_balance, reversion_rate, remaining_after_fixed)
        else:
            # interest-only carries on at the reversion rate; the balance never reduces
            after_fixed_payment = end_balance * _monthly_rate(reversion_rate)
        after_fixed_total = after_fixed_payment * remaining_after_fixed

    logger.debug(
        "%s: %d fixed months, start %.2f, end %.2f",
        option.label,
        fixed_term_months,
        starting_balance,
        end_balance,
    )

    return Metrics(
        monthly_payment=monthly_payment,
        total_paid_during_fixed=total_paid_during_fixed,
        end_balance=end_balance,
        starting_balance=starting_balance,
        added_to_loan=added_to_loan,
        upfront_fee=upfront_fee,
        fixed_term_months=fixed_term_months,
        fixed_schedule=tuple(fixed_schedule),
        after_fixed_payment=after_fixed_payment,
        after_fixed_total=after_fixed_total,
        total_cost_full_term=total_paid_during_fixed + after_fixed_total,
    )


def compare_options(current: CurrentMortgage, options: Iterable[LoanOption]) -> List[OptionResult]:
    """Compute metrics for every option, preserving the input order."""
    return [OptionResult(label=opt.label, metrics=compute_option_metrics(current, opt)) for opt in options]
