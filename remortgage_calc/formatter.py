"""Output helpers for the remortgage comparator.

This module turns engine results into text: GBP currency strings, result
blocks per option, the differences table and the fixed-period schedule. The
engine itself always returns unformatted numbers; formatting happens here.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Sequence

from .comparison import OptionDifference
from .data_models import Metrics, OptionResult, ScheduleRow

NOTES: List[str] = [
    "Interest rate is assumed fixed for the selected fixed-term length, with no changes mid-term.",
    "For repayment, the base monthly payment is calculated over the full remaining term. "
    "Any monthly overpayment reduces the balance faster and may shorten the overall term.",
    "For interest-only, the scheduled payment is monthly interest; any overpayment reduces the balance.",
    "Fees added to the mortgage increase the borrowed amount; fees paid up front are included "
    "in the totals but do not increase the balance.",
    "ERC (if applied) is simply added to the fixed-period total for comparison purposes.",
    "Reversion rate is used to estimate payments and totals after the fixed period for the remainder of the term.",
    "Results exclude valuation/legal costs and any future product changes after the fixed period.",
]


def currency_format(value: float) -> str:
    """Format ``value`` as pounds, e.g. ``£1,234.50`` or ``-£12.00``.

    Non-finite values render as ``-``.
    """
    if value is None or not math.isfinite(value):
        return "-"
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"


def result_lines(metrics: Metrics) -> Dict[str, str]:
    """The headline figures shown for one option, formatted for display."""
    return {
        "Indicative monthly payment": currency_format(metrics.monthly_payment),
        "Total paid during fixed term": currency_format(metrics.total_paid_during_fixed),
        "Amount left after fixed term": currency_format(max(0.0, metrics.end_balance)),
        "Estimated post-fixed monthly payment": currency_format(metrics.after_fixed_payment),
        "Total cost over full remaining term": currency_format(metrics.total_cost_full_term),
    }


def print_results(results: Iterable[OptionResult]) -> None:
    """Print one block of headline figures per option."""
    for result in results:
        print(f"{result.label} - Results")
        print("-" * 72)
        for label, value in result_lines(result.metrics).items():
            print(f"{label:40s} {value:>20s}")
        print("-" * 72)


def print_differences(differences: Sequence[OptionDifference], baseline_label: str) -> None:
    """Print the differences table against the baseline option."""
    if not differences:
        return
    print(f"Differences vs {baseline_label}")
    print("=" * 72)
    print(f"{'Option':12s} {'Monthly Δ':>14s} {'Fixed total Δ':>14s} {'End bal Δ':>14s} {'Full-term Δ':>14s}")
    for d in differences:
        print(
            f"{d.label:12s} {currency_format(d.monthly_payment):>14s} "
            f"{currency_format(d.total_paid_during_fixed):>14s} "
            f"{currency_format(d.end_balance):>14s} "
            f"{currency_format(d.total_cost_full_term):>14s}"
        )
    print("=" * 72)


def print_schedule(schedule: Iterable[ScheduleRow]) -> None:
    """Print the fixed-period schedule as a simple table."""
    headers = ["Month", "Payment", "Interest", "Principal", "Balance"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.month),
                    f"{row.payment:.2f}",
                    f"{row.interest:.2f}",
                    f"{row.principal:.2f}",
                    f"{row.balance:.2f}",
                ]
            )
        )


def print_notes() -> None:
    print("Notes & assumptions:")
    for note in NOTES:
        print(f"  * {note}")
