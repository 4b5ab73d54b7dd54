"""Side-by-side views built from computed option metrics.

Nothing here repeats the engine's arithmetic: the chart series and the
differences table are read straight off the ``Metrics`` records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Union

from .data_models import Metrics, OptionResult


@dataclass(frozen=True)
class OptionDifference:
    """One row of the differences table: ``option - baseline`` for each figure."""

    label: str
    monthly_payment: float
    total_paid_during_fixed: float
    end_balance: float
    total_cost_full_term: float


def balance_at_month(metrics: Metrics, month: int) -> float:
    """Balance of an option at ``month`` for charting.

    Month 0 is the starting balance. Past the end of the option's schedule the
    end balance is held flat, so shorter fixed terms stay on the chart.
    """
    if month <= 0:
        return metrics.starting_balance
    if month <= len(metrics.fixed_schedule):
        return metrics.fixed_schedule[month - 1].balance
    return metrics.end_balance


def build_chart_data(results: Sequence[OptionResult]) -> List[Dict[str, Union[int, float]]]:
    """Return one point per month from 0 to the longest fixed term.

    Each point is ``{"month": i, <label>: balance, ...}``.
    """
    max_fixed_months = max([0] + [r.metrics.fixed_term_months for r in results])
    points: List[Dict[str, Union[int, float]]] = []
    for month in range(max_fixed_months + 1):
        point: Dict[str, Union[int, float]] = {"month": month}
        for result in results:
            point[result.label] = balance_at_month(result.metrics, month)
        points.append(point)
    return points


def compute_differences(results: Sequence[OptionResult]) -> List[OptionDifference]:
    """Compare every option after the first against the first one.

    Signs are preserved: a negative monthly difference means the option is
    cheaper per month than the baseline. Fewer than two options give no rows.
    """
    if len(results) < 2:
        return []
    base = results[0].metrics
    rows: List[OptionDifference] = []
    for result in results[1:]:
        m = result.metrics
        rows.append(
            OptionDifference(
                label=result.label,
                monthly_payment=m.monthly_payment - base.monthly_payment,
                total_paid_during_fixed=m.total_paid_during_fixed - base.total_paid_during_fixed,
                end_balance=m.end_balance - base.end_balance,
                total_cost_full_term=m.total_cost_full_term - base.total_cost_full_term,
            )
        )
    return rows
