"""Command‑line interface for the remortgage comparator.

This module uses the ``click`` library to implement a multi‑command interface.
Users can compare several remortgage offers against the same current mortgage
or print the fixed-period schedule of a single offer. Results can be printed to
the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import click

from .comparison import OptionDifference, build_chart_data, compute_differences
from .data_models import FeeHandling, LoanOption, OptionResult, RepaymentType
from .engine import compare_options, compute_option_metrics
from .formatter import print_differences, print_notes, print_results, print_schedule
from .utils import (
    DEFAULT_OUTSTANDING_BALANCE,
    DEFAULT_REMAINING_MONTHS,
    DEFAULT_REMAINING_YEARS,
    default_option,
    default_options,
    mortgage_from_years_months,
    option_label,
)

logger = logging.getLogger(__name__)

# Accepted spellings for option fields, keyed by their normalized form
# (lower case, no dashes or underscores). Covers CLI keys and camelCase JSON keys.
OPTION_FIELDS: Dict[str, str] = {
    "type": "repayment_type",
    "repaymenttype": "repayment_type",
    "rate": "rate",
    "fee": "fee_amount",
    "feeamount": "fee_amount",
    "feehandling": "fee_handling",
    "fixedyears": "fixed_years",
    "fixedmonths": "fixed_months",
    "overpayment": "overpayment",
    "erc": "erc_amount",
    "ercamount": "erc_amount",
    "applyerc": "apply_erc",
    "reversion": "reversion_rate",
    "reversionrate": "reversion_rate",
}

_TRUE_STRINGS = {"1", "true", "yes", "on", "y"}


def _normalize_key(key: str) -> str:
    return key.strip().lower().replace("-", "").replace("_", "")


def parse_flag(value: Any) -> bool:
    """Interpret checkbox/CLI style values ("on", "true", "1") as a boolean."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_STRINGS


def build_option_from_mapping(values: Mapping[str, Any], label: str) -> LoanOption:
    """Build a ``LoanOption`` from loosely keyed user values.

    Fields that are not given keep the default offer's value. A ``label`` key
    is ignored because labels are positional. Unknown keys and unrecognised
    repayment type or fee handling values raise ``ValueError``; numeric values
    are kept as entered and parsed leniently by the engine.
    """
    option = default_option(label)
    updates: Dict[str, Any] = {}
    for key, value in values.items():
        normalized = _normalize_key(str(key))
        if normalized == "label":
            continue
        field_name = OPTION_FIELDS.get(normalized)
        if field_name is None:
            raise ValueError(f"Unknown option field: {key}")
        if field_name == "repayment_type":
            value = RepaymentType.parse(value)
        elif field_name == "fee_handling":
            value = FeeHandling.parse(value)
        elif field_name == "apply_erc":
            value = parse_flag(value)
        elif value is not None:
            value = str(value)
        updates[field_name] = value
    return replace(option, **updates)


def parse_option_string(text: str, label: str) -> LoanOption:
    """Parse ``"rate=4.5,fee=999,fee-handling=upfront"`` into a ``LoanOption``."""
    values: Dict[str, str] = {}
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ValueError(f"Option entries must be KEY=VALUE; got {part}")
        key, value = part.split("=", 1)
        values[key.strip()] = value.strip()
    return build_option_from_mapping(values, label)


def build_options(option_strings: Sequence[str], options_file: Optional[str]) -> List[LoanOption]:
    """Collect options from an options file and/or ``--option`` strings.

    With neither given, the default pair of offers is returned.
    """
    raw: List[Any] = []
    if options_file:
        try:
            with Path(options_file).open("r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise click.BadParameter(f"Cannot read options file: {exc}")
        if not isinstance(loaded, list):
            raise click.BadParameter("Options file must contain a JSON list of options")
        raw.extend(loaded)
    raw.extend(option_strings)
    if not raw:
        return default_options()

    options: List[LoanOption] = []
    for index, item in enumerate(raw):
        label = option_label(index)
        try:
            if isinstance(item, str):
                options.append(parse_option_string(item, label))
            elif isinstance(item, dict):
                options.append(build_option_from_mapping(item, label))
            else:
                raise ValueError(f"Option {index + 1} must be an object or KEY=VALUE string")
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return options


def metrics_to_dict(result: OptionResult) -> Dict[str, Any]:
    """Convert an option result into JSON-serialisable data (camelCase keys)."""
    m = result.metrics
    return {
        "label": result.label,
        "metrics": {
            "monthlyPayment": m.monthly_payment,
            "totalPaidDuringFixed": m.total_paid_during_fixed,
            "endBalance": m.end_balance,
            "startingBalance": m.starting_balance,
            "addedToLoan": m.added_to_loan,
            "upfrontFee": m.upfront_fee,
            "fixedTermMonths": m.fixed_term_months,
            "fixedSchedule": [
                {
                    "m": row.month,
                    "balance": row.balance,
                    "payment": row.payment,
                    "interest": row.interest,
                    "principal": row.principal,
                }
                for row in m.fixed_schedule
            ],
            "afterFixedPayment": m.after_fixed_payment,
            "afterFixedTotal": m.after_fixed_total,
            "totalCostFullTerm": m.total_cost_full_term,
        },
    }


def difference_to_dict(diff: OptionDifference) -> Dict[str, Any]:
    return {
        "label": diff.label,
        "monthlyPayment": diff.monthly_payment,
        "totalPaidDuringFixed": diff.total_paid_during_fixed,
        "endBalance": diff.end_balance,
        "totalCostFullTerm": diff.total_cost_full_term,
    }


def comparison_payload(results: Sequence[OptionResult]) -> Dict[str, Any]:
    """Results, differences and chart data in one serialisable structure."""
    return {
        "results": [metrics_to_dict(r) for r in results],
        "differences": [difference_to_dict(d) for d in compute_differences(results)],
        "chartData": build_chart_data(results),
    }


def export_to_json(path: Path, results: Sequence[OptionResult]) -> None:
    """Export results, differences and chart data to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(comparison_payload(results), f, indent=2)


def export_to_csv(path: Path, results: Sequence[OptionResult]) -> None:
    """Export one row of headline figures per option to a CSV file."""
    header = [
        "Option",
        "Monthly_Payment",
        "Total_Paid_During_Fixed",
        "End_Balance",
        "Starting_Balance",
        "Added_To_Loan",
        "Upfront_Fee",
        "Fixed_Term_Months",
        "After_Fixed_Payment",
        "After_Fixed_Total",
        "Total_Cost_Full_Term",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in results:
            m = r.metrics
            writer.writerow(
                [
                    r.label,
                    m.monthly_payment,
                    m.total_paid_during_fixed,
                    m.end_balance,
                    m.starting_balance,
                    m.added_to_loan,
                    m.upfront_fee,
                    m.fixed_term_months,
                    m.after_fixed_payment,
                    m.after_fixed_total,
                    m.total_cost_full_term,
                ]
            )


def export_schedule_to_csv(path: Path, result: OptionResult) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Month", "Payment", "Interest", "Principal", "Balance"])
        for row in result.metrics.fixed_schedule:
            writer.writerow([row.month, row.payment, row.interest, row.principal, row.balance])


_mortgage_options = [
    click.option("--balance", "-b", "balance", default=DEFAULT_OUTSTANDING_BALANCE, show_default=True,
                 help="Outstanding balance on the current mortgage"),
    click.option("--years", "-y", "years", default=DEFAULT_REMAINING_YEARS, show_default=True,
                 help="Remaining term (years)"),
    click.option("--months", "-m", "months", default=DEFAULT_REMAINING_MONTHS, show_default=True,
                 help="Remaining term (extra months)"),
]


def mortgage_options(func):
    for decorator in reversed(_mortgage_options):
        func = decorator(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Compare remortgage offers side by side."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@mortgage_options
@click.option(
    "--option",
    "option_strings",
    multiple=True,
    help="Offer as KEY=VALUE pairs, e.g. 'rate=4.99,fee=999,fee-handling=add,fixed-years=2,reversion-rate=6'",
)
@click.option("--options-file", "options_file", type=click.Path(), help="JSON file with a list of offers")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.option("--notes/--no-notes", default=False, help="Print the notes and assumptions")
def compare(
    balance: str,
    years: str,
    months: str,
    option_strings: Tuple[str, ...],
    options_file: Optional[str],
    output: Optional[str],
    notes: bool,
) -> None:
    """Compare offers against the current mortgage.

    Offers are given as repeated --option strings, for example:

        remortgage-calc compare --option "rate=4.99,fee=999" --option "rate=5.29,fixed-years=5"
    """
    current = mortgage_from_years_months(balance, years, months)
    options = build_options(option_strings, options_file)
    logger.info("Comparing %d option(s) over %d months", len(options), current.remaining_term_months)
    results = compare_options(current, options)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, results)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, results)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Comparison exported to {path}")
        return
    print_results(results)
    print_differences(compute_differences(results), results[0].label)
    if notes:
        print_notes()


@cli.command()
@mortgage_options
@click.option("--option", "option_string", default="", help="Offer as KEY=VALUE pairs (defaults apply)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(balance: str, years: str, months: str, option_string: str, output: Optional[str]) -> None:
    """Print the month-by-month schedule of one offer during its fixed term."""
    current = mortgage_from_years_months(balance, years, months)
    try:
        option = parse_option_string(option_string, option_label(0))
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    result = OptionResult(label=option.label, metrics=compute_option_metrics(current, option))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            with path.open("w", encoding="utf-8") as f:
                json.dump(metrics_to_dict(result), f, indent=2)
        elif path.suffix.lower() == ".csv":
            export_schedule_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_results([result])
    rows = result.metrics.fixed_schedule
    # Limit schedule length printed to avoid flooding the terminal
    max_rows = 120
    if len(rows) > max_rows:
        click.echo(f"Schedule has {len(rows)} rows; showing first {max_rows} rows.")
        print_schedule(rows[:max_rows])
    else:
        print_schedule(rows)


if __name__ == "__main__":
    cli()
