import math

import pytest

from remortgage_calc.data_models import Metrics
from remortgage_calc.formatter import NOTES, currency_format, print_differences, print_results, result_lines
from remortgage_calc.comparison import compute_differences
from remortgage_calc.engine import compare_options
from remortgage_calc.utils import default_options


class TestCurrencyFormat:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, "£0.00"),
            (1234.5, "£1,234.50"),
            (250999, "£250,999.00"),
            (-12, "-£12.00"),
            (1000000, "£1,000,000.00"),
        ],
    )
    def test_values(self, value, expected):
        assert currency_format(value) == expected

    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan, None])
    def test_non_finite(self, value):
        assert currency_format(value) == "-"


class TestResultLines:
    def test_amount_left_never_negative(self):
        metrics = Metrics(
            monthly_payment=100.0,
            total_paid_during_fixed=2400.0,
            end_balance=-5.0,
            starting_balance=2000.0,
            added_to_loan=0.0,
            upfront_fee=0.0,
            fixed_term_months=24,
        )
        lines = result_lines(metrics)
        assert lines["Amount left after fixed term"] == "£0.00"
        assert lines["Indicative monthly payment"] == "£100.00"


class TestPrinting:
    def test_results_and_differences(self, capsys, current_mortgage):
        results = compare_options(current_mortgage, default_options())
        print_results(results)
        print_differences(compute_differences(results), results[0].label)
        out = capsys.readouterr().out
        assert "Option A - Results" in out
        assert "Option B - Results" in out
        assert "Differences vs Option A" in out

    def test_no_differences_prints_nothing(self, capsys):
        print_differences([], "Option A")
        assert capsys.readouterr().out == ""

    def test_notes_present(self):
        assert any("ERC" in note for note in NOTES)
