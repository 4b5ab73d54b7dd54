"""Shared fixtures.

Current mortgage: £250,000 outstanding, 25 years (300 months) remaining.
"""

import pytest

from remortgage_calc.data_models import CurrentMortgage, FeeHandling, LoanOption, RepaymentType
from remortgage_calc.utils import default_option


@pytest.fixture
def current_mortgage() -> CurrentMortgage:
    return CurrentMortgage(outstanding_balance="250000", remaining_term_months=300)


@pytest.fixture
def two_year_fix() -> LoanOption:
    """4.99% two-year fix, £999 fee added to the loan, 6% reversion."""
    return default_option("Option A")


@pytest.fixture
def interest_only_option() -> LoanOption:
    """5% interest-only one-year fix with a £200 monthly overpayment."""
    return LoanOption(
        label="Option A",
        repayment_type=RepaymentType.INTEREST_ONLY,
        rate="5",
        fee_amount="0",
        fee_handling=FeeHandling.PAID_UPFRONT,
        fixed_years="1",
        fixed_months="0",
        overpayment="200",
        reversion_rate="0",
    )
