"""
Pytest configuration and shared fixtures for the finplan tests.
"""

import pytest

from finplan.config import Settings
from finplan.models.profile import Debt, DebtPortfolio, FinancialProfile


@pytest.fixture
def retirement_profile():
    """Age 30 to 65 saver with $50k saved and $500/month contributions."""
    return FinancialProfile(
        current_age=30,
        target_age=65,
        life_expectancy=90,
        annual_income=80000,
        annual_expenses=50000,
        current_savings=50000,
        monthly_contribution=500,
        nominal_return=0.07,
        inflation_rate=0.025,
        desired_retirement_income=60000,
        external_income=20000,
    )


@pytest.fixture
def three_debts():
    """Credit card, personal loan and car loan with distinct rates and balances."""
    return (
        Debt(id="A", name="Credit Card", balance=5000, annual_rate=24, minimum_payment=150),
        Debt(id="B", name="Personal Loan", balance=2000, annual_rate=12, minimum_payment=60),
        Debt(id="C", name="Car Loan", balance=8000, annual_rate=6, minimum_payment=200),
    )


@pytest.fixture
def debt_portfolio(three_debts):
    """Three-debt portfolio with a $600 monthly budget."""
    return DebtPortfolio(debts=three_debts, monthly_budget=600)


@pytest.fixture
def settings():
    """Settings isolated from the environment with a small Monte Carlo run."""
    return Settings(
        _env_file=None,
        FINPLAN_ENV="testing",
        FINPLAN_MONTE_CARLO_TRIALS=200,
        FINPLAN_RANDOM_SEED=42,
    )
