"""
Tests for debt portfolio metrics and the debt score.
"""

import pytest

from finplan.models.debt_metrics import (
    calculate_debt_score,
    get_debt_level,
    summarize_portfolio,
)
from finplan.models.profile import DebtPortfolio


class TestDebtScore:
    """Test cases for the debt health score."""

    def test_clean_profile_scores_full_marks(self):
        assert calculate_debt_score(10, 5) == 100

    @pytest.mark.parametrize(
        "dti,expected",
        [(20.0, 100), (20.1, 85), (36.0, 85), (36.1, 70)],
    )
    def test_debt_to_income_penalties(self, dti, expected):
        """Test the two debt-to-income penalty bands."""
        assert calculate_debt_score(dti, 0) == expected

    @pytest.mark.parametrize(
        "rate,expected",
        [(10.0, 100), (10.5, 90), (15.5, 85), (22.0, 75)],
    )
    def test_only_the_highest_rate_penalty_applies(self, rate, expected):
        """Test that rate penalties do not stack."""
        assert calculate_debt_score(0, rate) == expected

    def test_combined_penalties(self):
        assert calculate_debt_score(50, 25) == 45

    @pytest.mark.parametrize(
        "score,level",
        [(100, "Excellent"), (80, "Excellent"), (79, "Good"), (60, "Good"),
         (59, "Fair"), (40, "Fair"), (39, "Poor"), (0, "Poor")],
    )
    def test_debt_levels(self, score, level):
        assert get_debt_level(score) == level


class TestSummarizePortfolio:
    """Test cases for portfolio summaries."""

    def test_three_debt_summary(self, debt_portfolio):
        """Test totals and weighted rate for the three-debt portfolio."""
        metrics = summarize_portfolio(debt_portfolio, monthly_income=80000 / 12)

        assert metrics.total_debt == pytest.approx(15000)
        assert metrics.total_minimum_payments == pytest.approx(410)
        assert metrics.total_annual_interest == pytest.approx(1920)
        assert metrics.weighted_average_rate == pytest.approx(12.8)
        assert metrics.debt_to_income_ratio == pytest.approx(410 / (80000 / 12) * 100)
        assert metrics.monthly_budget == 600
        assert metrics.debt_score == 90
        assert metrics.debt_level == "Excellent"

    def test_unknown_income_gives_zero_ratio(self, debt_portfolio):
        metrics = summarize_portfolio(debt_portfolio)
        assert metrics.debt_to_income_ratio == 0.0

    def test_empty_portfolio(self):
        """Test that an empty portfolio summarizes to zeros."""
        metrics = summarize_portfolio(
            DebtPortfolio(debts=[], monthly_budget=0), monthly_income=5000
        )

        assert metrics.total_debt == 0
        assert metrics.weighted_average_rate == 0.0
        assert metrics.debt_score == 100
