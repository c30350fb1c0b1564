"""
Tests for multi-debt payoff simulation.

This module tests strategy ordering, the monthly payment mechanics, the
degraded-outcome flags and the safety cap.
"""

import numpy as np
import pytest
from pydantic import ValidationError

from finplan.exceptions import InvalidInputError
from finplan.models.debt_payoff import (
    DEFAULT_SAFETY_CAP_PERIODS,
    DebtPayoffSimulator,
    PayoffStrategy,
    StrategyOutcome,
)
from finplan.models.profile import Debt, DebtPortfolio

ALL_STRATEGIES = list(PayoffStrategy)


class TestStrategyResolution:
    """Test cases for strategy name handling."""

    def test_resolve_by_name(self):
        """Test resolving strategies from their names."""
        assert DebtPayoffSimulator.resolve_strategy("avalanche") is PayoffStrategy.AVALANCHE
        assert DebtPayoffSimulator.resolve_strategy("snowball") is PayoffStrategy.SNOWBALL
        assert (
            DebtPayoffSimulator.resolve_strategy(PayoffStrategy.MINIMUM_ONLY)
            is PayoffStrategy.MINIMUM_ONLY
        )

    def test_unknown_strategy_raises(self, debt_portfolio):
        """Test that an unknown strategy is rejected."""
        with pytest.raises(InvalidInputError):
            DebtPayoffSimulator().simulate(debt_portfolio, "hybrid")

    def test_invalid_safety_cap(self):
        """Test that a safety cap below one period is rejected."""
        with pytest.raises(InvalidInputError):
            DebtPayoffSimulator(safety_cap_periods=0)

    def test_default_safety_cap(self):
        """Test the default safety cap of 50 years."""
        assert DebtPayoffSimulator().safety_cap_periods == DEFAULT_SAFETY_CAP_PERIODS == 600


class TestThreeDebtScenario:
    """Test cases for the credit card / personal loan / car loan scenario."""

    def test_avalanche_targets_highest_rate_first(self, debt_portfolio):
        """Test that avalanche sends the extra payment to the 24% debt first."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, "avalanche")

        assert outcome.schedule[0].extra_target_id == "A"
        assert outcome.schedule[0].extra_paid == pytest.approx(190)
        assert [p.debt_id for p in outcome.payoff_order] == ["A", "B", "C"]

    def test_snowball_targets_smallest_balance_first(self, debt_portfolio):
        """Test that snowball sends the extra payment to the smallest debt first."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, "snowball")

        assert outcome.schedule[0].extra_target_id == "B"
        assert [p.debt_id for p in outcome.payoff_order] == ["B", "A", "C"]

    def test_minimum_only_makes_no_extra_payment(self, debt_portfolio):
        """Test that minimum-only never pays above the minimums."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, "minimum_only")

        assert all(p.extra_paid == 0 for p in outcome.schedule)
        assert all(p.extra_target_id is None for p in outcome.schedule)

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_every_strategy_retires_all_debts(self, debt_portfolio, strategy):
        """Test that every strategy pays off all three debts."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, strategy)

        assert isinstance(outcome, StrategyOutcome)
        assert outcome.strategy == strategy.value
        assert not outcome.non_convergent
        assert not outcome.insufficient_budget
        assert not outcome.negative_amortization
        assert outcome.payoff_periods < DEFAULT_SAFETY_CAP_PERIODS
        assert sorted(p.debt_id for p in outcome.payoff_order) == ["A", "B", "C"]
        assert outcome.final_balances == {"A": 0.0, "B": 0.0, "C": 0.0}
        assert outcome.schedule[-1].remaining_balance == 0.0

    def test_avalanche_pays_less_interest_than_snowball(self, debt_portfolio):
        """Test that avalanche interest is strictly below snowball interest."""
        simulator = DebtPayoffSimulator()
        avalanche = simulator.simulate(debt_portfolio, "avalanche")
        snowball = simulator.simulate(debt_portfolio, "snowball")

        assert avalanche.total_interest_paid < snowball.total_interest_paid

    def test_interest_ordering_across_strategies(self, debt_portfolio):
        """Test avalanche <= snowball <= minimum-only total interest."""
        avalanche, snowball, minimum_only = DebtPayoffSimulator().simulate_all(
            debt_portfolio
        )

        assert avalanche.total_interest_paid <= snowball.total_interest_paid
        assert snowball.total_interest_paid <= minimum_only.total_interest_paid

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_payments_cover_principal_and_interest(self, debt_portfolio, strategy):
        """Test that total paid equals starting balance plus interest."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, strategy)

        assert outcome.total_paid == pytest.approx(15000 + outcome.total_interest_paid)
        assert sum(p.interest_paid for p in outcome.payoff_order) == pytest.approx(
            outcome.total_interest_paid
        )

    @pytest.mark.parametrize("strategy", ["avalanche", "snowball"])
    def test_budget_fully_used_while_debts_remain(self, debt_portfolio, strategy):
        """Test that the whole budget is spent in every month but the last."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, strategy)

        for period in outcome.schedule[:-1]:
            assert period.minimum_paid + period.extra_paid == pytest.approx(600)
        final = outcome.schedule[-1]
        assert final.minimum_paid + final.extra_paid <= 600 + 1e-9

    def test_first_month_interest_accrues_before_payment(self, debt_portfolio):
        """Test the first month's interest on the starting balances."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, "avalanche")

        # 5000 * 2% + 2000 * 1% + 8000 * 0.5%
        assert outcome.schedule[0].interest_accrued == pytest.approx(160)
        assert outcome.schedule[0].minimum_paid == pytest.approx(410)
        assert outcome.schedule[0].remaining_balance == pytest.approx(15000 + 160 - 600)

    def test_does_not_mutate_portfolio(self, debt_portfolio):
        """Test that simulation leaves the input portfolio unchanged."""
        before = debt_portfolio.model_dump()
        DebtPayoffSimulator().simulate_all(debt_portfolio)
        assert debt_portfolio.model_dump() == before

    def test_outcome_is_immutable(self, debt_portfolio):
        """Test that outcomes cannot be modified."""
        outcome = DebtPayoffSimulator().simulate(debt_portfolio, "avalanche")
        with pytest.raises(ValidationError):
            outcome.total_interest_paid = 0.0


class TestBudgetMonotonicity:
    """Test cases for the effect of a larger budget."""

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_larger_budget_never_costs_more(self, three_debts, strategy):
        """Test that raising the budget never increases interest or payoff time."""
        simulator = DebtPayoffSimulator()
        outcomes = [
            simulator.simulate(
                DebtPortfolio(debts=three_debts, monthly_budget=budget), strategy
            )
            for budget in (600, 700, 800, 1000)
        ]

        for smaller, larger in zip(outcomes, outcomes[1:]):
            assert larger.payoff_periods <= smaller.payoff_periods
            assert larger.total_interest_paid <= smaller.total_interest_paid + 1e-9

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_small_zero_rate_debt_beside_expensive_debt(self, strategy):
        """Test a budget increase when the smallest debt carries no interest."""
        debts = [
            Debt(id="0", name="Family Loan", balance=4964, annual_rate=0, minimum_payment=27),
            Debt(id="1", name="Store Card", balance=7537, annual_rate=30, minimum_payment=250),
        ]
        simulator = DebtPayoffSimulator()
        smaller, larger = (
            simulator.simulate(DebtPortfolio(debts=debts, monthly_budget=budget), strategy)
            for budget in (298, 334)
        )

        assert not smaller.non_convergent
        assert larger.total_interest_paid <= smaller.total_interest_paid + 1e-9
        assert larger.payoff_periods <= smaller.payoff_periods

    def test_snowball_order_does_not_depend_on_budget(self):
        """Test that snowball keeps targeting the smaller starting balance."""
        debts = [
            Debt(id="0", name="Family Loan", balance=4964, annual_rate=0, minimum_payment=27),
            Debt(id="1", name="Store Card", balance=7537, annual_rate=30, minimum_payment=250),
        ]
        simulator = DebtPayoffSimulator()
        for budget in (298, 334):
            outcome = simulator.simulate(
                DebtPortfolio(debts=debts, monthly_budget=budget), "snowball"
            )
            retired = {p.debt_id: p.payoff_period for p in outcome.payoff_order}
            targets = {
                p.extra_target_id
                for p in outcome.schedule
                if p.extra_paid > 0 and p.period <= retired["0"]
            }
            assert targets == {"0"}

    def test_budget_covering_everything_pays_off_in_one_month(self, three_debts):
        """Test that a budget above the total balance retires every debt at once."""
        portfolio = DebtPortfolio(debts=three_debts, monthly_budget=20000)
        outcome = DebtPayoffSimulator().simulate(portfolio, "snowball")

        assert outcome.payoff_periods == 1
        assert all(p.payoff_period == 1 for p in outcome.payoff_order)
        assert outcome.total_interest_paid == pytest.approx(160)


def random_portfolio_pair(rng):
    """Build one set of amortizing debts with a smaller and a larger budget."""
    debts = []
    for index in range(int(rng.integers(2, 6))):
        balance = round(float(rng.uniform(200, 20000)), 2)
        rate = 0.0 if rng.random() < 0.2 else round(float(rng.uniform(1, 30)), 2)
        # Minimum covers interest and retires the debt within 240 months
        minimum = balance * rate / 1200 + balance / 240 + float(rng.uniform(0, 50))
        debts.append(
            Debt(
                id=str(index),
                name=f"Debt {index}",
                balance=balance,
                annual_rate=rate,
                minimum_payment=round(minimum, 2) + 0.01,
            )
        )
    minimums = sum(debt.minimum_payment for debt in debts)
    smaller = minimums + float(rng.uniform(0, 200))
    larger = smaller + float(rng.uniform(1, 300))
    return (
        DebtPortfolio(debts=debts, monthly_budget=smaller),
        DebtPortfolio(debts=debts, monthly_budget=larger),
    )


class TestRandomPortfolios:
    """Ordering properties checked over seeded random portfolios."""

    @pytest.mark.parametrize("seed", range(5))
    def test_budget_and_strategy_ordering(self, seed):
        """Test budget monotonicity and avalanche <= snowball <= minimum-only."""
        rng = np.random.default_rng(seed)
        simulator = DebtPayoffSimulator()

        for _ in range(30):
            smaller_budget, larger_budget = random_portfolio_pair(rng)
            smaller = {o.strategy: o for o in simulator.simulate_all(smaller_budget)}
            larger = {o.strategy: o for o in simulator.simulate_all(larger_budget)}

            for strategy, outcome in smaller.items():
                assert not outcome.non_convergent
                assert (
                    larger[strategy].total_interest_paid
                    <= outcome.total_interest_paid + 1e-6
                )
                assert larger[strategy].payoff_periods <= outcome.payoff_periods

            for outcomes in (smaller, larger):
                assert (
                    outcomes["avalanche"].total_interest_paid
                    <= outcomes["snowball"].total_interest_paid + 1e-6
                )
                assert (
                    outcomes["snowball"].total_interest_paid
                    <= outcomes["minimum_only"].total_interest_paid + 1e-6
                )


class TestTermination:
    """Test cases for termination when minimums cover interest."""

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    @pytest.mark.parametrize(
        "debts,budget",
        [
            (
                [
                    Debt(id="card", name="Card", balance=12000, annual_rate=29.99, minimum_payment=360),
                    Debt(id="loan", name="Loan", balance=30000, annual_rate=7.5, minimum_payment=400),
                ],
                900,
            ),
            (
                [
                    Debt(id="a", name="Zero Rate", balance=1200, annual_rate=0, minimum_payment=50),
                    Debt(id="b", name="Store Card", balance=800, annual_rate=18, minimum_payment=25),
                    Debt(id="c", name="Student Loan", balance=25000, annual_rate=4.5, minimum_payment=260),
                ],
                335,
            ),
        ],
    )
    def test_terminates_with_zero_balances(self, debts, budget, strategy):
        """Test termination within the cap and zero final balances."""
        portfolio = DebtPortfolio(debts=debts, monthly_budget=budget)
        outcome = DebtPayoffSimulator().simulate(portfolio, strategy)

        assert not outcome.non_convergent
        assert outcome.payoff_periods <= DEFAULT_SAFETY_CAP_PERIODS
        for balance in outcome.final_balances.values():
            assert balance == pytest.approx(0.0, abs=1e-9)


class TestEdgeCases:
    """Test cases for degraded outcomes and empty input."""

    def test_insufficient_budget_pays_minimums_only(self, three_debts):
        """Test that a budget below the minimums falls back to minimum payments."""
        portfolio = DebtPortfolio(debts=three_debts, monthly_budget=300)
        simulator = DebtPayoffSimulator()

        avalanche = simulator.simulate(portfolio, "avalanche")
        minimum_only = simulator.simulate(portfolio, "minimum_only")

        assert avalanche.insufficient_budget
        assert minimum_only.insufficient_budget
        assert sorted(p.debt_id for p in avalanche.payoff_order) == ["A", "B", "C"]
        assert all(p.extra_paid == 0 for p in avalanche.schedule)
        assert avalanche.total_interest_paid == pytest.approx(
            minimum_only.total_interest_paid
        )
        assert avalanche.payoff_periods == minimum_only.payoff_periods

    def test_negative_amortization_runs_to_cap(self):
        """Test that a minimum below interest is flagged and simulated to the cap."""
        debt = Debt(id="loan", name="Payday Loan", balance=10000, annual_rate=24, minimum_payment=100)
        portfolio = DebtPortfolio(debts=[debt], monthly_budget=100)
        outcome = DebtPayoffSimulator(safety_cap_periods=36).simulate(portfolio, "avalanche")

        assert outcome.negative_amortization
        assert outcome.negative_amortization_debts == ("loan",)
        assert outcome.non_convergent
        assert outcome.payoff_periods == 36
        assert len(outcome.schedule) == 36
        assert outcome.final_balances["loan"] > 10000
        assert outcome.payoff_order == ()

    def test_negative_amortization_with_extra_budget_still_flagged(self):
        """Test that the flag is set even when extra budget retires the debt."""
        debt = Debt(id="loan", name="Payday Loan", balance=1000, annual_rate=36, minimum_payment=10)
        portfolio = DebtPortfolio(debts=[debt], monthly_budget=500)
        outcome = DebtPayoffSimulator().simulate(portfolio, "avalanche")

        assert outcome.negative_amortization
        assert not outcome.non_convergent
        assert outcome.final_balances["loan"] == 0.0

    def test_safety_cap_sets_non_convergent(self, debt_portfolio):
        """Test that reaching the cap is reported rather than raised."""
        outcome = DebtPayoffSimulator(safety_cap_periods=12).simulate(
            debt_portfolio, "snowball"
        )

        assert outcome.non_convergent
        assert not outcome.converged
        assert outcome.payoff_periods == 12
        assert len(outcome.schedule) == 12
        assert outcome.schedule[-1].remaining_balance > 0

    def test_empty_portfolio(self):
        """Test that an empty portfolio finishes immediately."""
        portfolio = DebtPortfolio(debts=[], monthly_budget=500)
        outcome = DebtPayoffSimulator().simulate(portfolio, "avalanche")

        assert outcome.payoff_periods == 0
        assert outcome.total_interest_paid == 0
        assert outcome.schedule == ()
        assert outcome.converged

    def test_zero_balance_debt_is_already_paid(self, three_debts):
        """Test that a debt starting at zero is recorded as paid in period 0."""
        paid = Debt(id="Z", name="Paid Card", balance=0, annual_rate=20, minimum_payment=25)
        portfolio = DebtPortfolio(debts=(paid,) + three_debts, monthly_budget=600)
        outcome = DebtPayoffSimulator().simulate(portfolio, "avalanche")

        assert outcome.payoff_order[0].debt_id == "Z"
        assert outcome.payoff_order[0].payoff_period == 0
        assert not outcome.insufficient_budget

    def test_avalanche_tie_breaks_on_larger_balance(self):
        """Test that equal rates send extra money to the larger balance."""
        debts = [
            Debt(id="small", name="Small", balance=1000, annual_rate=15, minimum_payment=50),
            Debt(id="large", name="Large", balance=3000, annual_rate=15, minimum_payment=50),
        ]
        outcome = DebtPayoffSimulator().simulate(
            DebtPortfolio(debts=debts, monthly_budget=300), "avalanche"
        )
        assert outcome.schedule[0].extra_target_id == "large"

    def test_snowball_tie_breaks_on_higher_rate(self):
        """Test that equal balances send extra money to the higher rate."""
        debts = [
            Debt(id="low", name="Low Rate", balance=2000, annual_rate=5, minimum_payment=50),
            Debt(id="high", name="High Rate", balance=2000, annual_rate=20, minimum_payment=50),
        ]
        outcome = DebtPayoffSimulator().simulate(
            DebtPortfolio(debts=debts, monthly_budget=300), "snowball"
        )
        assert outcome.schedule[0].extra_target_id == "high"

    def test_leftover_rolls_to_next_debt(self):
        """Test that extra money beyond the target's balance goes to the next debt."""
        debts = [
            Debt(id="tiny", name="Tiny", balance=100, annual_rate=0, minimum_payment=10),
            Debt(id="big", name="Big", balance=5000, annual_rate=0, minimum_payment=10),
        ]
        outcome = DebtPayoffSimulator().simulate(
            DebtPortfolio(debts=debts, monthly_budget=500), "snowball"
        )

        first = outcome.schedule[0]
        assert first.extra_target_id == "tiny"
        assert first.minimum_paid + first.extra_paid == pytest.approx(500)
        assert first.remaining_balance == pytest.approx(5100 - 500)
