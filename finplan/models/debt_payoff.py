"""
Multi-debt payoff simulation.

This module simulates month-by-month repayment of a portfolio of debts under a
payoff strategy. Strategies differ only in how they order the currently active
debts when directing payment above the minimums; the ordering is re-evaluated
every period because retiring one debt changes which debt comes next.

Priority keys read each debt's starting balance, so the relative order of the
active debts is the same for every budget.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from finplan.exceptions import InvalidInputError

from .profile import VALUE_OBJECT_CONFIG, Debt, DebtPortfolio

logger = logging.getLogger(__name__)

# 50 years of monthly periods
DEFAULT_SAFETY_CAP_PERIODS = 600


class PayoffStrategy(str, Enum):
    """Supported debt payoff strategies."""

    AVALANCHE = "avalanche"
    SNOWBALL = "snowball"
    MINIMUM_ONLY = "minimum_only"


class DebtPayoff(BaseModel):
    """Payoff record for a single debt."""

    model_config = VALUE_OBJECT_CONFIG

    debt_id: str = Field(..., description="Debt identifier")
    name: str = Field(..., description="Debt name")
    payoff_period: int = Field(
        ..., ge=0, description="Month the debt reached zero (0 = already paid)"
    )
    interest_paid: float = Field(..., ge=0, description="Interest accrued on this debt")


class PayoffPeriod(BaseModel):
    """Aggregate payments for one month of a payoff simulation."""

    model_config = VALUE_OBJECT_CONFIG

    period: int = Field(..., ge=1, description="Month number (1-based)")
    interest_accrued: float = Field(..., ge=0, description="Interest accrued this month")
    minimum_paid: float = Field(..., ge=0, description="Minimum payments made")
    extra_paid: float = Field(..., ge=0, description="Payments above the minimums")
    extra_target_id: Optional[str] = Field(
        default=None, description="Debt that received the first extra dollar"
    )
    remaining_balance: float = Field(
        ..., ge=0, description="Total balance at the end of the month"
    )


class StrategyOutcome(BaseModel):
    """Result of simulating a payoff strategy."""

    model_config = VALUE_OBJECT_CONFIG

    strategy: str = Field(..., description="Strategy name")
    total_interest_paid: float = Field(..., ge=0, description="Total interest accrued")
    total_paid: float = Field(..., ge=0, description="Total payments made")
    payoff_periods: int = Field(
        ..., ge=0, description="Months until every debt is retired (or the safety cap)"
    )
    payoff_order: Tuple[DebtPayoff, ...] = Field(
        ..., description="Retired debts in payoff order"
    )
    final_balances: Dict[str, float] = Field(
        ..., description="Balance of every debt when the simulation stopped"
    )
    schedule: Tuple[PayoffPeriod, ...] = Field(..., description="Monthly breakdown")
    insufficient_budget: bool = Field(
        default=False, description="Budget did not cover the minimum payments"
    )
    negative_amortization: bool = Field(
        default=False, description="Some minimum payment was below accruing interest"
    )
    negative_amortization_debts: Tuple[str, ...] = Field(
        default=(), description="Debts whose minimum payment was below interest"
    )
    non_convergent: bool = Field(
        default=False, description="Safety cap reached with debts outstanding"
    )

    @property
    def converged(self) -> bool:
        return not self.non_convergent


class _DebtState:
    """Working copy of a debt during a simulation."""

    __slots__ = (
        "debt_id",
        "name",
        "annual_rate",
        "monthly_rate",
        "minimum_payment",
        "balance",
        "start_balance",
        "interest",
        "index",
    )

    def __init__(self, debt: Debt, index: int):
        self.debt_id = debt.id
        self.name = debt.name
        self.annual_rate = debt.annual_rate
        self.monthly_rate = debt.monthly_rate
        self.minimum_payment = debt.minimum_payment
        self.balance = debt.balance
        self.start_balance = debt.balance
        self.interest = 0.0
        self.index = index

    def payoff(self, period: int) -> DebtPayoff:
        return DebtPayoff(
            debt_id=self.debt_id,
            name=self.name,
            payoff_period=period,
            interest_paid=self.interest,
        )


PriorityKey = Callable[[_DebtState], tuple]


def _avalanche_key(state: _DebtState) -> tuple:
    # Highest rate first, larger starting balance breaks ties
    return (-state.annual_rate, -state.start_balance, state.index)


def _snowball_key(state: _DebtState) -> tuple:
    # Smallest starting balance first, higher rate breaks ties
    return (state.start_balance, -state.annual_rate, state.index)


PRIORITY_KEYS: Dict[PayoffStrategy, Optional[PriorityKey]] = {
    PayoffStrategy.AVALANCHE: _avalanche_key,
    PayoffStrategy.SNOWBALL: _snowball_key,
    PayoffStrategy.MINIMUM_ONLY: None,
}


class DebtPayoffSimulator:
    """Simulator for month-by-month multi-debt repayment."""

    def __init__(self, safety_cap_periods: int = DEFAULT_SAFETY_CAP_PERIODS):
        """Initialize the simulator.

        Args:
            safety_cap_periods: Maximum number of months to simulate
        """
        if safety_cap_periods < 1:
            raise InvalidInputError(
                f"Safety cap must be at least 1 period, got {safety_cap_periods}"
            )
        self.safety_cap_periods = safety_cap_periods

    @staticmethod
    def resolve_strategy(strategy: Union[str, PayoffStrategy]) -> PayoffStrategy:
        """Convert a strategy name to a PayoffStrategy."""
        try:
            return PayoffStrategy(strategy)
        except ValueError:
            allowed = [s.value for s in PayoffStrategy]
            raise InvalidInputError(
                f"Unknown payoff strategy {strategy!r}; expected one of {allowed}"
            )

    def simulate(
        self, portfolio: DebtPortfolio, strategy: Union[str, PayoffStrategy]
    ) -> StrategyOutcome:
        """
        Simulate repaying a debt portfolio under a strategy.

        Each month: accrue interest on every active debt, pay each minimum
        (capped at the balance), direct the rest of the budget to the active
        debts in strategy priority order, then retire debts at zero.

        Args:
            portfolio: Debts and monthly budget
            strategy: Payoff strategy or its name

        Returns:
            StrategyOutcome with totals, payoff order, schedule and flags
        """
        strategy = self.resolve_strategy(strategy)
        states = [_DebtState(debt, i) for i, debt in enumerate(portfolio.debts)]

        payoff_order: List[DebtPayoff] = [s.payoff(0) for s in states if s.balance <= 0]
        active = [s for s in states if s.balance > 0]

        insufficient_budget = portfolio.monthly_budget < portfolio.total_minimum_payments
        priority_key = None if insufficient_budget else PRIORITY_KEYS[strategy]
        negative_amortization_debts = tuple(
            s.debt_id for s in active if s.minimum_payment < s.balance * s.monthly_rate
        )

        logger.debug(
            f"Simulating {strategy.value} for {len(active)} debts, "
            f"budget {portfolio.monthly_budget:.2f}"
        )

        schedule: List[PayoffPeriod] = []
        total_interest = 0.0
        total_paid = 0.0
        period = 0

        while active and period < self.safety_cap_periods:
            period += 1

            # Interest accrues before any principal reduction
            interest_accrued = 0.0
            for state in active:
                accrued = state.balance * state.monthly_rate
                state.balance += accrued
                state.interest += accrued
                interest_accrued += accrued

            minimum_paid = 0.0
            for state in active:
                payment = min(state.minimum_payment, state.balance)
                state.balance -= payment
                minimum_paid += payment

            extra_paid, extra_target_id = self._apply_extra(
                active, portfolio.monthly_budget - minimum_paid, priority_key
            )

            retired = [s for s in active if s.balance <= 0]
            if priority_key is not None:
                retired.sort(key=priority_key)
            for state in retired:
                state.balance = 0.0
                payoff_order.append(state.payoff(period))
                logger.debug(f"Debt {state.debt_id} paid off in period {period}")
            active = [s for s in active if s.balance > 0]

            total_interest += interest_accrued
            total_paid += minimum_paid + extra_paid
            schedule.append(
                PayoffPeriod(
                    period=period,
                    interest_accrued=interest_accrued,
                    minimum_paid=minimum_paid,
                    extra_paid=extra_paid,
                    extra_target_id=extra_target_id,
                    remaining_balance=sum(s.balance for s in active),
                )
            )

        non_convergent = bool(active)
        if insufficient_budget:
            logger.warning(
                f"Budget {portfolio.monthly_budget:.2f} below minimum payments "
                f"{portfolio.total_minimum_payments:.2f}; paying minimums only"
            )
        if negative_amortization_debts:
            logger.warning(
                "Minimum payment below accruing interest for "
                f"{list(negative_amortization_debts)}"
            )
        if non_convergent:
            logger.warning(
                f"{strategy.value} did not retire {len(active)} debts within "
                f"{self.safety_cap_periods} periods"
            )

        return StrategyOutcome(
            strategy=strategy.value,
            total_interest_paid=total_interest,
            total_paid=total_paid,
            payoff_periods=period,
            payoff_order=tuple(payoff_order),
            final_balances={s.debt_id: s.balance for s in states},
            schedule=tuple(schedule),
            insufficient_budget=insufficient_budget,
            negative_amortization=bool(negative_amortization_debts),
            negative_amortization_debts=negative_amortization_debts,
            non_convergent=non_convergent,
        )

    def simulate_all(
        self,
        portfolio: DebtPortfolio,
        strategies: Optional[Sequence[Union[str, PayoffStrategy]]] = None,
    ) -> List[StrategyOutcome]:
        """Simulate every strategy (or the given ones) on the same portfolio."""
        if strategies is None:
            strategies = list(PayoffStrategy)
        return [self.simulate(portfolio, strategy) for strategy in strategies]

    @staticmethod
    def _apply_extra(
        active: List[_DebtState],
        leftover: float,
        priority_key: Optional[PriorityKey],
    ) -> Tuple[float, Optional[str]]:
        """Direct the leftover budget to active debts in priority order.

        The top-priority debt receives the whole leftover; only the part that
        exceeds its balance rolls to the next debt.
        """
        if priority_key is None or leftover <= 0:
            return 0.0, None

        extra_paid = 0.0
        extra_target_id = None
        for state in sorted(active, key=priority_key):
            if leftover <= 0:
                break
            if state.balance <= 0:
                continue
            payment = min(leftover, state.balance)
            state.balance -= payment
            leftover -= payment
            extra_paid += payment
            if extra_target_id is None:
                extra_target_id = state.debt_id
        return extra_paid, extra_target_id
