"""
Deterministic projection engine for retirement planning.

This module provides closed-form compound growth and annuity calculations:
real rate of return, future value of a lump sum and of an ordinary annuity,
the annuity-due inverse used to size contributions, year-by-year savings
trajectories, and a retirement needs analysis.
"""

import logging
import math
from numbers import Real
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from finplan.exceptions import InvalidInputError

from .profile import VALUE_OBJECT_CONFIG, FinancialProfile

logger = logging.getLogger(__name__)

# Required savings = net annual need * 25 (the 4% withdrawal rule)
SAFE_WITHDRAWAL_MULTIPLE = 25
MONTHS_PER_YEAR = 12


class ProjectionSnapshot(BaseModel):
    """State of a projection at the end of one annual period."""

    model_config = VALUE_OBJECT_CONFIG

    period: int = Field(..., ge=0, description="Period index (0 = starting state)")
    age: int = Field(..., ge=0, description="Age at the end of the period")
    balance: float = Field(..., ge=0, description="Savings balance (real terms)")
    income: float = Field(..., description="Income during the period")
    expenses: float = Field(..., description="Expenses during the period")
    readiness_ratio: float = Field(
        ..., ge=0, le=1, description="Balance as a fraction of the retirement target"
    )


class PeriodAdjustment(BaseModel):
    """Income/expense multipliers and one-time cost applied to a single period."""

    model_config = VALUE_OBJECT_CONFIG

    income_factor: float = Field(default=1.0, ge=0)
    expense_factor: float = Field(default=1.0, ge=0)
    one_time_cost: float = Field(default=0.0, ge=0)


NO_ADJUSTMENT = PeriodAdjustment()


class RetirementNeeds(BaseModel):
    """Retirement savings adequacy for a profile."""

    model_config = VALUE_OBJECT_CONFIG

    years_to_retirement: int = Field(..., ge=1)
    years_in_retirement: int = Field(..., ge=0)
    real_rate: float = Field(..., description="Annual real rate of return")
    required_savings: float = Field(..., ge=0, description="Target balance at retirement")
    current_trajectory: float = Field(
        ..., ge=0, description="Projected balance at retirement on the current plan"
    )
    gap: float = Field(..., description="required_savings - current_trajectory")
    monthly_total: float = Field(
        ..., ge=0, description="Current monthly contribution including match"
    )
    additional_monthly_savings: float = Field(
        ..., ge=0, description="Extra monthly saving needed to close the gap"
    )
    monthly_required: float = Field(
        ..., ge=0, description="Total monthly saving needed to reach the target"
    )


def _require_finite(name: str, value: Optional[float]) -> float:
    if value is None:
        raise InvalidInputError(f"Missing required value: {name}")
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite, got {value}")
    return float(value)


class ProjectionEngine:
    """Calculator for deterministic savings projections."""

    @staticmethod
    def real_rate(nominal: float, inflation: float) -> float:
        """
        Calculate the inflation-adjusted rate of return.

        Args:
            nominal: Nominal rate (decimal)
            inflation: Inflation rate (decimal)

        Returns:
            Real rate (decimal)
        """
        nominal = _require_finite("nominal_return", nominal)
        inflation = _require_finite("inflation_rate", inflation)
        if 1 + nominal <= 0:
            raise InvalidInputError(
                f"nominal_return must be above -100%, got {nominal}"
            )
        if 1 + inflation <= 0:
            raise InvalidInputError(
                f"inflation_rate must be above -100%, got {inflation}"
            )
        return (1 + nominal) / (1 + inflation) - 1

    @staticmethod
    def future_value(present: float, rate: float, periods: float) -> float:
        """Future value of a lump sum after ``periods`` compounding periods."""
        if rate == 0:
            return present
        return present * (1 + rate) ** periods

    @staticmethod
    def future_value_annuity(payment: float, rate: float, periods: float) -> float:
        """Future value of an ordinary annuity paying ``payment`` each period."""
        if rate == 0:
            return payment * periods
        return payment * ((1 + rate) ** periods - 1) / rate

    @staticmethod
    def required_contribution(
        target_balance: float, horizon: float, real_rate: float
    ) -> float:
        """
        Calculate the periodic contribution needed to reach a target balance.

        Solves the future value of an annuity due for the payment. A zero rate
        falls back to linear division.

        Args:
            target_balance: Balance to accumulate
            horizon: Number of contribution periods
            real_rate: Periodic real rate of return (decimal)

        Returns:
            Contribution per period (0 when the target is already met)
        """
        target_balance = _require_finite("target_balance", target_balance)
        horizon = _require_finite("horizon", horizon)
        real_rate = _require_finite("real_rate", real_rate)
        if horizon <= 0:
            raise InvalidInputError(f"Horizon must be positive, got {horizon}")
        if 1 + real_rate <= 0:
            raise InvalidInputError(f"real_rate must be above -100%, got {real_rate}")

        if target_balance <= 0:
            return 0.0
        if real_rate == 0:
            return target_balance / horizon

        growth = (1 + real_rate) ** horizon - 1
        return target_balance * real_rate / (growth * (1 + real_rate))

    def validate_profile(self, profile: FinancialProfile) -> None:
        """Check a profile for values the engine cannot work with."""
        for name in (
            "annual_income",
            "annual_expenses",
            "current_savings",
            "monthly_contribution",
            "nominal_return",
            "inflation_rate",
            "employer_match_percent",
            "desired_retirement_income",
            "external_income",
        ):
            _require_finite(name, getattr(profile, name, None))
        if profile.retirement_goal is not None:
            _require_finite("retirement_goal", profile.retirement_goal)
        if profile.horizon_years <= 0:
            raise InvalidInputError(
                f"Horizon must be positive: target age {profile.target_age} "
                f"is not after current age {profile.current_age}"
            )
        self.real_rate(profile.nominal_return, profile.inflation_rate)

    def target_balance(self, profile: FinancialProfile) -> float:
        """Balance needed at retirement: explicit goal, else the 4% rule."""
        if profile.retirement_goal is not None:
            return profile.retirement_goal
        net_need = profile.desired_retirement_income - profile.external_income
        return max(0.0, net_need) * SAFE_WITHDRAWAL_MULTIPLE

    def project(
        self,
        profile: FinancialProfile,
        adjustments: Optional[Mapping[int, PeriodAdjustment]] = None,
        nominal_return: Optional[float] = None,
    ) -> List[ProjectionSnapshot]:
        """
        Project the savings balance year by year until the target age.

        Balances are computed in closed form (lump sum plus ordinary annuity)
        from the start of each stretch of constant cash flow. Adjustments shift
        the period's cash flow by the change in disposable income.

        Args:
            profile: Financial profile
            adjustments: Optional per-period income/expense shocks keyed by period
            nominal_return: Optional override of the profile's nominal return

        Returns:
            Snapshots for periods 0..horizon
        """
        self.validate_profile(profile)
        nominal = profile.nominal_return if nominal_return is None else nominal_return
        rate = self.real_rate(nominal, profile.inflation_rate)
        adjustments = adjustments or {}

        target = self.target_balance(profile)
        base_flow = profile.annual_contribution

        balance = profile.current_savings
        snapshots = [
            self._snapshot(
                profile,
                0,
                balance,
                profile.annual_income,
                profile.annual_expenses,
                target,
            )
        ]

        anchor_balance = balance
        anchor_period = 0
        segment_flow: Optional[float] = None

        for period in range(1, profile.horizon_years + 1):
            adjustment = adjustments.get(period, NO_ADJUSTMENT)
            income = profile.annual_income * adjustment.income_factor
            expenses = (
                profile.annual_expenses * adjustment.expense_factor
                + adjustment.one_time_cost
            )
            flow = (
                base_flow
                + (income - profile.annual_income)
                - (expenses - profile.annual_expenses)
            )

            if flow != segment_flow:
                anchor_balance, anchor_period, segment_flow = balance, period - 1, flow

            elapsed = period - anchor_period
            balance = self.future_value(
                anchor_balance, rate, elapsed
            ) + self.future_value_annuity(flow, rate, elapsed)

            if balance < 0:
                balance = 0.0
                anchor_balance, anchor_period = 0.0, period

            snapshots.append(
                self._snapshot(profile, period, balance, income, expenses, target)
            )

        logger.debug(
            f"Projected {profile.horizon_years} periods at real rate {rate:.6f}: "
            f"terminal balance {balance:.2f}"
        )
        return snapshots

    def terminal_balance(
        self,
        profile: FinancialProfile,
        adjustments: Optional[Dict[int, PeriodAdjustment]] = None,
        nominal_return: Optional[float] = None,
    ) -> float:
        """Balance at the target age."""
        return self.project(profile, adjustments, nominal_return)[-1].balance

    def retirement_needs(self, profile: FinancialProfile) -> RetirementNeeds:
        """
        Compare the savings needed at retirement with the current trajectory.

        Args:
            profile: Financial profile

        Returns:
            RetirementNeeds with the gap and the monthly saving required
        """
        self.validate_profile(profile)
        years = profile.horizon_years
        rate = self.real_rate(profile.nominal_return, profile.inflation_rate)

        required_savings = self.target_balance(profile)
        current_trajectory = self.future_value(
            profile.current_savings, rate, years
        ) + self.future_value_annuity(profile.annual_contribution, rate, years)
        current_trajectory = max(0.0, current_trajectory)
        gap = required_savings - current_trajectory

        monthly_total = profile.annual_contribution / MONTHS_PER_YEAR
        if gap > 0:
            monthly_rate = (1 + rate) ** (1 / MONTHS_PER_YEAR) - 1
            additional = self.required_contribution(
                gap, years * MONTHS_PER_YEAR, monthly_rate
            )
        else:
            additional = 0.0

        return RetirementNeeds(
            years_to_retirement=years,
            years_in_retirement=max(0, profile.life_expectancy - profile.target_age),
            real_rate=rate,
            required_savings=required_savings,
            current_trajectory=current_trajectory,
            gap=gap,
            monthly_total=monthly_total,
            additional_monthly_savings=additional,
            monthly_required=monthly_total + additional,
        )

    @staticmethod
    def _snapshot(
        profile: FinancialProfile,
        period: int,
        balance: float,
        income: float,
        expenses: float,
        target: float,
    ) -> ProjectionSnapshot:
        readiness = min(1.0, balance / target) if target > 0 else 1.0
        return ProjectionSnapshot(
            period=period,
            age=profile.current_age + period,
            balance=balance,
            income=income,
            expenses=expenses,
            readiness_ratio=readiness,
        )
