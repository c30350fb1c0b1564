"""
Input value objects for the simulation core.

These models are the single validated input boundary: they are built once by
the presentation layer (or ``parse_*`` helpers below), are immutable, and reject
non-finite numbers. Percent vs. fraction and month vs. year units are fixed
per field and noted in each description.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from finplan.exceptions import InvalidInputError

DEFAULT_ACTIVATION_PERIOD = 5

VALUE_OBJECT_CONFIG = ConfigDict(frozen=True, allow_inf_nan=False, extra="forbid")


class FinancialProfile(BaseModel):
    """Personal financial profile driving retirement projections."""

    model_config = VALUE_OBJECT_CONFIG

    current_age: int = Field(..., ge=0, le=120, description="Current age in years")
    target_age: int = Field(..., ge=0, le=120, description="Target retirement age")
    life_expectancy: int = Field(..., ge=0, le=130, description="Life expectancy")

    annual_income: float = Field(..., ge=0, description="Annual income")
    annual_expenses: float = Field(..., ge=0, description="Annual expenses")
    current_savings: float = Field(..., ge=0, description="Current invested savings")
    monthly_contribution: float = Field(
        ..., ge=0, description="Monthly contribution to savings"
    )

    nominal_return: float = Field(
        ..., description="Expected annual nominal return (decimal, e.g. 0.07)"
    )
    inflation_rate: float = Field(
        ..., description="Expected annual inflation (decimal, e.g. 0.025)"
    )
    employer_match_percent: float = Field(
        default=0.0,
        ge=0,
        le=200,
        description="Employer match as percent of the monthly contribution",
    )

    desired_retirement_income: float = Field(
        ..., ge=0, description="Desired annual income in retirement"
    )
    external_income: float = Field(
        default=0.0,
        ge=0,
        description="Annual social security and pension income in retirement",
    )
    retirement_goal: Optional[float] = Field(
        default=None,
        ge=0,
        description="Explicit target balance; derived from desired income when absent",
    )

    @property
    def horizon_years(self) -> int:
        """Number of annual periods until the target age."""
        return self.target_age - self.current_age

    @property
    def annual_contribution(self) -> float:
        """Annual contribution including the employer match."""
        return self.monthly_contribution * 12 * (1 + self.employer_match_percent / 100)


class Debt(BaseModel):
    """A single debt account."""

    model_config = VALUE_OBJECT_CONFIG

    id: str = Field(..., min_length=1, description="Stable debt identifier")
    name: str = Field(..., min_length=1, description="Display name")
    balance: float = Field(..., ge=0, description="Outstanding balance")
    annual_rate: float = Field(
        ..., ge=0, le=100, description="Annual interest rate (percent, e.g. 24 for 24%)"
    )
    minimum_payment: float = Field(..., ge=0, description="Minimum monthly payment")

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 100 / 12


class DebtPortfolio(BaseModel):
    """Ordered collection of debts with a fixed monthly repayment budget."""

    model_config = VALUE_OBJECT_CONFIG

    debts: Tuple[Debt, ...] = Field(default=(), description="Debts in input order")
    monthly_budget: float = Field(
        ..., ge=0, description="Total monthly amount available for debt payments"
    )

    @field_validator("debts")
    @classmethod
    def validate_unique_ids(cls, v: Tuple[Debt, ...]) -> Tuple[Debt, ...]:
        ids = [debt.id for debt in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Debt ids must be unique")
        return v

    @property
    def total_balance(self) -> float:
        return sum(debt.balance for debt in self.debts)

    @property
    def total_minimum_payments(self) -> float:
        """Sum of minimum payments over debts that still carry a balance."""
        return sum(debt.minimum_payment for debt in self.debts if debt.balance > 0)


class ProbabilityClass(str, Enum):
    """Qualitative likelihood of a scenario event."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ScenarioImpact(BaseModel):
    """Financial impact of a scenario event."""

    model_config = VALUE_OBJECT_CONFIG

    income_change_percent: float = Field(
        default=0.0, ge=-100, description="Income change while active (percent)"
    )
    expense_change_percent: float = Field(
        default=0.0, ge=-100, description="Expense change while active (percent)"
    )
    one_time_cost: float = Field(
        default=0.0, ge=0, description="Cost charged once in the activation period"
    )
    duration_months: int = Field(
        default=0, ge=0, le=600, description="Months the income/expense change lasts"
    )


class ScenarioEvent(BaseModel):
    """A discrete shock applied to a projection."""

    model_config = VALUE_OBJECT_CONFIG

    name: str = Field(..., min_length=1, description="Event name")
    description: str = Field(default="", description="Event description")
    probability: ProbabilityClass = Field(
        default=ProbabilityClass.MEDIUM, description="Likelihood class"
    )
    impact: ScenarioImpact = Field(..., description="Financial impact")
    enabled: bool = Field(default=True, description="Whether the event is evaluated")
    activation_period: int = Field(
        default=DEFAULT_ACTIVATION_PERIOD,
        ge=1,
        description="Projection period (year) in which the event starts",
    )


ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], data: Any) -> ModelT:
    if isinstance(data, model):
        return data
    if not isinstance(data, Mapping):
        raise InvalidInputError(
            f"{model.__name__} input must be a mapping, got {type(data).__name__}"
        )
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {model.__name__}: {e}") from e


def parse_profile(data: Any) -> FinancialProfile:
    """Validate raw input into a FinancialProfile, raising InvalidInputError."""
    return _parse(FinancialProfile, data)


def parse_portfolio(data: Any) -> DebtPortfolio:
    """Validate raw input into a DebtPortfolio, raising InvalidInputError."""
    return _parse(DebtPortfolio, data)


def parse_event(data: Any) -> ScenarioEvent:
    """Validate raw input into a ScenarioEvent, raising InvalidInputError."""
    return _parse(ScenarioEvent, data)
