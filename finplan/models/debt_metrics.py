"""Portfolio-level debt metrics and the debt health score."""

from typing import Optional

from pydantic import BaseModel, Field

from .profile import VALUE_OBJECT_CONFIG, DebtPortfolio

# Debt-to-income thresholds (percent of monthly income) and score penalties
HIGH_DTI_THRESHOLD = 36.0
ELEVATED_DTI_THRESHOLD = 20.0
HIGH_DTI_PENALTY = 30
ELEVATED_DTI_PENALTY = 15

# Weighted average rate thresholds (percent) and score penalties
RATE_PENALTIES = ((20.0, 25), (15.0, 15), (10.0, 10))


class DebtMetrics(BaseModel):
    """Summary of a debt portfolio."""

    model_config = VALUE_OBJECT_CONFIG

    total_debt: float = Field(..., ge=0, description="Sum of balances")
    total_minimum_payments: float = Field(..., ge=0, description="Sum of minimums")
    total_annual_interest: float = Field(
        ..., ge=0, description="One year of interest at current balances"
    )
    weighted_average_rate: float = Field(
        ..., ge=0, description="Balance-weighted annual rate (percent)"
    )
    debt_to_income_ratio: float = Field(
        ..., ge=0, description="Minimum payments as percent of monthly income"
    )
    monthly_budget: float = Field(..., ge=0, description="Monthly repayment budget")
    debt_score: int = Field(..., ge=0, le=100, description="Debt health score")
    debt_level: str = Field(..., description="Debt health level")


def get_debt_level(score: int) -> str:
    """Map a debt score to its health level."""
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Poor"


def calculate_debt_score(
    debt_to_income_ratio: float, weighted_average_rate: float
) -> int:
    """
    Score debt health from 0 to 100 (higher is better).

    Args:
        debt_to_income_ratio: Minimum payments as percent of monthly income
        weighted_average_rate: Balance-weighted annual rate (percent)

    Returns:
        Debt score
    """
    score = 100
    if debt_to_income_ratio > HIGH_DTI_THRESHOLD:
        score -= HIGH_DTI_PENALTY
    elif debt_to_income_ratio > ELEVATED_DTI_THRESHOLD:
        score -= ELEVATED_DTI_PENALTY

    for threshold, penalty in RATE_PENALTIES:
        if weighted_average_rate > threshold:
            score -= penalty
            break

    return max(0, score)


def summarize_portfolio(
    portfolio: DebtPortfolio, monthly_income: Optional[float] = None
) -> DebtMetrics:
    """
    Summarize a debt portfolio.

    Args:
        portfolio: Debts and monthly budget
        monthly_income: Gross monthly income; the ratio is 0 when unknown

    Returns:
        DebtMetrics for the portfolio
    """
    total_debt = portfolio.total_balance
    total_minimums = sum(debt.minimum_payment for debt in portfolio.debts)
    total_annual_interest = sum(
        debt.balance * debt.annual_rate / 100 for debt in portfolio.debts
    )

    if total_debt > 0:
        weighted_rate = (
            sum(debt.balance * debt.annual_rate for debt in portfolio.debts) / total_debt
        )
    else:
        weighted_rate = 0.0

    if monthly_income is not None and monthly_income > 0:
        dti = total_minimums / monthly_income * 100
    else:
        dti = 0.0

    score = calculate_debt_score(dti, weighted_rate)
    return DebtMetrics(
        total_debt=total_debt,
        total_minimum_payments=total_minimums,
        total_annual_interest=total_annual_interest,
        weighted_average_rate=weighted_rate,
        debt_to_income_ratio=dti,
        monthly_budget=portfolio.monthly_budget,
        debt_score=score,
        debt_level=get_debt_level(score),
    )
