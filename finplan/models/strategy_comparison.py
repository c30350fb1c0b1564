"""
Ranking of debt payoff strategy outcomes.

Rankings are derived from the simulated numbers only, so any strategy added
to the simulator is ranked the same way.
"""

from typing import List, Sequence, Tuple

from pydantic import BaseModel, Field

from finplan.exceptions import InvalidInputError

from .debt_payoff import StrategyOutcome
from .profile import VALUE_OBJECT_CONFIG


class RankedOutcome(BaseModel):
    """A strategy outcome with its rank and its distance from the best."""

    model_config = VALUE_OBJECT_CONFIG

    rank: int = Field(..., ge=0, description="0 = recommended")
    outcome: StrategyOutcome = Field(..., description="Simulated outcome")
    recommended: bool = Field(..., description="Whether this is the top-ranked outcome")
    interest_delta: float = Field(
        ..., description="Extra interest paid compared with the recommendation"
    )
    periods_delta: int = Field(
        ..., description="Extra months compared with the recommendation"
    )


class StrategyDelta(BaseModel):
    """Savings of the recommended strategy over one alternative."""

    model_config = VALUE_OBJECT_CONFIG

    alternative: str = Field(..., description="Alternative strategy name")
    interest_saved: float = Field(..., description="Interest saved by the recommendation")
    periods_saved: int = Field(..., description="Months saved by the recommendation")


class StrategyComparison(BaseModel):
    """Full comparison of strategy outcomes."""

    model_config = VALUE_OBJECT_CONFIG

    recommended: StrategyOutcome = Field(..., description="Top-ranked outcome")
    ranked: Tuple[RankedOutcome, ...] = Field(..., description="All outcomes by rank")
    savings: Tuple[StrategyDelta, ...] = Field(
        ..., description="Savings versus each alternative"
    )


class StrategyComparator:
    """Ranks payoff outcomes by total interest, then payoff time."""

    @staticmethod
    def sort_key(outcome: StrategyOutcome) -> Tuple[float, int]:
        return (outcome.total_interest_paid, outcome.payoff_periods)

    def rank(self, outcomes: Sequence[StrategyOutcome]) -> List[RankedOutcome]:
        """
        Rank strategy outcomes.

        Outcomes are ordered by total interest paid, then by payoff periods;
        equal outcomes keep their input order.

        Args:
            outcomes: Simulated strategy outcomes

        Returns:
            Ranked outcomes, index 0 being the recommendation
        """
        ordered = sorted(outcomes, key=self.sort_key)
        if not ordered:
            return []

        best = ordered[0]
        return [
            RankedOutcome(
                rank=rank,
                outcome=outcome,
                recommended=rank == 0,
                interest_delta=outcome.total_interest_paid - best.total_interest_paid,
                periods_delta=outcome.payoff_periods - best.payoff_periods,
            )
            for rank, outcome in enumerate(ordered)
        ]

    def compare(self, outcomes: Sequence[StrategyOutcome]) -> StrategyComparison:
        """
        Rank outcomes and summarize the recommendation's savings.

        Raises:
            InvalidInputError: If no outcomes are given
        """
        ranked = self.rank(outcomes)
        if not ranked:
            raise InvalidInputError("At least one strategy outcome is required")

        savings = tuple(
            StrategyDelta(
                alternative=entry.outcome.strategy,
                interest_saved=entry.interest_delta,
                periods_saved=entry.periods_delta,
            )
            for entry in ranked[1:]
        )
        return StrategyComparison(
            recommended=ranked[0].outcome, ranked=tuple(ranked), savings=savings
        )
