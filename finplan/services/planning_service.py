"""
Planning service for running a complete financial plan analysis.

This service coordinates the simulation components to produce a full plan
report: baseline projection, retirement needs, debt payoff strategies and
their ranking, scenario stress tests and a Monte Carlo run.
"""

import logging
from typing import Any, Mapping, Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, ValidationError

from finplan.config import Settings, get_settings
from finplan.exceptions import InvalidInputError
from finplan.models.debt_metrics import DebtMetrics, summarize_portfolio
from finplan.models.debt_payoff import DebtPayoffSimulator, StrategyOutcome
from finplan.models.profile import (
    VALUE_OBJECT_CONFIG,
    DebtPortfolio,
    FinancialProfile,
    ScenarioEvent,
)
from finplan.models.projection_engine import (
    ProjectionEngine,
    ProjectionSnapshot,
    RetirementNeeds,
)
from finplan.models.protocols import CommentaryProvider
from finplan.models.strategy_comparison import StrategyComparator, StrategyComparison
from finplan.models.stress_testing import (
    MonteCarloResult,
    ScenarioStressTester,
    ScenarioSummary,
    default_scenario_events,
)

logger = logging.getLogger(__name__)


class PlanRequest(BaseModel):
    """Validated input for a plan run."""

    model_config = VALUE_OBJECT_CONFIG

    profile: FinancialProfile = Field(..., description="Financial profile")
    portfolio: Optional[DebtPortfolio] = Field(
        default=None, description="Debts to analyze; skipped when absent"
    )
    events: Optional[Tuple[ScenarioEvent, ...]] = Field(
        default=None, description="Scenario events; the stock events when absent"
    )
    monte_carlo_trials: Optional[int] = Field(default=None, ge=1, le=100000)
    monte_carlo_volatility: Optional[float] = Field(default=None, ge=0, lt=1)
    seed: Optional[int] = Field(default=None, ge=0, description="Random seed")


class PlanReport(BaseModel):
    """Results of a plan run in raw base-unit numbers."""

    model_config = VALUE_OBJECT_CONFIG

    baseline_projection: Tuple[ProjectionSnapshot, ...]
    retirement_needs: RetirementNeeds
    debt_metrics: Optional[DebtMetrics] = None
    strategy_outcomes: Tuple[StrategyOutcome, ...] = ()
    strategy_comparison: Optional[StrategyComparison] = None
    scenario_summaries: Tuple[ScenarioSummary, ...] = ()
    monte_carlo: MonteCarloResult
    commentary: Optional[str] = Field(
        default=None, description="Natural-language annotation of the numbers"
    )


class PlanningService:
    """Service for running complete plan analyses."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        commentary_provider: Optional[CommentaryProvider] = None,
    ) -> None:
        """Initialize the planning service.

        Args:
            settings: Simulation settings (loaded from the environment when None)
            commentary_provider: Optional source of natural-language commentary
        """
        self.settings = settings or get_settings()
        self.commentary_provider = commentary_provider
        self.logger = logging.getLogger(__name__)

        self.engine = ProjectionEngine()
        self.debt_simulator = DebtPayoffSimulator(self.settings.safety_cap_periods)
        self.stress_tester = ScenarioStressTester(self.engine)
        self.comparator = StrategyComparator()

    def run_plan(self, request: Union[PlanRequest, Mapping[str, Any]]) -> PlanReport:
        """Run a complete plan analysis.

        Args:
            request: Plan request or its raw mapping form

        Returns:
            PlanReport containing all results

        Raises:
            InvalidInputError: If the request is malformed
        """
        try:
            request = self._parse_request(request)
            self.logger.info(
                f"Starting plan run: horizon {request.profile.horizon_years} years, "
                f"{len(request.portfolio.debts) if request.portfolio else 0} debts"
            )

            baseline = self.engine.project(request.profile)
            needs = self.engine.retirement_needs(request.profile)

            debt_metrics, outcomes, comparison = self._analyze_debts(
                request.profile, request.portfolio
            )

            events = request.events
            if events is None:
                events = tuple(default_scenario_events())
            summaries = self.stress_tester.evaluate(request.profile, events)

            monte_carlo = self._run_monte_carlo(request)

            report = PlanReport(
                baseline_projection=tuple(baseline),
                retirement_needs=needs,
                debt_metrics=debt_metrics,
                strategy_outcomes=tuple(outcomes),
                strategy_comparison=comparison,
                scenario_summaries=tuple(summaries),
                monte_carlo=monte_carlo,
            )
            report = self._annotate(report)

            self.logger.info(
                f"Completed plan run: success probability "
                f"{monte_carlo.success_probability:.1f}%"
            )
            return report

        except Exception as e:
            self.logger.error(f"Plan run failed: {str(e)}")
            raise

    def _parse_request(
        self, request: Union[PlanRequest, Mapping[str, Any]]
    ) -> PlanRequest:
        if isinstance(request, PlanRequest):
            return request
        if not isinstance(request, Mapping):
            raise InvalidInputError(
                f"Plan request must be a mapping, got {type(request).__name__}"
            )
        try:
            return PlanRequest.model_validate(dict(request))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid plan request: {e}") from e

    def _analyze_debts(
        self, profile: FinancialProfile, portfolio: Optional[DebtPortfolio]
    ) -> Tuple[Optional[DebtMetrics], list, Optional[StrategyComparison]]:
        if portfolio is None:
            return None, [], None

        metrics = summarize_portfolio(
            portfolio, monthly_income=profile.annual_income / 12
        )
        outcomes = self.debt_simulator.simulate_all(portfolio)
        comparison = self.comparator.compare(outcomes)
        return metrics, outcomes, comparison

    def _run_monte_carlo(self, request: PlanRequest) -> MonteCarloResult:
        trials = request.monte_carlo_trials or self.settings.monte_carlo_trials
        volatility = request.monte_carlo_volatility
        if volatility is None:
            volatility = self.settings.monte_carlo_volatility
        seed = request.seed if request.seed is not None else self.settings.random_seed

        return self.stress_tester.run_monte_carlo(
            request.profile,
            trials=trials,
            volatility=volatility,
            rng=np.random.default_rng(seed),
        )

    def _annotate(self, report: PlanReport) -> PlanReport:
        if self.commentary_provider is None:
            return report
        try:
            commentary = self.commentary_provider.annotate(report.model_dump(mode="json"))
        except Exception as e:
            # Commentary is optional; the numeric report is returned without it
            self.logger.warning(f"Commentary unavailable: {str(e)}")
            return report
        return report.model_copy(update={"commentary": commentary})
