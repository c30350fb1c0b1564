"""
Stress testing for savings projections.

This module re-runs the projection engine under discrete scenario events
(job loss, recession, health emergency, ...) and under randomized returns
(Monte Carlo), summarizing how far each outcome falls from the baseline and
from the retirement target.
"""

import logging
import math
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field

from finplan.exceptions import InvalidInputError

from .profile import (
    VALUE_OBJECT_CONFIG,
    FinancialProfile,
    ProbabilityClass,
    ScenarioEvent,
    ScenarioImpact,
    parse_event,
)
from .projection_engine import PeriodAdjustment, ProjectionEngine, ProjectionSnapshot
from .protocols import RandomSource

logger = logging.getLogger(__name__)

DEFAULT_TRIALS = 1000
DEFAULT_VOLATILITY = 0.15

# Upper bounds (absolute savings impact, percent) for each stress level
LOW_STRESS_LIMIT = 5.0
MEDIUM_STRESS_LIMIT = 15.0
HIGH_STRESS_LIMIT = 30.0

# An impact above 10% delays retirement by one year per 5% of impact
RETIREMENT_DELAY_THRESHOLD = 10.0
RETIREMENT_DELAY_STEP = 5.0

LOWER_PERCENTILE = 0.10
MEDIAN_PERCENTILE = 0.50
UPPER_PERCENTILE = 0.90

MONTHS_PER_PERIOD = 12


class StressLevel(str, Enum):
    """Severity of a scenario's impact on terminal savings."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ScenarioSummary(BaseModel):
    """Impact of one scenario event compared with the baseline projection."""

    model_config = VALUE_OBJECT_CONFIG

    scenario_name: str = Field(..., description="Scenario event name")
    probability: ProbabilityClass = Field(..., description="Likelihood class")
    baseline_terminal_balance: float = Field(..., ge=0)
    scenario_terminal_balance: float = Field(..., ge=0)
    savings_impact_percent: float = Field(
        ..., description="Change in terminal balance relative to baseline (percent)"
    )
    stress_level: StressLevel = Field(..., description="Severity classification")
    goal_achievement_probability: float = Field(
        ..., ge=0, le=100, description="Chance of reaching the goal (percent)"
    )
    retirement_impact_years: int = Field(
        ..., ge=0, description="Estimated retirement delay in years"
    )
    projection: Tuple[ProjectionSnapshot, ...] = Field(
        ..., description="Projection under the scenario"
    )


class SimulationTrial(BaseModel):
    """One Monte Carlo run."""

    model_config = VALUE_OBJECT_CONFIG

    index: int = Field(..., ge=0, description="Trial number in run order")
    nominal_return: float = Field(..., description="Sampled nominal return")
    terminal_balance: float = Field(..., ge=0, description="Balance at target age")


class MonteCarloResult(BaseModel):
    """Distribution of terminal balances across Monte Carlo trials."""

    model_config = VALUE_OBJECT_CONFIG

    trials: Tuple[SimulationTrial, ...] = Field(..., description="Trials in run order")
    volatility: float = Field(..., ge=0, description="Half-width of the return band")
    target: float = Field(..., ge=0, description="Balance counted as success")
    success_probability: float = Field(
        ..., ge=0, le=100, description="Percent of trials reaching the target"
    )
    median_outcome: float = Field(..., ge=0)
    percentile_10: float = Field(..., ge=0)
    percentile_90: float = Field(..., ge=0)
    mean_outcome: float = Field(..., ge=0)

    def sorted_trials(self) -> List[SimulationTrial]:
        """Trials by ascending terminal balance; ties keep run order."""
        return sorted(self.trials, key=lambda t: (t.terminal_balance, t.index))


def classify_stress(savings_impact_percent: float) -> StressLevel:
    """Classify a savings impact by its absolute size."""
    magnitude = abs(savings_impact_percent)
    if magnitude < LOW_STRESS_LIMIT:
        return StressLevel.LOW
    if magnitude < MEDIUM_STRESS_LIMIT:
        return StressLevel.MEDIUM
    if magnitude < HIGH_STRESS_LIMIT:
        return StressLevel.HIGH
    return StressLevel.CRITICAL


def estimate_retirement_delay(savings_impact_percent: float) -> int:
    """Estimate retirement delay in years: one year per 5% of impact above 10%."""
    magnitude = abs(savings_impact_percent)
    if magnitude <= RETIREMENT_DELAY_THRESHOLD:
        return 0
    return int(math.floor(magnitude / RETIREMENT_DELAY_STEP + 0.5))


def percentile_index(count: int, level: float) -> int:
    """Index into a sorted sample of ``count`` values for a percentile level."""
    return min(count - 1, int(count * level))


def build_adjustments(event: ScenarioEvent, horizon: int) -> Dict[int, PeriodAdjustment]:
    """
    Translate a scenario event into per-period projection adjustments.

    The income and expense changes apply from the activation period for
    ``duration_months``, pro-rata to the months covered in each year. The
    one-time cost is charged in the activation period.

    Args:
        event: Scenario event
        horizon: Number of projection periods

    Returns:
        Adjustments keyed by period (periods past the horizon are dropped)
    """
    impact = event.impact
    income_change = impact.income_change_percent / 100
    expense_change = impact.expense_change_percent / 100

    adjustments: Dict[int, PeriodAdjustment] = {}
    covered_periods = math.ceil(impact.duration_months / MONTHS_PER_PERIOD)
    for offset in range(max(1, covered_periods)):
        period = event.activation_period + offset
        if period > horizon:
            break
        months = min(
            MONTHS_PER_PERIOD,
            max(0, impact.duration_months - offset * MONTHS_PER_PERIOD),
        )
        share = months / MONTHS_PER_PERIOD
        adjustments[period] = PeriodAdjustment(
            income_factor=1 + income_change * share,
            expense_factor=1 + expense_change * share,
            one_time_cost=impact.one_time_cost if offset == 0 else 0.0,
        )
    return adjustments


class ScenarioStressTester:
    """Runs scenario and Monte Carlo stress tests against a projection."""

    def __init__(self, engine: Optional[ProjectionEngine] = None):
        """Initialize the stress tester.

        Args:
            engine: Projection engine used for every re-run
        """
        self.engine = engine or ProjectionEngine()

    def evaluate(
        self, profile: FinancialProfile, events: Sequence[ScenarioEvent]
    ) -> List[ScenarioSummary]:
        """
        Evaluate each enabled scenario event against the baseline projection.

        Args:
            profile: Financial profile
            events: Scenario events; disabled events are skipped

        Returns:
            One summary per enabled event, in input order
        """
        baseline = self.engine.project(profile)
        baseline_terminal = baseline[-1].balance

        summaries = []
        for event in (parse_event(e) for e in events):
            if not event.enabled:
                continue

            adjustments = build_adjustments(event, profile.horizon_years)
            projection = self.engine.project(profile, adjustments)
            scenario_terminal = projection[-1].balance
            impact = self._savings_impact(baseline_terminal, scenario_terminal)

            summaries.append(
                ScenarioSummary(
                    scenario_name=event.name,
                    probability=event.probability,
                    baseline_terminal_balance=baseline_terminal,
                    scenario_terminal_balance=scenario_terminal,
                    savings_impact_percent=impact,
                    stress_level=classify_stress(impact),
                    goal_achievement_probability=min(100.0, max(0.0, 100 + impact)),
                    retirement_impact_years=estimate_retirement_delay(impact),
                    projection=tuple(projection),
                )
            )
            logger.debug(f"Scenario {event.name}: savings impact {impact:.2f}%")

        return summaries

    def run_monte_carlo(
        self,
        profile: FinancialProfile,
        trials: int = DEFAULT_TRIALS,
        volatility: float = DEFAULT_VOLATILITY,
        rng: Optional[RandomSource] = None,
        seed: Optional[int] = None,
        target: Optional[float] = None,
    ) -> MonteCarloResult:
        """
        Run Monte Carlo trials with randomized nominal returns.

        Each trial samples a return uniformly within ``volatility`` of the
        profile's nominal return and re-runs the projection.

        Args:
            profile: Financial profile
            trials: Number of trials
            volatility: Half-width of the uniform return band (decimal)
            rng: Random source; a fresh generator seeded with ``seed`` when None
            seed: Seed used only when ``rng`` is None
            target: Success threshold; the profile's retirement target when None

        Returns:
            MonteCarloResult with success probability and percentiles
        """
        self.engine.validate_profile(profile)
        self._validate_monte_carlo(profile, trials, volatility, target)
        if rng is None:
            rng = np.random.default_rng(seed)
        if target is None:
            target = self.engine.target_balance(profile)

        results = []
        for index in range(trials):
            nominal = profile.nominal_return + float(rng.uniform(-volatility, volatility))
            terminal = self.engine.terminal_balance(profile, nominal_return=nominal)
            results.append(
                SimulationTrial(
                    index=index, nominal_return=nominal, terminal_balance=terminal
                )
            )

        terminal_balances = np.array([t.terminal_balance for t in results])
        ordered = terminal_balances[np.argsort(terminal_balances, kind="stable")]
        successes = int(np.count_nonzero(terminal_balances >= target))

        result = MonteCarloResult(
            trials=tuple(results),
            volatility=volatility,
            target=target,
            success_probability=successes / trials * 100,
            median_outcome=float(ordered[percentile_index(trials, MEDIAN_PERCENTILE)]),
            percentile_10=float(ordered[percentile_index(trials, LOWER_PERCENTILE)]),
            percentile_90=float(ordered[percentile_index(trials, UPPER_PERCENTILE)]),
            mean_outcome=float(np.mean(terminal_balances)),
        )
        logger.debug(
            f"Monte Carlo: {trials} trials, success {result.success_probability:.1f}%, "
            f"median {result.median_outcome:.2f}"
        )
        return result

    @staticmethod
    def _savings_impact(baseline_terminal: float, scenario_terminal: float) -> float:
        if baseline_terminal > 0:
            return (scenario_terminal - baseline_terminal) / baseline_terminal * 100
        # No baseline savings to lose
        return 100.0 if scenario_terminal > 0 else 0.0

    @staticmethod
    def _validate_monte_carlo(
        profile: FinancialProfile,
        trials: int,
        volatility: float,
        target: Optional[float],
    ) -> None:
        if isinstance(trials, bool) or not isinstance(trials, int) or trials < 1:
            raise InvalidInputError(f"Trials must be a positive integer, got {trials!r}")
        if not isinstance(volatility, (int, float)) or not math.isfinite(volatility):
            raise InvalidInputError(f"Volatility must be finite, got {volatility!r}")
        if volatility < 0:
            raise InvalidInputError(f"Volatility must be non-negative, got {volatility}")
        if profile.nominal_return - volatility <= -1:
            raise InvalidInputError(
                f"Volatility {volatility} allows returns at or below -100% "
                f"around nominal return {profile.nominal_return}"
            )
        if target is not None and (not math.isfinite(target) or target < 0):
            raise InvalidInputError(
                f"Target must be finite and non-negative, got {target}"
            )


def default_scenario_events() -> List[ScenarioEvent]:
    """Create the stock set of life events used for stress testing."""
    return [
        ScenarioEvent(
            name="Job Loss",
            description="Temporary unemployment period",
            probability=ProbabilityClass.MEDIUM,
            impact=ScenarioImpact(
                income_change_percent=-100,
                expense_change_percent=-20,
                one_time_cost=0,
                duration_months=6,
            ),
        ),
        ScenarioEvent(
            name="Economic Recession",
            description="Market downturn affecting investments and income",
            probability=ProbabilityClass.MEDIUM,
            impact=ScenarioImpact(
                income_change_percent=-15,
                expense_change_percent=0,
                one_time_cost=0,
                duration_months=18,
            ),
        ),
        ScenarioEvent(
            name="Health Emergency",
            description="Major medical expense not covered by insurance",
            probability=ProbabilityClass.LOW,
            impact=ScenarioImpact(
                income_change_percent=-30,
                expense_change_percent=50,
                one_time_cost=75000,
                duration_months=12,
            ),
        ),
        ScenarioEvent(
            name="Home Major Repair",
            description="Significant home maintenance or repair costs",
            probability=ProbabilityClass.HIGH,
            impact=ScenarioImpact(one_time_cost=25000, duration_months=1),
        ),
        ScenarioEvent(
            name="Career Change",
            description="Voluntary career transition with temporary income reduction",
            probability=ProbabilityClass.MEDIUM,
            impact=ScenarioImpact(
                income_change_percent=-40,
                expense_change_percent=0,
                one_time_cost=15000,
                duration_months=12,
            ),
            enabled=False,
        ),
        ScenarioEvent(
            name="Market Crash",
            description="Severe market decline affecting investment portfolio",
            probability=ProbabilityClass.LOW,
            impact=ScenarioImpact(duration_months=24),
            enabled=False,
        ),
    ]
