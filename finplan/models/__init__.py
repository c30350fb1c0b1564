"""Simulation core: value objects, projection, debt payoff and stress testing."""

from .debt_metrics import DebtMetrics, summarize_portfolio
from .debt_payoff import (
    DEFAULT_SAFETY_CAP_PERIODS,
    DebtPayoff,
    DebtPayoffSimulator,
    PayoffPeriod,
    PayoffStrategy,
    StrategyOutcome,
)
from .profile import (
    Debt,
    DebtPortfolio,
    FinancialProfile,
    ProbabilityClass,
    ScenarioEvent,
    ScenarioImpact,
    parse_event,
    parse_portfolio,
    parse_profile,
)
from .projection_engine import (
    PeriodAdjustment,
    ProjectionEngine,
    ProjectionSnapshot,
    RetirementNeeds,
)
from .strategy_comparison import (
    RankedOutcome,
    StrategyComparator,
    StrategyComparison,
    StrategyDelta,
)
from .stress_testing import (
    DEFAULT_TRIALS,
    DEFAULT_VOLATILITY,
    MonteCarloResult,
    ScenarioStressTester,
    ScenarioSummary,
    SimulationTrial,
    StressLevel,
    default_scenario_events,
)

__all__ = [
    "FinancialProfile",
    "Debt",
    "DebtPortfolio",
    "ProbabilityClass",
    "ScenarioEvent",
    "ScenarioImpact",
    "parse_profile",
    "parse_portfolio",
    "parse_event",
    "ProjectionEngine",
    "ProjectionSnapshot",
    "PeriodAdjustment",
    "RetirementNeeds",
    "DEFAULT_SAFETY_CAP_PERIODS",
    "DebtPayoffSimulator",
    "DebtPayoff",
    "PayoffPeriod",
    "PayoffStrategy",
    "StrategyOutcome",
    "DebtMetrics",
    "summarize_portfolio",
    "DEFAULT_TRIALS",
    "DEFAULT_VOLATILITY",
    "ScenarioStressTester",
    "ScenarioSummary",
    "SimulationTrial",
    "MonteCarloResult",
    "StressLevel",
    "default_scenario_events",
    "StrategyComparator",
    "RankedOutcome",
    "StrategyComparison",
    "StrategyDelta",
]
