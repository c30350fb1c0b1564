"""Financial projection core: retirement projections, debt payoff and stress testing."""

from finplan.exceptions import InvalidInputError

__version__ = "0.1.0"

__all__ = ["InvalidInputError", "__version__"]
