"""Error types raised by the simulation core."""


class InvalidInputError(ValueError):
    """Raised when a profile, portfolio or parameter is malformed, missing or non-finite.

    Degraded-but-valid outcomes (non-convergent payoff, insufficient budget,
    negative amortization) are reported as flags on result objects instead.
    """
