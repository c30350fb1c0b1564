"""
Protocol interfaces for collaborators injected into the simulation core.

The core never reaches for ambient state: random numbers come from an injected
source, and natural-language commentary comes from an injected provider whose
output is kept apart from the numeric results.
"""

from typing import Any, Dict, Protocol


class RandomSource(Protocol):
    """
    Source of uniformly distributed random numbers.

    ``numpy.random.Generator`` satisfies this protocol, so
    ``numpy.random.default_rng(seed)`` gives a seedable implementation.
    """

    def uniform(self, low: float, high: float) -> float:
        """
        Draw a sample from the half-open interval [low, high).

        Args:
            low: Lower bound
            high: Upper bound

        Returns:
            Sampled value
        """
        ...


class CommentaryProvider(Protocol):
    """
    Produces natural-language commentary for a plan report.

    Implementations typically call an external text-generation service.
    The commentary annotates the numbers and never replaces them.
    """

    def annotate(self, report: Dict[str, Any]) -> str:
        """
        Generate commentary for a serialized plan report.

        Args:
            report: Plan report as plain data

        Returns:
            Commentary text
        """
        ...
