"""Summary statistics for benchmark timings.

Reduces the per-repetition wall times of a benchmark to a mean and a
confidence interval half-width, and decides whether two such summaries
are distinguishable by checking whether their intervals overlap.

The interval is the normal approximation ``z * s / sqrt(n)`` where ``s``
is the Bessel-corrected sample standard deviation and ``z`` is the
two-tailed critical value for the chosen confidence level.
"""

from __future__ import annotations

import enum
import math
import statistics
from dataclasses import dataclass
from typing import Mapping, Sequence


# ---------------------------------------------------------------------------
# Confidence levels
# ---------------------------------------------------------------------------


class ConfidenceLevel(enum.Enum):
    """Supported confidence levels, valued by their percentage."""

    CL90 = 90
    CL95 = 95
    CL99 = 99

    @property
    def zval(self) -> float:
        """Two-tailed critical value of the standard normal distribution."""
        return _Z_VALUES[self]

    @property
    def percent(self) -> int:
        return self.value

    @classmethod
    def default(cls) -> ConfidenceLevel:
        return cls.CL99

    @classmethod
    def from_percent(cls, percent: int | str) -> ConfidenceLevel:
        """Look up a level from ``90``, ``"95"``, etc.

        Raises:
            ValueError: If *percent* is not a supported level.
        """
        try:
            return cls(int(percent))
        except ValueError:
            valid = ", ".join(str(level.value) for level in cls)
            raise ValueError(
                f"Unsupported confidence level: {percent!r} (choose from {valid})"
            ) from None


_Z_VALUES: dict[ConfidenceLevel, float] = {
    ConfidenceLevel.CL90: 1.645,
    ConfidenceLevel.CL95: 1.96,
    ConfidenceLevel.CL99: 2.576,
}


# ---------------------------------------------------------------------------
# SummaryStats
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SummaryStats:
    """Mean of a sample and the half-width of its confidence interval."""

    mean: float
    ci: float

    @property
    def lower(self) -> float:
        return self.mean - self.ci

    @property
    def upper(self) -> float:
        return self.mean + self.ci

    def ci_overlaps(self, other: SummaryStats) -> bool:
        """True if the two confidence intervals share at least one point."""
        return self.lower <= other.upper and other.lower <= self.upper


def summarise(
    samples: Sequence[float],
    confidence: ConfidenceLevel = ConfidenceLevel.CL99,
) -> SummaryStats:
    """Summarise one benchmark's samples.

    Args:
        samples: Wall times in milliseconds, one per repetition.
        confidence: Confidence level for the interval.

    Returns:
        SummaryStats with the arithmetic mean and interval half-width.
        A single sample has a half-width of exactly 0.

    Raises:
        ValueError: If *samples* is empty.
    """
    if not samples:
        raise ValueError("Cannot summarise an empty sample")

    n = len(samples)
    mean = statistics.fmean(samples)

    if n > 1:
        variance = sum((x - mean) ** 2 for x in samples) / (n - 1)
        ci = confidence.zval * math.sqrt(variance) / math.sqrt(n)
    else:
        ci = 0.0

    return SummaryStats(mean=mean, ci=ci)


def summarise_results(
    data: Mapping[str, Sequence[float]],
    confidence: ConfidenceLevel = ConfidenceLevel.CL99,
) -> dict[str, SummaryStats]:
    """Summarise every benchmark key of a result mapping."""
    return {key: summarise(samples, confidence) for key, samples in data.items()}
