"""Benchmark result data structures and serialization.

Hierarchy::

    ResultFile (one datum's timings)
      → data: dict[str, list[float]]
        key:   str(BenchKey), e.g. "bigloop/sh/1000"
        value: wall time in milliseconds, one entry per repetition

A ResultFile is filled by the runner, persisted by a DatumStore, and
reduced to SummaryStats when two datums are compared.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from haste.stats import ConfidenceLevel, SummaryStats, summarise_results


# ---------------------------------------------------------------------------
# Benchmark identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchKey:
    """Uniquely identifies a benchmark configuration."""

    benchmark: str
    executor: str
    extra_args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from config/tests but keep the key hashable.
        object.__setattr__(self, "extra_args", tuple(self.extra_args))

    def __str__(self) -> str:
        return f"{self.benchmark}/{self.executor}/{'-'.join(self.extra_args)}"


# ---------------------------------------------------------------------------
# Dimensionality errors
# ---------------------------------------------------------------------------


class DimensionMismatch(ValueError):
    """Two result files cannot be compared benchmark-by-benchmark."""


# ---------------------------------------------------------------------------
# ResultFile
# ---------------------------------------------------------------------------


@dataclass
class ResultFile:
    """Timings for one datum: benchmark key -> per-repetition milliseconds."""

    data: dict[str, list[float]] = field(default_factory=dict)

    def append(self, key: BenchKey | str, elapsed_ms: float) -> None:
        """Record one completed repetition for *key*."""
        self.data.setdefault(str(key), []).append(float(elapsed_ms))

    def keys(self) -> set[str]:
        return set(self.data)

    def summarise(
        self,
        confidence: ConfidenceLevel = ConfidenceLevel.CL99,
    ) -> dict[str, SummaryStats]:
        """Reduce every benchmark to its mean and confidence interval."""
        return summarise_results(self.data, confidence)

    def same_dims(self, other: ResultFile) -> None:
        """Check that *other* ran the same benchmarks the same number of times.

        Each result file is assumed to be consistent on its own.

        Raises:
            DimensionMismatch: If the benchmark sets differ, or a shared
                benchmark has a different number of process executions.
        """
        self_keys = self.keys()
        other_keys = other.keys()
        if self_keys != other_keys:
            details: list[str] = []
            only_self = sorted(self_keys - other_keys)
            only_other = sorted(other_keys - self_keys)
            if only_self:
                details.append(f"only in first: {', '.join(only_self)}")
            if only_other:
                details.append(f"only in second: {', '.join(only_other)}")
            raise DimensionMismatch(
                "results files contain different benchmarks (" + "; ".join(details) + ")"
            )

        for key in sorted(self.data):
            n1 = len(self.data[key])
            n2 = len(other.data[key])
            if n1 != n2:
                raise DimensionMismatch(
                    f"different number of process executions for {key} ({n1} vs {n2})"
                )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {"data": {key: list(samples) for key, samples in self.data.items()}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultFile:
        """Deserialize from a dict.

        Raises:
            ValueError: If the mapping is malformed, a benchmark has no
                samples, or a sample is not a finite number.
        """
        raw = data.get("data", {})
        if not isinstance(raw, dict):
            raise ValueError(f"'data' must be a mapping, got {type(raw).__name__}")

        result = cls()
        for key, samples in raw.items():
            if not isinstance(samples, list) or not samples:
                raise ValueError(f"Benchmark '{key}' has no samples")
            for s in samples:
                if isinstance(s, bool) or not isinstance(s, (int, float)) or not math.isfinite(s):
                    raise ValueError(f"Benchmark '{key}' has an invalid sample: {s!r}")
            result.data[str(key)] = [float(s) for s in samples]
        return result
