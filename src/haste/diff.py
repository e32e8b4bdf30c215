"""Datum comparison analysis.

Compares two datums benchmark-by-benchmark.  A change is reported as
significant when the confidence intervals of the two means do not
overlap; otherwise the benchmark is "indistinguishable".

Rows come out in report order: significant changes first, then the
indistinguishable ones, each group sorted by signed percentage change so
the biggest improvements lead and the biggest regressions close it.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from haste.results import ResultFile
from haste.stats import ConfidenceLevel, SummaryStats

log = logging.getLogger("haste")


class Significance(enum.Enum):
    FASTER = "faster"
    SLOWER = "slower"
    INDISTINGUISHABLE = "indistinguishable"

    @property
    def significant(self) -> bool:
        return self is not Significance.INDISTINGUISHABLE


# ---------------------------------------------------------------------------
# Column widths
# ---------------------------------------------------------------------------


def compute_width(values: Iterable[float]) -> int:
    """Width of the widest value formatted with no decimals (at least 1)."""
    width = 1
    for v in values:
        width = max(width, len(f"{v:.0f}"))
    return width


@dataclass(frozen=True)
class ColumnWidths:
    mean: int = 1
    ci: int = 1
    ratio: int = 4


# ---------------------------------------------------------------------------
# Rows and report
# ---------------------------------------------------------------------------


@dataclass
class DiffRow:
    """Comparison of one benchmark between two datums."""

    key: str
    before: SummaryStats
    after: SummaryStats
    ratio: float
    percent_change: float
    tag: Significance
    widths: ColumnWidths = field(default_factory=ColumnWidths)

    @property
    def significant(self) -> bool:
        return self.tag.significant

    @property
    def before_text(self) -> str:
        return _format_mean_ci(self.before, self.widths)

    @property
    def after_text(self) -> str:
        return _format_mean_ci(self.after, self.widths)

    @property
    def ratio_text(self) -> str:
        return f"{self.ratio:>{self.widths.ratio}.2f}"

    @property
    def summary(self) -> str:
        if self.tag is Significance.INDISTINGUISHABLE:
            return "indistinguishable"
        return f"{abs(self.percent_change):.2f}% {self.tag.value}"

    def cells(self) -> tuple[str, str, str, str, str]:
        """Display cells: benchmark, before, after, ratio, summary."""
        return (self.key, self.before_text, self.after_text, self.ratio_text, self.summary)


def _format_mean_ci(stats: SummaryStats, widths: ColumnWidths) -> str:
    return f"{stats.mean:{widths.mean}.0f} ±{stats.ci:{widths.ci}.0f}"


@dataclass
class DiffReport:
    """Complete comparison of two datums."""

    confidence: ConfidenceLevel
    id_a: int | None = None
    id_b: int | None = None
    comment_a: str | None = None
    comment_b: str | None = None
    rows: list[DiffRow] = field(default_factory=list)
    widths: ColumnWidths = field(default_factory=ColumnWidths)

    @property
    def title(self) -> str:
        return f"confidence level: {self.confidence.percent}%"

    @property
    def headers(self) -> tuple[str, str, str, str, str]:
        return (
            "Benchmark",
            f"{_datum_label(self.id_a, 'A')} (ms)",
            f"{_datum_label(self.id_b, 'B')} (ms)",
            "Ratio",
            "Summary",
        )

    @property
    def has_comments(self) -> bool:
        return self.comment_a is not None or self.comment_b is not None


def _datum_label(datum_id: int | None, fallback: str) -> str:
    return f"Datum{datum_id}" if datum_id is not None else f"Datum{fallback}"


# ---------------------------------------------------------------------------
# Comparison logic
# ---------------------------------------------------------------------------


def _ratio(before: float, after: float) -> float:
    if before == 0:
        # Sub-millisecond benchmarks can average 0ms after truncation.
        return 1.0 if after == 0 else math.inf
    return after / before


def classify(before: SummaryStats, after: SummaryStats) -> tuple[float, float, Significance]:
    """Ratio, signed percentage change and significance of one benchmark."""
    ratio = _ratio(before.mean, after.mean)
    change = (ratio - 1.0) * 100.0
    if before.ci_overlaps(after):
        return ratio, change, Significance.INDISTINGUISHABLE
    if change < 0:
        return ratio, change, Significance.FASTER
    return ratio, change, Significance.SLOWER


def diff_datums(
    results_a: ResultFile,
    results_b: ResultFile,
    confidence: ConfidenceLevel = ConfidenceLevel.CL99,
    *,
    id_a: int | None = None,
    id_b: int | None = None,
    comment_a: str | None = None,
    comment_b: str | None = None,
) -> DiffReport:
    """Compare two datums.

    Args:
        results_a: Baseline timings.
        results_b: Timings to compare against the baseline.
        confidence: Confidence level for the intervals.
        id_a, id_b: Datum IDs, used for the column headers.
        comment_a, comment_b: Datum comments, passed through for display.

    Returns:
        DiffReport with rows in report order.

    Raises:
        DimensionMismatch: If the datums ran different benchmarks or a
            different number of process executions.
    """
    results_a.same_dims(results_b)

    stats_a = results_a.summarise(confidence)
    stats_b = results_b.summarise(confidence)

    means = [s.mean for s in stats_a.values()] + [s.mean for s in stats_b.values()]
    cis = [s.ci for s in stats_a.values()] + [s.ci for s in stats_b.values()]
    ratios = [_ratio(s.mean, stats_b[k].mean) for k, s in stats_a.items()]
    widths = ColumnWidths(
        mean=compute_width(means),
        ci=compute_width(cis),
        ratio=compute_width(ratios) + 3,
    )

    sig_rows: list[DiffRow] = []
    insig_rows: list[DiffRow] = []
    for key in sorted(stats_a):
        before = stats_a[key]
        after = stats_b[key]
        ratio, change, tag = classify(before, after)
        row = DiffRow(
            key=key,
            before=before,
            after=after,
            ratio=ratio,
            percent_change=change,
            tag=tag,
            widths=widths,
        )
        if tag.significant:
            sig_rows.append(row)
        else:
            insig_rows.append(row)

    sig_rows.sort(key=lambda r: r.percent_change)
    insig_rows.sort(key=lambda r: r.percent_change)
    log.debug(
        "Compared %d benchmarks: %d significant, %d indistinguishable",
        len(stats_a),
        len(sig_rows),
        len(insig_rows),
    )

    return DiffReport(
        confidence=confidence,
        id_a=id_a,
        id_b=id_b,
        comment_a=comment_a,
        comment_b=comment_b,
        rows=sig_rows + insig_rows,
        widths=widths,
    )
