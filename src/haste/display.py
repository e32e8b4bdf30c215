"""Terminal display formatting for datums and comparisons.

Produces plain aligned tables; colors are added with ``click.style``
after padding so escape codes never disturb the column widths.
"""

from __future__ import annotations

from typing import Sequence

import click

from haste.diff import DiffReport, Significance
from haste.store import DatumStore

_SUMMARY_COLORS: dict[Significance, str] = {
    Significance.FASTER: "green",
    Significance.SLOWER: "red",
    Significance.INDISTINGUISHABLE: "magenta",
}

NO_COMMENT = "(no comment)"


# ---------------------------------------------------------------------------
# Table formatting utilities
# ---------------------------------------------------------------------------


def format_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    alignments: Sequence[str] | None = None,
    colors: Sequence[Sequence[str | None]] | None = None,
    indent: int = 1,
) -> str:
    """Format rows as an aligned text table without borders.

    Args:
        headers: Column header strings.
        rows: List of rows, each a sequence of cell strings.
        alignments: Per-column alignment, ``'l'`` or ``'r'``.
        colors: Per-row, per-cell foreground color names (or None).
        indent: Number of leading spaces per line.

    Returns:
        The formatted table as a string.
    """
    if not headers:
        return ""

    ncols = len(headers)
    aligns = list(alignments or [])
    aligns += ["l"] * (ncols - len(aligns))

    widths = [len(h) for h in headers]
    for row in rows:
        for ci, cell in enumerate(row[:ncols]):
            widths[ci] = max(widths[ci], len(cell))

    def _format_cell(text: str, width: int, align: str) -> str:
        if align == "r":
            return text.rjust(width)
        return text.ljust(width)

    prefix = " " * indent
    header_line = "  ".join(_format_cell(h, widths[i], aligns[i]) for i, h in enumerate(headers))
    lines = [(prefix + header_line).rstrip()]

    for ri, row in enumerate(rows):
        cells: list[str] = []
        for ci in range(ncols):
            text = _format_cell(row[ci] if ci < len(row) else "", widths[ci], aligns[ci])
            color = colors[ri][ci] if colors and ci < len(colors[ri]) else None
            cells.append(click.style(text, fg=color) if color else text)
        lines.append((prefix + "  ".join(cells)).rstrip())

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Comparison display
# ---------------------------------------------------------------------------


def format_diff_report(report: DiffReport) -> str:
    """Format a DiffReport for terminal display.

    Shows the datum comments (if either datum has one), the confidence
    level, and the comparison table.
    """
    lines: list[str] = []

    if report.has_comments:
        lines.append(f"Datum{report.id_a}: {_comment_text(report.comment_a)}")
        lines.append(f"Datum{report.id_b}: {_comment_text(report.comment_b)}")
        lines.append("")

    lines.append(report.title)
    lines.append("")

    colors = [[None, None, None, None, _SUMMARY_COLORS[row.tag]] for row in report.rows]
    lines.append(
        format_table(
            report.headers,
            [row.cells() for row in report.rows],
            alignments=["l", "r", "r", "r", "l"],
            colors=colors,
        )
    )

    return "\n".join(lines)


def _comment_text(comment: str | None) -> str:
    return NO_COMMENT if comment is None else comment


# ---------------------------------------------------------------------------
# Datum listing
# ---------------------------------------------------------------------------


def format_datum_list(store: DatumStore) -> str:
    """One line per datum, ascending by ID: ``"  3: comment"``."""
    lines = []
    for datum_id in sorted(store.list_ids()):
        comment = store.load_comment(datum_id) or ""
        lines.append(f"{datum_id:3}: {comment}".rstrip())
    return "\n".join(lines)
