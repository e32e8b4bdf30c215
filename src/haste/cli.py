"""Command-line interface for haste.

Subcommands (each with a one-letter alias):
    haste bench (b)   Run the configured benchmarks and store a new datum
    haste diff  (d)   Compare two datums
    haste list  (l)   List stored datums
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import click

from haste import __version__
from haste.config import DEFAULT_CONFIG_FILE, ConfigError, load_config
from haste.logging import setup_logging
from haste.stats import ConfidenceLevel
from haste.store import DOT_DIR, DatumNotFound, DirectoryStore


class AliasedGroup(click.Group):
    """A group whose commands can also be invoked by a short alias."""

    aliases: dict[str, str] = {"b": "bench", "d": "diff", "l": "list"}

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        _, cmd, rest = super().resolve_command(ctx, args)
        # Report the canonical name so usage/help text is consistent.
        return (cmd.name if cmd else None), cmd, rest


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(1)


@click.group(cls=AliasedGroup)
@click.version_option(version=__version__)
@click.option(
    "-f",
    "--file",
    "config_file",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    metavar="FILE",
    help="Path to the haste configuration file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write DEBUG-level logs to this file.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_file: Path,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """haste — run benchmarks and compare the results statistically."""
    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["store"] = DirectoryStore(Path.cwd() / DOT_DIR)


# ---------------------------------------------------------------------------
# haste bench
# ---------------------------------------------------------------------------


@main.command()
@click.option("-c", "--comment", type=str, default=None, help="Attach a comment to the datum.")
@click.pass_context
def bench(ctx: click.Context, comment: str | None) -> None:
    """Run benchmarks and store the results into a new datum."""
    from haste.runner import BenchmarkFailed, BenchError, BenchRunner, RunProgress

    try:
        config = load_config(ctx.obj["config_file"])
    except ConfigError as exc:
        _fail(str(exc))

    def echo_progress(progress: RunProgress) -> None:
        if progress.phase == "start":
            click.echo(f">>> haste: ({progress.percent:3.0f}%) Running {progress.key}")
        else:
            click.echo(f">>> haste: {progress.wall_time_ms:.0f}ms")

    runner = BenchRunner(config, progress_callback=echo_progress)
    try:
        results = runner.run()
    except BenchmarkFailed as exc:
        click.echo(f"Error: {exc}", err=True)
        click.echo(f"args: {exc.command}", err=True)
        click.echo("--- Begin stdout ---", err=True)
        click.echo(exc.stdout, err=True, nl=False)
        click.echo("--- End stdout ---", err=True)
        click.echo("--- Begin stderr ---", err=True)
        click.echo(exc.stderr, err=True, nl=False)
        click.echo("--- End stderr ---", err=True)
        raise SystemExit(1) from exc
    except BenchError as exc:
        click.echo(f"Error: {exc}", err=True)
        click.echo(f"args: {exc.command}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted; no datum stored.", err=True)
        raise SystemExit(130)  # noqa: B904

    datum_id = ctx.obj["store"].store_datum(results, comment)
    click.echo(f"haste: created datum {datum_id} {comment or ''}".rstrip())


# ---------------------------------------------------------------------------
# haste diff
# ---------------------------------------------------------------------------


@main.command()
@click.argument("id1", type=click.IntRange(min=0))
@click.argument("id2", type=click.IntRange(min=0))
@click.option(
    "-c",
    "--confidence",
    type=click.Choice([str(level.percent) for level in ConfidenceLevel]),
    default=str(ConfidenceLevel.default().percent),
    show_default=True,
    help="Confidence level for the interval.",
)
@click.pass_context
def diff(ctx: click.Context, id1: int, id2: int, confidence: str) -> None:
    """Compare two datums.

    \b
    Examples:
        haste diff 0 1
        haste d 3 4 --confidence 95
    """
    from haste.diff import diff_datums
    from haste.display import format_diff_report
    from haste.results import DimensionMismatch

    store = ctx.obj["store"]
    try:
        results_a = store.load(id1)
        results_b = store.load(id2)
        report = diff_datums(
            results_a,
            results_b,
            ConfidenceLevel.from_percent(confidence),
            id_a=id1,
            id_b=id2,
            comment_a=store.load_comment(id1),
            comment_b=store.load_comment(id2),
        )
    except (DatumNotFound, DimensionMismatch, ValueError) as exc:
        _fail(str(exc))

    click.echo(format_diff_report(report))


# ---------------------------------------------------------------------------
# haste list
# ---------------------------------------------------------------------------


@main.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """List datums."""
    from haste.display import format_datum_list

    try:
        text = format_datum_list(ctx.obj["store"])
    except ValueError as exc:
        _fail(str(exc))

    if text:
        click.echo(text)
