"""Benchmark execution engine.

Runs the configured matrix strictly in order::

    for executor in config.executors:
        for suite in config.suites:
            for benchmark in suite.benchmarks:
                repeat proc_execs times:
                    <executor> <harness> <benchmark> <inproc_iters> [extra_args...]

Nothing runs in parallel: concurrent benchmarks would compete for the
same CPU, caches and disks and skew each other's timings.  Any failure
aborts the whole run; a partially filled ResultFile is never returned.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from haste.config import Benchmark, HasteConfig, Suite
from haste.results import BenchKey, ResultFile
from haste.timing import run_timed

log = logging.getLogger("haste")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BenchError(Exception):
    """A benchmark process could not be run to successful completion."""

    def __init__(self, message: str, argv: list[str], cwd: Path) -> None:
        super().__init__(message)
        self.argv = argv
        self.cwd = cwd

    @property
    def command(self) -> str:
        return shlex.join(self.argv)


class SpawnError(BenchError):
    """The benchmark process could not be started."""


class BenchmarkFailed(BenchError):
    """The benchmark process exited non-zero."""

    def __init__(
        self,
        message: str,
        argv: list[str],
        cwd: Path,
        *,
        exit_code: int,
        stdout: str,
        stderr: str,
    ) -> None:
        super().__init__(message, argv, cwd)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


# ---------------------------------------------------------------------------
# Progress callback
# ---------------------------------------------------------------------------


@dataclass
class RunProgress:
    """Progress info passed to the callback."""

    phase: str  # "start" before a process execution, "done" after it
    key: BenchKey
    completed: int  # process executions finished so far
    total: int
    wall_time_ms: float = 0.0

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return self.completed / self.total * 100


ProgressCallback = Callable[[RunProgress], None]


# ---------------------------------------------------------------------------
# BenchRunner
# ---------------------------------------------------------------------------


class BenchRunner:
    """Executes every benchmark of a HasteConfig.

    Usage::

        runner = BenchRunner(load_config(Path("haste.yaml")))
        results = runner.run()
    """

    def __init__(
        self,
        config: HasteConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.progress: ProgressCallback = progress_callback or self._default_progress

    def run(self) -> ResultFile:
        """Run the whole matrix.

        Returns:
            A ResultFile holding one sample per process execution.

        Raises:
            SpawnError: If a benchmark process cannot be started.
            BenchmarkFailed: If a benchmark process exits non-zero.
        """
        results = ResultFile()
        total = self.config.total_proc_execs
        completed = 0
        log.info("Running %d process executions", total)

        for executor_name, executor in self.config.executors.items():
            for suite in self.config.suites.values():
                for bench in suite.benchmarks.values():
                    key = BenchKey(
                        benchmark=bench.name,
                        executor=executor_name,
                        extra_args=tuple(bench.extra_args),
                    )
                    for _ in range(self.config.proc_execs):
                        self.progress(RunProgress("start", key, completed, total))
                        elapsed = self._run_benchmark(executor, suite, bench)
                        results.append(key, elapsed)
                        completed += 1
                        self.progress(RunProgress("done", key, completed, total, elapsed))

        return results

    def build_argv(self, executor: Path, suite: Suite, bench: Benchmark) -> list[str]:
        """The command line for one process execution of *bench*."""
        return [
            str(executor),
            suite.harness,
            bench.name,
            str(self.config.inproc_iters),
            *bench.extra_args,
        ]

    def _run_benchmark(self, executor: Path, suite: Suite, bench: Benchmark) -> float:
        """Execute a single timed process execution, returning milliseconds."""
        argv = self.build_argv(executor, suite, bench)

        try:
            timed = run_timed(argv, cwd=suite.dir, env=suite.env)
        except OSError as exc:
            raise SpawnError(
                f"failed to spawn benchmark: {exc}",
                argv,
                suite.dir,
            ) from exc

        if not timed.ok:
            raise BenchmarkFailed(
                f"benchmark command exited non-zero (exit {timed.exit_code})",
                argv,
                suite.dir,
                exit_code=timed.exit_code,
                stdout=timed.stdout,
                stderr=timed.stderr,
            )

        return timed.wall_time_ms

    @staticmethod
    def _default_progress(progress: RunProgress) -> None:
        """Default progress callback: log it."""
        if progress.phase == "start":
            log.info("(%3.0f%%) Running %s", progress.percent, progress.key)
        else:
            log.info("%.0fms", progress.wall_time_ms)
