"""Timing capture for benchmark process executions.

Measures the wall-clock time of a subprocess from just before it is
spawned until it has exited and its output has been fully drained.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger("haste")


@dataclass
class TimedResult:
    """Result of a timed subprocess execution."""

    wall_time_ms: float  # whole milliseconds, truncated
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def run_timed(
    argv: list[str],
    *,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
) -> TimedResult:
    """Execute *argv* and measure its wall-clock time.

    Output is collected with ``communicate()`` before the exit status is
    looked at, so a benchmark that writes a lot cannot block on a full
    pipe.  There is no timeout.

    Args:
        argv: Program and arguments; no shell is involved.
        cwd: Working directory for the subprocess.
        env: Variables layered over the current environment.

    Returns:
        TimedResult with the elapsed time and captured output.

    Raises:
        OSError: If the program cannot be spawned.
    """
    run_env = dict(os.environ)
    if env:
        run_env.update(env)

    log.debug("Running %s (cwd=%s)", shlex.join(argv), cwd or ".")

    wall_start = time.monotonic()
    proc = subprocess.Popen(
        argv,
        cwd=str(cwd) if cwd else None,
        env=run_env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )
    stdout, stderr = proc.communicate()
    wall_time = time.monotonic() - wall_start

    return TimedResult(
        wall_time_ms=float(int(wall_time * 1000)),
        exit_code=proc.returncode,
        stdout=stdout,
        stderr=stderr,
    )
