"""Benchmark configuration loading and validation.

Handles:
- Loading the benchmark matrix from a YAML file (``haste.yaml``).
- Rejecting unknown keys so typos do not silently change a run.
- Validating the final configuration before any benchmark executes.

Config format::

    proc_execs: 5          # process executions per benchmark
    inproc_iters: 100      # passed to the harness as-is
    executors:
      sh: /bin/sh
    suites:
      example:
        dir: example
        harness: harness.sh
        env:
          FOO: "1"
        benchmarks:
          bigloop:
            extra_args: ["1000"]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger("haste")

DEFAULT_CONFIG_FILE = Path("haste.yaml")


class ConfigError(ValueError):
    """The configuration file is unreadable, malformed, or invalid."""


# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class Benchmark:
    """One benchmark inside a suite."""

    name: str
    extra_args: list[str] = field(default_factory=list)


@dataclass
class Suite:
    """A group of benchmarks sharing a harness and working directory."""

    name: str
    dir: Path
    harness: str
    env: dict[str, str] = field(default_factory=dict)
    benchmarks: dict[str, Benchmark] = field(default_factory=dict)


@dataclass
class HasteConfig:
    """Resolved configuration for a benchmark run."""

    proc_execs: int
    inproc_iters: int
    executors: dict[str, Path] = field(default_factory=dict)
    suites: dict[str, Suite] = field(default_factory=dict)

    @property
    def total_proc_execs(self) -> int:
        """Process executions needed to run the whole matrix once."""
        n_benchmarks = sum(len(suite.benchmarks) for suite in self.suites.values())
        return n_benchmarks * len(self.executors) * self.proc_execs


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: HasteConfig) -> list[ValidationError]:
    """Validate a benchmark configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.proc_execs < 1:
        errors.append(
            ValidationError(
                field="proc_execs",
                message=f"Need at least 1 process execution (got {config.proc_execs}).",
            )
        )

    if config.inproc_iters < 1:
        errors.append(
            ValidationError(
                field="inproc_iters",
                message=f"Need at least 1 in-process iteration (got {config.inproc_iters}).",
            )
        )

    if not config.executors:
        errors.append(ValidationError(field="executors", message="No executors defined."))

    for name, path in config.executors.items():
        if not name or not name.strip():
            errors.append(
                ValidationError(field="executors", message="Executor names must be non-empty.")
            )
        if path.is_absolute() and not path.exists():
            errors.append(
                ValidationError(
                    field=f"executors.{name}",
                    message=f"Executor '{name}' does not exist: {path}",
                    severity="warning",
                )
            )

    if not config.suites:
        errors.append(ValidationError(field="suites", message="No suites defined."))

    for name, suite in config.suites.items():
        if not suite.benchmarks:
            errors.append(
                ValidationError(
                    field=f"suites.{name}.benchmarks",
                    message=f"Suite '{name}' has no benchmarks.",
                )
            )
        if not suite.harness:
            errors.append(
                ValidationError(
                    field=f"suites.{name}.harness",
                    message=f"Suite '{name}' has no harness.",
                )
            )
        if not suite.dir.is_dir():
            errors.append(
                ValidationError(
                    field=f"suites.{name}.dir",
                    message=f"Directory for suite '{name}' does not exist: {suite.dir}",
                    severity="warning",
                )
            )

    return errors


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


_CONFIG_KEYS = {"proc_execs", "inproc_iters", "executors", "suites"}
_SUITE_KEYS = {"dir", "harness", "env", "benchmarks"}
_BENCHMARK_KEYS = {"extra_args"}


def load_config(config_path: Path) -> HasteConfig:
    """Load, parse and validate a configuration file.

    Validation warnings are logged; errors are fatal.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or
            fails validation.
    """
    try:
        text = config_path.read_text()
    except OSError as exc:
        raise ConfigError(f"failed to read {config_path}: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"unable to parse {config_path}: {exc}") from exc

    try:
        config = config_from_dict(data)
    except ValueError as exc:
        raise ConfigError(f"unable to parse {config_path}: {exc}") from exc

    errors = validate_config(config)
    for w in errors:
        if w.severity == "warning":
            log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in errors if e.severity == "error"]
    if fatal:
        messages = [f"  {e.field}: {e.message}" for e in fatal]
        raise ConfigError(f"invalid configuration in {config_path}:\n" + "\n".join(messages))

    log.debug(
        "Loaded %s: %d executors, %d suites, %d process executions in total",
        config_path,
        len(config.executors),
        len(config.suites),
        config.total_proc_execs,
    )
    return config


def config_from_dict(data: Any) -> HasteConfig:
    """Build a HasteConfig from parsed YAML.

    Raises:
        ValueError: On missing or unknown keys and wrongly typed values.
    """
    _check_mapping(data, "configuration", _CONFIG_KEYS)
    for required in ("proc_execs", "inproc_iters", "executors", "suites"):
        if required not in data:
            raise ValueError(f"missing field '{required}'")

    config = HasteConfig(
        proc_execs=_as_int(data["proc_execs"], "proc_execs"),
        inproc_iters=_as_int(data["inproc_iters"], "inproc_iters"),
    )

    executors = data["executors"]
    _check_mapping(executors, "executors")
    for name, path in executors.items():
        if not isinstance(path, str):
            raise ValueError(f"executor '{name}' must be a path string")
        config.executors[str(name)] = Path(path)

    suites = data["suites"]
    _check_mapping(suites, "suites")
    for name, suite_data in suites.items():
        config.suites[str(name)] = _suite_from_dict(str(name), suite_data)

    return config


def _suite_from_dict(name: str, data: Any) -> Suite:
    where = f"suite '{name}'"
    _check_mapping(data, where, _SUITE_KEYS)
    for required in ("dir", "harness", "benchmarks"):
        if required not in data:
            raise ValueError(f"{where}: missing field '{required}'")

    env = data.get("env") or {}
    _check_mapping(env, f"{where} env")
    for key, value in env.items():
        if not isinstance(value, str):
            raise ValueError(
                f"{where}: env value for '{key}' must be a string, got {type(value).__name__}"
            )

    suite = Suite(
        name=name,
        dir=Path(str(data["dir"])),
        harness=str(data["harness"]),
        env={str(k): v for k, v in env.items()},
    )

    benchmarks = data["benchmarks"]
    _check_mapping(benchmarks, f"{where} benchmarks")
    for bench_name, bench_data in benchmarks.items():
        bench_where = f"benchmark '{bench_name}' in {where}"
        if bench_data is None:
            bench_data = {}
        _check_mapping(bench_data, bench_where, _BENCHMARK_KEYS)
        extra_args = bench_data.get("extra_args") or []
        if not isinstance(extra_args, list) or not all(isinstance(a, str) for a in extra_args):
            raise ValueError(f"{bench_where}: extra_args must be a list of strings")
        suite.benchmarks[str(bench_name)] = Benchmark(
            name=str(bench_name),
            extra_args=list(extra_args),
        )

    return suite


def _check_mapping(data: Any, where: str, allowed: set[str] | None = None) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"{where} must be a mapping, got {type(data).__name__}")
    if allowed is not None:
        unknown = sorted(str(k) for k in data if k not in allowed)
        if unknown:
            raise ValueError(f"unknown field(s) in {where}: {', '.join(unknown)}")


def _as_int(value: Any, name: str) -> int:
    # bool is an int subclass; "proc_execs: yes" is a mistake.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{name}' must be an integer, got {value!r}")
    return value
