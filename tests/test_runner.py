"""Tests for haste.runner — benchmark execution engine."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from haste_test_helpers import make_config, write_script

from haste.results import BenchKey
from haste.runner import (
    BenchError,
    BenchmarkFailed,
    BenchRunner,
    RunProgress,
    SpawnError,
)
from haste.store import MemoryStore
from haste.timing import TimedResult

# Logs every invocation's arguments, environment and working directory.
_RECORDING_HARNESS = """\
echo "$* | $HASTE_SUITE_VAR | $(pwd)" >> calls.log
echo "running $1"
"""

# Fails on the second invocation, after writing some diagnostics.
_FLAKY_HARNESS = """\
n=$(cat count 2>/dev/null || echo 0)
n=$((n + 1))
echo $n > count
if [ "$n" -eq 2 ]; then
    echo "partial output"
    echo "something broke" >&2
    exit 3
fi
"""


def _ok(ms: float = 10.0) -> TimedResult:
    return TimedResult(wall_time_ms=ms, exit_code=0, stdout="", stderr="")


class _TmpDirCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.suite_dir = Path(self._tmp.name)


# ---------------------------------------------------------------------------
# RunProgress
# ---------------------------------------------------------------------------


class TestRunProgress(unittest.TestCase):
    def test_percent(self) -> None:
        p = RunProgress("start", BenchKey("b", "e"), completed=3, total=12)
        self.assertEqual(p.percent, 25.0)

    def test_percent_empty_matrix(self) -> None:
        p = RunProgress("start", BenchKey("b", "e"), completed=0, total=0)
        self.assertEqual(p.percent, 100.0)


# ---------------------------------------------------------------------------
# Real subprocess runs
# ---------------------------------------------------------------------------


class TestRunWithHarness(_TmpDirCase):
    def test_run_records_every_repetition(self) -> None:
        (self.suite_dir / "harness.sh").write_text(_RECORDING_HARNESS)
        config = make_config(
            self.suite_dir,
            benchmarks={"bigloop": ["1000"], "other": []},
            proc_execs=2,
            inproc_iters=7,
            env={"HASTE_SUITE_VAR": "from-suite"},
        )
        results = BenchRunner(config, progress_callback=lambda p: None).run()

        self.assertEqual(set(results.data), {"bigloop/sh/1000", "other/sh/"})
        for samples in results.data.values():
            self.assertEqual(len(samples), 2)
            self.assertTrue(all(s >= 0 and s == int(s) for s in samples))

        calls = (self.suite_dir / "calls.log").read_text().splitlines()
        self.assertEqual(len(calls), 4)
        args, env_value, cwd = (part.strip() for part in calls[0].split("|"))
        self.assertEqual(args, "bigloop 7 1000")
        self.assertEqual(env_value, "from-suite")
        self.assertEqual(Path(cwd).resolve(), self.suite_dir.resolve())
        self.assertEqual(calls[2].split("|")[0].strip(), "other 7")

    def test_executor_receives_harness_first(self) -> None:
        (self.suite_dir / "harness.sh").write_text("exit 0\n")
        executor = write_script(
            self.suite_dir / "exec.sh",
            'echo "$@" >> exec.log\nexec /bin/sh "$@"\n',
        )
        config = make_config(
            self.suite_dir,
            benchmarks={"b": ["x", "y"]},
            executors={"custom": str(executor)},
            proc_execs=1,
        )
        results = BenchRunner(config, progress_callback=lambda p: None).run()
        self.assertEqual(list(results.data), ["b/custom/x-y"])
        self.assertEqual(
            (self.suite_dir / "exec.log").read_text(),
            "harness.sh b 3 x y\n",
        )

    def test_nonzero_exit_aborts_run(self) -> None:
        """Failure on repetition 2 of 5: nothing is returned or stored."""
        (self.suite_dir / "harness.sh").write_text(_FLAKY_HARNESS)
        config = make_config(self.suite_dir, proc_execs=5)
        store = MemoryStore()
        seen: list[RunProgress] = []

        with self.assertRaises(BenchmarkFailed) as cm:
            results = BenchRunner(config, progress_callback=seen.append).run()
            store.store_datum(results)

        exc = cm.exception
        self.assertEqual(exc.exit_code, 3)
        self.assertEqual(exc.stdout, "partial output\n")
        self.assertEqual(exc.stderr, "something broke\n")
        self.assertEqual(exc.argv, ["/bin/sh", "harness.sh", "bigloop", "3"])
        self.assertEqual(exc.command, "/bin/sh harness.sh bigloop 3")
        self.assertIn("exit 3", str(exc))
        self.assertEqual(store.list_ids(), set())
        # One repetition completed before the failure; no more were attempted.
        self.assertEqual([p.phase for p in seen], ["start", "done", "start"])
        self.assertEqual((self.suite_dir / "count").read_text().strip(), "2")

    def test_spawn_failure(self) -> None:
        config = make_config(self.suite_dir, executors={"ghost": "/nonexistent/ghost"})
        with self.assertRaises(SpawnError) as cm:
            BenchRunner(config, progress_callback=lambda p: None).run()
        self.assertIsInstance(cm.exception, BenchError)
        self.assertIn("failed to spawn", str(cm.exception))
        self.assertEqual(cm.exception.argv[0], "/nonexistent/ghost")


# ---------------------------------------------------------------------------
# Scheduling and progress (subprocess mocked)
# ---------------------------------------------------------------------------


class TestScheduling(_TmpDirCase):
    @patch("haste.runner.run_timed")
    def test_matrix_order(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = [_ok(float(i)) for i in range(8)]
        config = make_config(
            self.suite_dir,
            benchmarks={"a": [], "b": ["1"]},
            executors={"x": "/bin/x", "y": "/bin/y"},
            proc_execs=2,
        )
        results = BenchRunner(config, progress_callback=lambda p: None).run()

        argvs = [c.args[0][:3] for c in mock_run.call_args_list]
        self.assertEqual(
            argvs,
            [
                ["/bin/x", "harness.sh", "a"],
                ["/bin/x", "harness.sh", "a"],
                ["/bin/x", "harness.sh", "b"],
                ["/bin/x", "harness.sh", "b"],
                ["/bin/y", "harness.sh", "a"],
                ["/bin/y", "harness.sh", "a"],
                ["/bin/y", "harness.sh", "b"],
                ["/bin/y", "harness.sh", "b"],
            ],
        )
        # Samples are appended in execution order.
        self.assertEqual(results.data["a/x/"], [0.0, 1.0])
        self.assertEqual(results.data["b/x/1"], [2.0, 3.0])
        self.assertEqual(results.data["a/y/"], [4.0, 5.0])
        self.assertEqual(results.data["b/y/1"], [6.0, 7.0])

    @patch("haste.runner.run_timed")
    def test_run_timed_arguments(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _ok()
        config = make_config(self.suite_dir, env={"K": "V"}, proc_execs=1)
        BenchRunner(config, progress_callback=lambda p: None).run()
        mock_run.assert_called_once_with(
            ["/bin/sh", "harness.sh", "bigloop", "3"],
            cwd=self.suite_dir,
            env={"K": "V"},
        )

    @patch("haste.runner.run_timed")
    def test_progress_percentages(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _ok(12.0)
        config = make_config(self.suite_dir, benchmarks={"a": [], "b": []}, proc_execs=2)
        seen: list[RunProgress] = []
        BenchRunner(config, progress_callback=seen.append).run()

        starts = [p for p in seen if p.phase == "start"]
        dones = [p for p in seen if p.phase == "done"]
        self.assertEqual([p.percent for p in starts], [0.0, 25.0, 50.0, 75.0])
        self.assertEqual([p.total for p in starts], [4, 4, 4, 4])
        self.assertEqual([str(p.key) for p in starts], ["a/sh/", "a/sh/", "b/sh/", "b/sh/"])
        self.assertEqual([p.wall_time_ms for p in dones], [12.0] * 4)
        self.assertEqual(dones[-1].percent, 100.0)

    @patch("haste.runner.run_timed")
    def test_progress_is_per_run(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _ok()
        config = make_config(self.suite_dir, proc_execs=1)
        seen: list[RunProgress] = []
        runner = BenchRunner(config, progress_callback=seen.append)
        runner.run()
        runner.run()
        self.assertEqual([p.completed for p in seen if p.phase == "start"], [0, 0])

    @patch("haste.runner.run_timed")
    def test_default_progress_logs(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _ok(42.0)
        config = make_config(self.suite_dir, proc_execs=1)
        with self.assertLogs("haste", level="INFO") as logs:
            BenchRunner(config).run()
        output = "\n".join(logs.output)
        self.assertIn("Running bigloop/sh/", output)
        self.assertIn("42ms", output)

    def test_build_argv(self) -> None:
        config = make_config(self.suite_dir, benchmarks={"b": ["--fast", "2"]}, inproc_iters=9)
        suite = config.suites["suite"]
        argv = BenchRunner(config).build_argv(Path("/usr/bin/exe"), suite, suite.benchmarks["b"])
        self.assertEqual(argv, ["/usr/bin/exe", "harness.sh", "b", "9", "--fast", "2"])
