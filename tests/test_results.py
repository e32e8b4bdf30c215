"""Tests for haste.results — BenchKey, ResultFile and dimensionality checks."""

from __future__ import annotations

import unittest

from haste_test_helpers import make_results

from haste.results import BenchKey, DimensionMismatch, ResultFile
from haste.stats import ConfidenceLevel


class TestBenchKey(unittest.TestCase):
    def test_str_without_args(self) -> None:
        self.assertEqual(str(BenchKey("bench", "exec")), "bench/exec/")

    def test_str_with_args(self) -> None:
        self.assertEqual(str(BenchKey("bigloop", "sh", ("1000", "x"))), "bigloop/sh/1000-x")

    def test_equality_is_order_sensitive(self) -> None:
        self.assertEqual(BenchKey("b", "e", ("1", "2")), BenchKey("b", "e", ("1", "2")))
        self.assertNotEqual(BenchKey("b", "e", ("1", "2")), BenchKey("b", "e", ("2", "1")))
        self.assertNotEqual(BenchKey("b", "e1"), BenchKey("b", "e2"))

    def test_list_args_are_hashable(self) -> None:
        k = BenchKey("b", "e", ["1"])  # type: ignore[arg-type]
        self.assertEqual(k.extra_args, ("1",))
        self.assertEqual({k: 1}[BenchKey("b", "e", ("1",))], 1)

    def test_immutable(self) -> None:
        k = BenchKey("b", "e")
        with self.assertRaises(AttributeError):
            k.benchmark = "other"  # type: ignore[misc]


class TestResultFile(unittest.TestCase):
    def test_append_creates_and_extends(self) -> None:
        r = ResultFile()
        k = BenchKey("bench", "exec")
        r.append(k, 10)
        r.append(k, 12)
        self.assertEqual(r.data, {"bench/exec/": [10.0, 12.0]})

    def test_summarise(self) -> None:
        r = make_results({"a/e/": [100.0, 110.0, 120.0], "b/e/": [5.0]})
        stats = r.summarise(ConfidenceLevel.CL95)
        self.assertAlmostEqual(stats["a/e/"].mean, 110.0)
        self.assertEqual(stats["b/e/"].ci, 0.0)

    def test_summarise_does_not_mutate(self) -> None:
        r = make_results({"a/e/": [3.0, 1.0, 2.0]})
        r.summarise()
        self.assertEqual(r.data, {"a/e/": [3.0, 1.0, 2.0]})

    def test_to_from_dict(self) -> None:
        r = make_results({"a/e/": [1.0, 2.0], "b/e/x": [3.0]})
        self.assertEqual(ResultFile.from_dict(r.to_dict()), r)

    def test_from_dict_rejects_empty_samples(self) -> None:
        with self.assertRaises(ValueError) as cm:
            ResultFile.from_dict({"data": {"a/e/": []}})
        self.assertIn("a/e/", str(cm.exception))

    def test_from_dict_rejects_non_numeric(self) -> None:
        with self.assertRaises(ValueError):
            ResultFile.from_dict({"data": {"a/e/": ["fast"]}})

    def test_from_dict_rejects_bools_strings_and_non_finite(self) -> None:
        for bad in (True, "1.5", float("nan"), float("inf"), None):
            with self.subTest(sample=bad):
                with self.assertRaises(ValueError) as cm:
                    ResultFile.from_dict({"data": {"a/e/": [1.0, bad]}})
                self.assertIn("a/e/", str(cm.exception))

    def test_from_dict_accepts_ints(self) -> None:
        r = ResultFile.from_dict({"data": {"a/e/": [3, 4.5]}})
        self.assertEqual(r.data, {"a/e/": [3.0, 4.5]})

    def test_from_dict_rejects_non_mapping(self) -> None:
        with self.assertRaises(ValueError):
            ResultFile.from_dict({"data": [1, 2]})


class TestSameDims(unittest.TestCase):
    def test_same_dims_ok(self) -> None:
        a = make_results({"a/e/": [1.0, 2.0], "b/e/": [3.0]})
        b = make_results({"a/e/": [5.0, 6.0], "b/e/": [7.0]})
        a.same_dims(b)
        b.same_dims(a)

    def test_disjoint_benchmarks(self) -> None:
        a = make_results({"a/e/": [1.0]})
        b = make_results({"b/e/": [1.0]})
        with self.assertRaises(DimensionMismatch) as cm:
            a.same_dims(b)
        msg = str(cm.exception)
        self.assertIn("different benchmarks", msg)
        self.assertIn("a/e/", msg)
        self.assertIn("b/e/", msg)

    def test_subset_benchmarks(self) -> None:
        a = make_results({"a/e/": [1.0], "b/e/": [1.0]})
        b = make_results({"a/e/": [1.0]})
        with self.assertRaises(DimensionMismatch) as cm:
            a.same_dims(b)
        self.assertIn("only in first: b/e/", str(cm.exception))

    def test_different_proc_execs(self) -> None:
        a = make_results({"bench/exec/": [1.0, 2.0, 3.0]})
        b = make_results({"bench/exec/": [1.0, 2.0]})
        with self.assertRaises(DimensionMismatch) as cm:
            a.same_dims(b)
        msg = str(cm.exception)
        self.assertIn("different number of process executions for bench/exec/", msg)
        self.assertIn("3 vs 2", msg)

    def test_mismatch_is_value_error(self) -> None:
        self.assertTrue(issubclass(DimensionMismatch, ValueError))
