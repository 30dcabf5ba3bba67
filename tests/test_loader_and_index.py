from pathlib import Path
import tempfile
import unittest

import numpy as np

from napal.core.batch import LoadedBatch
from napal.core.errors import LoadError, TimestampParseError
from napal.core.model import MetricRuleSet
from napal.loaders.extract import extract_columns
from napal.loaders.timeseries import load_batch, load_timeseries

FMT = "%m/%d/%Y %H:%M:%S.%f"


def _csv(path: Path, header: list[str], rows: list[list[str]]) -> Path:
    lines = [",".join(header)] + [",".join(r) for r in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _times(n: int, start_sec: int = 10) -> list[str]:
    return [f"05/02/2020 15:30:{start_sec + i:02d}.000" for i in range(n)]


class TimeSeriesLoaderTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_lengths_match_after_extraction_and_load(self):
        times = _times(5)
        raw = _csv(self.tmp / "raw.csv", ["Time", "CPU_Usage", "CPU_Kernel", "Memory"],
                   [[t, str(i), str(i * 2), "7"] for i, t in enumerate(times)])
        table = extract_columns(raw, self.tmp / "raw.altered.csv", MetricRuleSet(wanted=("CPU",)))
        fts = load_timeseries(table.path, FMT, display_name="raw.csv")

        self.assertEqual("raw.csv", fts.file_name)
        self.assertEqual({"CPU_Usage", "CPU_Kernel"}, set(fts.metrics))
        for values in fts.metrics.values():
            self.assertEqual(len(fts.timestamps), len(values))
        np.testing.assert_allclose([0, 2, 4, 6, 8], fts.metrics["CPU_Kernel"])

    def test_time_column_is_not_a_metric(self):
        path = _csv(self.tmp / "t.csv", ["Time", "A"], [[t, "1"] for t in _times(2)])
        fts = load_timeseries(path, FMT)
        self.assertNotIn("Time", fts.metrics)
        self.assertEqual(2, len(fts.timestamps))

    def test_non_numeric_cell_defaults_to_zero(self):
        path = _csv(self.tmp / "d.csv", ["Time", "CPU_Usage"],
                    [[t, v] for t, v in zip(_times(3), ["10", "n/a", "30"])])
        fts = load_timeseries(path, FMT)

        np.testing.assert_allclose([10.0, 0.0, 30.0], fts.metrics["CPU_Usage"])
        self.assertEqual({"CPU_Usage": 1}, fts.defaulted_cells)

    def test_empty_cell_defaults_to_zero(self):
        path = _csv(self.tmp / "e.csv", ["Time", "A", "B"],
                    [[_times(1)[0], "", "2"]])
        fts = load_timeseries(path, FMT)
        self.assertEqual(0.0, fts.metrics["A"][0])
        self.assertEqual(2.0, fts.metrics["B"][0])

    def test_bad_timestamp_is_fatal_and_names_the_file(self):
        path = _csv(self.tmp / "bad_time.csv", ["Time", "A"],
                    [[_times(1)[0], "1"], ["yesterday", "2"]])
        with self.assertRaises(TimestampParseError) as ctx:
            load_timeseries(path, FMT)
        self.assertIn("bad_time.csv", str(ctx.exception))
        self.assertIn("yesterday", str(ctx.exception))

    def test_blank_time_cell_is_fatal(self):
        path = self.tmp / "blank_time.csv"
        path.write_text("Time,A\n" + "".join(f"{t},1\n" for t in _times(2)) + ",3\n", encoding="utf-8")
        with self.assertRaises(TimestampParseError) as ctx:
            load_timeseries(path, FMT)
        self.assertIn("blank_time.csv", str(ctx.exception))
        self.assertIn("row 4", str(ctx.exception))

    def test_nat_text_in_time_column_is_fatal(self):
        path = _csv(self.tmp / "nat.csv", ["Time", "A"], [[_times(1)[0], "1"], ["NaT", "2"]])
        with self.assertRaises(TimestampParseError) as ctx:
            load_timeseries(path, FMT)
        self.assertIn("'NaT'", str(ctx.exception))

    def test_custom_time_format(self):
        path = _csv(self.tmp / "iso.csv", ["ts", "A"],
                    [["2021-05-18 10:10:10", "1"], ["2021-05-18 10:10:20", "2"]])
        fts = load_timeseries(path, "%Y-%m-%d %H:%M:%S")
        self.assertEqual(10, (fts.timestamps.iloc[1] - fts.timestamps.iloc[0]).total_seconds())

    def test_duplicate_metric_keeps_first_column(self):
        path = _csv(self.tmp / "dup.csv", ["Time", "A", "A"], [[_times(1)[0], "1", "2"]])
        fts = load_timeseries(path, FMT)
        self.assertEqual([1.0], fts.metrics["A"].tolist())

    def test_missing_file_is_load_error(self):
        with self.assertRaises(LoadError):
            load_timeseries(self.tmp / "missing.altered.csv", FMT)

    def test_load_batch_keeps_input_order(self):
        p1 = _csv(self.tmp / "b1.csv", ["Time", "A"], [[t, "1"] for t in _times(2)])
        p2 = _csv(self.tmp / "b2.csv", ["Time", "B"], [[t, "2"] for t in _times(3)])
        batch = load_batch([p2, p1], FMT, ["second", "first"], workers=1)
        self.assertEqual(["second", "first"], [f.file_name for f in batch])


class MetricIndexTests(unittest.TestCase):
    def _batch(self):
        tmp = self._tmp = tempfile.TemporaryDirectory()
        base = Path(tmp.name)
        t = _times(2)
        p1 = _csv(base / "a.csv", ["Time", "CPU", "Mem"], [[x, "1", "2"] for x in t])
        p2 = _csv(base / "b.csv", ["Time", "Disk"], [[x, "3"] for x in t])
        p3 = _csv(base / "c.csv", ["Time", "CPU"], [[x, "4"] for x in t])
        return LoadedBatch(tuple(load_timeseries(p, FMT) for p in (p1, p2, p3)))

    def tearDown(self):
        if hasattr(self, "_tmp"):
            self._tmp.cleanup()

    def test_distinct_metrics_is_union_of_keys(self):
        batch = self._batch()
        union = set()
        for f in batch:
            union |= set(f.metrics)
        self.assertEqual(union, batch.distinct_metrics())
        self.assertEqual({"CPU", "Mem", "Disk"}, batch.distinct_metrics())

    def test_files_containing_is_exact_subset_in_batch_order(self):
        batch = self._batch()
        for metric in batch.distinct_metrics():
            expected = [f for f in batch.files if metric in f.metrics]
            got = batch.files_containing(metric)
            self.assertEqual([f.file_name for f in expected], [f.file_name for f in got])
            for a, b in zip(expected, got):
                self.assertIs(a, b)
        self.assertEqual(["a.csv", "c.csv"], [f.file_name for f in batch.files_containing("CPU")])
        self.assertEqual([], batch.files_containing("Nope"))


if __name__ == "__main__":
    unittest.main()
