from pathlib import Path
import tempfile
import unittest

from napal.core.errors import ExtractionError
from napal.core.model import MetricRuleSet
from napal.core.statistics import metric_key
from napal.loaders.extract import extract_columns
from napal.utils.parallel import run_all


class RunAllTests(unittest.TestCase):
    def test_results_keep_task_order_across_processes(self):
        names = [f"metric {i}" for i in range(12)]
        got = run_all(metric_key, [(n,) for n in names], max_workers=2)
        self.assertEqual([f"metric_{i}" for i in range(12)], got)

    def test_failure_in_a_worker_is_reraised_with_its_type(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            rules = MetricRuleSet(wanted=("CPU",))
            tasks = []
            for i in range(4):
                raw = tmp / f"ok{i}.csv"
                raw.write_text("Time,CPU\n05/02/2020 15:30:10.000,1\n", encoding="utf-8")
                tasks.append((raw, tmp / f"ok{i}.altered.csv", rules))
            tasks.insert(2, (tmp / "missing.csv", tmp / "missing.altered.csv", rules))

            with self.assertRaises(ExtractionError) as ctx:
                run_all(extract_columns, tasks, max_workers=2, label="extraction")
            self.assertIn("missing.csv", str(ctx.exception))

    def test_no_tasks(self):
        self.assertEqual([], run_all(metric_key, [], max_workers=2))


if __name__ == "__main__":
    unittest.main()
