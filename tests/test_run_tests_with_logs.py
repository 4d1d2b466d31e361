import tempfile
import unittest
from datetime import datetime
from pathlib import Path

import run_tests_with_logs as runner


class TestRunTestsWithLogs(unittest.TestCase):
    def test_failure_log_name_carries_timestamp(self):
        path = runner._failure_log_path(Path("tests") / "testlogs", datetime(2026, 2, 8, 13, 45, 7))
        self.assertEqual(
            path.name,
            "diagram_test_failures_20260208_134507.txt",
            "Failure log filename format mismatch. "
            "Fix: use diagram_test_failures_YYYYMMDD_HHMMSS.txt naming.",
        )

    def test_report_is_written_under_a_new_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_dir = Path(tmp) / "nested" / "testlogs"
            path = runner._write_failure_report(log_dir, "report body", datetime(2026, 2, 8, 13, 45, 7))
            self.assertTrue(path.exists(), "Fix: create the log directory before writing the report.")
            self.assertEqual(path.read_text(encoding="utf-8"), "report body")

    def test_report_lists_summary_failed_ids_and_output(self):
        class _Boom(unittest.TestCase):
            def test_fails(self):
                self.fail("boom")

        result = unittest.TestResult()
        _Boom("test_fails").run(result)

        report = runner._build_failure_report(result, "captured runner output")
        self.assertIn("Summary: ran=1, failures=1, errors=0", report)
        self.assertIn("Failed tests:", report)
        self.assertIn("_Boom.test_fails", report)
        self.assertIn("[FAIL]", report)
        self.assertIn("AssertionError: boom", report)
        self.assertIn("Fix hint:", report)
        self.assertTrue(report.rstrip().endswith("captured runner output"))

    def test_parse_args_defaults(self):
        args = runner._parse_args([])
        self.assertEqual(args.pattern, "test_*.py")
        self.assertEqual(Path(args.log_dir), runner.DEFAULT_LOG_DIR)

    def test_errors_are_listed_separately_from_failures(self):
        class _Broken(unittest.TestCase):
            def test_raises(self):
                raise KeyError("missing node")

        result = unittest.TestResult()
        _Broken("test_raises").run(result)

        rows = runner._failed_tests(result)
        self.assertEqual(len(rows), 1)
        kind, test_id, reason = rows[0]
        self.assertEqual(kind, "ERROR")
        self.assertTrue(test_id.endswith("_Broken.test_raises"))
        self.assertIn("KeyError", reason)


if __name__ == "__main__":
    unittest.main()
