from __future__ import annotations

import argparse
import io
import sys
import unittest
from datetime import datetime
from pathlib import Path

DEFAULT_LOG_DIR = Path("tests") / "testlogs"
LOG_PREFIX = "diagram_test_failures"


def _failure_log_path(log_dir: Path, now: datetime | None = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"{LOG_PREFIX}_{stamp}.txt"


def _last_line(trace: str) -> str:
    lines = [line for line in str(trace).splitlines() if line.strip()]
    return lines[-1].strip() if lines else "(no traceback)"


def _failed_tests(result: unittest.result.TestResult) -> list[tuple[str, str, str]]:
    """Return (kind, test id, final traceback line) for every failure and error."""
    rows: list[tuple[str, str, str]] = []
    for kind, entries in (("FAIL", result.failures), ("ERROR", result.errors)):
        for test, trace in entries:
            test_id = test.id() if hasattr(test, "id") else str(test)
            rows.append((kind, test_id, _last_line(trace)))
    return rows


def _build_failure_report(result: unittest.result.TestResult, test_output: str) -> str:
    failed = _failed_tests(result)
    header = [
        f"Diagram suite run at {datetime.now().isoformat(timespec='seconds')}",
        f"Summary: ran={result.testsRun}, failures={len(result.failures)}, errors={len(result.errors)}",
    ]
    if failed:
        header.append("Failed tests:")
        header.extend(f"  [{kind}] {test_id}: {reason}" for kind, test_id, reason in failed)
    header.append("Fix hint: start with the first failed test above, then rerun run_tests_with_logs.py.")
    return "\n".join([*header, "", test_output.rstrip(), ""])


def _write_failure_report(log_dir: Path, content: str, now: datetime | None = None) -> Path:
    path = _failure_log_path(log_dir, now)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(content)
    return path


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the diagram test suite and log failures.")
    parser.add_argument("--pattern", default="test_*.py", help="unittest discovery pattern")
    parser.add_argument("--log-dir", default=str(DEFAULT_LOG_DIR), help="where failure reports are written")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    suite = unittest.TestLoader().discover(start_dir="tests", pattern=args.pattern)

    captured = io.StringIO()
    result = unittest.TextTestRunner(stream=captured, verbosity=2).run(suite)
    sys.stdout.write(captured.getvalue())

    if result.wasSuccessful():
        print(f"{result.testsRun} diagram tests passed; no failure log written.")
        return 0

    log_path = _write_failure_report(Path(args.log_dir), _build_failure_report(result, captured.getvalue()))
    print(f"{len(_failed_tests(result))} diagram test(s) failed. Report: {log_path}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
