from __future__ import annotations

import argparse
import subprocess
import sys
from typing import NamedTuple, Sequence


class GateStep(NamedTuple):
    name: str
    cmd: Sequence[str]


STEPS: list[GateStep] = [
    GateStep("Pytest (full)", [sys.executable, "-m", "pytest", "-q"]),
    GateStep(
        "Pytest (query scenarios)",
        [sys.executable, "-m", "pytest", "-q", "tests/test_query_executor.py", "tests/test_quality_scorer.py"],
    ),
    GateStep(
        "Pytest (filename conventions)",
        [sys.executable, "-m", "pytest", "-q", "tests/test_filename_conventions.py"],
    ),
    GateStep(
        "Classifier smoke",
        [sys.executable, "-m", "apps.worker.run_query", "--classify-only", "show all patients"],
    ),
]

TAIL_LINES = 80


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the offline quality gate steps in order.")
    parser.add_argument(
        "--continue",
        dest="continue_on_failure",
        action="store_true",
        help="Continue running all steps after a failure.",
    )
    parser.add_argument(
        "--only",
        action="append",
        default=[],
        metavar="TEXT",
        help="Run only steps whose name contains TEXT (repeatable).",
    )
    parser.add_argument("--list", action="store_true", help="Print the step names and exit.")
    return parser.parse_args(argv)


def select_steps(filters: Sequence[str]) -> list[GateStep]:
    if not filters:
        return list(STEPS)
    lowered = [item.lower() for item in filters]
    return [step for step in STEPS if any(item in step.name.lower() for item in lowered)]


def _tail(stdout: str | None, stderr: str | None, max_lines: int = TAIL_LINES) -> str:
    output = "\n".join(part for part in (stdout or "", stderr or "") if part)
    lines = output.splitlines()
    return "\n".join(lines[-max_lines:])


def run_gate(steps: Sequence[GateStep], continue_on_failure: bool = False) -> int:
    results: list[tuple[GateStep, bool]] = []
    for step in steps:
        print(f"Running: {' '.join(step.cmd)}")
        completed = subprocess.run(step.cmd, text=True, capture_output=True)
        ok = completed.returncode == 0
        results.append((step, ok))
        print(f"{'PASS' if ok else 'FAIL'}: {step.name}")
        if ok:
            continue
        tail = _tail(completed.stdout, completed.stderr)
        print(f"Output (last {TAIL_LINES} lines):")
        print(tail if tail.strip() else "(no output)")
        if not continue_on_failure:
            break

    print("Summary:")
    for step, ok in results:
        print(f"- {'PASS' if ok else 'FAIL'}: {step.name}")
    return 0 if results and all(ok for _, ok in results) else 1


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    steps = select_steps(args.only)
    if args.list:
        for step in steps:
            print(step.name)
        return 0
    if not steps:
        print(f"No gate steps match: {', '.join(args.only)}", file=sys.stderr)
        return 2
    return run_gate(steps, continue_on_failure=args.continue_on_failure)


if __name__ == "__main__":
    sys.exit(main())
