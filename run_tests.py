#!/usr/bin/env python
"""Run the host-monitor test suite.

Examples::

    python run_tests.py --platform darwin
    python run_tests.py --skip-platform windows --coverage
    python run_tests.py tests/test_parsers.py -k disk
"""
from __future__ import annotations

import argparse
import subprocess
import sys

PLATFORM_MARKERS = ("windows", "linux", "darwin")


def marker_expression(args: argparse.Namespace) -> str | None:
    clauses = []
    if args.platform:
        clauses.append(args.platform)
    for name in args.skip_platform:
        clauses.append(f"not {name}")
    if args.integration:
        clauses.append("integration")
    return " and ".join(clauses) or None


def build_command(args: argparse.Namespace) -> list[str]:
    cmd = [sys.executable, "-m", "pytest"]
    if args.verbose:
        cmd.append("-v")
    if args.exitfirst:
        cmd.append("-x")
    markers = marker_expression(args)
    if markers:
        cmd.extend(["-m", markers])
    if args.keyword:
        cmd.extend(["-k", args.keyword])
    if args.coverage:
        cmd.extend(["--cov=host_monitor", "--cov-report=term-missing"])
    cmd.extend(args.paths or ["tests"])
    return cmd


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run host-monitor tests")
    parser.add_argument("paths", nargs="*", help="Test files or directories (default: tests)")
    parser.add_argument("--platform", choices=PLATFORM_MARKERS,
                        help="Only tests marked for this platform family")
    parser.add_argument("--skip-platform", action="append", default=[],
                        choices=PLATFORM_MARKERS, metavar="NAME",
                        help="Exclude tests marked for a platform family (repeatable)")
    parser.add_argument("--integration", action="store_true", help="Only integration tests")
    parser.add_argument("-k", "--keyword", help="pytest -k expression")
    parser.add_argument("-x", "--exitfirst", action="store_true", help="Stop on first failure")
    parser.add_argument("--coverage", action="store_true", help="Report coverage of host_monitor")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--install", action="store_true",
                        help="pip install -e .[test] before running")
    args = parser.parse_args(argv)

    if args.install:
        install = subprocess.run(
            [sys.executable, "-m", "pip", "install", "-e", ".[test]"], check=False
        )
        if install.returncode != 0:
            print("Installing test dependencies failed", file=sys.stderr)
            return install.returncode

    cmd = build_command(args)
    print("Running:", " ".join(cmd))
    return subprocess.run(cmd, check=False).returncode


if __name__ == "__main__":
    sys.exit(main())
