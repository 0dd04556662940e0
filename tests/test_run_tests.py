"""Tests for the test runner's pytest command line."""
from __future__ import annotations

import sys
from argparse import Namespace

from run_tests import build_command, marker_expression


def runner_args(**overrides):
    values = dict(
        paths=[], platform=None, skip_platform=[], integration=False,
        keyword=None, exitfirst=False, coverage=False, verbose=False,
    )
    values.update(overrides)
    return Namespace(**values)


class TestRunTests:
    def test_defaults(self):
        assert build_command(runner_args()) == [sys.executable, "-m", "pytest", "tests"]

    def test_markers_are_combined(self):
        args = runner_args(skip_platform=["windows", "darwin"], integration=True)

        assert marker_expression(args) == "not windows and not darwin and integration"

    def test_full_command(self):
        args = runner_args(
            paths=["tests/test_parsers.py"], platform="linux", keyword="disk",
            exitfirst=True, coverage=True,
        )

        assert build_command(args)[3:] == [
            "-x",
            "-m", "linux",
            "-k", "disk",
            "--cov=host_monitor", "--cov-report=term-missing",
            "tests/test_parsers.py",
        ]
