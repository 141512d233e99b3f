"""Tests for post-scaffold install/compile/test (example_factory.scaffolder.runner).

All subprocesses are mocked through ``example_factory.scaffolder.runner.run_command``.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from example_factory.scaffolder.runner import (
    PostScaffoldReport,
    StepResult,
    extract_error_message,
    extract_test_results,
    run_post_scaffold,
    run_step,
)

MOCHA_OK = """
  FHECounter
    ✔ encrypted count should be uninitialized after deployment
    ✔ increment the counter by 1

  3 passing (2s)
"""

MOCHA_FAIL = """
  2 passing (1s)
  1 failing

  1) FHECounter
       decrement:
     AssertionError: expected 1 to equal 0
"""


# ---------------------------------------------------------------------------
# Output parsing
# ---------------------------------------------------------------------------


class TestOutputParsing:
    @pytest.mark.unit
    def test_all_passing(self):
        assert extract_test_results(MOCHA_OK) == "3 tests passing"

    @pytest.mark.unit
    def test_some_failing(self):
        assert extract_test_results(MOCHA_FAIL) == "2 passing, 1 failing"

    @pytest.mark.unit
    def test_no_summary(self):
        assert extract_test_results("Compiled 3 Solidity files") is None

    @pytest.mark.unit
    def test_error_lines_preferred(self):
        output = "noise\nError: HH700: Artifact not found\nmore noise\nTypeError: x is undefined\n"
        assert extract_error_message(output) == (
            "Error: HH700: Artifact not found\nTypeError: x is undefined"
        )

    @pytest.mark.unit
    def test_error_lines_limited(self):
        output = "\n".join(f"Error: {i}" for i in range(10))
        assert len(extract_error_message(output).splitlines()) == 5

    @pytest.mark.unit
    def test_falls_back_to_last_lines(self):
        output = "\n".join(f"line {i}" for i in range(8)) + "\n\n"
        assert extract_error_message(output, limit=2) == "line 6\nline 7"


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class TestRunStep:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success_with_summary(self, tmp_path):
        mock = AsyncMock(return_value=(0, MOCHA_OK, ""))
        with patch("example_factory.scaffolder.runner.run_command", mock):
            result = await run_step("test", ["npm", "run", "test"], tmp_path, 60)
        assert result.success is True
        assert result.summary == "3 tests passing"
        mock.assert_awaited_once_with(["npm", "run", "test"], cwd=tmp_path, timeout=60)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_extracts_errors(self, tmp_path):
        mock = AsyncMock(return_value=(1, "", "npm ERR! missing script\nError: compile failed"))
        with patch("example_factory.scaffolder.runner.run_command", mock):
            result = await run_step("compile", ["npm", "run", "compile"], tmp_path, 60)
        assert result.success is False
        assert result.summary == "Error: compile failed"
        assert "npm ERR!" in result.output


class TestRunPostScaffold:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_install_only(self, tmp_path):
        mock = AsyncMock(return_value=(0, "added 10 packages", ""))
        with patch("example_factory.scaffolder.runner.run_command", mock):
            report = await run_post_scaffold(tmp_path)
        assert [s.name for s in report.steps] == ["install"]
        assert report.success is True
        assert report.failed_step is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_test_implies_compile(self, tmp_path):
        mock = AsyncMock(return_value=(0, MOCHA_OK, ""))
        with patch("example_factory.scaffolder.runner.run_command", mock):
            report = await run_post_scaffold(tmp_path, install=True, test=True, timeout=30)
        assert [s.name for s in report.steps] == ["install", "compile", "test"]
        assert [c.args[0] for c in mock.await_args_list] == [
            ["npm", "install"],
            ["npm", "run", "compile"],
            ["npm", "run", "test"],
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, tmp_path):
        mock = AsyncMock(side_effect=[(0, "", ""), (1, "", "Error: boom")])
        with patch("example_factory.scaffolder.runner.run_command", mock):
            report = await run_post_scaffold(tmp_path, test=True)
        assert [s.name for s in report.steps] == ["install", "compile"]
        assert report.success is False
        assert report.failed_step.name == "compile"

    @pytest.mark.unit
    def test_report_serialises_success(self):
        report = PostScaffoldReport(
            project_dir="/tmp/x",
            steps=[StepResult(name="install", command=["npm", "install"], success=True)],
        )
        assert report.model_dump()["success"] is True
