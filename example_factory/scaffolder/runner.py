"""Post-scaffold commands: install, compile and test a generated project.

Each step is an awaited subprocess that reports an explicit success flag; the
chain stops at the first failure and the caller decides how to surface it.
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from example_factory.utils import run_command

_PASSING = re.compile(r"(\d+)\s+passing")
_FAILING = re.compile(r"(\d+)\s+failing")
_ERROR_MARKERS = (
    "Error:",
    "error:",
    "TypeError",
    "SyntaxError",
    "AssertionError",
    "expected",
    "reverted",
    "HardhatError",
    "ENOENT",
)


class StepResult(BaseModel):
    """Outcome of one post-scaffold command."""

    name: str
    command: list[str]
    success: bool
    output: str = ""
    summary: str = Field(default="", description="Test tally or extracted error lines")
    duration_seconds: float = Field(default=0.0, ge=0.0)


class PostScaffoldReport(BaseModel):
    """All steps run against one project, in order."""

    project_dir: str
    steps: list[StepResult] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return all(step.success for step in self.steps)

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((step for step in self.steps if not step.success), None)


# ---------------------------------------------------------------------------
# Output parsing
# ---------------------------------------------------------------------------

def extract_test_results(output: str) -> Optional[str]:
    """Summarise a mocha run: ``"3 tests passing"`` or ``"3 passing, 1 failing"``."""
    passing = _PASSING.search(output)
    if not passing:
        return None
    failing = _FAILING.search(output)
    failed = failing.group(1) if failing else "0"
    if failed == "0":
        return f"{passing.group(1)} tests passing"
    return f"{passing.group(1)} passing, {failed} failing"


def extract_error_message(output: str, limit: int = 5) -> str:
    """Pick the most telling lines out of compiler or test output."""
    lines = output.splitlines()
    errors = [line.strip() for line in lines if any(m in line for m in _ERROR_MARKERS)]
    if errors:
        return "\n".join(errors[:limit])
    non_empty = [line for line in lines if line.strip()]
    return "\n".join(non_empty[-limit:])


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

async def run_step(name: str, cmd: list[str], cwd: Path, timeout: int) -> StepResult:
    """Run one command in *cwd* and classify its outcome."""
    started = time.monotonic()
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout)
    output = "\n".join(part for part in (stdout, stderr) if part)
    success = returncode == 0
    summary = extract_test_results(output) or ""
    if not success:
        summary = extract_error_message(output)
    return StepResult(
        name=name,
        command=cmd,
        success=success,
        output=output,
        summary=summary,
        duration_seconds=time.monotonic() - started,
    )


async def run_post_scaffold(
    project_dir: str | Path,
    *,
    install: bool = True,
    test: bool = False,
    timeout: int = 600,
) -> PostScaffoldReport:
    """Install dependencies and optionally compile and test *project_dir*.

    Testing implies compiling.  Steps after the first failure are not run.
    """
    root = Path(project_dir)
    steps: list[tuple[str, list[str]]] = []
    if install:
        steps.append(("install", ["npm", "install"]))
    if test:
        steps.append(("compile", ["npm", "run", "compile"]))
        steps.append(("test", ["npm", "run", "test"]))

    report = PostScaffoldReport(project_dir=str(root))
    for name, cmd in steps:
        result = await run_step(name, cmd, root, timeout)
        report.steps.append(result)
        if not result.success:
            break
    return report
