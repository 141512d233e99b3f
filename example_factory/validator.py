"""Validator: read-only health checks for the registry and the environment.

Each rule reports ``pass``, ``warn`` or ``fail`` with a message and optional
details.  Probing the environment (subprocesses, an optional HTTP call) is
kept apart from evaluating rules, so ``validate`` itself never runs anything
and never mutates anything.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Optional

import httpx
from pydantic import BaseModel, Field, computed_field

from example_factory.config import Config
from example_factory.errors import ValidationError
from example_factory.git import GitError, head_revision
from example_factory.registry.models import Registry
from example_factory.scaffolder.manifest import PACKAGE_JSON
from example_factory.utils import run_command

GITHUB_API = "https://api.github.com"

_VERSION = re.compile(r"v?(\d+)\.(\d+)(?:\.(\d+))?")


class RuleStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class RuleResult(BaseModel):
    """Outcome of one validation rule."""

    name: str
    status: RuleStatus
    message: str
    details: list[str] = Field(default_factory=list)


class ValidationReport(BaseModel):
    """All rule outcomes from one ``validate`` call."""

    rules: list[RuleResult] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def passed(self) -> bool:
        return not self.failures

    @property
    def failures(self) -> list[RuleResult]:
        return [r for r in self.rules if r.status is RuleStatus.FAIL]

    @property
    def warnings(self) -> list[RuleResult]:
        return [r for r in self.rules if r.status is RuleStatus.WARN]

    def rule(self, name: str) -> Optional[RuleResult]:
        return next((r for r in self.rules if r.name == name), None)

    def raise_for_failures(self) -> None:
        """Raise ``ValidationError`` if any rule failed."""
        if self.failures:
            names = [r.name for r in self.failures]
            raise ValidationError(f"Validation failed: {', '.join(names)}", failed_rules=names)


class Environment(BaseModel):
    """Facts about the host machine gathered by ``probe_environment``."""

    node_version: Optional[str] = None
    git_version: Optional[str] = None
    skeleton_revision: Optional[str] = None
    remote_revision: Optional[str] = None

    @property
    def node_major(self) -> Optional[int]:
        return parse_major(self.node_version)


def parse_major(version: Optional[str]) -> Optional[int]:
    """``"v20.11.1"`` -> ``20``; unparseable input -> ``None``."""
    if not version:
        return None
    match = _VERSION.search(version)
    return int(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Probing
# ---------------------------------------------------------------------------

async def fetch_remote_revision(repo: str, timeout: float = 10.0) -> Optional[str]:
    """Return the latest commit on *repo*'s default branch, or ``None``.

    Network and HTTP failures yield ``None``; the skeleton rule reports an
    unknown remote revision as a warning.
    """
    url = f"{GITHUB_API}/repos/{repo}/commits/HEAD"
    headers = {"Accept": "application/vnd.github.sha"}
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5.0)) as client:
        try:
            response = await client.get(url, headers=headers)
            response.raise_for_status()
        except (httpx.TransportError, httpx.HTTPStatusError):
            return None
    sha = response.text.strip()
    return sha or None


async def probe_environment(config: Config, *, check_remote: bool = False) -> Environment:
    """Collect tool versions and skeleton revisions for ``validate``."""
    env = Environment()

    rc, stdout, _ = await run_command(["node", "--version"], timeout=30)
    if rc == 0 and stdout:
        env.node_version = stdout.splitlines()[0].strip()

    rc, stdout, _ = await run_command(["git", "--version"], timeout=30)
    if rc == 0 and stdout:
        env.git_version = stdout.splitlines()[0].strip()

    skeleton = config.skeleton_path
    if skeleton.is_dir():
        try:
            env.skeleton_revision = await head_revision(skeleton)
        except GitError:
            env.skeleton_revision = None

    if check_remote and config.skeleton.remote_repo:
        env.remote_revision = await fetch_remote_revision(config.skeleton.remote_repo)
    return env


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def check_registry_integrity(registry: Registry, root: Path) -> RuleResult:
    problems: list[str] = []
    for artifact in registry.artifacts.values():
        if not (root / artifact.contract_path).is_file():
            problems.append(f"{artifact.id}: contract not found ({artifact.contract_path})")
        if not (root / artifact.test_path).is_file():
            problems.append(f"{artifact.id}: test not found ({artifact.test_path})")
        if not artifact.description.strip():
            problems.append(f"{artifact.id}: empty description")
        for dependency in artifact.manual.dependencies:
            if not (root / dependency).is_file():
                problems.append(f"{artifact.id}: dependency not found ({dependency})")

    if problems:
        return RuleResult(
            name="registry-integrity",
            status=RuleStatus.FAIL,
            message=f"{len(problems)} problem(s) in {len(registry)} registered examples",
            details=problems,
        )
    return RuleResult(
        name="registry-integrity",
        status=RuleStatus.PASS,
        message=f"{len(registry)} examples, all files present",
    )


def check_skeleton(config: Config, environment: Environment) -> RuleResult:
    skeleton = config.skeleton_path
    if not skeleton.is_dir():
        return RuleResult(
            name="skeleton",
            status=RuleStatus.FAIL,
            message=f"Skeleton not found at {skeleton}",
            details=["Run `git submodule update --init --recursive`"],
        )
    if not (skeleton / PACKAGE_JSON).is_file():
        return RuleResult(
            name="skeleton",
            status=RuleStatus.FAIL,
            message=f"Skeleton at {skeleton} has no {PACKAGE_JSON}",
        )

    local = environment.skeleton_revision
    expected = config.skeleton.expected_revision or environment.remote_revision
    if not expected:
        return RuleResult(name="skeleton", status=RuleStatus.PASS, message=f"Present at {skeleton}")
    if not local:
        return RuleResult(
            name="skeleton",
            status=RuleStatus.WARN,
            message="Skeleton revision unknown",
            details=[f"expected {expected[:7]}"],
        )
    if not (local.startswith(expected) or expected.startswith(local)):
        return RuleResult(
            name="skeleton",
            status=RuleStatus.WARN,
            message="Skeleton update available",
            details=[f"local {local[:7]}", f"expected {expected[:7]}"],
        )
    return RuleResult(
        name="skeleton",
        status=RuleStatus.PASS,
        message=f"Up to date ({local[:7]})",
    )


def check_node(environment: Environment, min_major: int) -> RuleResult:
    major = environment.node_major
    if major is None:
        return RuleResult(
            name="node-version",
            status=RuleStatus.FAIL,
            message="Node.js not found",
            details=[f"Install Node.js v{min_major} or newer"],
        )
    if major < min_major:
        return RuleResult(
            name="node-version",
            status=RuleStatus.FAIL,
            message=f"Node.js {environment.node_version} is older than v{min_major}",
        )
    return RuleResult(name="node-version", status=RuleStatus.PASS, message=environment.node_version or "")


def check_git(environment: Environment) -> RuleResult:
    if not environment.git_version:
        return RuleResult(name="git", status=RuleStatus.FAIL, message="git not found")
    return RuleResult(name="git", status=RuleStatus.PASS, message=environment.git_version)


def validate(
    registry: Registry,
    filesystem_root: str | Path,
    environment: Environment,
    *,
    config: Optional[Config] = None,
) -> ValidationReport:
    """Evaluate every rule; never raises for rule failures.

    Call ``raise_for_failures()`` on the result to turn failures into a
    ``ValidationError``.
    """
    config = config or Config(source_root=Path(filesystem_root))
    return ValidationReport(rules=[
        check_registry_integrity(registry, Path(filesystem_root)),
        check_skeleton(config, environment),
        check_node(environment, config.min_node_major),
        check_git(environment),
    ])
