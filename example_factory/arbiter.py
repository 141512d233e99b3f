"""Conflict arbiter: merge a resolved bundle into an existing Hardhat project.

Every artifact file lands in one of three states -- absent, identical or
conflicting -- and conflicting files are settled by a caller-supplied
decision policy.  ``package.json`` and ``hardhat.config.*`` are edited
structurally (insert what is missing) rather than treated as conflicts.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from example_factory.config import Config
from example_factory.errors import ConflictError
from example_factory.resolver import ResolvedBundle
from example_factory.scaffolder.manifest import (
    PACKAGE_JSON,
    ensure_plugin_import,
    find_hardhat_config,
    merge_package_json,
)
from example_factory.scaffolder.plan import build_copy_operations
from example_factory.utils import console, load_json, write_if_changed


class ConflictDecision(str, Enum):
    """How to settle a file that exists with different content."""
    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"


class FileState(str, Enum):
    """Outcome for one artifact file."""
    WRITTEN = "written"
    SKIPPED_IDENTICAL = "skipped_identical"
    SKIPPED = "skipped"
    WRITTEN_ALTERNATE = "written_alternate"
    FAILED = "failed"


# (existing path, existing bytes, incoming bytes) -> decision
DecisionPolicy = Callable[[Path, bytes, bytes], ConflictDecision]


def always(decision: ConflictDecision) -> DecisionPolicy:
    """A policy that answers *decision* for every conflict."""

    def _policy(path: Path, existing: bytes, incoming: bytes) -> ConflictDecision:
        return decision

    return _policy


class FileOutcome(BaseModel):
    """What happened to one artifact file."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    destination: str
    state: FileState
    written_to: str = Field(default="", description="Alternate path for renamed files")
    decision: Optional[ConflictDecision] = None
    error: Optional[ConflictError] = None


class ArbitrationReport(BaseModel):
    """Per-file outcomes plus the structural edits applied to the host."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    target_dir: str
    outcomes: list[FileOutcome] = Field(default_factory=list)
    manifest_changes: list[str] = Field(default_factory=list)
    plugin_import_added: bool = False
    warnings: list[str] = Field(default_factory=list)

    @property
    def errors(self) -> list[ConflictError]:
        return [o.error for o in self.outcomes if o.error is not None]

    @property
    def success(self) -> bool:
        return not self.errors

    def by_state(self, state: FileState) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.state is state]


def alternate_path(path: Path, incoming: bytes) -> tuple[Path, bool]:
    """Find where a renamed copy of *path* goes.

    Probes ``<stem>_1<suffix>``, ``<stem>_2<suffix>`` ... and returns the
    first candidate that is free or already holds *incoming*, together with
    whether that candidate is already identical.
    """
    index = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{index}{path.suffix}")
        if not candidate.exists():
            return candidate, False
        if candidate.is_file() and candidate.read_bytes() == incoming:
            return candidate, True
        index += 1


def detect_host_project(target_dir: Path) -> Path:
    """Check *target_dir* is a Hardhat project and return its config file.

    Raises:
        ConflictError: Naming the first missing marker.
    """
    manifest = target_dir / PACKAGE_JSON
    if not manifest.is_file():
        raise ConflictError(
            f"Not a Hardhat project: {manifest} not found", reference=str(manifest)
        )
    try:
        data = load_json(manifest)
    except ValueError as exc:
        raise ConflictError(f"Unreadable {manifest}: {exc}", reference=str(manifest)) from exc
    if "hardhat" not in data.get("dependencies", {}) and "hardhat" not in data.get(
        "devDependencies", {}
    ):
        raise ConflictError(
            f"Not a Hardhat project: 'hardhat' is not a dependency in {manifest}",
            reference=str(manifest),
        )
    config_file = find_hardhat_config(target_dir)
    if config_file is None:
        raise ConflictError(
            f"Not a Hardhat project: hardhat.config.ts or hardhat.config.js missing in {target_dir}",
            reference=str(target_dir),
        )
    return config_file


class ConflictArbiter:
    """Applies bundles to existing projects under a decision policy.

    Usage::

        arbiter = ConflictArbiter(config)
        report = await arbiter.apply_to_existing(
            bundle, "./my-app", always(ConflictDecision.RENAME)
        )
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    async def apply_to_existing(
        self,
        bundle: ResolvedBundle,
        target_dir: str | Path,
        decision_policy: Optional[DecisionPolicy] = None,
    ) -> ArbitrationReport:
        """Merge *bundle* into *target_dir*.

        A conflict with no policy fails that file only; the rest of the
        bundle and the structural edits still go through.

        Raises:
            ConflictError: If *target_dir* is not a Hardhat project, or a
                source file of the bundle is missing.  Nothing in the host
                is modified in either case.
        """
        target = Path(target_dir)
        config_file = detect_host_project(target)
        report = ArbitrationReport(target_dir=str(target))
        report.warnings.extend(str(w) for w in bundle.warnings)

        # All sources are read before the host is touched.
        staged: list[tuple[str, bytes]] = []
        for op in build_copy_operations(bundle):
            source = self.config.source_root / op.source
            if not source.is_file():
                raise ConflictError(f"Source file missing: {op.source}", reference=op.source)
            staged.append((op.destination, await asyncio.to_thread(source.read_bytes)))

        for destination, incoming in staged:
            outcome = await asyncio.to_thread(
                self._place, target, destination, incoming, decision_policy
            )
            report.outcomes.append(outcome)

        host = self.config.host
        report.manifest_changes = await asyncio.to_thread(
            merge_package_json,
            target / PACKAGE_JSON,
            dependencies={**host.dependencies, **bundle.npm_dependencies},
            dev_dependencies=host.dev_dependencies,
        )
        report.plugin_import_added = await asyncio.to_thread(
            ensure_plugin_import, config_file, host.plugin_import
        )

        written = len(report.by_state(FileState.WRITTEN)) + len(
            report.by_state(FileState.WRITTEN_ALTERNATE)
        )
        console.print(
            f"  [green]Merged[/green] [bold]{', '.join(bundle.ids)}[/bold] into {target} "
            f"({written} written, {len(report.errors)} failed)"
        )
        return report

    def _place(
        self,
        target: Path,
        destination: str,
        incoming: bytes,
        policy: Optional[DecisionPolicy],
    ) -> FileOutcome:
        path = target / PurePosixPath(destination)
        if not path.exists():
            write_if_changed(path, incoming)
            return FileOutcome(destination=destination, state=FileState.WRITTEN)

        existing = path.read_bytes() if path.is_file() else b""
        if path.is_file() and existing == incoming:
            return FileOutcome(destination=destination, state=FileState.SKIPPED_IDENTICAL)

        if policy is None:
            return FileOutcome(
                destination=destination,
                state=FileState.FAILED,
                error=ConflictError(
                    f"{destination} already exists with different content", reference=destination
                ),
            )

        decision = ConflictDecision(policy(path, existing, incoming))
        if decision is ConflictDecision.SKIP:
            return FileOutcome(destination=destination, state=FileState.SKIPPED, decision=decision)

        if decision is ConflictDecision.OVERWRITE:
            if not path.is_file():
                return FileOutcome(
                    destination=destination,
                    state=FileState.FAILED,
                    decision=decision,
                    error=ConflictError(
                        f"{destination} is a directory and cannot be overwritten",
                        reference=destination,
                    ),
                )
            write_if_changed(path, incoming)
            return FileOutcome(destination=destination, state=FileState.WRITTEN, decision=decision)

        alternate, identical = alternate_path(path, incoming)
        relative = alternate.relative_to(target).as_posix()
        if identical:
            return FileOutcome(
                destination=destination,
                state=FileState.SKIPPED_IDENTICAL,
                written_to=relative,
                decision=decision,
            )
        write_if_changed(alternate, incoming)
        return FileOutcome(
            destination=destination,
            state=FileState.WRITTEN_ALTERNATE,
            written_to=relative,
            decision=decision,
        )
