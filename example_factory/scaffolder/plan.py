"""Materialization plans.

A plan is an ordered, immutable list of file operations derived from a
resolved bundle.  Building it twice from the same registry and selection
yields equal values; executing it is the materializer's (or arbiter's) job.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from example_factory.resolver import ResolvedBundle

from .deploy_gen import DEPLOY_SCRIPT_PATH, render_deploy_script
from .manifest import PACKAGE_JSON
from .templates import TemplateRenderer

CONTRACTS_DIR = "contracts"
TESTS_DIR = "test"


class OperationKind(str, Enum):
    """What a plan step does."""
    COPY = "copy"
    WRITE = "write"
    MANIFEST = "manifest"


class ManifestEdit(BaseModel):
    """Insert-only edits to the output project's ``package.json``."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    drop_overrides: tuple[str, ...] = ("minimatch",)


class FileOperation(BaseModel):
    """A single plan step targeting one destination path."""
    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    destination: str = Field(..., description="POSIX path relative to the project root")
    source: str = Field(default="", description="POSIX path relative to the source root (copy)")
    content: str = Field(default="", description="Generated text (write)")
    manifest: Optional[ManifestEdit] = None
    artifact_id: str = Field(default="", description="Artifact that contributed this step")


class MaterializationPlan(BaseModel):
    """Ordered file operations for one materialization or merge run."""
    model_config = ConfigDict(frozen=True)

    operations: list[FileOperation] = Field(default_factory=list)

    @property
    def copies(self) -> list[FileOperation]:
        return [op for op in self.operations if op.kind is OperationKind.COPY]

    @property
    def writes(self) -> list[FileOperation]:
        return [op for op in self.operations if op.kind is OperationKind.WRITE]

    @property
    def manifest_edits(self) -> list[FileOperation]:
        return [op for op in self.operations if op.kind is OperationKind.MANIFEST]

    @property
    def destinations(self) -> list[str]:
        return [op.destination for op in self.operations]


# ---------------------------------------------------------------------------
# Destination layout
# ---------------------------------------------------------------------------

def contract_destination(contract_path: str) -> str:
    """Primary contracts land flat under ``contracts/``."""
    return f"{CONTRACTS_DIR}/{PurePosixPath(contract_path).name}"


def test_destination(test_path: str) -> str:
    """Tests land flat under ``test/``."""
    return f"{TESTS_DIR}/{PurePosixPath(test_path).name}"


def dependency_destination(dependency_path: str) -> str:
    """Support files keep their layout below ``contracts/``."""
    path = PurePosixPath(dependency_path)
    if path.parts and path.parts[0] == CONTRACTS_DIR:
        return path.as_posix()
    return f"{CONTRACTS_DIR}/{path.as_posix()}"


# ---------------------------------------------------------------------------
# Plan construction
# ---------------------------------------------------------------------------

def build_copy_operations(bundle: ResolvedBundle) -> list[FileOperation]:
    """Copy steps for every file in *bundle*, one per destination.

    Contracts come first, then tests, then shared support files; a
    destination claimed earlier is never emitted again.
    """
    operations: list[FileOperation] = []
    claimed: set[str] = set()

    def _add(source: str, destination: str, artifact_id: str) -> None:
        if destination in claimed:
            return
        claimed.add(destination)
        operations.append(FileOperation(
            kind=OperationKind.COPY,
            source=source,
            destination=destination,
            artifact_id=artifact_id,
        ))

    for artifact in bundle.artifacts:
        _add(artifact.contract_path, contract_destination(artifact.contract_path), artifact.id)
    for artifact in bundle.artifacts:
        _add(artifact.test_path, test_destination(artifact.test_path), artifact.id)
    for dependency in bundle.dependency_files:
        _add(dependency, dependency_destination(dependency), "")
    return operations


def build_plan(
    bundle: ResolvedBundle,
    source_root: Path,
    *,
    project_name: Optional[str] = None,
    description: Optional[str] = None,
    renderer: Optional[TemplateRenderer] = None,
) -> MaterializationPlan:
    """Build the full plan for a new project: copies, deploy script, manifest.

    Raises:
        FileNotFoundError: If a contract needed for the deploy script is missing.
    """
    operations = build_copy_operations(bundle)
    operations.append(FileOperation(
        kind=OperationKind.WRITE,
        destination=DEPLOY_SCRIPT_PATH,
        content=render_deploy_script(bundle.artifacts, source_root, renderer),
        artifact_id=bundle.primary.id,
    ))
    operations.append(FileOperation(
        kind=OperationKind.MANIFEST,
        destination=PACKAGE_JSON,
        manifest=ManifestEdit(
            name=project_name,
            description=description,
            dependencies=dict(bundle.npm_dependencies),
        ),
    ))
    return MaterializationPlan(operations=operations)
