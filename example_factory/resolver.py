"""Dependency resolver: turns artifact ids into a flat, deduplicated bundle.

File dependencies are flat: an artifact may depend on shared support files,
but support files declare nothing further, so resolution is a plain ordered
union with no graph walk and no cycle detection.
"""

from __future__ import annotations

from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from example_factory.errors import ResolutionError
from example_factory.registry.models import ArtifactDescriptor, Registry


class ResolutionWarning(BaseModel):
    """Two artifacts asked for different versions of the same package."""
    model_config = ConfigDict(frozen=True)

    package: str
    kept_version: str
    rejected_version: str
    artifact_id: str = Field(..., description="Artifact whose version was rejected")

    def __str__(self) -> str:
        return (
            f"{self.package}: keeping {self.kept_version}, "
            f"ignoring {self.rejected_version} requested by {self.artifact_id}"
        )


class ResolvedBundle(BaseModel):
    """Everything needed to place one or more artifacts into a project."""
    model_config = ConfigDict(frozen=True)

    artifacts: list[ArtifactDescriptor]
    dependency_files: list[str] = Field(default_factory=list)
    npm_dependencies: dict[str, str] = Field(default_factory=dict)
    warnings: list[ResolutionWarning] = Field(default_factory=list)
    category: str = Field(default="", description="Category key when resolved as a category")

    @property
    def primary(self) -> ArtifactDescriptor:
        return self.artifacts[0]

    @property
    def ids(self) -> list[str]:
        return [a.id for a in self.artifacts]

    @property
    def contract_files(self) -> list[str]:
        return [a.contract_path for a in self.artifacts]

    @property
    def test_files(self) -> list[str]:
        return [a.test_path for a in self.artifacts]


def resolve(registry: Registry, ids: Iterable[str]) -> ResolvedBundle:
    """Resolve *ids* against *registry*.

    Raises:
        ResolutionError: If the selection is empty or names an unknown id.
    """
    selected: list[ArtifactDescriptor] = []
    seen: set[str] = set()
    for artifact_id in ids:
        if artifact_id in seen:
            continue
        artifact = registry.get(artifact_id)
        if artifact is None:
            raise ResolutionError(f"Unknown example: {artifact_id}", reference=artifact_id)
        seen.add(artifact_id)
        selected.append(artifact)

    if not selected:
        raise ResolutionError("No examples selected")

    files: list[str] = []
    npm: dict[str, str] = {}
    warnings: list[ResolutionWarning] = []
    for artifact in selected:
        _union_files(files, artifact.manual.dependencies)
        warnings.extend(_union_packages(npm, artifact.manual.npm_dependencies, artifact.id))

    return ResolvedBundle(
        artifacts=selected,
        dependency_files=files,
        npm_dependencies=npm,
        warnings=warnings,
    )


def resolve_category(registry: Registry, category: str) -> ResolvedBundle:
    """Resolve every artifact in the category with key *category*."""
    ids = registry.category_ids(category)
    if not ids:
        raise ResolutionError(f"Unknown category: {category}", reference=category)
    return resolve(registry, ids).model_copy(update={"category": category})


def merge_bundles(bundles: Iterable[ResolvedBundle]) -> ResolvedBundle:
    """Combine bundles with the same union and first-seen-version policy."""
    artifacts: list[ArtifactDescriptor] = []
    files: list[str] = []
    npm: dict[str, str] = {}
    warnings: list[ResolutionWarning] = []
    categories: list[str] = []

    for bundle in bundles:
        known = {a.id for a in artifacts}
        artifacts.extend(a for a in bundle.artifacts if a.id not in known)
        _union_files(files, bundle.dependency_files)
        warnings.extend(bundle.warnings)
        for artifact in bundle.artifacts:
            warnings.extend(_union_packages(npm, artifact.manual.npm_dependencies, artifact.id))
        if bundle.category and bundle.category not in categories:
            categories.append(bundle.category)

    if not artifacts:
        raise ResolutionError("No examples selected")

    return ResolvedBundle(
        artifacts=artifacts,
        dependency_files=files,
        npm_dependencies=npm,
        warnings=_dedupe(warnings),
        category="-".join(categories),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _union_files(into: list[str], paths: Iterable[str]) -> None:
    for path in paths:
        if path not in into:
            into.append(path)


def _union_packages(
    into: dict[str, str], packages: dict[str, str], artifact_id: str
) -> list[ResolutionWarning]:
    warnings: list[ResolutionWarning] = []
    for package, version in packages.items():
        kept = into.setdefault(package, version)
        if kept != version:
            warnings.append(ResolutionWarning(
                package=package,
                kept_version=kept,
                rejected_version=version,
                artifact_id=artifact_id,
            ))
    return warnings


def _dedupe(warnings: list[ResolutionWarning]) -> list[ResolutionWarning]:
    unique: list[ResolutionWarning] = []
    for warning in warnings:
        if warning not in unique:
            unique.append(warning)
    return unique
