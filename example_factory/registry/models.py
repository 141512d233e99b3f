"""Pydantic v2 models for the artifact registry.

A registry is an ordered, immutable mapping of artifact id to descriptor.
Each descriptor separates the fields re-derived from the source tree on every
discovery pass from the manually curated fields that discovery must never
overwrite.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from example_factory.utils import category_key

# Display order for categories; unknown categories sort alphabetically after.
CATEGORY_ORDER: list[str] = [
    "Basic",
    "Basic - Encryption",
    "Basic - Decryption",
    "Basic - FHE Operations",
    "Concepts",
    "Gaming",
    "Openzeppelin",
    "Advanced",
]

REGISTRY_VERSION = 1


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------

class DerivedFields(BaseModel):
    """Fields re-derived from the source tree on every discovery pass."""
    model_config = ConfigDict(frozen=True)

    contract: str = Field(..., description="Contract path relative to the source root")
    test: str = Field(..., description="Test path relative to the source root")
    description: str = Field(..., description="Text of the contract's @notice tag")
    category: str = Field(..., description="Category inferred from directory position")
    title: str = Field(..., description="Human-readable title, e.g. 'FHE Counter'")


class ManualFields(BaseModel):
    """Hand-curated fields carried forward verbatim across discovery passes."""
    model_config = ConfigDict(frozen=True)

    npm_dependencies: dict[str, str] = Field(
        default_factory=dict, description="Extra package.json dependencies"
    )
    dependencies: list[str] = Field(
        default_factory=list, description="Extra support files, relative to the source root"
    )


class ArtifactDescriptor(BaseModel):
    """A contract plus its matching test, registered under one id."""
    model_config = ConfigDict(frozen=True)

    id: str
    derived: DerivedFields
    manual: ManualFields = Field(default_factory=ManualFields)

    @property
    def contract_path(self) -> str:
        return self.derived.contract

    @property
    def test_path(self) -> str:
        return self.derived.test

    @property
    def contract_name(self) -> str:
        """File stem of the contract, e.g. ``FHECounter``."""
        return PurePosixPath(self.derived.contract).stem

    @property
    def description(self) -> str:
        return self.derived.description

    @property
    def category(self) -> str:
        return self.derived.category

    @property
    def category_key(self) -> str:
        return category_key(self.derived.category)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class Category(BaseModel):
    """A group of artifacts sharing one directory position."""
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    ids: list[str] = Field(default_factory=list)


class Registry(BaseModel):
    """Ordered mapping of artifact id to descriptor."""
    model_config = ConfigDict(frozen=True)

    version: int = Field(default=REGISTRY_VERSION)
    artifacts: dict[str, ArtifactDescriptor] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.artifacts)

    def __contains__(self, artifact_id: object) -> bool:
        return artifact_id in self.artifacts

    def get(self, artifact_id: str) -> Optional[ArtifactDescriptor]:
        return self.artifacts.get(artifact_id)

    def ids(self) -> list[str]:
        return list(self.artifacts)

    def categories(self) -> dict[str, Category]:
        """Group artifacts by category, in display order.

        Known categories follow ``CATEGORY_ORDER``; the rest are sorted by
        name after them.  Ids keep registry order within each category.
        """
        grouped: dict[str, list[str]] = {}
        names: dict[str, str] = {}
        for artifact in self.artifacts.values():
            key = artifact.category_key
            grouped.setdefault(key, []).append(artifact.id)
            names.setdefault(key, artifact.category)

        def _order(key: str) -> tuple[int, str]:
            name = names[key]
            if name in CATEGORY_ORDER:
                return (CATEGORY_ORDER.index(name), "")
            return (len(CATEGORY_ORDER), name)

        return {
            key: Category(key=key, name=names[key], ids=grouped[key])
            for key in sorted(grouped, key=_order)
        }

    def category_ids(self, key: str) -> Optional[list[str]]:
        """Return the ids in category *key*, or ``None`` if it is unknown."""
        category = self.categories().get(key)
        return list(category.ids) if category else None
