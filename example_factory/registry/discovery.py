"""Discovery engine: builds the artifact registry from the source tree.

Walks the contract tree, pairs every contract with its mirrored test file,
reads the contract's ``@notice`` text, infers its category from its directory
position, and reconciles the result with the previous registry so that
manually curated fields survive regeneration.  Files that cannot be admitted
are reported as :class:`DiscoveryError` values; their previous registry entry
(if any) is kept untouched.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from example_factory.errors import DiscoveryError
from example_factory.registry.models import (
    ArtifactDescriptor,
    DerivedFields,
    ManualFields,
    Registry,
)
from example_factory.registry.natspec import extract_notice
from example_factory.utils import contract_name_to_title, format_category_name, to_kebab_case

SKIPPED_DIRS = {"mocks"}
CONTRACT_SUFFIX = ".sol"
TEST_SUFFIX = ".ts"


class DiscoveryResult(BaseModel):
    """Outcome of one discovery pass."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    registry: Registry
    errors: list[DiscoveryError] = Field(default_factory=list)
    removed: list[str] = Field(
        default_factory=list, description="Previous ids whose contract no longer exists"
    )

    @property
    def ok(self) -> bool:
        return not self.errors

    def category_counts(self) -> dict[str, int]:
        """Number of artifacts per category name, in display order."""
        return {c.name: len(c.ids) for c in self.registry.categories().values()}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def discover(
    source_root: str | Path,
    previous: Optional[Registry] = None,
    *,
    contracts_dir: str = "contracts",
    tests_dir: str = "test",
) -> tuple[Registry, list[DiscoveryError]]:
    """Scan *source_root* and return ``(registry, errors)``."""
    result = discover_tree(
        source_root, previous, contracts_dir=contracts_dir, tests_dir=tests_dir
    )
    return result.registry, list(result.errors)


def discover_tree(
    source_root: str | Path,
    previous: Optional[Registry] = None,
    *,
    contracts_dir: str = "contracts",
    tests_dir: str = "test",
) -> DiscoveryResult:
    """Scan *source_root* and reconcile with *previous*.

    Args:
        source_root: Directory holding the contract and test trees.
        previous: Registry from the last pass, or ``None`` for a fresh scan.
        contracts_dir: Contract tree, relative to *source_root*.
        tests_dir: Test tree mirroring the contract tree.

    Raises:
        DiscoveryError: If the contract tree does not exist at all.
    """
    root = Path(source_root)
    contracts_root = root / contracts_dir
    if not contracts_root.is_dir():
        raise DiscoveryError(str(contracts_root), "contract directory not found")

    previous = previous or Registry()
    artifacts: dict[str, ArtifactDescriptor] = {}
    claimed_by: dict[str, str] = {}
    errors: list[DiscoveryError] = []

    for contract_file in _walk_contracts(contracts_root):
        rel = contract_file.relative_to(contracts_root)
        rel_posix = PurePosixPath(rel.as_posix())
        contract_rel = f"{contracts_dir}/{rel_posix}"
        artifact_id = to_kebab_case(contract_file.stem)

        if artifact_id in claimed_by:
            errors.append(DiscoveryError(
                contract_rel,
                f"id collision: '{artifact_id}' already claimed by {claimed_by[artifact_id]}",
            ))
            continue
        claimed_by[artifact_id] = contract_rel

        try:
            derived = _derive(root, contract_file, rel_posix, contracts_dir, tests_dir)
        except DiscoveryError as exc:
            errors.append(exc)
            kept = previous.get(artifact_id)
            if kept is not None:
                artifacts[artifact_id] = kept
            continue

        old = previous.get(artifact_id)
        artifacts[artifact_id] = ArtifactDescriptor(
            id=artifact_id,
            derived=derived,
            manual=old.manual if old is not None else ManualFields(),
        )

    removed = [artifact_id for artifact_id in previous.ids() if artifact_id not in claimed_by]
    return DiscoveryResult(
        registry=Registry(artifacts=artifacts),
        errors=errors,
        removed=removed,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _walk_contracts(directory: Path) -> list[Path]:
    """Return contract files under *directory* in deterministic order."""
    found: list[Path] = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            if entry.name not in SKIPPED_DIRS:
                found.extend(_walk_contracts(entry))
        elif entry.is_file() and entry.suffix == CONTRACT_SUFFIX:
            found.append(entry)
    return found


def _derive(
    root: Path,
    contract_file: Path,
    rel: PurePosixPath,
    contracts_dir: str,
    tests_dir: str,
) -> DerivedFields:
    contract_rel = f"{contracts_dir}/{rel}"
    test_rel = f"{tests_dir}/{rel.with_suffix(TEST_SUFFIX)}"

    try:
        source = contract_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DiscoveryError(contract_rel, "not valid UTF-8") from exc
    description = extract_notice(source)
    if not description:
        raise DiscoveryError(contract_rel, "missing @notice tag")
    if not (root / test_rel).is_file():
        raise DiscoveryError(contract_rel, f"missing test file {test_rel}")

    return DerivedFields(
        contract=contract_rel,
        test=test_rel,
        description=description,
        category=category_from_path(rel),
        title=contract_name_to_title(contract_file.stem),
    )


def category_from_path(rel: PurePosixPath) -> str:
    """Infer a category label from a contract's path below the contract root.

    ``FHECounter.sol`` -> ``"Uncategorized"``;
    ``basic/encryption/X.sol`` -> ``"Basic - Encryption"``.
    """
    parts = rel.parts[:-1]
    if not parts:
        return "Uncategorized"
    return " - ".join(format_category_name(part) for part in parts)
