"""Example Factory configuration.

Where the example sources, the registry file and the Hardhat skeleton live,
which packages a host project needs for FHEVM, and the limits applied to
subprocesses.  ``Config.from_env`` reads the ``EF_*`` variables; the CLI
layers its flags on top.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class HostDependencies(BaseModel):
    """Packages every project hosting FHEVM examples must declare.

    Added to a foreign project's ``package.json`` by the conflict arbiter,
    only where the package is not already present.
    """

    dependencies: dict[str, str] = Field(
        default_factory=lambda: {"@fhevm/solidity": "^0.9.1"}
    )
    dev_dependencies: dict[str, str] = Field(
        default_factory=lambda: {
            "@fhevm/hardhat-plugin": "^0.3.0-1",
            "@zama-fhe/relayer-sdk": "^0.3.0-5",
        }
    )
    plugin_import: str = Field(
        default="@fhevm/hardhat-plugin",
        description="Module imported for its side effects in hardhat.config",
    )


class SkeletonConfig(BaseModel):
    """Where the base Hardhat template lives and what to strip from it."""

    dir_name: str = Field(default="fhevm-hardhat-template")
    expected_revision: str = Field(
        default="", description="Commit the skeleton is pinned to (empty = unpinned)"
    )
    remote_repo: str = Field(
        default="zama-ai/fhevm-hardhat-template",
        description="GitHub owner/name queried for the latest upstream revision",
    )
    placeholder_contracts: list[str] = Field(
        default_factory=lambda: ["contracts/FHECounter.sol"],
        description="Skeleton-default artifacts removed before the overlay is copied",
    )
    exclude_dirs: list[str] = Field(
        default_factory=lambda: [
            "node_modules",
            "artifacts",
            "cache",
            "coverage",
            "types",
            "dist",
            ".git",
        ]
    )


class Config(BaseModel):
    """Global Example Factory configuration.

    Instances are typically created once by the CLI entry point and then
    passed to the discovery engine, materializer, arbiter and validator.
    """

    source_root: Path = Field(default=Path("."))
    registry_file: str = Field(default=".example-factory/registry.json")
    contracts_dir: str = Field(default="contracts")
    tests_dir: str = Field(default="test")
    skeleton: SkeletonConfig = Field(default_factory=SkeletonConfig)
    host: HostDependencies = Field(default_factory=HostDependencies)
    skeleton_dir_override: Path | None = Field(default=None)
    command_timeout: int = Field(default=600, ge=10, description="Subprocess timeout in seconds")
    min_node_major: int = Field(default=20, ge=1)
    init_git: bool = Field(default=True)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def registry_path(self) -> Path:
        """Path to the persisted registry JSON file."""
        return self.source_root / self.registry_file

    @property
    def contracts_path(self) -> Path:
        """Root of the authored contract tree."""
        return self.source_root / self.contracts_dir

    @property
    def tests_path(self) -> Path:
        """Root of the authored test tree (mirrors ``contracts_path``)."""
        return self.source_root / self.tests_dir

    @property
    def skeleton_path(self) -> Path:
        """Base project directory overlaid with selected artifacts."""
        if self.skeleton_dir_override is not None:
            return self.skeleton_dir_override
        return self.source_root / self.skeleton.dir_name

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            EF_SOURCE_ROOT, EF_REGISTRY_PATH, EF_SKELETON_DIR,
            EF_SKELETON_REVISION, EF_COMMAND_TIMEOUT, EF_MIN_NODE_MAJOR.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("EF_SOURCE_ROOT"):
            kwargs["source_root"] = Path(os.environ["EF_SOURCE_ROOT"])
        if os.environ.get("EF_REGISTRY_PATH"):
            kwargs["registry_file"] = os.environ["EF_REGISTRY_PATH"]
        if os.environ.get("EF_SKELETON_DIR"):
            kwargs["skeleton_dir_override"] = Path(os.environ["EF_SKELETON_DIR"])
        if os.environ.get("EF_COMMAND_TIMEOUT"):
            kwargs["command_timeout"] = int(os.environ["EF_COMMAND_TIMEOUT"])
        if os.environ.get("EF_MIN_NODE_MAJOR"):
            kwargs["min_node_major"] = int(os.environ["EF_MIN_NODE_MAJOR"])

        skeleton_kwargs: dict[str, Any] = {}
        if os.environ.get("EF_SKELETON_REVISION"):
            skeleton_kwargs["expected_revision"] = os.environ["EF_SKELETON_REVISION"]

        return cls(skeleton=SkeletonConfig(**skeleton_kwargs), **kwargs)
