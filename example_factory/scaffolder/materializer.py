"""Project materializer: skeleton + resolved bundle -> standalone project.

Steps run strictly in order, each relying on the previous step's result:

1. copy the skeleton into the output directory
2. strip the skeleton's own placeholder example, tests and tasks
3. copy the bundle's contracts, tests and shared support files
4. generate ``deploy/deploy.ts``
5. merge the bundle's npm dependencies into ``package.json``
6. ``git init`` a fresh repository

A failure anywhere removes the partially written output directory.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Optional

from jinja2 import TemplateError
from pydantic import BaseModel, Field

from example_factory.config import Config
from example_factory.errors import MaterializationError
from example_factory.git import GitError, init_repository
from example_factory.resolver import ResolvedBundle, merge_bundles
from example_factory.utils import console, write_if_changed

from .manifest import PACKAGE_JSON, find_hardhat_config, merge_package_json, strip_task_imports
from .plan import MaterializationPlan, build_plan
from .templates import TemplateRenderer

# Skeleton files and directories that belong to the template, not the user.
_SKELETON_CRUFT = (".git", ".github", ".vscode", ".DS_Store", "LICENSE", "tasks")
_DEFAULT_SIGNERS = ["owner", "alice"]


class MaterializationResult(BaseModel):
    """What a materialization run produced."""

    output_dir: str
    artifact_ids: list[str] = Field(default_factory=list)
    files_written: list[str] = Field(default_factory=list)
    files_unchanged: list[str] = Field(default_factory=list)
    deploy_script: str = Field(default="")
    npm_changes: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    git_initialized: bool = Field(default=False)


class ProjectMaterializer:
    """Builds standalone projects from the skeleton and resolved bundles.

    Usage::

        materializer = ProjectMaterializer(config)
        bundle = resolve(registry, ["fhe-counter"])
        result = await materializer.materialize_new(config.skeleton_path, bundle, "./out")
    """

    def __init__(self, config: Config, renderer: Optional[TemplateRenderer] = None) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()

    # -- Public API --------------------------------------------------------

    async def materialize_new(
        self,
        skeleton: str | Path,
        bundle: ResolvedBundle,
        output_dir: str | Path,
    ) -> MaterializationResult:
        """Create a project for a single artifact (the bundle's primary)."""
        primary = bundle.primary
        return await self._materialize(
            Path(skeleton),
            bundle,
            Path(output_dir),
            project_name=f"fhevm-example-{primary.id}",
            description=primary.description,
        )

    async def materialize_category(
        self,
        skeleton: str | Path,
        bundles: list[ResolvedBundle],
        output_dir: str | Path,
    ) -> MaterializationResult:
        """Create one project holding every artifact of *bundles*."""
        merged = merge_bundles(bundles)
        label = merged.category or "bundle"
        return await self._materialize(
            Path(skeleton),
            merged,
            Path(output_dir),
            project_name=f"fhevm-examples-{label}",
            description=None,
        )

    def plan(
        self,
        bundle: ResolvedBundle,
        project_name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> MaterializationPlan:
        """Compute the plan for *bundle* without touching the filesystem."""
        return build_plan(
            bundle,
            self.config.source_root,
            project_name=project_name,
            description=description,
            renderer=self.renderer,
        )

    # -- Orchestration -----------------------------------------------------

    async def _materialize(
        self,
        skeleton: Path,
        bundle: ResolvedBundle,
        output: Path,
        *,
        project_name: str,
        description: Optional[str],
    ) -> MaterializationResult:
        self._check_skeleton(skeleton)
        created = self._claim_output(output)

        result = MaterializationResult(output_dir=str(output), artifact_ids=bundle.ids)
        result.warnings.extend(str(w) for w in bundle.warnings)

        try:
            plan = self.plan(bundle, project_name, description)

            # 1-2. Skeleton copy and placeholder removal
            await asyncio.to_thread(self._copy_skeleton, skeleton, output)
            await asyncio.to_thread(self._strip_placeholders, output)
            await self._write_shared_files(output)

            # 3. Bundle files
            for op in plan.copies:
                written = await asyncio.to_thread(self._copy_file, op.source, output / op.destination)
                (result.files_written if written else result.files_unchanged).append(op.destination)

            # 4. Deploy script
            for op in plan.writes:
                await asyncio.to_thread(write_if_changed, output / op.destination, op.content)
                result.files_written.append(op.destination)
                result.deploy_script = op.destination

            # 5. Manifest edits
            for op in plan.manifest_edits:
                edit = op.manifest
                result.npm_changes.extend(await asyncio.to_thread(
                    merge_package_json,
                    output / op.destination,
                    name=edit.name,
                    description=edit.description,
                    dependencies=edit.dependencies,
                    drop_overrides=edit.drop_overrides,
                ))
        except MaterializationError:
            await asyncio.to_thread(_discard_output, output, created)
            raise
        except (OSError, ValueError, TemplateError) as exc:
            await asyncio.to_thread(_discard_output, output, created)
            raise MaterializationError(
                f"Materialization failed, removed {output}: {exc}", reference=str(output)
            ) from exc

        # 6. Fresh repository
        if self.config.init_git:
            try:
                await init_repository(output)
                result.git_initialized = True
            except GitError as exc:
                result.warnings.append(f"git init failed: {exc}")

        console.print(
            f"  [green]Materialized[/green] [bold]{', '.join(bundle.ids)}[/bold] "
            f"into {output} ({len(result.files_written)} files)"
        )
        return result

    # -- Steps -------------------------------------------------------------

    def _check_skeleton(self, skeleton: Path) -> None:
        if not skeleton.is_dir():
            raise MaterializationError(
                f"Skeleton not found: {skeleton}. "
                "Run `git submodule update --init` to fetch it.",
                reference=str(skeleton),
            )
        if not (skeleton / PACKAGE_JSON).is_file():
            raise MaterializationError(
                f"Skeleton is corrupt: {skeleton / PACKAGE_JSON} is missing",
                reference=str(skeleton),
            )

    def _claim_output(self, output: Path) -> bool:
        """Ensure *output* is absent or empty; return True if it is absent."""
        if output.exists():
            if not output.is_dir() or any(output.iterdir()):
                raise MaterializationError(
                    f"Directory already exists: {output}", reference=str(output)
                )
            return False
        return True

    def _copy_skeleton(self, skeleton: Path, output: Path) -> None:
        shutil.copytree(
            skeleton,
            output,
            ignore=shutil.ignore_patterns(*self.config.skeleton.exclude_dirs),
            dirs_exist_ok=True,
        )

    def _strip_placeholders(self, output: Path) -> None:
        for name in _SKELETON_CRUFT:
            _remove(output / name)
        for placeholder in self.config.skeleton.placeholder_contracts:
            _remove(output / placeholder)
        _remove(output / "contracts" / ".gitkeep")

        tests = output / "test"
        if tests.is_dir():
            for entry in sorted(tests.iterdir()):
                if entry.is_file() and (entry.suffix == ".ts" or entry.name == ".gitkeep"):
                    entry.unlink()

        hardhat_config = find_hardhat_config(output)
        if hardhat_config is not None:
            strip_task_imports(hardhat_config)

    async def _write_shared_files(self, output: Path) -> None:
        """``.gitignore`` (only when the skeleton has none) and signer types."""
        gitignore = output / ".gitignore"
        if not gitignore.exists():
            await self.renderer.render_to_file("gitignore.j2", gitignore, {})
        await self.renderer.render_to_file(
            "test/types.ts.j2", output / "test" / "types.ts", {"signers": _DEFAULT_SIGNERS}
        )

    def _copy_file(self, source: str, destination: Path) -> bool:
        source_path = self.config.source_root / source
        if not source_path.is_file():
            raise MaterializationError(f"Source file missing: {source}", reference=source)
        return write_if_changed(destination, source_path.read_bytes())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _discard_output(output: Path, created: bool) -> None:
    """Remove everything a failed run wrote."""
    if not output.exists():
        return
    if created:
        shutil.rmtree(output)
        return
    for entry in output.iterdir():
        _remove(entry)
