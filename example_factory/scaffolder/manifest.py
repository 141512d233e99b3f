"""Structural edits to ``package.json`` and ``hardhat.config.*``.

These edits are never treated as whole-file conflicts: each one inserts only
what is missing and rewrites the file only when its content changes, so
applying the same edit twice leaves the file exactly as after the first run.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from example_factory.utils import dump_json, load_json, write_if_changed

PACKAGE_JSON = "package.json"
HARDHAT_CONFIG_NAMES = ("hardhat.config.ts", "hardhat.config.js")

_IMPORT_LINE = re.compile(r"^\s*import\s")
_STATEMENT_END = re.compile(r"""(;|["'])\s*$""")
_TASK_IMPORT = re.compile(r"""^import ["']\./tasks/[^"']+["'];?[ \t]*\n?""", re.MULTILINE)


# ---------------------------------------------------------------------------
# package.json
# ---------------------------------------------------------------------------

def merge_package_json(
    path: Path,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    dependencies: Optional[dict[str, str]] = None,
    dev_dependencies: Optional[dict[str, str]] = None,
    drop_overrides: tuple[str, ...] = (),
) -> list[str]:
    """Apply insert-only dependency edits (and optional metadata) to *path*.

    A package already listed under ``dependencies`` or ``devDependencies`` is
    left at whatever version the project declares.

    Returns:
        Human-readable descriptions of the changes made (empty if none).

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If *path* is not a JSON object.
    """
    data = load_json(path)
    changes: list[str] = []

    if name is not None and data.get("name") != name:
        data["name"] = name
        changes.append(f"name = {name}")
    if description and data.get("description") != description:
        data["description"] = description
        changes.append("description updated")

    declared = {**data.get("devDependencies", {}), **data.get("dependencies", {})}
    for section, packages in (
        ("dependencies", dependencies or {}),
        ("devDependencies", dev_dependencies or {}),
    ):
        for package, version in packages.items():
            if package in declared:
                continue
            data.setdefault(section, {})[package] = version
            declared[package] = version
            changes.append(f"{section}: {package}@{version}")

    overrides = data.get("overrides")
    if isinstance(overrides, dict):
        for key in drop_overrides:
            if key in overrides:
                del overrides[key]
                changes.append(f"overrides: removed {key}")

    if changes:
        write_if_changed(path, dump_json(data))
    return changes


# ---------------------------------------------------------------------------
# hardhat.config
# ---------------------------------------------------------------------------

def find_hardhat_config(project_dir: Path) -> Optional[Path]:
    """Return the project's Hardhat config file, preferring TypeScript."""
    for name in HARDHAT_CONFIG_NAMES:
        candidate = project_dir / name
        if candidate.is_file():
            return candidate
    return None


def ensure_plugin_import(config_path: Path, module: str) -> bool:
    """Insert ``import "<module>";`` after the last import unless already imported.

    Returns:
        ``True`` if the file was modified.
    """
    content = config_path.read_text(encoding="utf-8")
    if re.search(rf"""["']{re.escape(module)}["']""", content):
        return False

    statement = f'import "{module}";'
    lines = content.split("\n")
    last_import = -1
    index = 0
    while index < len(lines):
        if _IMPORT_LINE.match(lines[index]):
            # Multi-line imports end on the line carrying the module specifier.
            while index < len(lines) - 1 and not _STATEMENT_END.search(lines[index]):
                index += 1
            last_import = index
        index += 1
    lines.insert(last_import + 1, statement)
    return write_if_changed(config_path, "\n".join(lines))


def strip_task_imports(config_path: Path) -> bool:
    """Remove ``import "./tasks/..."`` lines; returns ``True`` if any were removed."""
    content = config_path.read_text(encoding="utf-8")
    stripped = _TASK_IMPORT.sub("", content)
    return write_if_changed(config_path, stripped)
