"""Registry persistence.

The registry is stored as pretty-printed JSON so that it diffs cleanly and a
rerun of discovery on an unchanged tree leaves the file byte-for-byte intact.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from example_factory.errors import DiscoveryError
from example_factory.registry.models import Registry
from example_factory.utils import write_if_changed


def serialize_registry(registry: Registry) -> str:
    """Return the canonical on-disk text for *registry*."""
    return registry.model_dump_json(indent=2) + "\n"


def load_registry(path: str | Path) -> Registry:
    """Load a registry file; a missing file yields an empty registry.

    Raises:
        DiscoveryError: If the file exists but cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.exists():
        return Registry()
    try:
        text = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DiscoveryError(str(file_path), "corrupt registry file (not valid UTF-8)") from exc
    try:
        return Registry.model_validate_json(text)
    except PydanticValidationError as exc:
        raise DiscoveryError(str(file_path), f"corrupt registry file ({exc.error_count()} errors)") from exc


def save_registry(registry: Registry, path: str | Path) -> bool:
    """Persist *registry*; returns ``True`` if the file content changed."""
    return write_if_changed(Path(path), serialize_registry(registry))
