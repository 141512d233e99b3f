"""Shared utility functions for the Example Factory.

Provides async command execution, naming helpers for artifact ids, titles and
categories, deterministic JSON I/O, file helpers, and Rich-based console
reporting.  Every public function is side-effect-free where possible, with
clear error messages when something goes wrong.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously and capture its output.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A missing executable yields
        returncode ``127`` and a timeout yields ``-1``; neither raises.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def to_kebab_case(name: str) -> str:
    """Convert a contract name to a kebab-case slug, keeping acronyms whole.

    Examples::

        to_kebab_case("FHECounter")          -> "fhe-counter"
        to_kebab_case("ERC7984")             -> "erc7984"
        to_kebab_case("ERC7984ERC20Wrapper") -> "erc7984-erc20-wrapper"
    """
    result = re.sub(r"([a-z])([A-Z])", r"\1-\2", name)
    result = re.sub(r"([0-9])([A-Z])", r"\1-\2", result)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", result)
    return result.lower()


def contract_name_to_title(name: str) -> str:
    """Split a contract name into words: ``FHECounter`` -> ``FHE Counter``."""
    result = re.sub(r"([a-z])([A-Z])", r"\1 \2", name)
    result = re.sub(r"([0-9])([A-Z])", r"\1 \2", result)
    return re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", result)


def format_category_name(folder: str) -> str:
    """Format a folder name as a category label.

    ``"fhe-operations"`` -> ``"FHE Operations"``, ``"basic"`` -> ``"Basic"``.
    """
    words = folder.replace("-", " ").split()
    return " ".join("FHE" if w.lower() == "fhe" else w[:1].upper() + w[1:] for w in words)


def category_key(category: str) -> str:
    """``"Basic - Encryption"`` -> ``"basicencryption"``."""
    return re.sub(r"[\s-]+", "", category.lower())


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file that contains a top-level object.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not an object.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return data


def dump_json(data: Any) -> str:
    """Serialise *data* the way ``npm`` writes ``package.json`` files."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_if_changed(path: Path, content: str | bytes) -> bool:
    """Write *content* to *path* unless the file already holds exactly it.

    Parent directories are created automatically.

    Returns:
        ``True`` if the file was written.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    if path.is_file() and path.read_bytes() == data:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return True


def format_duration(seconds: float) -> str:
    """Format a duration in seconds: ``3.7`` -> ``"3.7s"``, ``65.2`` -> ``"1m 5s"``."""
    if seconds < 0:
        return "0.0s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    """Print a full-width rule announcing a command."""
    console.print()
    console.print(Rule(f"[bold bright_cyan] {title} [/bold bright_cyan]", style="bright_cyan"))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
