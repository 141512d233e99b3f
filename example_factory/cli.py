"""Command-line interface for the Example Factory.

Subcommands map one-to-one onto the engine: ``discover`` rebuilds the
registry, ``list`` prints it, ``create`` materializes a standalone project,
``add`` merges examples into an existing Hardhat project and ``doctor``
runs the validator.  Failures exit with the code carried by the raised
``ExampleFactoryError``.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.prompt import Prompt
from rich.table import Table

from example_factory.arbiter import ConflictArbiter, ConflictDecision, DecisionPolicy, FileState, always
from example_factory.config import Config
from example_factory.errors import ConflictError, ExampleFactoryError
from example_factory.registry import Registry, discover_tree, load_registry, save_registry
from example_factory.resolver import resolve, resolve_category
from example_factory.scaffolder import ProjectMaterializer, run_post_scaffold
from example_factory.utils import (
    console,
    format_duration,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)
from example_factory.validator import RuleStatus, probe_environment, validate

_STATUS_STYLE = {
    RuleStatus.PASS: "[green]pass[/green]",
    RuleStatus.WARN: "[yellow]warn[/yellow]",
    RuleStatus.FAIL: "[red]fail[/red]",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def build_config(args: argparse.Namespace) -> Config:
    """Environment defaults overridden by explicit command-line flags."""
    config = Config.from_env()
    updates: dict[str, object] = {}
    if args.root:
        updates["source_root"] = Path(args.root)
    if args.registry:
        updates["registry_file"] = args.registry
    if args.skeleton:
        updates["skeleton_dir_override"] = Path(args.skeleton)
    return config.model_copy(update=updates) if updates else config


def load_or_discover(config: Config) -> Registry:
    """Load the persisted registry, discovering in memory when none exists."""
    if config.registry_path.is_file():
        return load_registry(config.registry_path)
    print_warning(f"No registry at {config.registry_path}; discovering from source tree")
    result = discover_tree(
        config.source_root,
        contracts_dir=config.contracts_dir,
        tests_dir=config.tests_dir,
    )
    for error in result.errors:
        print_warning(f"  skipped {error}")
    return result.registry


def prompt_policy(path: Path, existing: bytes, incoming: bytes) -> ConflictDecision:
    """Ask on the terminal how to settle one conflicting file."""
    console.print(
        f"[bold yellow]Conflict:[/bold yellow] {path} exists "
        f"({len(existing)} bytes, incoming {len(incoming)} bytes)"
    )
    answer = Prompt.ask(
        "  Keep existing, overwrite, or write alongside?",
        choices=[d.value for d in ConflictDecision],
        default=ConflictDecision.SKIP.value,
        console=console,
    )
    return ConflictDecision(answer)


def decision_policy(name: Optional[str]) -> Optional[DecisionPolicy]:
    if name is None:
        return None
    if name == "ask":
        return prompt_policy
    return always(ConflictDecision(name))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_discover(config: Config, args: argparse.Namespace) -> int:
    print_header("Discover")
    previous = load_registry(config.registry_path)
    result = discover_tree(
        config.source_root,
        previous,
        contracts_dir=config.contracts_dir,
        tests_dir=config.tests_dir,
    )
    for error in result.errors:
        print_warning(f"  {error}")
    for removed in result.removed:
        print_warning(f"  removed {removed} (contract no longer exists)")

    changed = save_registry(result.registry, config.registry_path)
    print_summary_table(
        {name: str(count) for name, count in result.category_counts().items()},
        title=f"{len(result.registry)} examples",
    )
    if changed:
        print_success(f"Registry written to {config.registry_path}")
    else:
        console.print(f"[dim]Registry unchanged: {config.registry_path}[/dim]")
    return 0 if result.ok else result.errors[0].exit_code


def cmd_list(config: Config, args: argparse.Namespace) -> int:
    registry = load_or_discover(config)
    for category in registry.categories().values():
        table = Table(
            title=f"{category.name} [dim]({category.key})[/dim]",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Example", style="bold", no_wrap=True)
        table.add_column("Description")
        for artifact_id in category.ids:
            artifact = registry.get(artifact_id)
            if artifact is not None:
                table.add_row(artifact_id, artifact.description)
        console.print(table)
    console.print(f"[dim]{len(registry)} examples[/dim]")
    return 0


async def cmd_create(config: Config, args: argparse.Namespace) -> int:
    registry = load_or_discover(config)
    materializer = ProjectMaterializer(config)

    if args.example:
        bundle = resolve(registry, args.example)
        output = Path(args.output or f"./output/{bundle.primary.id}")
        print_header(f"Create {', '.join(bundle.ids)}")
        result = await materializer.materialize_new(config.skeleton_path, bundle, output)
    else:
        bundle = resolve_category(registry, args.category)
        output = Path(args.output or f"./output/{args.category}")
        print_header(f"Create category {args.category}")
        result = await materializer.materialize_category(config.skeleton_path, [bundle], output)

    for warning in result.warnings:
        print_warning(f"  {warning}")
    print_summary_table({
        "Output": result.output_dir,
        "Examples": ", ".join(result.artifact_ids),
        "Files": str(len(result.files_written) + len(result.files_unchanged)),
        "Deploy script": result.deploy_script,
        "Git": "initialized" if result.git_initialized else "not initialized",
    })

    if args.install or args.test:
        report = await run_post_scaffold(
            output, install=True, test=args.test, timeout=config.command_timeout
        )
        for step in report.steps:
            mark = "[green]ok[/green]" if step.success else "[red]failed[/red]"
            console.print(
                f"  {step.name}: {mark} ({format_duration(step.duration_seconds)}) {step.summary}"
            )
        if not report.success:
            print_error(f"Post-scaffold step '{report.failed_step.name}' failed")
            return 1

    print_success(f"Project ready at {output}")
    console.print(f"[dim]  cd {output} && npm install && npm run compile && npm run test[/dim]")
    return 0


async def cmd_add(config: Config, args: argparse.Namespace) -> int:
    registry = load_or_discover(config)
    bundle = resolve(registry, args.example)
    print_header(f"Add {', '.join(bundle.ids)}")

    arbiter = ConflictArbiter(config)
    report = await arbiter.apply_to_existing(bundle, args.target, decision_policy(args.on_conflict))

    for outcome in report.outcomes:
        suffix = f" -> {outcome.written_to}" if outcome.written_to else ""
        console.print(f"  {outcome.state.value:<18} {outcome.destination}{suffix}")
    for change in report.manifest_changes:
        console.print(f"  [dim]package.json: {change}[/dim]")
    if report.plugin_import_added:
        console.print(f"  [dim]hardhat config: import \"{config.host.plugin_import}\"[/dim]")
    for warning in report.warnings:
        print_warning(f"  {warning}")

    failed = report.by_state(FileState.FAILED)
    if failed:
        for outcome in failed:
            print_error(f"  {outcome.error}")
        print_warning("Re-run with --on-conflict skip|overwrite|rename|ask to settle conflicts")
        return ConflictError.exit_code

    print_success("Run `npm install` in the target project to fetch new dependencies")
    return 0


async def cmd_doctor(config: Config, args: argparse.Namespace) -> int:
    print_header("Doctor")
    registry = load_registry(config.registry_path)
    environment = await probe_environment(config, check_remote=args.remote)
    report = validate(registry, config.source_root, environment, config=config)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Check", no_wrap=True)
    table.add_column("Status")
    table.add_column("Message")
    for rule in report.rules:
        table.add_row(rule.name, _STATUS_STYLE[rule.status], rule.message)
    console.print(table)
    for rule in report.rules:
        for detail in rule.details:
            console.print(f"  [dim]{rule.name}:[/dim] {detail}")

    report.raise_for_failures()
    print_success("All checks passed")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="example-factory",
        description="FHEVM Example Factory -- scaffold and merge example projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  example-factory discover\n"
            "  example-factory list\n"
            "  example-factory create --example fhe-counter -o ./fhe-counter --test\n"
            "  example-factory create --category basicencryption\n"
            "  example-factory add --target ./my-app --example fhe-counter --on-conflict rename\n"
            "  example-factory doctor --remote\n"
        ),
    )
    parser.add_argument("--root", default=None, help="Source root (default: $EF_SOURCE_ROOT or .)")
    parser.add_argument("--registry", default=None, help="Registry file relative to the source root")
    parser.add_argument("--skeleton", default=None, help="Skeleton project directory")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("discover", help="Rebuild the registry from the source tree")
    sub.add_parser("list", help="List registered examples by category")

    create = sub.add_parser("create", help="Create a standalone example project")
    selection = create.add_mutually_exclusive_group(required=True)
    selection.add_argument("--example", "-e", action="append", help="Example id (repeatable)")
    selection.add_argument("--category", "-c", help="Category key, e.g. basicencryption")
    create.add_argument("--output", "-o", default=None, help="Output directory (default: ./output/<name>)")
    create.add_argument("--install", action="store_true", help="Run npm install afterwards")
    create.add_argument("--test", action="store_true", help="Install, compile and test afterwards")

    add = sub.add_parser("add", help="Add examples to an existing Hardhat project")
    add.add_argument("--target", "-t", default=".", help="Hardhat project directory (default: .)")
    add.add_argument("--example", "-e", action="append", required=True, help="Example id (repeatable)")
    add.add_argument(
        "--on-conflict",
        choices=["skip", "overwrite", "rename", "ask"],
        default=None,
        help="How to settle files that exist with different content (default: fail them)",
    )

    doctor = sub.add_parser("doctor", help="Check the registry, skeleton and toolchain")
    doctor.add_argument("--remote", action="store_true", help="Compare the skeleton against GitHub")
    return parser


def run(argv: Optional[list[str]] = None) -> int:
    """Parse *argv*, dispatch the subcommand and return its exit code."""
    args = build_parser().parse_args(argv)
    config = build_config(args)

    try:
        if args.command == "discover":
            return cmd_discover(config, args)
        if args.command == "list":
            return cmd_list(config, args)
        if args.command == "create":
            return asyncio.run(cmd_create(config, args))
        if args.command == "add":
            return asyncio.run(cmd_add(config, args))
        return asyncio.run(cmd_doctor(config, args))
    except ExampleFactoryError as exc:
        print_error(f"Error: {exc}")
        return exc.exit_code


def main() -> None:
    """CLI entry point for ``example-factory`` and ``python -m example_factory``."""
    sys.exit(run())


if __name__ == "__main__":
    main()
