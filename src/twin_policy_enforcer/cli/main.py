"""CLI entry point for twin-policy-enforcer.

Invoked as::

    twin-enforcer [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m twin_policy_enforcer.cli.main

Commands
--------
- validate   Load and compile policy files, print a summary per policy
- inspect    List every compiled (resource key, subject) declaration
- check      Evaluate required permissions on a resource key
- view       Print the permission-filtered view of a JSON document
- version    Show version information
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from twin_policy_enforcer.config import ConfigLoader, EnforcerConfig
from twin_policy_enforcer.enforcement.enforcer import PolicyEnforcer
from twin_policy_enforcer.errors import EnforcementError
from twin_policy_enforcer.policies.loader import PolicyLoader
from twin_policy_enforcer.policies.model import Policy

console = Console()
err_console = Console(stderr=True)

_EXIT_DENIED = 1
_EXIT_INVALID = 2


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_policy(policy_file: str, strict: bool = False) -> Policy:
    try:
        return PolicyLoader(strict=strict).load(policy_file)
    except (EnforcementError, FileNotFoundError) as exc:
        err_console.print(f"[red]Invalid policy:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_INVALID)


def _build_enforcer(ctx: click.Context, policy_file: str, algorithm: str | None) -> PolicyEnforcer:
    config: EnforcerConfig = ctx.obj["config"]
    policy = _load_policy(policy_file)
    try:
        return PolicyEnforcer.from_policy(policy, config, algorithm=algorithm)
    except (EnforcementError, ValueError) as exc:
        err_console.print(f"[red]Compilation failed:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_INVALID)


_algorithm_option = click.option(
    "--algorithm",
    type=click.Choice(["trie", "flat"]),
    default=None,
    help="Override the compiled policy implementation from the config.",
)
_resource_option = click.option(
    "--resource",
    "-r",
    "resource_key",
    required=True,
    help="Resource key, e.g. 'thing:/features/lamp'.",
)
_subject_option = click.option(
    "--subject",
    "-s",
    "subjects",
    multiple=True,
    help="Authorization subject id of the requester (repeatable).",
)
_permission_option = click.option(
    "--permission",
    "-p",
    "permissions",
    multiple=True,
    default=("READ",),
    show_default=True,
    help="Required permission (repeatable).",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="twin-policy-enforcer")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=True),
    help="Path to an enforcer YAML config.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Twin policy enforcer CLI: inspect policies and evaluate permissions."""
    if config_path is not None:
        try:
            config = ConfigLoader().load(Path(config_path))
        except EnforcementError as exc:
            err_console.print(f"[red]Invalid config:[/red] {escape(str(exc))}")
            sys.exit(_EXIT_INVALID)
    else:
        config = EnforcerConfig()

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from twin_policy_enforcer import __version__

    console.print(
        Panel(
            f"[bold]twin-policy-enforcer[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Policy enforcement engine for digital-twin resources.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@click.argument("policy_files", nargs=-1, type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Reject unknown top-level keys.")
@_algorithm_option
@click.pass_context
def validate_command(
    ctx: click.Context, policy_files: tuple[str, ...], strict: bool, algorithm: str | None
) -> None:
    """Validate and compile policy files.

    Without arguments, the ``policy_files`` of the enforcer config are used.
    """
    config: EnforcerConfig = ctx.obj["config"]
    paths = list(policy_files) or [str(p) for p in config.policy_files]
    if not paths:
        err_console.print("[red]No policy files given and none configured.[/red]")
        sys.exit(_EXIT_INVALID)

    for policy_file in paths:
        policy = _load_policy(policy_file, strict=strict)
        try:
            enforcer = PolicyEnforcer.from_policy(policy, config, algorithm=algorithm)
        except EnforcementError as exc:
            err_console.print(f"[red]Compilation failed:[/red] {escape(str(exc))}")
            sys.exit(_EXIT_INVALID)

        compiled = enforcer.compiled_policy
        console.print(
            Panel(
                f"[green]VALID[/green]  '{escape(policy.policy_id or policy_file)}'\n"
                f"  Entries: {len(policy.entries)}  "
                f"Subjects: {len(compiled.subject_ids)}  "
                f"Resource keys: {sum(1 for _ in compiled.resource_keys())}  "
                f"Algorithm: {compiled.algorithm}",
                title="Policy Validation",
                border_style="green",
            )
        )


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------


@cli.command(name="inspect")
@click.argument("policy_file", type=click.Path(exists=True))
@click.option("--subject", "-s", "subject_filter", default=None, help="Only show one subject.")
@_algorithm_option
@click.pass_context
def inspect_command(
    ctx: click.Context, policy_file: str, subject_filter: str | None, algorithm: str | None
) -> None:
    """List the merged grant/revoke declarations of a compiled policy."""
    enforcer = _build_enforcer(ctx, policy_file, algorithm)

    table = Table(title="Compiled Declarations", box=box.SIMPLE)
    table.add_column("Resource", style="cyan")
    table.add_column("Subject", style="magenta")
    table.add_column("Grant", style="green")
    table.add_column("Revoke", style="red")
    rows = sorted(
        enforcer.compiled_policy.declarations(),
        key=lambda row: (row[0].resource_type, row[0].path.segments, row[1]),
    )
    for resource_key, subject_id, effected in rows:
        if subject_filter is not None and subject_id != subject_filter:
            continue
        table.add_row(
            escape(str(resource_key)),
            escape(subject_id),
            ", ".join(effected.granted.to_list()),
            ", ".join(effected.revoked.to_list()),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("policy_file", type=click.Path(exists=True))
@_resource_option
@_subject_option
@_permission_option
@_algorithm_option
@click.pass_context
def check_command(
    ctx: click.Context,
    policy_file: str,
    resource_key: str,
    subjects: tuple[str, ...],
    permissions: tuple[str, ...],
    algorithm: str | None,
) -> None:
    """Check whether the subjects hold the permissions on a resource."""
    enforcer = _build_enforcer(ctx, policy_file, algorithm)
    try:
        decision = enforcer.check(resource_key, subjects, permissions)
    except EnforcementError as exc:
        err_console.print(f"[red]Invalid request:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_INVALID)

    if decision.allowed:
        status_str = "[green]ALLOWED[/green]"
    elif decision.partial:
        status_str = "[yellow]PARTIAL[/yellow]"
    else:
        status_str = "[red]DENIED[/red]"

    console.print(Panel(status_str, title="Enforcement Result", border_style="blue"))
    console.print(f"  Resource: [bold]{escape(str(decision.resource_key))}[/bold]")
    console.print(f"  Granted: {', '.join(decision.granted.to_list()) or '-'}")
    if decision.missing:
        console.print(f"  Missing: [red]{', '.join(decision.missing.to_list())}[/red]")
    console.print(f"  Reason: {escape(decision.reason)}")

    sys.exit(0 if decision.allowed else _EXIT_DENIED)


# ---------------------------------------------------------------------------
# view
# ---------------------------------------------------------------------------


@cli.command(name="view")
@click.argument("policy_file", type=click.Path(exists=True))
@click.argument("document_file", type=click.Path(exists=True))
@_resource_option
@_subject_option
@_permission_option
@click.option(
    "--allow",
    "allowlist",
    multiple=True,
    help="Document pointer always shown to relevant subjects, e.g. '/thingId' (repeatable).",
)
@_algorithm_option
@click.pass_context
def view_command(
    ctx: click.Context,
    policy_file: str,
    document_file: str,
    resource_key: str,
    subjects: tuple[str, ...],
    permissions: tuple[str, ...],
    allowlist: tuple[str, ...],
    algorithm: str | None,
) -> None:
    """Print the part of a JSON document the subjects may see."""
    enforcer = _build_enforcer(ctx, policy_file, algorithm)
    try:
        document = json.loads(Path(document_file).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        err_console.print(f"[red]Invalid JSON:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_INVALID)

    try:
        view = enforcer.build_view(resource_key, document, subjects, permissions, allowlist)
    except EnforcementError as exc:
        err_console.print(f"[red]Invalid request:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_INVALID)

    click.echo(json.dumps(view, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
