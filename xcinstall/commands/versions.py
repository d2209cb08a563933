"""List, refresh and select Xcode versions."""

from __future__ import annotations

import json
import sys

import click
import structlog
from rich.console import Console
from rich.table import Table

from xcinstall.core.config import AppConfig
from xcinstall.core.errors import XcinstallError
from xcinstall.core.installer import Installer

logger = structlog.get_logger()


def _get_context_objects(ctx: click.Context) -> tuple[AppConfig, Console, bool, bool]:
    """Extract common context objects."""
    config: AppConfig = ctx.obj["config"]
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj["verbose"]
    debug: bool = ctx.obj["debug"]
    return config, console, verbose, debug


def get_installer(ctx: click.Context) -> Installer:
    """Get the installer stored on the context, creating it once."""
    if ctx.obj.get("installer") is None:
        ctx.obj["installer"] = Installer.create(ctx.obj["config"], console=ctx.obj["console"])
    return ctx.obj["installer"]


def _print_names(names: list[str], config: AppConfig, console: Console) -> None:
    if config.output_format == "json":
        print(json.dumps(names, indent=2))
        return
    for name in names:
        console.print(name, highlight=False)


@click.command("list")
@click.option("--all", "show_all", is_flag=True, help="List every catalog version")
@click.pass_context
def list_versions(ctx: click.Context, show_all: bool) -> None:
    """List Xcode versions available to install.

    By default only versions of the latest stable major release are shown.
    """
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        installer = get_installer(ctx)
        names = installer.list_all() if show_all else installer.list_current()
    except XcinstallError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    _print_names(names, config, console)


@click.command("update")
@click.pass_context
def update(ctx: click.Context) -> None:
    """Purge the catalog cache and fetch the catalog again."""
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        names = get_installer(ctx).update()
    except XcinstallError as e:
        logger.error("catalog_update_failed", error=str(e))
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if config.output_format == "json":
        print(json.dumps({"versions": len(names)}, indent=2))
    else:
        console.print(f"[green]Catalog updated: {len(names)} versions[/green]")
        if verbose:
            _print_names(names, config, console)


@click.command("installed")
@click.pass_context
def installed(ctx: click.Context) -> None:
    """List installed Xcode versions."""
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        installer = get_installer(ctx)
        entries = installer.registry.list_installed()
        active = installer.symlinks_to()
    except XcinstallError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if config.output_format == "json":
        data = [
            {"version": e.version, "path": str(e.path), "active": active == e.path}
            for e in entries
        ]
        print(json.dumps(data, indent=2))
        return

    table = Table(title="Installed Xcode Versions", show_header=True)
    table.add_column("Version", style="cyan")
    table.add_column("Path", style="magenta")
    table.add_column("Active", justify="center", style="green")
    for entry in entries:
        table.add_row(entry.version, str(entry.path), "*" if active == entry.path else "")
    console.print(table)


@click.command("selected")
@click.pass_context
def selected(ctx: click.Context) -> None:
    """Show the bundle the active-version symlink points to."""
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        target = get_installer(ctx).symlinks_to()
    except XcinstallError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if config.output_format == "json":
        print(json.dumps({"selected": str(target) if target else None}, indent=2))
    elif target is None:
        console.print("[yellow]No active Xcode symlink[/yellow]")
    else:
        console.print(str(target), highlight=False)


@click.command("select")
@click.argument("version")
@click.pass_context
def select(ctx: click.Context, version: str) -> None:
    """Point the active-version symlink at an installed VERSION."""
    config, console, verbose, debug = _get_context_objects(ctx)

    try:
        switched = get_installer(ctx).symlink(version)
    except XcinstallError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not switched:
        console.print(f"[red]Error: Xcode {version} is not installed[/red]")
        sys.exit(1)

    console.print(f"[green]Selected Xcode {version}[/green]")
