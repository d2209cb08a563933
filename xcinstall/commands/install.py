"""Download and install Xcode versions."""

from __future__ import annotations

import sys

import click
import structlog

from xcinstall.commands.versions import _get_context_objects, get_installer
from xcinstall.core.errors import IntegrityError, SourceNotFoundError, XcinstallError

logger = structlog.get_logger()


@click.command("install")
@click.argument("version")
@click.option("--url", help="Download URL or local disk image path overriding the catalog")
@click.option("--switch/--no-switch", default=True, help="Make the new version active")
@click.option("--clean/--no-clean", default=True, help="Delete the disk image after installing")
@click.option("--install/--no-install", default=True, help="Only download when disabled")
@click.option("--progress/--no-progress", default=True, help="Show download progress")
@click.option("--release-notes", is_flag=True, help="Open the release notes afterwards")
@click.pass_context
def install(
    ctx: click.Context,
    version: str,
    url: str | None,
    switch: bool,
    clean: bool,
    install: bool,
    progress: bool,
    release_notes: bool,
) -> None:
    """Download and install Xcode VERSION."""
    config, console, verbose, debug = _get_context_objects(ctx)
    installer = get_installer(ctx)

    try:
        if url is None and installer.installed(version):
            console.print(f"[yellow]Xcode {version} is already installed[/yellow]")
            return

        if install:
            console.print("Please authenticate for Xcode installation...")

        result = installer.install_version(
            version,
            switch=switch,
            clean=clean,
            install=install,
            show_progress=progress,
            url=url,
            open_release_notes=release_notes,
        )
    except SourceNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except IntegrityError as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose and e.output:
            console.print(e.output, highlight=False)
        sys.exit(1)
    except XcinstallError as e:
        logger.error("install_failed", version=version, error=str(e))
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if result is None:
        console.print(f"[green]Downloaded Xcode {version}[/green]")
        return

    console.print(f"[green]Installed Xcode {version} to {result.install_path}[/green]")
    if verbose:
        console.print(f"Final state: {result.state.value}")
