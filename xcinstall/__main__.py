"""Main entry point for xcinstall CLI."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import structlog
from pydantic import ValidationError
from rich.console import Console

from xcinstall import __version__
from xcinstall.commands.install import install
from xcinstall.commands.versions import installed, list_versions, select, selected, update
from xcinstall.core.config import AppConfig

logger = structlog.get_logger()


def configure_logging(level: str, colors: bool = False) -> None:
    """Route structlog through stdlib logging at the given level.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        colors: Colorize the console renderer
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level))
    if not root.handlers:
        root.addHandler(logging.StreamHandler(sys.stderr))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@click.group()
@click.version_option(version=__version__, prog_name="xcinstall")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", "-d", is_flag=True, help="Enable debug output")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["rich", "json", "plain"], case_sensitive=False),
    default="rich",
    help="Output format",
)
@click.pass_context
def main(
    ctx: click.Context,
    config: Path | None,
    verbose: bool,
    debug: bool,
    output: str,
) -> None:
    """Install and switch between Xcode releases."""
    ctx.ensure_object(dict)

    try:
        app_config = AppConfig.load(config)
    except (OSError, ValueError, ValidationError) as e:
        click.echo(f"Error: Failed to load configuration: {e}", err=True)
        sys.exit(1)

    # CLI flags win over the configured level
    if debug:
        app_config.log_level = "DEBUG"
    elif verbose:
        app_config.log_level = "INFO"
    app_config.output_format = output

    configure_logging(app_config.log_level, colors=debug and output == "rich")

    console = Console(
        force_terminal=output == "rich",
        no_color=output != "rich",
        width=None if output == "rich" else 120,
    )

    ctx.obj["config"] = app_config
    ctx.obj["console"] = console
    ctx.obj["verbose"] = verbose or debug
    ctx.obj["debug"] = debug

    logger.debug("cli_initialized", config=app_config.model_dump(mode="json"))


main.add_command(install)
main.add_command(installed)
main.add_command(list_versions)
main.add_command(select)
main.add_command(selected)
main.add_command(update)


if __name__ == "__main__":
    main()
