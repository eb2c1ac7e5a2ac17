"""CLI entry point for mother-skills."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import (
    bundles,
    catalog,
    detect,
    init,
    install,
    installed,
    preview,
    search,
    sync,
    uninstall,
    updates,
)
from cli.config import load_config_model
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
def cli(verbose: bool, json_logs: bool):
    """Mother - provision agent skills for the detected project stack."""
    try:
        level = load_config_model().logging.level
    except ValueError:
        level = "INFO"
    setup_logging(json_mode=json_logs, level="DEBUG" if verbose else level)


@cli.command()
def serve():
    """Run the MCP server on stdio."""
    import asyncio

    from skills_mcp.server import run

    asyncio.run(run())


for command in (detect, catalog, search, bundles, preview, sync, install, uninstall, installed, updates, init):
    cli.add_command(command)


if __name__ == "__main__":
    cli()
