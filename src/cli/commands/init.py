"""Init CLI command."""

import click
from rich.console import Console

from cli.config import config_path_for, init_config

console = Console()


@click.command()
def init():
    """Create .mother/config.yaml with defaults."""
    path = config_path_for()
    try:
        config, created = init_config(path)
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        raise SystemExit(1)

    if created:
        console.print(f"[green]✓[/] Created config: {path}")
    else:
        console.print(f"[dim]Config already exists:[/] {path}")

    console.print(f"Install path: {config.install_path}")
    for source in sorted(config.registry, key=lambda s: s.priority):
        console.print(f"Registry (priority {source.priority}): {source.url}")
