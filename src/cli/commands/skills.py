"""Single-skill CLI commands: install, uninstall, installed, updates."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import load_components, run_async
from shared_types import InstallStatus

console = Console()


@click.command()
@click.argument("name")
def install(name: str):
    """Install a catalog skill by name."""
    c = load_components()
    outcome = run_async(c, c["service"].install(name))
    if outcome.status == InstallStatus.INSTALLED:
        console.print(f"[green]Installed:[/] {name} v{outcome.version} -> {outcome.path}")
    elif outcome.status == InstallStatus.NOT_FOUND:
        console.print(f"[yellow]{outcome.message}[/]")
    else:
        console.print(f"[red]Install failed:[/] {outcome.message}")
        raise SystemExit(1)


@click.command()
@click.argument("name")
def uninstall(name: str):
    """Remove an installed skill."""
    c = load_components()
    outcome = c["service"].uninstall(name)
    if outcome.status == InstallStatus.UNINSTALLED:
        console.print(f"[green]Uninstalled:[/] {name}")
    elif outcome.status == InstallStatus.NOT_FOUND:
        console.print(f"[yellow]{outcome.message}[/]")
    else:
        console.print(f"[red]Uninstall failed:[/] {outcome.message}")
        raise SystemExit(1)


@click.command()
def installed():
    """List installed skills."""
    c = load_components()
    skills = c["materializer"].list_installed()
    if not skills:
        console.print(f"[yellow]No skills installed in {c['paths']['install_path']}[/]")
        return

    table = Table(title="Installed Skills")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Installed", style="dim")
    for skill in skills:
        table.add_row(skill.name, skill.version, skill.installed_at.strftime("%Y-%m-%d %H:%M"))
    console.print(table)


@click.command()
def updates():
    """Show installed skills with a newer catalog version."""
    c = load_components()
    found = run_async(c, c["service"].check_updates())
    if not found:
        console.print("[green]All installed skills are current.[/]")
        return
    for item in found:
        console.print(f"{item['name']}: {item['current_version']} -> [bold]{item['latest_version']}[/]")
