"""Catalog CLI commands: list, search, bundles."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import load_components, run_async

console = Console()


def _skills_table(entries, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Tags", style="dim")
    table.add_column("Description")
    for entry in entries:
        table.add_row(entry.name, entry.version, ", ".join(entry.tags), entry.description[:80])
    return table


@click.command()
@click.option("--refresh", is_flag=True, help="Ignore the cache and refetch all sources")
def catalog(refresh: bool):
    """List every skill in the configured catalog sources."""
    c = load_components()
    entries = run_async(c, c["service"].get_catalog(force_refresh=refresh))
    if not entries:
        console.print("[yellow]Catalog is empty or unreachable.[/]")
        return
    console.print(_skills_table(entries, f"Catalog ({len(entries)} skills)"))


@click.command()
@click.argument("query", required=False)
@click.option("--tag", "tags", multiple=True, help="Filter by tag (repeatable)")
def search(query: str, tags: tuple):
    """Search catalog skills."""
    c = load_components()
    entries = run_async(c, c["catalog"].search(query, list(tags)))
    if not entries:
        console.print("[yellow]No matching skills.[/]")
        return
    console.print(_skills_table(entries, "Search results"))


@click.command()
@click.argument("query", required=False)
def bundles(query: str):
    """List curated skill bundles."""
    c = load_components()
    found = run_async(c, c["catalog"].search_bundles(query))
    if not found:
        console.print("[yellow]No bundles found.[/]")
        return

    table = Table(title="Bundles")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Skills")
    for bundle in found:
        table.add_row(bundle.id, bundle.name, ", ".join(bundle.skills))
    console.print(table)
