"""Detect CLI command."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import load_components, run_async

console = Console()


@click.command()
@click.option("--save", is_flag=True, help="Also write the project context file")
def detect(save: bool):
    """Detect the project's technology stack."""
    c = load_components()
    service = c["service"]
    report = run_async(c, service.detect())

    for tier in report.tiers:
        if tier.skipped:
            console.print(f"[dim]{tier.tier}: skipped ({tier.error})[/]")
        elif not tier.ok:
            console.print(f"[yellow]{tier.tier}: failed[/] {tier.error}")

    if report.stack.is_empty():
        console.print("[yellow]No technologies detected.[/]")
        return

    table = Table(title="Detected Stack")
    table.add_column("Category", style="cyan")
    table.add_column("Technology")
    table.add_column("Version")
    table.add_column("Confidence", justify="right")
    table.add_column("Source", style="dim")

    for category in report.stack:
        for tech in report.stack[category]:
            table.add_row(
                str(category),
                tech.name or tech.id,
                tech.version or "-",
                f"{tech.confidence:.2f}",
                tech.source,
            )
    console.print(table)

    if save:
        service.refresh_context(report)
        console.print(f"[green]Saved:[/] {c['paths']['context']}")
