"""Sync CLI commands: preview and interactive sync."""

import click
from rich.console import Console
from rich.table import Table

from cli.utils import load_components, run_async
from provisioning.models import SessionNotFoundError

console = Console()

ACTION_STYLES = {"add": "green", "update": "yellow", "remove": "red"}


def render_preview(preview) -> None:
    if not preview.pending_changes:
        console.print("[green]Skills are up to date.[/]")
        return

    table = Table(title="Pending Changes")
    table.add_column("Action")
    table.add_column("Skill", style="cyan")
    table.add_column("Version")
    table.add_column("Reason", style="dim")
    for change in preview.pending_changes:
        style = ACTION_STYLES.get(change.action.value, "white")
        version = f"{change.old_version} -> {change.version}" if change.old_version else change.version
        table.add_row(f"[{style}]{change.action.value}[/{style}]", change.name, version, change.reason)
    console.print(table)


def render_result(result) -> None:
    prefix = "[dim](dry run)[/] " if result.dry_run else ""
    for label, changes in (("Added", result.added), ("Updated", result.updated), ("Removed", result.removed)):
        for change in changes:
            console.print(f"{prefix}[bold]{label}[/] {change.name} v{change.version}")
    for error in result.errors:
        console.print(f"[red]Failed[/] {error['name']}: {error['error']}")
    if not result.changed and not result.errors:
        console.print("[green]Nothing to do.[/]")


@click.command()
@click.option("--refresh", is_flag=True, help="Refetch the catalog before matching")
def preview(refresh: bool):
    """Show what a sync would change."""
    c = load_components()
    result = run_async(c, c["service"].preview(force_refresh=refresh))
    render_preview(result)


@click.command()
@click.option("--dry-run", is_flag=True, help="Report changes without writing anything")
@click.option("-y", "--yes", is_flag=True, help="Apply without asking")
@click.option("--refresh", is_flag=True, help="Refetch the catalog before matching")
def sync(dry_run: bool, yes: bool, refresh: bool):
    """Sync installed skills with the detected stack."""
    c = load_components()
    service = c["service"]

    if dry_run or yes:
        result = run_async(c, service.sync_immediate(dry_run=dry_run, force_refresh=refresh))
        render_result(result)
        return

    pending = run_async(c, service.preview(force_refresh=refresh))
    render_preview(pending)
    if pending.session_id is None:
        return
    if not click.confirm("Apply these changes?", default=True):
        console.print("[yellow]Cancelled.[/]")
        return

    try:
        result = run_async(c, service.confirm(pending.session_id))
    except SessionNotFoundError as e:
        console.print(f"[red]{e}[/] Run [bold]mother sync[/] again.")
        raise SystemExit(1)
    render_result(result)
