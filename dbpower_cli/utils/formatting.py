"""Rich Formatting Utilities for CLI Output"""

from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "in_progress": "cyan",
    "completed": "green",
    "failed": "red",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def create_pass_results_table(results: list[dict[str, Any]]) -> Table:
    """Create a table for the outcome of one processing pass"""
    table = Table(title="Deletion Pass", box=box.ROUNDED)

    table.add_column("User", justify="left", style="cyan", no_wrap=True)
    table.add_column("Result", justify="center")
    table.add_column("Detail", justify="left", style="white")

    for result in results:
        if result.get("ok"):
            outcome = "[green]completed[/green]"
            detail = str(result.get("data") or "-")
        else:
            outcome = "[red]failed[/red]"
            detail = result.get("error") or "-"

        table.add_row(str(result.get("user_id", "")), outcome, detail)

    return table


def create_jobs_table(jobs: list[dict[str, Any]]) -> Table:
    """Create a table for a page of deletion jobs"""
    table = Table(title="Deletion Queue", box=box.ROUNDED)

    table.add_column("ID", justify="left", style="cyan", no_wrap=True)
    table.add_column("User", justify="left", style="magenta", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Scheduled For", justify="center", style="yellow")
    table.add_column("Error", justify="left", style="white")

    for job in jobs:
        status = job.get("status", "")
        style = STATUS_STYLES.get(status, "white")
        table.add_row(
            str(job.get("id", ""))[:8],
            str(job.get("user_id", ""))[:8],
            f"[{style}]{status}[/{style}]",
            job.get("scheduled_for", ""),
            job.get("error") or "-",
        )

    return table


def create_stats_table(stats: dict[str, Any]) -> Table:
    """Create a table of job counts per status"""
    table = Table(title="Deletion Queue Stats", box=box.SIMPLE)

    table.add_column("Status", style="bold")
    table.add_column("Jobs", justify="right")

    for status, count in sorted(stats.get("by_status", {}).items()):
        style = STATUS_STYLES.get(status, "white")
        table.add_row(f"[{style}]{status}[/{style}]", str(count))

    table.add_row("[bold]due now[/bold]", str(stats.get("due_now", 0)))
    table.add_row("[bold]total[/bold]", str(stats.get("total_jobs", 0)))

    return table
