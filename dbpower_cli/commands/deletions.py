"""Deletion Queue Commands - trigger passes and inspect the queue"""

import typer
from rich.console import Console
from rich.panel import Panel

from ..client.base import DBPowerError
from ..client.endpoints import DBPowerClient
from ..utils.formatting import (
    create_jobs_table,
    create_pass_results_table,
    create_stats_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)

console = Console()
app = typer.Typer(name="deletions", help="Deletion queue commands")

VALID_STATUSES = ("pending", "in_progress", "completed", "failed")


@app.command("process")
def process_queue():
    """🗑️ Run one processing pass over due deletion jobs"""
    try:
        with DBPowerClient() as client:
            print_info("Processing deletion queue...")
            summary = client.process_deletions()

    except DBPowerError as e:
        print_error(f"Deletion pass failed: {e}")
        raise typer.Exit(1) from None

    results = summary.get("results", [])
    processed = summary.get("processed", 0)

    if not processed:
        print_success("No eligible deletion jobs")
        return

    console.print(create_pass_results_table(results))

    failed = sum(1 for result in results if not result.get("ok"))
    if failed:
        print_warning(f"{failed} of {processed} deletions failed")
    else:
        print_success(f"Processed {processed} deletions")


@app.command("list")
def list_jobs(
    status: list[str] | None = typer.Option(
        None, "--status", "-s", help="Filter by status (repeatable)"
    ),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum jobs to show"),
    offset: int = typer.Option(0, "--offset", help="Results offset"),
):
    """📋 List deletion jobs, newest first"""
    invalid = [s for s in status or [] if s not in VALID_STATUSES]
    if invalid:
        print_error(
            f"Invalid status: {', '.join(invalid)}. "
            f"Choose from: {', '.join(VALID_STATUSES)}"
        )
        raise typer.Exit(1)

    try:
        with DBPowerClient() as client:
            page = client.list_deletions(status=status, limit=limit, offset=offset)

    except DBPowerError as e:
        print_error(f"Failed to list deletion jobs: {e}")
        raise typer.Exit(1) from None

    jobs = page.get("jobs", [])
    if not jobs:
        print_info("No deletion jobs found")
        return

    console.print(create_jobs_table(jobs))
    console.print(
        f"[dim]Showing {len(jobs)} of {page.get('total', len(jobs))} jobs[/dim]"
    )


@app.command("stats")
def show_stats():
    """📊 Show job counts per status"""
    try:
        with DBPowerClient() as client:
            stats = client.deletion_stats()

    except DBPowerError as e:
        print_error(f"Failed to get deletion stats: {e}")
        raise typer.Exit(1) from None

    console.print(create_stats_table(stats))


@app.command("recover")
def recover_stale(
    older_than: int | None = typer.Option(
        None, "--older-than", help="Stale threshold in seconds (server default if omitted)", min=60
    ),
):
    """🩹 Mark jobs stuck in_progress past the stale threshold as failed"""
    try:
        with DBPowerClient() as client:
            result = client.recover_stale_deletions(older_than)

    except DBPowerError as e:
        print_error(f"Failed to recover stale claims: {e}")
        raise typer.Exit(1) from None

    recovered = result.get("recovered", 0)
    if not recovered:
        print_success("No stale claims")
        return

    console.print(
        Panel(
            "\n".join(str(job_id) for job_id in result.get("job_ids", [])),
            title=f"{recovered} jobs marked failed",
            border_style="yellow",
        )
    )
