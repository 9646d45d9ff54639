"""Site Commands - sitemap generation and countdowns"""

from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console

from dbpower.site.countdown import countdown_to
from dbpower.site.sitemap import write_sitemap

from ..utils.config_manager import config
from ..utils.formatting import print_error, print_success

console = Console()


def sitemap(
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Where to write sitemap.xml"
    ),
    site_url: str | None = typer.Option(None, "--site-url", help="Public site URL"),
    route: list[str] | None = typer.Option(
        None, "--route", "-r", help="Route to include (repeatable)"
    ),
):
    """🗺️ Generate sitemap.xml for the public site"""
    output_path = output or Path(config.get("site.output", "dist/sitemap.xml"))
    url = site_url or config.get("site.url")
    routes = route or config.get("site.routes", [])

    if not url:
        print_error("No site URL configured. Use --site-url or 'dbpower config set site.url <url>'")
        raise typer.Exit(1)

    try:
        written = write_sitemap(output_path, url, routes)
    except (OSError, ValueError) as e:
        print_error(f"Failed to write sitemap: {e}")
        raise typer.Exit(1) from None

    print_success(f"Sitemap generated in {written} ({len(set(routes))} routes)")


def countdown(
    target: str = typer.Argument(..., help="ISO-8601 target time, e.g. 2026-12-31T23:59:59Z"),
):
    """⏳ Show the time left until a target date"""
    try:
        target_dt = datetime.fromisoformat(target.replace("Z", "+00:00"))
    except ValueError:
        print_error(f"Invalid date: {target}")
        raise typer.Exit(1) from None

    remaining = countdown_to(target_dt)
    if remaining.expired:
        console.print("[yellow]The target time has passed[/yellow]")
        return

    console.print(
        f"[bold cyan]{remaining.days}[/bold cyan]d "
        f"[bold cyan]{remaining.hours}[/bold cyan]h "
        f"[bold cyan]{remaining.minutes}[/bold cyan]m "
        f"[bold cyan]{remaining.seconds}[/bold cyan]s"
    )
