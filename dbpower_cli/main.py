"""DBPower CLI entry point"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from . import __version__
from .client.base import DBPowerError
from .client.endpoints import DBPowerClient
from .commands import config, deletions, site
from .utils.config_manager import config as config_manager
from .utils.formatting import print_error, print_info

console = Console()

app = typer.Typer(
    name="dbpower",
    help="🛡️ DBPower - edge service operator CLI",
    rich_markup_mode="rich",
)

app.add_typer(deletions.app, name="deletions")
app.add_typer(config.app, name="config")
app.command("sitemap")(site.sitemap)
app.command("countdown")(site.countdown)


def _database_line(database: dict) -> str:
    if not database.get("connected"):
        return "[red]unreachable[/red]"
    return f"[green]ok[/green] ({database.get('response_time_ms', '?')} ms)"


def _health_summary(health: dict, base_url: str) -> str:
    queue = health.get("deletion_queue") or {}
    database = health.get("database") or {}
    lines = [
        "🚀 [green]Connected Successfully![/green]",
        "",
        f"Service    [cyan]{health.get('version', '?')}[/cyan] ({health.get('environment', '?')})",
        f"Database   {_database_line(database)}",
        f"Due now    [magenta]{queue.get('due_now', 'n/a')}[/magenta]",
        f"Stale      {queue.get('stale_claims', 'n/a')}",
        f"Endpoint   [blue]{base_url}[/blue]",
    ]
    return "\n".join(lines)


@app.command()
def status():
    """📊 Check that the edge service is reachable and healthy"""
    base_url = config_manager.get("api.base_url")
    print_info(f"Checking {base_url}")

    try:
        with DBPowerClient(base_url) as client:
            health = client.health_check()
    except DBPowerError as e:
        print_error(str(e))
        console.print(
            Panel(
                f"🚫 [red]Connection Failed[/red]\n\n"
                f"No healthy service answered at [blue]{base_url}[/blue].\n"
                f"Point the CLI elsewhere with "
                f"[cyan]dbpower config set api.base_url <url>[/cyan]",
                title="Status",
                border_style="red",
            )
        )
        raise typer.Exit(1) from None

    console.print(Panel(_health_summary(health, base_url), title="Status", border_style="green"))


@app.command()
def version():
    """📎 Print the CLI version"""
    console.print(f"dbpower {__version__}")


def _version_callback(value: bool):
    if value:
        console.print(f"DBPower CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """
    🛡️ DBPower CLI

    Trigger deletion queue passes, inspect the queue and render static site assets.
    """


if __name__ == "__main__":
    app()
