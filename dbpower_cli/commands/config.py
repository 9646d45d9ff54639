"""`dbpower config`: read and edit the CLI's stored settings"""

from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from ..utils.config_manager import config, mask_secret
from ..utils.formatting import print_error, print_info, print_success

console = Console()
app = typer.Typer(name="config", help="Manage stored CLI settings")

SECRET_KEYS = {"api.service_role_key"}
URL_KEYS = {"api.base_url", "site.url"}


def _coerce(key: str, raw: str) -> Any:
    """Validate a value for its key; returns what should be stored."""
    if key in URL_KEYS and not raw.startswith(("http://", "https://")):
        raise ValueError("URLs must start with http:// or https://")
    if key.endswith(".timeout"):
        if not raw.isdigit():
            raise ValueError("Timeout values must be numeric (seconds)")
        return int(raw)
    return raw


def _display(key: str, value: Any) -> str:
    if key in SECRET_KEYS and value:
        return mask_secret(str(value))
    return str(value)


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Dotted key, e.g. api.base_url"),
    value: str = typer.Argument(..., help="New value"),
):
    """⚙️ Store a setting"""
    try:
        stored = _coerce(key, value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    try:
        config.set(key, stored)
    except OSError as e:
        print_error(f"Could not write {config.config_file}: {e}")
        raise typer.Exit(1) from None

    print_success(f"Set {key} = {_display(key, stored)}")
    if key == "api.base_url":
        print_info("Check it with: dbpower status")


@app.command("get")
def get_config(
    key: str = typer.Argument(..., help="Dotted key"),
):
    """📋 Print one setting"""
    value = config.get(key)
    if value is None:
        console.print(f"[yellow]No setting named '{key}'[/yellow]")
        console.print("Run [cyan]dbpower config show[/cyan] for the full list")
        return

    console.print(f"[cyan]{key}[/cyan] = [yellow]{_display(key, value)}[/yellow]")


@app.command("show")
def show_all_config():
    """📊 Print every effective setting"""
    console.print(
        Panel(
            f"Stored in [dim]{config.config_file}[/dim]\n"
            "Environment variables override stored values.",
            title="dbpower settings",
            border_style="blue",
        )
    )
    config.show_all()


@app.command("reset")
def reset_config(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """🔄 Restore the default settings"""
    if not yes and not Confirm.ask("Overwrite all stored settings with defaults?"):
        console.print("Nothing changed.")
        return

    try:
        config.reset()
    except OSError as e:
        print_error(f"Could not write {config.config_file}: {e}")
        raise typer.Exit(1) from None

    print_success("Settings restored to defaults")
