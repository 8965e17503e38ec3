"""CLI: psk2 config set|show|clear"""

from typing import Optional

import click
from rich.console import Console

console = Console()


def _load_config() -> dict:
    from psk2.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from psk2.cli.main import _save_config
    _save_config(cfg)


@click.group()
def config():
    """Connector settings."""


@config.command("set")
@click.option("--connector-url", default=None, help="Connector base URL")
@click.option("--token", default=None, help="Bearer token for the connector")
def config_set(connector_url: Optional[str], token: Optional[str]):
    """Save connector settings to ~/.psk2/config.json."""
    cfg = _load_config()
    if connector_url:
        cfg["connector_url"] = connector_url
    if token:
        cfg["token"] = token
    _save_config(cfg)
    console.print("[green]Saved.[/green]")


@config.command("show")
def config_show():
    """Show current connector settings."""
    cfg = _load_config()
    if cfg.get("connector_url"):
        token = "set" if cfg.get("token") else "not set"
        console.print(f"Connector: [bold]{cfg['connector_url']}[/bold] (token {token})")
    else:
        console.print("[yellow]No connector configured. Run `psk2 config set --connector-url ...`.[/yellow]")


@config.command("clear")
def config_clear():
    """Forget saved settings."""
    _save_config({})
    console.print("[green]Cleared.[/green]")
