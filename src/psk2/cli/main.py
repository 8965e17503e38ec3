"""
psk2 CLI: `psk2` command.

Commands:
  psk2 config set|show|clear   Connector settings
  psk2 quote                   Probe the path rate
  psk2 send                    Pay a fixed source amount
  psk2 deliver                 Pay a fixed destination amount
"""

import asyncio
import json
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install psk2-sender[cli]")

from psk2.client import AsyncPskSender
from psk2.transport.http import DEFAULT_CONNECTOR_URL

console = Console()
CONFIG_FILE = Path.home() / ".psk2" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_client() -> AsyncPskSender:
    cfg = _load_config()
    return AsyncPskSender(
        connector_url=cfg.get("connector_url", DEFAULT_CONNECTOR_URL),
        token=cfg.get("token"),
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log chunk sizing and receiver responses.")
def main(verbose: bool):
    """psk2 CLI: chunked payments over conditional transfers."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


# Register subcommands from separate modules
from psk2.cli.config import config
from psk2.cli.pay import deliver_cmd, quote_cmd, send_cmd

main.add_command(config)
main.add_command(quote_cmd)
main.add_command(send_cmd)
main.add_command(deliver_cmd)


if __name__ == "__main__":
    main()
