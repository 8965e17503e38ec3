"""CLI: psk2 quote, psk2 send, psk2 deliver"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from psk2.errors import PskError
from psk2.models.payment import PaymentResult

console = Console()


def _get_client():
    from psk2.cli.main import _get_client
    return _get_client()


def _run(coro):
    from psk2.cli.main import _run
    return _run(coro)


def _payment_options(f):
    f = click.option("--max-duration", type=float, default=None, help="Give up after this many seconds.")(f)
    f = click.option("--max-retries", type=int, default=None, help="Consecutive failed attempts to tolerate.")(f)
    return f


def _common_options(f):
    f = click.option("--json-output", "--json", is_flag=True)(f)
    f = click.option("--shared-secret", envvar="PSK2_SHARED_SECRET", required=True,
                     help="Base64 shared secret (or PSK2_SHARED_SECRET).")(f)
    f = click.option("--to", "destination_account", required=True, help="Destination account.")(f)
    return f


def _fail(e: PskError) -> None:
    console.print(f"[red]{e}[/red]")
    if isinstance(e.result, PaymentResult):
        console.print(
            f"[dim]Partial: sent {e.result.source_amount}, delivered {e.result.destination_amount} "
            f"in {e.result.num_chunks} chunks[/dim]"
        )
    raise SystemExit(1)


def _print_payment(result: PaymentResult, json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps(result.model_dump(), indent=2))
        return
    table = Table(title="Payment complete")
    table.add_column("Source amount", style="bold")
    table.add_column("Destination amount")
    table.add_column("Chunks")
    table.add_row(result.source_amount, result.destination_amount, str(result.num_chunks))
    console.print(table)


@click.command("quote")
@_common_options
@click.option("--source-amount", default=None, help="Amount to send.")
@click.option("--destination-amount", default=None, help="Amount to deliver.")
def quote_cmd(destination_account: str, shared_secret: str, json_output: bool,
              source_amount: Optional[str], destination_amount: Optional[str]):
    """Probe the path and quote the other side of a payment."""

    async def _quote():
        client = _get_client()
        try:
            with console.status("Sending probe..."):
                return await client.quote(
                    destination_account, shared_secret,
                    source_amount=source_amount, destination_amount=destination_amount,
                )
        finally:
            await client.close()

    try:
        result = _run(_quote())
    except PskError as e:
        _fail(e)
    if json_output:
        click.echo(json.dumps(result.model_dump(exclude_none=True), indent=2))
    elif result.destination_amount is not None:
        console.print(f"[green]Receiver would get:[/green] {result.destination_amount}")
    else:
        console.print(f"[green]Sender would pay:[/green] {result.source_amount}")


@click.command("send")
@_common_options
@_payment_options
@click.argument("source_amount")
def send_cmd(destination_account: str, shared_secret: str, json_output: bool,
             max_retries: Optional[int], max_duration: Optional[float], source_amount: str):
    """Send a fixed SOURCE_AMOUNT."""

    async def _send():
        client = _get_client()
        client.config = client.config.model_copy(update={"max_retries": max_retries, "max_duration": max_duration})
        try:
            with console.status("Sending payment..."):
                return await client.send(destination_account, shared_secret, source_amount)
        finally:
            await client.close()

    try:
        result = _run(_send())
    except PskError as e:
        _fail(e)
    _print_payment(result, json_output)


@click.command("deliver")
@_common_options
@_payment_options
@click.argument("destination_amount")
def deliver_cmd(destination_account: str, shared_secret: str, json_output: bool,
                max_retries: Optional[int], max_duration: Optional[float], destination_amount: str):
    """Deliver a fixed DESTINATION_AMOUNT."""

    async def _deliver():
        client = _get_client()
        client.config = client.config.model_copy(update={"max_retries": max_retries, "max_duration": max_duration})
        try:
            with console.status("Sending payment..."):
                return await client.deliver(destination_account, shared_secret, destination_amount)
        finally:
            await client.close()

    try:
        result = _run(_deliver())
    except PskError as e:
        _fail(e)
    _print_payment(result, json_output)
