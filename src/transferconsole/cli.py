"""transferconsole CLI - submit token transfer batches and watch them land."""

import locale
import logging
from typing import Annotated, Optional

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from transferconsole import __version__
from transferconsole.api.client import TransferApiClient
from transferconsole.config import EXPLORER_TX_URL, READY_MESSAGE, SERVER_URL
from transferconsole.console.view import ConsoleView
from transferconsole.session.controller import SessionController
from transferconsole.session.models import Session, SessionState
from transferconsole.transfers.status import STATUS_LABELS, STATUS_SEVERITY

app = typer.Typer(
    name="transferconsole",
    help="Submit batched token transfers and stream their status.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

FAILED_STATES = {SessionState.ERROR, SessionState.DISCONNECTED}

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"transferconsole {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Show debug diagnostics on stderr")
    ] = False,
) -> None:
    """transferconsole - watch a transfer batch from submission to confirmation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    try:
        locale.setlocale(locale.LC_TIME, "")
    except locale.Error as exc:
        logger.debug("Keeping default time format: %s", exc)


def make_client(server: str) -> TransferApiClient:
    return TransferApiClient(server)


def _connect(server: str) -> TransferApiClient:
    try:
        return make_client(server)
    except httpx.InvalidURL as exc:
        console.print(f"[red]Error:[/red] invalid server URL {server!r}: {exc}")
        raise typer.Exit(1)


def _stream(controller: SessionController) -> Session:
    try:
        return controller.run()
    except KeyboardInterrupt:
        controller.shutdown()
        console.print("[yellow]Stopped watching.[/yellow]")
        raise typer.Exit(130)


def _finish(session: Session, view: ConsoleView, live: bool) -> None:
    # A stopped live screen stays on the terminal with the final table
    if not live:
        view.print_summary()
    if session.state in FAILED_STATES:
        raise typer.Exit(1)


# ── Commands ─────────────────────────────────────────────────────


@app.command("send")
def send(
    private_key: Annotated[
        Optional[str],
        typer.Option(
            "--private-key",
            envvar="TRANSFERCONSOLE_PRIVATE_KEY",
            help="Sender private key",
            show_default=False,
        ),
    ] = None,
    rpc_url: Annotated[
        Optional[str],
        typer.Option("--rpc-url", envvar="TRANSFERCONSOLE_RPC_URL", help="RPC endpoint"),
    ] = None,
    token_address: Annotated[
        Optional[str],
        typer.Option(
            "--token", envvar="TRANSFERCONSOLE_TOKEN_ADDRESS", help="Token contract address"
        ),
    ] = None,
    recipient: Annotated[
        Optional[str],
        typer.Option("--recipient", "-r", envvar="TRANSFERCONSOLE_RECIPIENT", help="Recipient address"),
    ] = None,
    amount: Annotated[
        Optional[str],
        typer.Option("--amount", "-a", envvar="TRANSFERCONSOLE_AMOUNT", help="Amount per transfer"),
    ] = None,
    batch_size: Annotated[
        Optional[str],
        typer.Option("--batch-size", "-n", envvar="TRANSFERCONSOLE_BATCH_SIZE", help="Number of transfers"),
    ] = None,
    gas_price: Annotated[
        Optional[str],
        typer.Option("--gas-price", envvar="TRANSFERCONSOLE_GAS_PRICE", help="Gas price (optional)"),
    ] = None,
    gas_limit: Annotated[
        Optional[str],
        typer.Option("--gas-limit", envvar="TRANSFERCONSOLE_GAS_LIMIT", help="Gas limit (optional)"),
    ] = None,
    server: Annotated[
        str, typer.Option("--server", "-s", help="Transfer server base URL")
    ] = SERVER_URL,
    explorer_url: Annotated[
        str, typer.Option("--explorer-url", help="Block explorer transaction URL prefix")
    ] = EXPLORER_TX_URL,
    plain: Annotated[
        bool, typer.Option("--plain", help="Print log lines instead of a live screen")
    ] = False,
) -> None:
    """Submit a transfer batch and stream its progress until it completes."""
    fields = {
        "private_key": private_key,
        "rpc_url": rpc_url,
        "token_address": token_address,
        "recipient": recipient,
        "amount": amount,
        "batch_size": batch_size,
        "gas_price": gas_price,
        "gas_limit": gas_limit,
    }

    with _connect(server) as client:
        # The live log is cleared on submit, so the banner goes above the screen
        if not plain:
            console.print(READY_MESSAGE, style="dim", markup=False)
        with ConsoleView(console, live=not plain, explorer_url=explorer_url) as view:
            controller = SessionController(client, view)
            if plain:
                controller.announce_ready(READY_MESSAGE)
            controller.submit(fields)
            session = _stream(controller)
        _finish(session, view, live=not plain)


@app.command("watch")
def watch(
    session_id: Annotated[str, typer.Argument(help="Session ID returned by the server")],
    server: Annotated[
        str, typer.Option("--server", "-s", help="Transfer server base URL")
    ] = SERVER_URL,
    explorer_url: Annotated[
        str, typer.Option("--explorer-url", help="Block explorer transaction URL prefix")
    ] = EXPLORER_TX_URL,
    plain: Annotated[
        bool, typer.Option("--plain", help="Print log lines instead of a live screen")
    ] = False,
) -> None:
    """Attach to a running session's event stream."""
    session_id = session_id.strip()
    if not session_id:
        console.print("[red]Error:[/red] session ID must not be empty")
        raise typer.Exit(1)

    with _connect(server) as client:
        with ConsoleView(console, live=not plain, explorer_url=explorer_url) as view:
            controller = SessionController(client, view)
            controller.attach(session_id)
            session = _stream(controller)
        _finish(session, view, live=not plain)


@app.command("statuses")
def statuses() -> None:
    """List the transfer status codes and how they are classified."""
    table = Table(title="Transfer Statuses")
    table.add_column("Code", style="cyan")
    table.add_column("Label", style="green")
    table.add_column("Severity")

    for status, label in STATUS_LABELS.items():
        table.add_row(status.value, label, STATUS_SEVERITY[status].value)

    console.print(table)
