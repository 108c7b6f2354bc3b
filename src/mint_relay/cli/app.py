"""CLI for mint-relay - manage wallets and dispatch mints from the terminal."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mint_relay.config import RelayConfig, load_config
from mint_relay.dispatcher import DispatchEvent, EventKind
from mint_relay.logging_config import setup_logging
from mint_relay.notify import fan_out, telegram_from_config
from mint_relay.service import CommandResult, MintRelay

app = typer.Typer(
    name="mint-relay",
    help="Encrypted wallet custody and mint transaction dispatch.",
    no_args_is_help=True,
)
console = Console()

_config_path: Path | None = None
_log_level: str | None = None


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"mint-relay {version('mint-relay')}")
        raise typer.Exit()


@app.callback()
def main(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML config file (environment variables override it)",
        envvar="MINT_RELAY_CONFIG",
    ),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Override LOG_LEVEL"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Encrypted wallet custody and mint transaction dispatch."""
    global _config_path, _log_level
    _config_path = config
    _log_level = log_level


def _load_config() -> RelayConfig:
    config = load_config(_config_path)
    setup_logging(
        level=_log_level or config.logging.level,
        fmt=config.logging.fmt,
        log_file=config.logging.file,
    )
    return config


async def _console_notifier(event: DispatchEvent) -> None:
    short = f"{event.address[:10]}..."
    if event.kind is EventKind.SUBMITTED:
        console.print(f"[dim]⏳ {short} submitted {event.tx_hash}[/dim]")
    elif event.kind is EventKind.CONFIRMED:
        console.print(f"[green]✅ {short} confirmed in block {event.receipt.block_number if event.receipt else '?'}[/green]")
    elif event.kind is EventKind.RETRYING:
        console.print(f"[yellow]🔄 {short} retrying ({event.attempt}/{event.max_attempts - 1}): {event.error}[/yellow]")
    else:
        console.print(f"[red]❌ {short} failed after {event.attempt} attempt(s): {event.error}[/red]")


def _build_relay() -> MintRelay:
    config = _load_config()
    notifier = fan_out(_console_notifier, telegram_from_config(config))
    return MintRelay.from_config(config, notifier=notifier)


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


def _fail(result: CommandResult) -> None:
    console.print(f"[red]{result.error}[/red]")
    raise typer.Exit(1)


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Manage the encrypted wallet store.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


@wallet_app.command("add")
def wallet_add(
    label: str = typer.Option("", "--label", help="Human-readable label"),
):
    """Add a private key to the store (prompted, never echoed)."""
    raw_key = typer.prompt("Private key", hide_input=True)
    result = _build_relay().add_wallet(raw_key, label)
    if not result.ok:
        _fail(result)
    console.print(Panel(
        f"[bold green]Wallet added![/bold green]\n\n"
        f"Address: [cyan]{result.data['address']}[/cyan]\n"
        f"Label:   {result.data['label']}",
        title="Wallet",
    ))


@wallet_app.command("list")
def wallet_list():
    """List managed wallets."""
    result = _build_relay().list_wallets()
    wallets = result.data["wallets"]
    if not wallets:
        console.print("[dim]No wallets configured.[/dim]")
        return

    table = Table(title="Configured Wallets")
    table.add_column("#", style="dim")
    table.add_column("Label")
    table.add_column("Address", style="cyan")
    table.add_column("Status")
    table.add_column("Last Used", style="dim")
    for i, w in enumerate(wallets, 1):
        table.add_row(
            str(i),
            w["label"],
            w["address"],
            "[green]active[/green]" if w["active"] else "[red]inactive[/red]",
            w["last_used"].strftime("%Y-%m-%d %H:%M:%S") if w["last_used"] else "Never",
        )
    console.print(table)


@wallet_app.command("toggle")
def wallet_toggle(address: str = typer.Argument(help="Wallet address (0x...)")):
    """Enable or disable a wallet."""
    result = _build_relay().toggle_wallet(address)
    if not result.ok:
        _fail(result)
    state = "activated" if result.data["active"] else "deactivated"
    console.print(f"Wallet {state}: [cyan]{result.data['address']}[/cyan]")


@wallet_app.command("remove")
def wallet_remove(address: str = typer.Argument(help="Wallet address (0x...)")):
    """Remove a wallet from the store."""
    typer.confirm(f"Remove {address}?", abort=True)
    result = _build_relay().remove_wallet(address)
    if not result.ok:
        _fail(result)
    console.print(f"Wallet removed: [cyan]{result.data['address']}[/cyan]")


@wallet_app.command("import")
def wallet_import(
    path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File with one key per line, or a JSON list of keys",
    ),
):
    """Import plain keys from a legacy file."""
    text = path.read_text(encoding="utf-8")
    try:
        keys = json.loads(text)
    except json.JSONDecodeError:
        keys = text.splitlines()
    if not isinstance(keys, list):
        console.print("[red]Expected a JSON list or one key per line.[/red]")
        raise typer.Exit(1)

    result = _build_relay().import_legacy(str(k) for k in keys)
    console.print(
        f"Imported [bold]{result.data['migrated']}[/bold] of {result.data['submitted']} key(s)."
    )


# ------------------------------------------------------------------
# dispatch and queries
# ------------------------------------------------------------------


@app.command()
def mint(
    address: str = typer.Argument(None, help="Mint from this wallet only (default: all active)"),
):
    """Mint with one wallet or with every active wallet."""

    async def _mint():
        relay = _build_relay()
        try:
            if address:
                return await relay.mint_one(address)
            return await relay.mint_all()
        finally:
            await relay.shutdown()

    result = _run(_mint())
    if address:
        if not result.ok:
            _fail(result)
        console.print(f"[bold green]Mint successful[/bold green] tx={result.data['tx_hash']}")
        return

    if "total" not in result.data:
        _fail(result)
    console.print(
        f"🎉 Batch mint complete: [green]{result.data['succeeded']}[/green]"
        f"/{result.data['total']} successful"
    )
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def status():
    """Show contract supply."""

    async def _status():
        relay = _build_relay()
        try:
            return await relay.supply_status()
        finally:
            await relay.shutdown()

    result = _run(_status())
    if not result.ok:
        _fail(result)
    d = result.data
    console.print(Panel(
        f"Current:   {d['total']}/{d['max']} ({d['percent']:.2f}%)\n"
        f"Remaining: {d['remaining']}",
        title="Supply Status",
    ))


@app.command()
def history(
    limit: int = typer.Option(5, "--limit", "-n", help="Number of records"),
    address: str = typer.Option(None, "--address", "-a", help="Only this wallet"),
):
    """Show recent transactions."""
    relay = _build_relay()
    result = relay.wallet_history(address, limit) if address else relay.history(limit)
    if not result.ok:
        _fail(result)
    records = result.data["records"]
    if not records:
        console.print("[dim]No transaction history available.[/dim]")
        return

    status_colors = {"pending": "yellow", "confirmed": "green", "failed": "red"}
    table = Table(title="Recent Transactions")
    table.add_column("Time", style="dim")
    table.add_column("Status")
    table.add_column("From", style="cyan")
    table.add_column("Tx")
    table.add_column("Error", style="dim")
    for rec in records:
        color = status_colors.get(rec["status"], "white")
        table.add_row(
            rec["submitted_at"][:19].replace("T", " "),
            f"[{color}]{rec['status']}[/{color}]",
            rec["from_address"][:12] + "...",
            relay.config.chain.explorer_link(rec["hash"]),
            (rec.get("error") or "")[:40],
        )
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address"),
    port: int = typer.Option(None, "--port", "-p", help="Port"),
):
    """Run the health/status HTTP endpoint."""
    from mint_relay.dashboard.server import run_dashboard

    relay = _build_relay()
    run_dashboard(
        relay,
        host=host or relay.config.dashboard.host,
        port=port or relay.config.dashboard.port,
    )


if __name__ == "__main__":
    app()
