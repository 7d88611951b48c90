"""CLI commands for vibetorrent.

``serve`` runs the web API; the remaining commands talk to rTorrent directly
through the same client the server uses.
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vibetorrent import __version__, __logo__
from vibetorrent.cli.shared.format_utils import format_bytes, format_eta, format_rate
from vibetorrent.cli.shared.logging_utils import configure_console_logging, ensure_rotating_log_file
from vibetorrent.cli.shared.network_utils import is_port_in_use
from vibetorrent.config.loader import get_config_path, load_config
from vibetorrent.config.schema import Config
from vibetorrent.rtorrent.client import create_client
from vibetorrent.rtorrent.contracts import TorrentClient
from vibetorrent.services.errors import ServiceError
from vibetorrent.services.torrents.torrent_service import (
    FILTER_ALL,
    TORRENT_ACTIONS,
    filter_torrents,
    sort_torrents,
    torrent_stats,
)
from vibetorrent.utils.exceptions import VibeTorrentError

app = typer.Typer(
    name="vibetorrent",
    help=f"{__logo__} vibetorrent - rTorrent web dashboard",
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.json")
SocketOption = typer.Option(None, "--socket", "-s", help="rTorrent endpoint (overrides config)")

_STATE_STYLES = {"downloading": "cyan", "seeding": "green", "paused": "yellow"}


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} vibetorrent v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log RPC traffic to stderr"),
):
    """vibetorrent - rTorrent web dashboard."""
    configure_console_logging(verbose)


def _load(config_path: Path | None) -> Config:
    try:
        return load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def _client(config: Config, socket: str | None) -> TorrentClient:
    endpoint = (socket or config.rtorrent.socket).strip()
    if not endpoint:
        console.print(
            "[red]rTorrent endpoint not configured.[/red] "
            "Pass [cyan]--socket[/cyan] or set rtorrent.socket in the config file."
        )
        raise typer.Exit(1)
    settings = config.rtorrent
    return create_client(
        endpoint,
        timeout=settings.timeout,
        connect_timeout=settings.connect_timeout,
        max_response_bytes=settings.max_response_bytes,
        batch_details=settings.batch_details,
    )


def _run(operation: Callable[[], Awaitable[Any]]) -> Any:
    """Run one client coroutine, turning domain errors into exit code 1."""
    try:
        return asyncio.run(operation())
    except (VibeTorrentError, ServiceError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


# ============================================================================
# Server
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option(None, "--host", "-h", help="Bind host (default: server.host)"),
    port: int = typer.Option(None, "--port", "-p", help="Bind port (default: server.port)"),
    config_path: Path = ConfigOption,
    debug: bool = typer.Option(False, "--debug", help="Debug-level file logging"),
):
    """Start the web API."""
    from vibetorrent.api.server import run_server

    config = _load(config_path)
    bind_host = host or config.server.host
    bind_port = port or config.server.port
    if is_port_in_use(bind_host, bind_port):
        console.print(
            f"[red]Port {bind_port} is already in use.[/red] "
            f"Use [cyan]--port[/cyan] to pick another one (current: {bind_host}:{bind_port})."
        )
        raise typer.Exit(1)

    log_path = ensure_rotating_log_file("serve", level="DEBUG" if debug else "INFO")
    console.print(f"{__logo__} Starting vibetorrent on {bind_host}:{bind_port}...")
    console.print(f"[dim]Logs: {log_path}[/dim]")
    if not config.is_rtorrent_configured:
        console.print("[yellow]rTorrent socket not configured; the dashboard starts in setup mode.[/yellow]")
    run_server(bind_host, bind_port, config=config, config_path=config_path)


# ============================================================================
# Status / listing
# ============================================================================


@app.command()
def status(config_path: Path = ConfigOption, socket: str = SocketOption):
    """Show configuration and daemon status."""
    path = config_path or get_config_path()
    config = _load(config_path)
    console.print(f"{__logo__} vibetorrent Status\n")
    console.print(f"Config: {path} {'[green]✓[/green]' if path.exists() else '[dim](defaults)[/dim]'}")
    endpoint = socket or config.rtorrent.socket
    console.print(f"rTorrent: {endpoint or '[dim]not set[/dim]'}")
    if not endpoint:
        return
    client = _client(config, socket)

    async def _status():
        info = await client.get_system_info()
        torrents = await client.list_torrents()
        return info, torrent_stats(torrents)

    info, stats = _run(_status)
    console.print(f"Version: [green]{info.client_version}[/green] (libtorrent {info.library_version})")
    if info.hostname:
        console.print(f"Host: {info.hostname}")
    console.print(
        f"Torrents: {stats['total']} ({stats['active']} active)  "
        f"↓ {format_rate(stats['download_rate'])}  ↑ {format_rate(stats['upload_rate'])}"
    )


@app.command("list")
def list_command(
    filter_name: str = typer.Option(FILTER_ALL, "--filter", "-f", help="all, downloading, seeding, paused or label:<name>"),
    search: str = typer.Option("", "--search", help="Case-insensitive name match"),
    sort: str = typer.Option("", "--sort", help="name, size, progress, down, up, eta or state"),
    desc: bool = typer.Option(False, "--desc", help="Reverse the sort order"),
    config_path: Path = ConfigOption,
    socket: str = SocketOption,
):
    """List torrents."""
    client = _client(_load(config_path), socket)

    async def _list():
        torrents = sort_torrents(await client.list_torrents(), sort, "desc" if desc else "asc")
        return filter_torrents(torrents, filter_name, search)

    torrents = _run(_list)
    if not torrents:
        console.print("[dim]No torrents.[/dim]")
        return
    table = Table(title=f"Torrents ({len(torrents)})")
    table.add_column("Name", style="bold", overflow="fold")
    table.add_column("State")
    table.add_column("Progress", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Down", justify="right", style="cyan")
    table.add_column("Up", justify="right", style="green")
    table.add_column("ETA", justify="right")
    table.add_column("Label", style="magenta")
    table.add_column("Hash", style="dim")
    for t in torrents:
        style = _STATE_STYLES.get(t.state, "white")
        table.add_row(
            escape(t.name),
            f"[{style}]{t.state}[/{style}]",
            f"{t.progress:.1f}%",
            format_bytes(t.size),
            format_rate(t.download_rate),
            format_rate(t.upload_rate),
            format_eta(t.eta) if t.state == "downloading" else "-",
            escape(t.label),
            t.hash,
        )
    console.print(table)


@app.command()
def info(torrent_hash: str = typer.Argument(..., help="Info-hash"), config_path: Path = ConfigOption, socket: str = SocketOption):
    """Show one torrent with its files."""
    client = _client(_load(config_path), socket)

    async def _info():
        torrent = await client.get_torrent(torrent_hash)
        try:
            files = await client.get_files(torrent_hash)
        except VibeTorrentError:
            files = []
        return torrent, files

    torrent, files = _run(_info)
    console.print(f"[bold]{escape(torrent.name)}[/bold]  [dim]{torrent.hash}[/dim]")
    console.print(f"State: {torrent.state}   Progress: {torrent.progress:.1f}%   Priority: {torrent.priority}")
    console.print(f"Size: {format_bytes(torrent.size)} ({format_bytes(torrent.completed)} done)")
    console.print(
        f"Pieces: {torrent.piece_count} x {format_bytes(torrent.piece_size)}   "
        f"Label: {escape(torrent.label) or '-'}   Path: {escape(torrent.save_path) or '-'}"
    )
    _print_files(files)


@app.command()
def files(torrent_hash: str = typer.Argument(..., help="Info-hash"), config_path: Path = ConfigOption, socket: str = SocketOption):
    """List the files of a torrent."""
    client = _client(_load(config_path), socket)
    _print_files(_run(lambda: client.get_files(torrent_hash)))


def _print_files(items: list) -> None:
    if not items:
        console.print("[dim]No files.[/dim]")
        return
    table = Table(title="Files")
    table.add_column("Path", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Priority", justify="right")
    for f in items:
        table.add_row(escape(f.name), format_bytes(f.size), f"{f.progress:.1f}%", str(f.priority))
    console.print(table)


@app.command()
def trackers(torrent_hash: str = typer.Argument(..., help="Info-hash"), config_path: Path = ConfigOption, socket: str = SocketOption):
    """List the trackers of a torrent."""
    client = _client(_load(config_path), socket)
    items = _run(lambda: client.get_trackers(torrent_hash))
    table = Table(title="Trackers")
    table.add_column("URL", overflow="fold")
    table.add_column("Enabled")
    table.add_column("Seeders", justify="right")
    table.add_column("Leechers", justify="right")
    for t in items:
        table.add_row(t.url, "✓" if t.enabled else "✗", str(t.seeders), str(t.leechers))
    console.print(table)


# ============================================================================
# Mutations
# ============================================================================


@app.command()
def add(
    source: str = typer.Argument(..., help="URL, magnet link or path to a .torrent file"),
    paused: bool = typer.Option(False, "--paused", help="Add without starting"),
    download_path: str = typer.Option("", "--path", help="Download directory override"),
    config_path: Path = ConfigOption,
    socket: str = SocketOption,
):
    """Add a torrent."""
    client = _client(_load(config_path), socket)
    local = Path(source).expanduser()
    if local.is_file():
        data = local.read_bytes()
        _run(lambda: client.add_by_data(data, auto_start=not paused, download_path=download_path))
        console.print(f"[green]✓[/green] Added {local.name} ({format_bytes(len(data))})")
    else:
        _run(lambda: client.add_by_url(source, auto_start=not paused, download_path=download_path))
        console.print(f"[green]✓[/green] Added {source}")


def _register_action(action: str) -> None:
    def command(
        torrent_hash: str = typer.Argument(..., help="Info-hash"),
        config_path: Path = ConfigOption,
        socket: str = SocketOption,
    ):
        client = _client(_load(config_path), socket)
        _run(lambda: client.mutate(action, torrent_hash))
        console.print(f"[green]✓[/green] {action} {torrent_hash}")

    command.__doc__ = f"{action.capitalize()} a torrent."
    app.command(action)(command)


for _action in TORRENT_ACTIONS:
    _register_action(_action)


@app.command()
def remove(
    torrent_hash: str = typer.Argument(..., help="Info-hash"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config_path: Path = ConfigOption,
    socket: str = SocketOption,
):
    """Remove a torrent from rTorrent (data stays on disk)."""
    if not yes and not typer.confirm(f"Remove {torrent_hash}?"):
        raise typer.Exit()
    client = _client(_load(config_path), socket)
    _run(lambda: client.delete(torrent_hash))
    console.print(f"[green]✓[/green] Removed {torrent_hash}")


@app.command()
def priority(
    torrent_hash: str = typer.Argument(..., help="Info-hash"),
    value: int = typer.Argument(..., min=0, max=3, help="0 off, 1 low, 2 normal, 3 high"),
    config_path: Path = ConfigOption,
    socket: str = SocketOption,
):
    """Set torrent priority."""
    client = _client(_load(config_path), socket)
    _run(lambda: client.set_priority(torrent_hash, value))
    console.print(f"[green]✓[/green] Priority of {torrent_hash} set to {value}")


@app.command()
def label(
    torrent_hash: str = typer.Argument(..., help="Info-hash"),
    text: str = typer.Argument("", help="Label (empty clears it)"),
    config_path: Path = ConfigOption,
    socket: str = SocketOption,
):
    """Set torrent label."""
    client = _client(_load(config_path), socket)
    _run(lambda: client.set_label(torrent_hash, text))
    console.print(f"[green]✓[/green] Label of {torrent_hash} set to {text!r}")


if __name__ == "__main__":
    app()
