"""Command line for running the proxy and editing its routing document."""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

import typer

import config
import host
import main
from proxy.errors import InstallError, ProxyError
from proxy.installer import Installer
from proxy.listener import send_url
from proxy.model import ProxyConfig
from proxy.routes import RouteTable

app = typer.Typer(
    name="nxmproxy",
    help="Route nxm:// download links to the right download manager.",
    add_completion=False,
)


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _commit(edit: Callable[[RouteTable], ProxyConfig]) -> ProxyConfig:
    store = main.build_store()
    try:
        new = edit(RouteTable(store.load()))
        store.save(new)
    except (ProxyError, ValueError) as e:
        _fail(str(e))
    return new


@app.command()
def serve():
    """Run the proxy until interrupted."""
    main.main()


@app.command()
def send(url: str, pipe: str = typer.Option(config.DEFAULT_PIPE, help="Channel to deliver to.")):
    """Deliver a download URL to a running listener."""
    try:
        asyncio.run(send_url(pipe, url))
    except (OSError, ProxyError) as e:
        _fail(f"Could not reach channel {pipe!r}: {e}")


@app.command()
def status():
    """Report whether the proxy is the registered nxm handler."""
    registered = Installer(config.HANDLER_BINARY).test()
    typer.echo("registered" if registered else "not registered")
    if not registered:
        raise typer.Exit(code=1)


@app.command()
def install():
    """Register the proxy as nxm handler (may prompt for elevation)."""
    installer = Installer(config.HANDLER_BINARY, on_associated=lambda: host.set_associated(False))
    try:
        installer.ensure_active()
    except InstallError as e:
        _fail(f"Failed to activate NXM proxy: {e}")
    typer.echo(installer.state.value)


@app.command()
def uninstall():
    """Remove the proxy's nxm registration."""
    try:
        Installer(config.HANDLER_BINARY).uninstall()
    except InstallError as e:
        _fail(str(e))
    typer.echo("unregistered")


@app.command()
def show():
    """Print games, managers and pipes."""
    table = RouteTable(main.build_store().load())
    cfg = table.config
    typer.echo("[games]")
    for game in table.games():
        typer.echo(f"  {game} = {cfg.games[game]}")
    typer.echo("[managers]")
    for manager in table.managers():
        pipe = cfg.pipes.get(manager)
        suffix = f"  (pipe: {pipe})" if pipe else ""
        typer.echo(f"  {manager} = {cfg.managers[manager]}{suffix}")
    for issue in cfg.problems():
        typer.echo(f"warning: {issue}", err=True)


@app.command()
def resolve(game: str, url: Optional[str] = typer.Argument(None)):
    """Show which manager handles GAME (and the command for URL)."""
    table = RouteTable(main.build_store().load())
    manager = table.resolve(game)
    if manager is None:
        _fail(f"No route for {game}")
    typer.echo(manager)
    if url:
        command = table.launch_command(game, url)
        if command is None:
            _fail(f"Manager {manager!r} has no launch command")
        typer.echo(command)


@app.command("set-game")
def set_game(game: str, manager: str):
    _commit(lambda t: t.set_game(game, manager))


@app.command("remove-game")
def remove_game(game: str):
    _commit(lambda t: t.remove_game(game))


@app.command("rename-game")
def rename_game(old: str, new: str):
    _commit(lambda t: t.rename_game(old, new))


@app.command("set-manager")
def set_manager(
    manager: str,
    command: str,
    pipe: str = typer.Option("", help="Local channel name; empty removes it."),
):
    """Add or update a manager. COMMAND uses %1 for the URL."""
    _commit(lambda t: t.set_manager(manager, command, pipe))


@app.command("remove-manager")
def remove_manager(manager: str):
    cfg = _commit(lambda t: t.remove_manager(manager))
    dangling = sorted(g for g, m in cfg.games.items() if m == manager)
    if dangling:
        typer.echo(f"warning: still routed to {manager}: {', '.join(dangling)}", err=True)


@app.command("rename-manager")
def rename_manager(old: str, new: str):
    _commit(lambda t: t.rename_manager(old, new))


if __name__ == "__main__":  # pragma: no cover
    app()
