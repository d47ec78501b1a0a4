"""
Connection and operation CLI commands
"""
import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from ...core.exceptions import RemoteError
from ...core.logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from ...domain.connections import ConnectionRecord
from .connection import Runtime, build_runtime
from .prompts import RichPromptProvider

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()
prompt_provider = RichPromptProvider()


def register_commands(app: typer.Typer) -> None:
    """Register connection and operation commands"""
    app.command(name="list")(connections_list)
    app.command(name="refresh")(connections_refresh)
    app.command(name="add")(connection_add)
    app.command(name="remove")(connection_remove)
    app.command(name="config")(config_show)
    app.command(name="test")(connection_test)
    app.command(name="run")(command_run)
    app.command(name="read")(file_read)
    app.command(name="ls")(directory_list)
    app.command(name="put")(file_upload)
    app.command(name="get")(file_download)


# ============================================================
# Helpers
# ============================================================

def _runtime(ctx: typer.Context) -> Runtime:
    options = ctx.obj or {}
    try:
        runtime = build_runtime(
            config_path=options.get("config_path"),
            settings_path=options.get("settings_path"),
            cli_overrides=options.get("overrides"),
        )
    except RemoteError as e:
        _fail(e)
    setup_logging(level=runtime.settings.log_level, log_file=options.get("log_file"))
    return runtime


def _fail(error: RemoteError) -> None:
    stderr_console.print(f"[red]Error:[/red] {escape(str(error))}")
    if error.hint:
        stderr_console.print(f"  [dim]{escape(error.hint)}[/dim]")
    raise typer.Exit(1)


def _run(coro):
    """Drive one command coroutine, reporting typed failures"""
    try:
        return asyncio.run(coro)
    except RemoteError as e:
        _fail(e)


async def _loaded(runtime: Runtime) -> Runtime:
    await runtime.service.reload()
    return runtime


def _print_connections(connections: list[ConnectionRecord], title: str) -> None:
    if not connections:
        stdout_console.print("[yellow]No SSH connections configured.[/yellow]")
        stdout_console.print(
            "Add one with [cyan]sshops add[/cyan], set SSH_CONNECTIONS, "
            "or enable BinaryLane auto-discovery."
        )
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Host", style="green")
    table.add_column("Port", style="yellow")
    table.add_column("User", style="blue")
    table.add_column("Source", style="magenta")

    for record in connections:
        table.add_row(
            record.name,
            record.host,
            str(record.effective_port),
            record.username,
            record.source.value,
        )

    stdout_console.print(table)


# ============================================================
# Registry commands
# ============================================================

def connections_list(ctx: typer.Context):
    """List all configured SSH connections"""
    runtime = _run(_loaded(_runtime(ctx)))
    _print_connections(runtime.registry.list(), "SSH Connections")


def connections_refresh(ctx: typer.Context):
    """Reload connections from config file, environment and discovery"""
    runtime = _runtime(ctx)
    connections = _run(runtime.service.reload())
    _print_connections(connections, "SSH Connections")
    stdout_console.print(
        f"[green]✓[/green] Refreshed connections. {len(connections)} connection(s) available."
    )


def connection_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    host: str = typer.Option(..., "--host", "-H", help="Host name or IP address"),
    user: str = typer.Option(..., "--user", "-u", help="SSH username"),
    port: int = typer.Option(22, "--port", "-p", help="SSH port"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Private key path"),
    password: Optional[str] = typer.Option(None, "--password", help="SSH password"),
    ask_password: bool = typer.Option(
        False, "--ask-password", help="Prompt for the SSH password"
    ),
):
    """
    Save a manual SSH connection to the config file

    Examples:
        sshops add web1 --host 192.168.1.10 --user root --key ~/.ssh/id_rsa
        sshops add db1 -H 192.168.1.11 -u admin --ask-password
    """
    if ask_password:
        password = prompt_provider.prompt(f"Password for {user}@{host}", password=True) or None

    try:
        record = ConnectionRecord.from_dict(
            {
                "name": name,
                "host": host,
                "port": port,
                "username": user,
                "private_key_path": key,
                "password": password,
            }
        )
        stored = _runtime(ctx).service.add_connection(record)
    except RemoteError as e:
        _fail(e)

    prompt_provider.success(
        f"Connection '{stored.name}' saved ({stored.username}@{stored.endpoint})"
    )


def connection_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Remove a manually added SSH connection"""
    if not yes and not prompt_provider.confirm(f"Remove connection '{name}'?"):
        raise typer.Exit(0)

    try:
        removed = _runtime(ctx).service.remove_connection(name)
    except RemoteError as e:
        _fail(e)

    if not removed:
        prompt_provider.error(
            f"Connection '{name}' not found in config file. "
            "Only manually added connections can be removed."
        )
        raise typer.Exit(1)
    prompt_provider.success(f"Connection '{name}' removed")


def config_show(ctx: typer.Context):
    """Show the config file with secrets redacted"""
    try:
        info = _runtime(ctx).service.get_config()
    except RemoteError as e:
        _fail(e)
    stdout_console.print(f"Config: [cyan]{escape(info['config_path'])}[/cyan]")
    stdout_console.print_json(data=info["config"])


# ============================================================
# Operation commands
# ============================================================

def connection_test(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
):
    """Test connectivity to an SSH server"""
    async def probe():
        runtime = await _loaded(_runtime(ctx))
        return await runtime.catalog.test_connection(name)

    result = _run(probe())
    if result.succeeded:
        prompt_provider.success(f"{escape(result.message)} ({result.latency_ms} ms)")
    else:
        prompt_provider.error(escape(result.message))
        raise typer.Exit(1)


def command_run(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    command: str = typer.Argument(..., help="Shell command to execute"),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Command timeout in seconds (default: 30)"
    ),
):
    """
    Execute a command on a remote server

    Exits with the remote command's exit code.

    Examples:
        sshops run web1 uptime
        sshops run db1 "systemctl status mysql" --timeout 60
    """
    async def execute():
        runtime = await _loaded(_runtime(ctx))
        return await runtime.catalog.run_command(name, command, timeout)

    outcome = _run(execute())
    sys.stdout.write(outcome.stdout_text)
    sys.stdout.flush()
    if outcome.stderr:
        sys.stderr.write(outcome.stderr_text)
        sys.stderr.flush()
    raise typer.Exit(outcome.exit_code)


def file_read(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    path: str = typer.Argument(..., help="Remote file path"),
):
    """Print a remote file"""
    async def read():
        runtime = await _loaded(_runtime(ctx))
        return await runtime.catalog.read_file(name, path)

    sys.stdout.write(_run(read()))
    sys.stdout.flush()


def directory_list(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    path: str = typer.Argument(".", help="Remote directory path"),
):
    """List a remote directory"""
    async def listing():
        runtime = await _loaded(_runtime(ctx))
        return await runtime.catalog.list_directory(name, path)

    entries = _run(listing())

    table = Table(title=f"{name}:{path}", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Size", style="yellow", justify="right")
    table.add_column("Modified", style="dim")

    for entry in entries:
        table.add_row(
            escape(entry.name),
            entry.kind,
            str(entry.size),
            entry.modified_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    stdout_console.print(table)


def file_upload(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    local_path: Path = typer.Argument(..., help="Local file"),
    remote_path: str = typer.Argument(..., help="Remote destination path"),
):
    """Upload a file to a remote server"""
    async def upload():
        runtime = await _loaded(_runtime(ctx))
        return await runtime.catalog.upload_file(name, str(local_path), remote_path)

    outcome = _run(upload())
    prompt_provider.success(escape(outcome.message))


def file_download(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Connection name"),
    remote_path: str = typer.Argument(..., help="Remote file"),
    local_path: Path = typer.Argument(..., help="Local destination path"),
):
    """Download a file from a remote server"""
    async def download():
        runtime = await _loaded(_runtime(ctx))
        return await runtime.catalog.download_file(name, remote_path, str(local_path))

    outcome = _run(download())
    prompt_provider.success(escape(outcome.message))
