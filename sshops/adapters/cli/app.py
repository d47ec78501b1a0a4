"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Optional

from ...core.logging import get_logger
from .commands import register_commands

logger = get_logger(__name__)

# Create main app
app = typer.Typer(
    name="sshops",
    add_completion=False,
    help="Run commands and file operations on named SSH hosts",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

register_commands(app)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Connections config file (JSON, default: ~/.config/sshops/connections.json)",
    ),
    settings: Optional[Path] = typer.Option(
        None,
        "--settings",
        help="Settings file (TOML, default: ~/.config/sshops/settings.toml)",
    ),
    connect_timeout: Optional[float] = typer.Option(
        None,
        "--connect-timeout",
        help="SSH handshake timeout in seconds",
    ),
):
    """
    sshops - run commands and file operations on named SSH hosts
    
    Connection sources, highest priority first:
    - Config file (sshops add / sshops remove)
    - SSH_CONNECTIONS environment variable (JSON array)
    - BinaryLane auto-discovery (BINARYLANE_API_TOKEN)
    """
    ctx.obj = {
        "config_path": config,
        "settings_path": settings,
        "log_file": log_file,
        "overrides": {"connect_timeout": connect_timeout, "log_level": log_level},
    }


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
