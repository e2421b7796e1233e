"""rpcprobe Typer application."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.text import Text

from rpcprobe.cli.commands import check as check_command
from rpcprobe.cli.commands import config as config_command
from rpcprobe.cli.commands import monitor as monitor_command

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DISTRIBUTION_NAME = "rpcprobe"

stderr_console = Console(stderr=True)
stdout_console = Console(stderr=False)

app = typer.Typer(
    help="Connectivity probe for WebSocket-based RPC endpoints",
    rich_markup_mode="rich",
)


def _keyboard_interrupt_banner() -> Text:
    return Text.from_markup(
        "\n"
        "╭───────────────────────────────╮\n"
        "│[red]  Keyboard interrupt received  [/red]│\n"
        "│[red]       rpcprobe stopping       [/red]│\n"
        "╰───────────────────────────────╯\n"
    )


check_command.register(app, stdout_console=stdout_console)
monitor_command.register(
    app,
    stdout_console=stdout_console,
    stderr_console=stderr_console,
    keyboard_interrupt_banner=_keyboard_interrupt_banner,
)
config_command.register(app, stdout_console=stdout_console)


@app.command(help="Show the installed rpcprobe package version.")
def version() -> None:
    """Print the version discovered from the package metadata."""
    from importlib import metadata

    try:
        resolved_version = metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        pyproject = PROJECT_ROOT / "pyproject.toml"
        if not pyproject.exists():
            stdout_console.print("Version information unavailable")
            return
        import tomllib

        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        resolved_version = data.get("project", {}).get("version", "unknown")
    stdout_console.print(resolved_version)


__all__ = ["app", "stderr_console", "stdout_console"]
