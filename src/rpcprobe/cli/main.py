"""CLI entry point.

Running ``rpcprobe`` without a subcommand performs a single ``check``, so
``rpcprobe --host example --port 443`` behaves like ``rpcprobe check ...``.
"""

from __future__ import annotations

import sys

from typer.main import get_command

from rpcprobe.cli.app import app

DEFAULT_COMMAND = "check"
PROG_NAME = "rpcprobe"
_PASSTHROUGH_FLAGS = frozenset(
    {"--help", "-h", "--install-completion", "--show-completion"}
)


def _route_arguments(args: list[str]) -> list[str]:
    if not args:
        return [DEFAULT_COMMAND]
    first = args[0]
    if first.startswith("-") and first not in _PASSTHROUGH_FLAGS:
        return [DEFAULT_COMMAND, *args]
    return args


def main(argv: list[str] | None = None) -> None:
    """Invoke the rpcprobe CLI.

    Parameters
    ----------
    argv:
        Optional list of arguments to pass to Typer. When ``None`` the
        process arguments are used.
    """

    args = list(sys.argv[1:] if argv is None else argv)
    command = get_command(app)
    command.main(args=_route_arguments(args), prog_name=PROG_NAME)


__all__ = ["main"]
