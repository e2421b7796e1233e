"""Rich rendering of connection check results."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from rpcprobe.domain.models import ConnectionConfig, ProbeResult
from rpcprobe.infrastructure.errors import ConfigError, CryptoLoadError


class RichStyles:
    ACCENT = "bold cyan"
    SECONDARY = "magenta"
    SUCCESS = "green"
    WARNING = "yellow"
    ERROR = "bold red"
    DIM = "dim"


def _key_value_table(title: str, rows: Iterable[tuple[str, str]]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY, title_justify="left")
    table.add_column("Field", style=RichStyles.ACCENT)
    table.add_column("Value", style=RichStyles.SECONDARY)
    for label, value in rows:
        table.add_row(escape(label), escape(value))
    return table


class Reporter:
    """Render each stage of a connection check to a console."""

    def __init__(self, console: Console) -> None:
        self._console = console

    def banner(self, *, title: str = "WebSocket RPC Connection Check") -> None:
        self._console.print(Rule(title, style=RichStyles.ACCENT))

    def warnings(self, messages: tuple[str, ...]) -> None:
        for message in messages:
            self._console.print(f"[{RichStyles.WARNING}]Warning:[/] {escape(message)}")

    def connection_parameters(self, config: ConnectionConfig) -> None:
        mode = "secure (TLS)" if config.tls_enabled else "plain"
        self._console.print(
            _key_value_table(f"Connection Parameters ({mode})", config.as_display_rows())
        )

    def bootstrap_loaded(self, path: str) -> None:
        self._console.print(f"[{RichStyles.SUCCESS}]OK[/] Crypto library loaded: {escape(path)}")

    def bootstrap_skipped(self) -> None:
        self._console.print(
            f"[{RichStyles.WARNING}]SKIPPED[/] No crypto library configured; "
            "using the platform TLS stack"
        )

    def probe_started(self, config: ConnectionConfig) -> None:
        self._console.print(
            f"Connecting to {escape(config.host)}:{config.port} ...", style=RichStyles.DIM
        )

    def _hints(self, hints: Sequence[str]) -> None:
        if not hints:
            return
        self._console.print("Troubleshooting:", style=RichStyles.ACCENT)
        for index, hint in enumerate(hints, start=1):
            self._console.print(f"  {index}. {hint}", markup=False)

    def _failure(self, classification: str, message: str, hints: Sequence[str]) -> None:
        self._console.print(f"[{RichStyles.ERROR}]FAILED[/] {escape(classification)}")
        self._console.print(f"  Error: {message}", markup=False)
        self._hints(hints)

    def config_error(self, error: ConfigError) -> None:
        self._failure("ConfigError", error.user_message, error.hints)

    def crypto_error(self, error: CryptoLoadError) -> None:
        self._console.print(f"  Path: {error.path}", markup=False)
        self._failure(error.category.value, error.raw_message, error.hints)

    def probe_result(self, result: ProbeResult) -> None:
        if result.success:
            self._console.print(
                f"[{RichStyles.SUCCESS}]CONNECTED[/] Ping successful "
                f"(attempts: {result.attempts}, {result.elapsed:.2f}s)"
            )
            if result.connection_info is not None:
                self._console.print(
                    _key_value_table(
                        "Connection Information", result.connection_info.as_display_rows()
                    )
                )
        else:
            classification = result.classification
            self._failure(
                classification.name if classification else "UnknownError",
                result.raw_message or "",
                classification.hints if classification else (),
            )
            self._console.print(
                f"  Attempts: {result.attempts}, elapsed {result.elapsed:.2f}s",
                style=RichStyles.DIM,
            )

        if result.info_error:
            self._console.print(
                f"[{RichStyles.WARNING}]Warning:[/] connection info unavailable: "
                f"{escape(result.info_error)}"
            )
        if result.close_error:
            self._console.print(
                f"[{RichStyles.WARNING}]Warning:[/] connection close failed: "
                f"{escape(result.close_error)}"
            )


__all__ = ["Reporter", "RichStyles"]
