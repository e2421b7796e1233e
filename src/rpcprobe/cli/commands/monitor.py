"""``monitor`` command: repeat independent probes on an interval."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import typer
from rich.console import Console
from rich.text import Text

from rpcprobe.application.diagnostics import ConnectionCheck, run_monitor
from rpcprobe.cli import options as cli_options
from rpcprobe.cli.helpers import build_invocation, prepare_application
from rpcprobe.cli.report import Reporter
from rpcprobe.infrastructure.logging import get_logger

EXIT_INTERRUPTED = 130


def register(
    app: typer.Typer,
    *,
    stdout_console: Console,
    stderr_console: Console,
    keyboard_interrupt_banner: Callable[[], Text],
) -> None:
    @app.command(help="Probe repeatedly on an interval until stopped or --count is reached.")
    def monitor(
        interval: cli_options.IntervalOption = 60.0,
        count: cli_options.CountOption = None,
        config_path: cli_options.ConfigPathOption = None,
        host: cli_options.HostOption = None,
        port: cli_options.PortOption = None,
        client: cli_options.ClientOption = None,
        user: cli_options.UserOption = None,
        password: cli_options.PasswordOption = None,
        language: cli_options.LanguageOption = None,
        tls_artifact: cli_options.TlsArtifactOption = None,
        tls_passphrase: cli_options.TlsPassphraseOption = None,
        crypto_lib: cli_options.CryptoLibraryOption = None,
        crypto_provider: cli_options.CryptoProviderOption = None,
        client_factory: cli_options.ClientFactoryOption = None,
        timeout: cli_options.TimeoutOption = None,
        retries: cli_options.RetriesOption = None,
        backoff: cli_options.BackoffOption = None,
        debug: cli_options.DebugOption = None,
        log_level: cli_options.LogLevelOption = None,
        log_format: cli_options.LogFormatOption = None,
        log_file: cli_options.LogFileOption = None,
    ) -> None:
        invocation = build_invocation(
            config_path=config_path,
            host=host,
            port=port,
            client=client,
            user=user,
            password=password,
            language=language,
            tls_artifact=tls_artifact,
            tls_passphrase=tls_passphrase,
            crypto_lib=crypto_lib,
            crypto_provider=crypto_provider,
            client_factory=client_factory,
            timeout=timeout,
            retries=retries,
            backoff=backoff,
            debug=debug,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
        )
        application = prepare_application(invocation)
        logger = get_logger("rpcprobe.cli.monitor")

        reporter = Reporter(stdout_console)
        reporter.banner(title="WebSocket RPC Connection Monitor")
        connection_check = ConnectionCheck(
            connection_params=application.connection_params,
            probe_settings=application.probe,
            observer=reporter,
            logger=logger,
        )

        try:
            summary = asyncio.run(
                run_monitor(connection_check, interval=interval, count=count, logger=logger)
            )
        except KeyboardInterrupt:
            stderr_console.print(keyboard_interrupt_banner())
            raise typer.Exit(code=EXIT_INTERRUPTED) from None

        stdout_console.print(
            f"Probes: {len(summary.outcomes)}, failures: {summary.failures}"
        )
        raise typer.Exit(code=summary.exit_code())


__all__ = ["EXIT_INTERRUPTED", "register"]
