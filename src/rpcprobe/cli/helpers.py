"""Reusable helper utilities for the rpcprobe CLI."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from rpcprobe.cli import options as cli_options
from rpcprobe.config.settings import (
    ApplicationSettings,
    ConnectionInputs,
    CryptoInputs,
    LoggingInputs,
    ProbeInputs,
    TlsInputs,
    resolve_application_settings,
)
from rpcprobe.infrastructure.logging import configure_logging


@dataclass(frozen=True)
class CliInvocation:
    config_path: str | None
    connection: ConnectionInputs
    tls: TlsInputs
    crypto: CryptoInputs
    probe: ProbeInputs
    logging: LoggingInputs


def build_invocation(
    *,
    config_path: Path | str | None,
    host: str | None = None,
    port: int | None = None,
    client: str | None = None,
    user: str | None = None,
    password: str | None = None,
    language: str | None = None,
    tls_artifact: str | None = None,
    tls_passphrase: str | None = None,
    crypto_lib: str | None = None,
    crypto_provider: str | None = None,
    client_factory: str | None = None,
    timeout: float | None = None,
    retries: int | None = None,
    backoff: float | None = None,
    debug: bool | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: str | None = None,
) -> CliInvocation:
    """Construct a :class:`CliInvocation` with normalized CLI parameters."""

    clean = cli_options.clean_string
    return CliInvocation(
        config_path=str(config_path) if config_path is not None else None,
        connection=ConnectionInputs(
            host=clean(host),
            port=port,
            client=clean(client),
            user=clean(user),
            password=password if password else None,
            language=clean(language),
        ),
        tls=TlsInputs(
            artifact_path=clean(tls_artifact),
            passphrase=tls_passphrase if tls_passphrase else None,
        ),
        crypto=CryptoInputs(
            library_path=clean(crypto_lib),
            provider=clean(crypto_provider),
        ),
        probe=ProbeInputs(
            client_factory=clean(client_factory),
            timeout=timeout,
            retries=retries,
            backoff=backoff,
            debug=debug,
        ),
        logging=LoggingInputs(
            level=cli_options.normalize_log_level(log_level),
            format=cli_options.normalize_log_format(log_format),
            file_path=clean(log_file),
        ),
    )


def resolve_invocation(invocation: CliInvocation) -> ApplicationSettings:
    """Resolve layered settings for ``invocation``, surfacing errors as CLI errors."""

    try:
        return resolve_application_settings(
            config_path=invocation.config_path,
            connection_inputs=invocation.connection,
            tls_inputs=invocation.tls,
            crypto_inputs=invocation.crypto,
            probe_inputs=invocation.probe,
            logging_inputs=invocation.logging,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def prepare_application(invocation: CliInvocation) -> ApplicationSettings:
    application = resolve_invocation(invocation)
    configure_logging(application.logging)
    return application


__all__ = [
    "CliInvocation",
    "build_invocation",
    "prepare_application",
    "resolve_invocation",
]
