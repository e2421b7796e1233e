"""Typer option declarations and normalization helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Final

import typer

LOG_FORMAT_CHOICES: Final[set[str]] = {"text", "json"}
LOG_LEVEL_MAP: Final[dict[str, int]] = {
    name.upper(): value
    for name, value in logging.getLevelNamesMapping().items()
    if isinstance(name, str) and not name.isdigit()
}

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to an rpcprobe configuration TOML file to load",
        envvar="RPCPROBE_CONFIG",
        show_envvar=True,
        rich_help_panel="Configuration",
    ),
]

HostOption = Annotated[
    str | None,
    typer.Option(
        "--host",
        help="Server host name (overrides RPCPROBE_HOST)",
        rich_help_panel="Connection",
    ),
]

PortOption = Annotated[
    int | None,
    typer.Option(
        "--port",
        min=1,
        max=65535,
        help="Server WebSocket port (overrides RPCPROBE_PORT)",
        rich_help_panel="Connection",
    ),
]

ClientOption = Annotated[
    str | None,
    typer.Option(
        "--client",
        help="Client identifier (overrides RPCPROBE_CLIENT)",
        rich_help_panel="Connection",
    ),
]

UserOption = Annotated[
    str | None,
    typer.Option(
        "--user",
        help="Logon user (overrides RPCPROBE_USER)",
        rich_help_panel="Connection",
    ),
]

PasswordOption = Annotated[
    str | None,
    typer.Option(
        "--password",
        help="Logon password (prefer RPCPROBE_PASSWORD to keep it out of shell history)",
        rich_help_panel="Connection",
    ),
]

LanguageOption = Annotated[
    str | None,
    typer.Option(
        "--lang",
        help="Logon language (overrides RPCPROBE_LANG)",
        rich_help_panel="Connection",
    ),
]

TlsArtifactOption = Annotated[
    str | None,
    typer.Option(
        "--tls-artifact",
        help="Path to the client TLS artifact (PSE/PEM); requires --tls-passphrase",
        rich_help_panel="TLS",
    ),
]

TlsPassphraseOption = Annotated[
    str | None,
    typer.Option(
        "--tls-passphrase",
        help="Passphrase for the TLS artifact (overrides RPCPROBE_TLS_PASSPHRASE)",
        rich_help_panel="TLS",
    ),
]

CryptoLibraryOption = Annotated[
    str | None,
    typer.Option(
        "--crypto-lib",
        help="Path to the crypto library loaded once before connecting",
        rich_help_panel="TLS",
    ),
]

CryptoProviderOption = Annotated[
    str | None,
    typer.Option(
        "--crypto-provider",
        help="Import path of the crypto provider callable (module:attribute)",
        rich_help_panel="TLS",
    ),
]

ClientFactoryOption = Annotated[
    str | None,
    typer.Option(
        "--client-factory",
        help="Import path of the RPC client factory (module:attribute)",
        rich_help_panel="Probe",
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        min=0.001,
        help="Overall probe deadline in seconds",
        rich_help_panel="Probe",
    ),
]

RetriesOption = Annotated[
    int | None,
    typer.Option(
        "--retries",
        min=0,
        help="Retries for network and service failures (default: none)",
        rich_help_panel="Probe",
    ),
]

BackoffOption = Annotated[
    float | None,
    typer.Option(
        "--backoff",
        min=0.0,
        help="Initial delay in seconds between retries, doubled per retry",
        rich_help_panel="Probe",
    ),
]

DebugOption = Annotated[
    bool | None,
    typer.Option(
        "--debug/--no-debug",
        help="Enable verbose diagnostics",
        rich_help_panel="Diagnostics",
    ),
]

LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Logging level (e.g. INFO, DEBUG)",
        rich_help_panel="Logging",
    ),
]

LogFormatOption = Annotated[
    str | None,
    typer.Option(
        "--log-format",
        help="Logging format (text or json)",
        rich_help_panel="Logging",
    ),
]

LogFileOption = Annotated[
    str | None,
    typer.Option(
        "--log-file",
        help="Path to a rotating log file",
        rich_help_panel="Logging",
    ),
]

IntervalOption = Annotated[
    float,
    typer.Option(
        "--interval",
        min=0.0,
        help="Seconds to wait between probes",
        rich_help_panel="Monitor",
    ),
]

CountOption = Annotated[
    int | None,
    typer.Option(
        "--count",
        min=1,
        help="Number of probes to run (default: until interrupted)",
        rich_help_panel="Monitor",
    ),
]


def clean_string(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def normalize_log_format(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip().lower()
    if not candidate:
        return None
    if candidate not in LOG_FORMAT_CHOICES:
        raise typer.BadParameter(
            "Log format must be either 'text' or 'json'",
            param_hint="--log-format",
        )
    return candidate


def normalize_log_level(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip().upper()
    if not candidate:
        return None
    if candidate not in LOG_LEVEL_MAP:
        raise typer.BadParameter(
            f"Unknown log level '{value}'",
            param_hint="--log-level",
        )
    return candidate


__all__ = [
    "BackoffOption",
    "ClientFactoryOption",
    "ClientOption",
    "ConfigPathOption",
    "CountOption",
    "CryptoLibraryOption",
    "CryptoProviderOption",
    "DebugOption",
    "HostOption",
    "IntervalOption",
    "LanguageOption",
    "LogFileOption",
    "LogFormatOption",
    "LogLevelOption",
    "PasswordOption",
    "PortOption",
    "RetriesOption",
    "TimeoutOption",
    "TlsArtifactOption",
    "TlsPassphraseOption",
    "UserOption",
    "clean_string",
    "normalize_log_format",
    "normalize_log_level",
]
