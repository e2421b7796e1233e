"""Config inspection commands for the rpcprobe CLI."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rpcprobe.cli import options as cli_options
from rpcprobe.cli.helpers import CliInvocation, build_invocation, resolve_invocation
from rpcprobe.cli.report import RichStyles
from rpcprobe.config.constants import DEFAULT_CONFIG_FILENAME, LOCAL_CONFIG_FILENAME
from rpcprobe.config.settings import (
    CONNECTION_CLIENT_KEY,
    CONNECTION_HOST_KEY,
    CONNECTION_LANGUAGE_KEY,
    CONNECTION_PASSWORD_KEY,
    CONNECTION_PORT_KEY,
    CONNECTION_USER_KEY,
    CRYPTO_LIBRARY_PATH_KEY,
    CRYPTO_PROVIDER_KEY,
    ENVVAR_TO_SETTINGS_KEY,
    LOGGING_BACKUP_COUNT_KEY,
    LOGGING_FILE_KEY,
    LOGGING_FORMAT_KEY,
    LOGGING_LEVEL_KEY,
    LOGGING_MAX_BYTES_KEY,
    PROBE_BACKOFF_KEY,
    PROBE_CLIENT_FACTORY_KEY,
    PROBE_RETRIES_KEY,
    PROBE_TIMEOUT_KEY,
    RUNTIME_DEBUG_KEY,
    SENSITIVE_KEYS,
    TLS_ARTIFACT_PATH_KEY,
    TLS_PASSPHRASE_KEY,
    ApplicationSettings,
)
from rpcprobe.domain.models import mask_secret

SOURCE_CLI = "CLI"
SOURCE_DEFAULT = "Default"
UNSET = "<unset>"


def flatten_to_dotted(mapping: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flattened: dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flattened.update(flatten_to_dotted(value, dotted))
        else:
            flattened[dotted] = value
    return flattened


def config_file_candidates(config_path: str | None) -> list[Path]:
    """Return the configuration files consulted for ``config_path``."""

    if config_path:
        base = Path(config_path)
        return [base, base.with_name(f"{base.stem}.local{base.suffix}")]
    cwd = Path.cwd()
    return [cwd / DEFAULT_CONFIG_FILENAME, cwd / LOCAL_CONFIG_FILENAME]


def _collect_config_file_entries(files: Sequence[Path]) -> dict[str, str]:
    """Map dotted keys to the name of the last file that defines them."""

    sources: dict[str, str] = {}
    for file in files:
        if not file.exists():
            continue
        try:
            parsed = tomllib.loads(file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise typer.BadParameter(
                f"Could not parse {file}: {exc}", param_hint="--config"
            ) from exc
        for key, value in flatten_to_dotted(parsed).items():
            if isinstance(value, str) and not value.strip():
                continue
            sources[key] = file.name
    return sources


def _collect_env_labels() -> dict[str, str]:
    labels: dict[str, str] = {}
    for env_var, key in ENVVAR_TO_SETTINGS_KEY.items():
        raw = os.getenv(env_var)
        if raw is not None and raw.strip():
            labels[key] = f"ENV ({env_var})"
    return labels


def _collect_cli_labels(invocation: CliInvocation) -> dict[str, str]:
    provided = {
        CONNECTION_HOST_KEY: invocation.connection.host,
        CONNECTION_PORT_KEY: invocation.connection.port,
        CONNECTION_CLIENT_KEY: invocation.connection.client,
        CONNECTION_USER_KEY: invocation.connection.user,
        CONNECTION_PASSWORD_KEY: invocation.connection.password,
        CONNECTION_LANGUAGE_KEY: invocation.connection.language,
        TLS_ARTIFACT_PATH_KEY: invocation.tls.artifact_path,
        TLS_PASSPHRASE_KEY: invocation.tls.passphrase,
        CRYPTO_LIBRARY_PATH_KEY: invocation.crypto.library_path,
        CRYPTO_PROVIDER_KEY: invocation.crypto.provider,
        PROBE_CLIENT_FACTORY_KEY: invocation.probe.client_factory,
        PROBE_TIMEOUT_KEY: invocation.probe.timeout,
        PROBE_RETRIES_KEY: invocation.probe.retries,
        PROBE_BACKOFF_KEY: invocation.probe.backoff,
        RUNTIME_DEBUG_KEY: invocation.probe.debug,
        LOGGING_LEVEL_KEY: invocation.logging.level,
        LOGGING_FORMAT_KEY: invocation.logging.format,
        LOGGING_FILE_KEY: invocation.logging.file_path,
    }
    return {key: SOURCE_CLI for key, value in provided.items() if value is not None}


def _effective_values(application: ApplicationSettings) -> dict[str, Any]:
    settings = application.settings
    probe = application.probe
    logging_settings = application.logging
    return {
        CONNECTION_HOST_KEY: settings.get(CONNECTION_HOST_KEY),
        CONNECTION_PORT_KEY: settings.get(CONNECTION_PORT_KEY),
        CONNECTION_CLIENT_KEY: settings.get(CONNECTION_CLIENT_KEY),
        CONNECTION_USER_KEY: settings.get(CONNECTION_USER_KEY),
        CONNECTION_PASSWORD_KEY: settings.get(CONNECTION_PASSWORD_KEY),
        CONNECTION_LANGUAGE_KEY: settings.get(CONNECTION_LANGUAGE_KEY),
        TLS_ARTIFACT_PATH_KEY: settings.get(TLS_ARTIFACT_PATH_KEY),
        TLS_PASSPHRASE_KEY: settings.get(TLS_PASSPHRASE_KEY),
        CRYPTO_LIBRARY_PATH_KEY: probe.crypto_library_path,
        CRYPTO_PROVIDER_KEY: probe.crypto_provider,
        PROBE_CLIENT_FACTORY_KEY: probe.client_factory,
        PROBE_TIMEOUT_KEY: probe.timeout,
        PROBE_RETRIES_KEY: probe.retries,
        PROBE_BACKOFF_KEY: probe.backoff,
        RUNTIME_DEBUG_KEY: probe.debug,
        LOGGING_LEVEL_KEY: logging_settings.level_name,
        LOGGING_FORMAT_KEY: logging_settings.format,
        LOGGING_FILE_KEY: logging_settings.file_path,
        LOGGING_MAX_BYTES_KEY: logging_settings.max_bytes,
        LOGGING_BACKUP_COUNT_KEY: logging_settings.backup_count,
    }


def format_config_value(key: str, value: Any) -> str:
    if key in SENSITIVE_KEYS:
        return mask_secret(None if value is None else str(value))
    if value is None:
        return UNSET
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip()
    return text or UNSET


def determine_source(
    key: str,
    cli_labels: Mapping[str, str],
    env_labels: Mapping[str, str],
    file_sources: Mapping[str, str],
) -> str:
    if key in cli_labels:
        return cli_labels[key]
    if key in env_labels:
        return env_labels[key]
    if key in file_sources:
        return f"Config File ({file_sources[key]})"
    return SOURCE_DEFAULT


def build_effective_rows(
    invocation: CliInvocation, application: ApplicationSettings
) -> list[tuple[str, str, str]]:
    """Return ``(key, display value, source)`` rows for every known setting."""

    file_sources = _collect_config_file_entries(
        config_file_candidates(invocation.config_path)
    )
    env_labels = _collect_env_labels()
    cli_labels = _collect_cli_labels(invocation)
    return [
        (
            key,
            format_config_value(key, value),
            determine_source(key, cli_labels, env_labels, file_sources),
        )
        for key, value in _effective_values(application).items()
    ]


def register(
    app: typer.Typer,
    *,
    stdout_console: Console,
) -> None:
    """Register config commands with the app."""

    config_app = typer.Typer(
        help="Inspect rpcprobe configuration sources and resolved settings.",
        no_args_is_help=True,
    )
    app.add_typer(config_app, name="config")

    @config_app.command(
        "show",
        help=(
            "Show the effective configuration and where each value came from.\n\n"
            "Example: rpcprobe config show --config custom.toml"
        ),
    )
    def config_show(
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
        """Display configuration files and effective values with their sources."""
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
        application = resolve_invocation(invocation)

        files_table = Table(title="Configuration files", box=box.SIMPLE_HEAVY)
        files_table.add_column("File", style=RichStyles.ACCENT)
        files_table.add_column("Status", style=RichStyles.SECONDARY)
        for file in config_file_candidates(invocation.config_path):
            files_table.add_row(escape(str(file)), "exists" if file.exists() else "missing")
        stdout_console.print(files_table)

        table = Table(title="Effective configuration", box=box.SIMPLE_HEAVY)
        table.add_column("Config Key", style=RichStyles.ACCENT)
        table.add_column("Value", style=RichStyles.SECONDARY, overflow="fold")
        table.add_column("Source", style=RichStyles.SUCCESS)
        for key, value, source in build_effective_rows(invocation, application):
            table.add_row(key, escape(value), escape(source))
        stdout_console.print()
        stdout_console.print(table)

        for warning in application.probe.warnings:
            stdout_console.print(f"[{RichStyles.WARNING}]Warning:[/] {escape(warning)}")


__all__ = [
    "build_effective_rows",
    "config_file_candidates",
    "determine_source",
    "flatten_to_dotted",
    "format_config_value",
    "register",
]
