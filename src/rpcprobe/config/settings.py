"""Dynaconf-backed configuration helpers for rpcprobe.

Settings resolve according to the following precedence:

1. Command line inputs
2. Environment variables (including a ``.env`` file in the working directory)
3. Local configuration overlays (``config.local.toml``)
4. Primary configuration file (``config.toml``)

Blank or whitespace-only values are treated as "not provided" so they do not
override lower-priority sources.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from dynaconf import Dynaconf

from rpcprobe.config.constants import (
    DEFAULT_CONFIG_FILENAME,
    ENV_PREFIX,
    LOCAL_CONFIG_FILENAME,
    coerce_bool,
    coerce_float,
    coerce_int,
)
from rpcprobe.config.resolver import (
    PARAM_CLIENT,
    PARAM_HOST,
    PARAM_LANGUAGE,
    PARAM_PASSWORD,
    PARAM_PORT,
    PARAM_TLS_ARTIFACT,
    PARAM_TLS_PASSPHRASE,
    PARAM_USER,
)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 0
DEFAULT_BACKOFF = 1.0
DEFAULT_CLIENT_FACTORY = "rpcprobe.integrations.http_client:HttpRpcClient"
DEFAULT_CRYPTO_PROVIDER = "rpcprobe.integrations.crypto:load_shared_library"

LOG_FORMAT_TEXT = "text"
LOG_FORMAT_JSON = "json"
DEFAULT_LOG_FORMAT = LOG_FORMAT_TEXT
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 10_000_000
DEFAULT_BACKUP_COUNT = 5

# Dynaconf keys used throughout the module. Using constants keeps environment
# and configuration lookups consistent.
CONNECTION_HOST_KEY = "connection.host"
CONNECTION_PORT_KEY = "connection.port"
CONNECTION_CLIENT_KEY = "connection.client"
CONNECTION_USER_KEY = "connection.user"
CONNECTION_PASSWORD_KEY = "connection.password"
CONNECTION_LANGUAGE_KEY = "connection.language"

TLS_ARTIFACT_PATH_KEY = "tls.artifact_path"
TLS_PASSPHRASE_KEY = "tls.passphrase"

CRYPTO_LIBRARY_PATH_KEY = "crypto.library_path"
CRYPTO_PROVIDER_KEY = "crypto.provider"

PROBE_CLIENT_FACTORY_KEY = "probe.client_factory"
PROBE_TIMEOUT_KEY = "probe.timeout"
PROBE_RETRIES_KEY = "probe.retries"
PROBE_BACKOFF_KEY = "probe.backoff"

RUNTIME_DEBUG_KEY = "runtime.debug"

LOGGING_LEVEL_KEY = "logging.level"
LOGGING_FORMAT_KEY = "logging.format"
LOGGING_FILE_KEY = "logging.file"
LOGGING_MAX_BYTES_KEY = "logging.max_bytes"
LOGGING_BACKUP_COUNT_KEY = "logging.backup_count"

ENVVAR_TO_SETTINGS_KEY: Dict[str, str] = {
    f"{ENV_PREFIX}_HOST": CONNECTION_HOST_KEY,
    f"{ENV_PREFIX}_PORT": CONNECTION_PORT_KEY,
    f"{ENV_PREFIX}_CLIENT": CONNECTION_CLIENT_KEY,
    f"{ENV_PREFIX}_USER": CONNECTION_USER_KEY,
    f"{ENV_PREFIX}_PASSWORD": CONNECTION_PASSWORD_KEY,
    f"{ENV_PREFIX}_LANG": CONNECTION_LANGUAGE_KEY,
    f"{ENV_PREFIX}_TLS_ARTIFACT": TLS_ARTIFACT_PATH_KEY,
    f"{ENV_PREFIX}_TLS_PASSPHRASE": TLS_PASSPHRASE_KEY,
    f"{ENV_PREFIX}_CRYPTO_LIB": CRYPTO_LIBRARY_PATH_KEY,
    f"{ENV_PREFIX}_CRYPTO_PROVIDER": CRYPTO_PROVIDER_KEY,
    f"{ENV_PREFIX}_CLIENT_FACTORY": PROBE_CLIENT_FACTORY_KEY,
    f"{ENV_PREFIX}_TIMEOUT": PROBE_TIMEOUT_KEY,
    f"{ENV_PREFIX}_RETRIES": PROBE_RETRIES_KEY,
    f"{ENV_PREFIX}_BACKOFF": PROBE_BACKOFF_KEY,
    f"{ENV_PREFIX}_DEBUG": RUNTIME_DEBUG_KEY,
    f"{ENV_PREFIX}_LOG_LEVEL": LOGGING_LEVEL_KEY,
    f"{ENV_PREFIX}_LOG_FORMAT": LOGGING_FORMAT_KEY,
    f"{ENV_PREFIX}_LOG_FILE": LOGGING_FILE_KEY,
    f"{ENV_PREFIX}_LOG_MAX_BYTES": LOGGING_MAX_BYTES_KEY,
    f"{ENV_PREFIX}_LOG_BACKUP_COUNT": LOGGING_BACKUP_COUNT_KEY,
}

SENSITIVE_KEYS = frozenset({CONNECTION_PASSWORD_KEY, TLS_PASSPHRASE_KEY})

_CONNECTION_PARAM_KEYS: Dict[str, str] = {
    PARAM_HOST: CONNECTION_HOST_KEY,
    PARAM_PORT: CONNECTION_PORT_KEY,
    PARAM_CLIENT: CONNECTION_CLIENT_KEY,
    PARAM_USER: CONNECTION_USER_KEY,
    PARAM_PASSWORD: CONNECTION_PASSWORD_KEY,
    PARAM_LANGUAGE: CONNECTION_LANGUAGE_KEY,
    PARAM_TLS_ARTIFACT: TLS_ARTIFACT_PATH_KEY,
    PARAM_TLS_PASSPHRASE: TLS_PASSPHRASE_KEY,
}


@dataclass(frozen=True)
class ConnectionInputs:
    host: Optional[str] = None
    port: Optional[int] = None
    client: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class TlsInputs:
    artifact_path: Optional[str] = None
    passphrase: Optional[str] = None


@dataclass(frozen=True)
class CryptoInputs:
    library_path: Optional[str] = None
    provider: Optional[str] = None


@dataclass(frozen=True)
class ProbeInputs:
    client_factory: Optional[str] = None
    timeout: Optional[float] = None
    retries: Optional[int] = None
    backoff: Optional[float] = None
    debug: Optional[bool] = None


@dataclass(frozen=True)
class LoggingInputs:
    level: Optional[str] = None
    format: Optional[str] = None
    file_path: Optional[str] = None
    max_bytes: Optional[int] = None
    backup_count: Optional[int] = None


@dataclass(frozen=True)
class ProbeSettings:
    client_factory: str
    crypto_provider: str
    crypto_library_path: Optional[str]
    timeout: float
    retries: int
    backoff: float
    debug: bool
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    format: str
    file_path: Optional[str]
    max_bytes: int
    backup_count: int

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


def _default_settings_files(config_path: Optional[str]) -> Tuple[Sequence[str], Optional[str]]:
    if config_path:
        config_file = Path(config_path)
        local_file = config_file.with_name(f"{config_file.stem}.local{config_file.suffix}")
        files: list[str] = []
        if config_file.exists():
            files.append(str(config_file))
        if local_file.exists():
            files.append(str(local_file))
        return files or [str(config_file)], None
    return [DEFAULT_CONFIG_FILENAME, LOCAL_CONFIG_FILENAME], str(Path.cwd())


def _coerce_str(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        candidate = value.strip()
        return candidate or None
    return str(value)


def _apply_environment_overrides(settings: Dynaconf) -> None:
    for env_var, key in ENVVAR_TO_SETTINGS_KEY.items():
        raw = os.getenv(env_var)
        if raw is None or not raw.strip():
            continue
        settings.set(key, raw)


def _set_if_present(
    settings: Dynaconf, key: str, value: Optional[Any], *, strip: bool = True
) -> None:
    if value is None:
        return
    if isinstance(value, str):
        if not value.strip():
            return
        if strip:
            value = value.strip()
    settings.set(key, value)


def _build_dynaconf(config_path: Optional[str]) -> Dynaconf:
    files, root_path = _default_settings_files(config_path)
    settings = Dynaconf(
        settings_files=list(files),
        envvar_prefix=ENV_PREFIX,
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        root_path=root_path,
    )
    _apply_environment_overrides(settings)
    return settings


def load_settings(config_path: Optional[str] = None) -> Dynaconf:
    """Create a Dynaconf instance configured for the supplied path."""

    return _build_dynaconf(config_path)


def apply_cli_overrides(
    settings: Dynaconf,
    *,
    connection_inputs: Optional[ConnectionInputs] = None,
    tls_inputs: Optional[TlsInputs] = None,
    crypto_inputs: Optional[CryptoInputs] = None,
    probe_inputs: Optional[ProbeInputs] = None,
    logging_inputs: Optional[LoggingInputs] = None,
) -> None:
    """Apply CLI overrides to the provided settings instance."""

    if connection_inputs is not None:
        _set_if_present(settings, CONNECTION_HOST_KEY, connection_inputs.host)
        _set_if_present(settings, CONNECTION_PORT_KEY, connection_inputs.port)
        _set_if_present(settings, CONNECTION_CLIENT_KEY, connection_inputs.client)
        _set_if_present(settings, CONNECTION_USER_KEY, connection_inputs.user)
        _set_if_present(
            settings, CONNECTION_PASSWORD_KEY, connection_inputs.password, strip=False
        )
        _set_if_present(settings, CONNECTION_LANGUAGE_KEY, connection_inputs.language)

    if tls_inputs is not None:
        _set_if_present(settings, TLS_ARTIFACT_PATH_KEY, tls_inputs.artifact_path)
        _set_if_present(settings, TLS_PASSPHRASE_KEY, tls_inputs.passphrase, strip=False)

    if crypto_inputs is not None:
        _set_if_present(settings, CRYPTO_LIBRARY_PATH_KEY, crypto_inputs.library_path)
        _set_if_present(settings, CRYPTO_PROVIDER_KEY, crypto_inputs.provider)

    if probe_inputs is not None:
        _set_if_present(settings, PROBE_CLIENT_FACTORY_KEY, probe_inputs.client_factory)
        _set_if_present(settings, PROBE_TIMEOUT_KEY, probe_inputs.timeout)
        _set_if_present(settings, PROBE_RETRIES_KEY, probe_inputs.retries)
        _set_if_present(settings, PROBE_BACKOFF_KEY, probe_inputs.backoff)
        _set_if_present(settings, RUNTIME_DEBUG_KEY, probe_inputs.debug)

    if logging_inputs is not None:
        _set_if_present(settings, LOGGING_LEVEL_KEY, logging_inputs.level)
        _set_if_present(settings, LOGGING_FORMAT_KEY, logging_inputs.format)
        _set_if_present(settings, LOGGING_FILE_KEY, logging_inputs.file_path)
        _set_if_present(settings, LOGGING_MAX_BYTES_KEY, logging_inputs.max_bytes)
        _set_if_present(settings, LOGGING_BACKUP_COUNT_KEY, logging_inputs.backup_count)


def connection_params_from_settings(settings: Dynaconf) -> Dict[str, Any]:
    """Return the named parameter mapping consumed by the connection resolver."""

    return {param: settings.get(key) for param, key in _CONNECTION_PARAM_KEYS.items()}


def _resolve_timeout(settings: Dynaconf, warnings: list[str]) -> float:
    raw = settings.get(PROBE_TIMEOUT_KEY)
    if raw is None:
        return DEFAULT_TIMEOUT
    value = coerce_float(raw)
    if value is None or value <= 0:
        warnings.append(f"Invalid probe timeout {raw!r}; using {DEFAULT_TIMEOUT}s")
        return DEFAULT_TIMEOUT
    return value


def _resolve_retries(settings: Dynaconf, warnings: list[str]) -> int:
    raw = settings.get(PROBE_RETRIES_KEY)
    if raw is None:
        return DEFAULT_RETRIES
    value = coerce_int(raw)
    if value is None or value < 0:
        warnings.append(f"Invalid probe retries {raw!r}; retries disabled")
        return DEFAULT_RETRIES
    return value


def _resolve_backoff(settings: Dynaconf, warnings: list[str]) -> float:
    raw = settings.get(PROBE_BACKOFF_KEY)
    if raw is None:
        return DEFAULT_BACKOFF
    value = coerce_float(raw)
    if value is None or value < 0:
        warnings.append(f"Invalid probe backoff {raw!r}; using {DEFAULT_BACKOFF}s")
        return DEFAULT_BACKOFF
    return value


def probe_from_settings(settings: Dynaconf) -> ProbeSettings:
    """Extract probe runtime settings and validation messages from Dynaconf."""

    warnings: list[str] = []
    timeout = _resolve_timeout(settings, warnings)
    retries = _resolve_retries(settings, warnings)
    backoff = _resolve_backoff(settings, warnings)

    return ProbeSettings(
        client_factory=_coerce_str(settings.get(PROBE_CLIENT_FACTORY_KEY))
        or DEFAULT_CLIENT_FACTORY,
        crypto_provider=_coerce_str(settings.get(CRYPTO_PROVIDER_KEY))
        or DEFAULT_CRYPTO_PROVIDER,
        crypto_library_path=_coerce_str(settings.get(CRYPTO_LIBRARY_PATH_KEY)),
        timeout=timeout,
        retries=retries,
        backoff=backoff,
        debug=coerce_bool(settings.get(RUNTIME_DEBUG_KEY), default=False),
        warnings=tuple(warnings),
    )


def logging_from_settings(settings: Dynaconf) -> LoggingSettings:
    """Extract logging configuration from Dynaconf."""

    level_value = _coerce_str(settings.get(LOGGING_LEVEL_KEY)) or DEFAULT_LOG_LEVEL
    format_value = (
        _coerce_str(settings.get(LOGGING_FORMAT_KEY)) or DEFAULT_LOG_FORMAT
    ).lower()
    if format_value not in {LOG_FORMAT_TEXT, LOG_FORMAT_JSON}:
        raise ValueError(f"Unsupported log format: {format_value}")

    file_path = _coerce_str(settings.get(LOGGING_FILE_KEY))

    max_bytes_value = coerce_int(settings.get(LOGGING_MAX_BYTES_KEY))
    if max_bytes_value is None or max_bytes_value <= 0:
        max_bytes_value = DEFAULT_MAX_BYTES

    backup_count_value = coerce_int(settings.get(LOGGING_BACKUP_COUNT_KEY))
    if backup_count_value is None or backup_count_value <= 0:
        backup_count_value = DEFAULT_BACKUP_COUNT

    mapping = logging.getLevelNamesMapping()
    level_upper = level_value.upper()
    if level_upper.isdigit():
        resolved_level = int(level_upper)
    else:
        resolved_level = mapping.get(level_upper, logging.INFO)

    return LoggingSettings(
        level=resolved_level,
        format=format_value,
        file_path=file_path,
        max_bytes=max_bytes_value,
        backup_count=backup_count_value,
    )


@dataclass(frozen=True)
class ApplicationSettings:
    settings: Dynaconf
    connection_params: Dict[str, Any]
    probe: ProbeSettings
    logging: LoggingSettings


def resolve_application_settings(
    *,
    config_path: Optional[str] = None,
    connection_inputs: Optional[ConnectionInputs] = None,
    tls_inputs: Optional[TlsInputs] = None,
    crypto_inputs: Optional[CryptoInputs] = None,
    probe_inputs: Optional[ProbeInputs] = None,
    logging_inputs: Optional[LoggingInputs] = None,
) -> ApplicationSettings:
    settings = load_settings(config_path)
    apply_cli_overrides(
        settings,
        connection_inputs=connection_inputs,
        tls_inputs=tls_inputs,
        crypto_inputs=crypto_inputs,
        probe_inputs=probe_inputs,
        logging_inputs=logging_inputs,
    )

    probe_settings = probe_from_settings(settings)
    logging_settings = logging_from_settings(settings)
    if probe_settings.debug and logging_settings.level > logging.DEBUG:
        logging_settings = replace(logging_settings, level=logging.DEBUG)

    return ApplicationSettings(
        settings=settings,
        connection_params=connection_params_from_settings(settings),
        probe=probe_settings,
        logging=logging_settings,
    )


__all__ = [
    "DEFAULT_BACKOFF",
    "DEFAULT_BACKUP_COUNT",
    "DEFAULT_CLIENT_FACTORY",
    "DEFAULT_CRYPTO_PROVIDER",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_BYTES",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "ENVVAR_TO_SETTINGS_KEY",
    "LOG_FORMAT_JSON",
    "LOG_FORMAT_TEXT",
    "SENSITIVE_KEYS",
    "ApplicationSettings",
    "ConnectionInputs",
    "CryptoInputs",
    "LoggingInputs",
    "LoggingSettings",
    "ProbeInputs",
    "ProbeSettings",
    "TlsInputs",
    "apply_cli_overrides",
    "connection_params_from_settings",
    "load_settings",
    "logging_from_settings",
    "probe_from_settings",
    "resolve_application_settings",
]
