"""Assemble a validated :class:`ConnectionConfig` from named parameters."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Final

from rpcprobe.domain.models import ConnectionConfig
from rpcprobe.infrastructure.errors import (
    REASON_INVALID_PORT,
    REASON_MISSING_FIELDS,
    REASON_MISSING_PAIR,
    ConfigError,
)

PARAM_HOST: Final = "host"
PARAM_PORT: Final = "port"
PARAM_CLIENT: Final = "client"
PARAM_USER: Final = "user"
PARAM_PASSWORD: Final = "password"
PARAM_LANGUAGE: Final = "language"
PARAM_TLS_ARTIFACT: Final = "tls_artifact_path"
PARAM_TLS_PASSPHRASE: Final = "tls_passphrase"

REQUIRED_PARAMS: Final[tuple[str, ...]] = (
    PARAM_HOST,
    PARAM_PORT,
    PARAM_USER,
    PARAM_PASSWORD,
    PARAM_CLIENT,
)
_ALL_PARAMS: Final[tuple[str, ...]] = (
    *REQUIRED_PARAMS,
    PARAM_LANGUAGE,
    PARAM_TLS_ARTIFACT,
    PARAM_TLS_PASSPHRASE,
)
_SECRET_PARAMS: Final = frozenset({PARAM_PASSWORD, PARAM_TLS_PASSPHRASE})


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return text or None


def _clean_secret(value: Any) -> str | None:
    # Kept verbatim; only blank values count as missing.
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else None


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError as exc:
        raise ConfigError(
            REASON_INVALID_PORT, f"Port must be an integer, got {raw!r}"
        ) from exc
    if not 1 <= port <= 65535:
        raise ConfigError(
            REASON_INVALID_PORT, f"Port must be between 1 and 65535, got {port}"
        )
    return port


def resolve_connection_config(params: Mapping[str, Any]) -> ConnectionConfig:
    """Validate ``params`` and build a :class:`ConnectionConfig`.

    Blank strings count as missing. Passwords and passphrases are kept exactly
    as given; every other value is stripped. Raises :class:`ConfigError` when
    a required parameter is absent, the port is invalid, or only one half of
    the TLS artifact/passphrase pair is given.
    """

    cleaned = {
        key: (_clean_secret if key in _SECRET_PARAMS else _clean)(params.get(key))
        for key in _ALL_PARAMS
    }

    missing = tuple(name for name in REQUIRED_PARAMS if cleaned[name] is None)
    if missing:
        raise ConfigError(
            REASON_MISSING_FIELDS,
            f"Missing required connection parameters: {', '.join(missing)}",
            missing=missing,
        )

    artifact = cleaned[PARAM_TLS_ARTIFACT]
    passphrase = cleaned[PARAM_TLS_PASSPHRASE]
    if (artifact is None) != (passphrase is None):
        absent = PARAM_TLS_PASSPHRASE if passphrase is None else PARAM_TLS_ARTIFACT
        raise ConfigError(
            REASON_MISSING_PAIR,
            "TLS artifact path and passphrase must be provided together",
            missing=(absent,),
        )

    return ConnectionConfig(
        host=cleaned[PARAM_HOST],  # type: ignore[arg-type]
        port=_parse_port(cleaned[PARAM_PORT]),  # type: ignore[arg-type]
        client=cleaned[PARAM_CLIENT],  # type: ignore[arg-type]
        user=cleaned[PARAM_USER],  # type: ignore[arg-type]
        password=cleaned[PARAM_PASSWORD],  # type: ignore[arg-type]
        language=cleaned[PARAM_LANGUAGE],
        tls_artifact_path=artifact,
        tls_passphrase=passphrase,
    )


__all__ = [
    "PARAM_CLIENT",
    "PARAM_HOST",
    "PARAM_LANGUAGE",
    "PARAM_PASSWORD",
    "PARAM_PORT",
    "PARAM_TLS_ARTIFACT",
    "PARAM_TLS_PASSPHRASE",
    "PARAM_USER",
    "REQUIRED_PARAMS",
    "resolve_connection_config",
]
