"""Value types shared by the resolver, the probe and the reporter."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final

NOT_AVAILABLE: Final = "not available"


def mask_secret(value: str | None) -> str:
    if not value:
        return "<unset>"
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:2]}{'*' * (len(value) - 4)}{value[-2:]}"


class BootstrapState(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    FAILED = "failed"


class FailureCategory(str, Enum):
    CRYPTO_LOAD = "CryptoLoadError"
    TLS_HANDSHAKE = "TlsHandshakeError"
    AUTHENTICATION = "AuthenticationError"
    NETWORK_UNREACHABLE = "NetworkUnreachableError"
    PROTOCOL_SERVICE = "ProtocolServiceError"
    UNKNOWN = "UnknownError"


@dataclass(frozen=True)
class Classification:
    category: FailureCategory
    hints: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.category.value


@dataclass(frozen=True)
class ConnectionConfig:
    """Validated connection parameters for a single probe invocation.

    Instances are produced by :func:`rpcprobe.config.resolver.resolve_connection_config`
    which enforces the required fields and the TLS pairing rule.
    """

    host: str
    port: int
    client: str
    user: str
    password: str
    language: str | None = None
    tls_artifact_path: str | None = None
    tls_passphrase: str | None = None

    @property
    def tls_enabled(self) -> bool:
        return self.tls_artifact_path is not None

    def as_display_rows(self) -> list[tuple[str, str]]:
        rows = [
            ("Host", self.host),
            ("Port", str(self.port)),
            ("Client", self.client),
            ("User", self.user),
            ("Password", mask_secret(self.password)),
            ("Language", self.language or NOT_AVAILABLE),
        ]
        if self.tls_enabled:
            rows.append(("TLS Artifact", self.tls_artifact_path or NOT_AVAILABLE))
            rows.append(("TLS Passphrase", mask_secret(self.tls_passphrase)))
        return rows


# Accepted spellings per field, first hit wins.
_INFO_KEY_ALIASES: Final[dict[str, tuple[str, ...]]] = {
    "system_id": ("system_id", "sysId", "sysid", "sid"),
    "system_number": ("system_number", "sysNumber", "sysnr"),
    "partner_host": ("partner_host", "partnerHost", "host"),
    "release": ("release", "releaseversion", "releaseVersion", "partnerRel"),
    "protocol": ("protocol", "rfcProtocol", "rfcproto"),
}

_INFO_LABELS: Final[dict[str, str]] = {
    "system_id": "System ID",
    "system_number": "System Number",
    "partner_host": "Partner Host",
    "release": "Release",
    "protocol": "Protocol",
}


def _clean_info_value(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ConnectionInfo:
    system_id: str | None = None
    system_number: str | None = None
    partner_host: str | None = None
    release: str | None = None
    protocol: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> ConnectionInfo:
        if not payload:
            return cls()
        values: dict[str, str | None] = {}
        for field_name, aliases in _INFO_KEY_ALIASES.items():
            values[field_name] = None
            for alias in aliases:
                candidate = _clean_info_value(payload.get(alias))
                if candidate is not None:
                    values[field_name] = candidate
                    break
        return cls(**values)

    def as_display_rows(self) -> list[tuple[str, str]]:
        return [
            (label, getattr(self, field_name) or NOT_AVAILABLE)
            for field_name, label in _INFO_LABELS.items()
        ]


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe: success with connection info, or a classified failure."""

    success: bool
    connection_info: ConnectionInfo | None = None
    classification: Classification | None = None
    raw_message: str | None = None
    info_error: str | None = None
    close_error: str | None = None
    attempts: int = 1
    elapsed: float = 0.0

    @classmethod
    def ok(cls, connection_info: ConnectionInfo, **extra: Any) -> ProbeResult:
        return cls(success=True, connection_info=connection_info, **extra)

    @classmethod
    def failed(
        cls, classification: Classification, raw_message: str, **extra: Any
    ) -> ProbeResult:
        return cls(
            success=False,
            classification=classification,
            raw_message=raw_message,
            **extra,
        )

    @property
    def category(self) -> FailureCategory | None:
        if self.classification is None:
            return None
        return self.classification.category


__all__ = [
    "NOT_AVAILABLE",
    "BootstrapState",
    "Classification",
    "ConnectionConfig",
    "ConnectionInfo",
    "FailureCategory",
    "ProbeResult",
    "mask_secret",
]
