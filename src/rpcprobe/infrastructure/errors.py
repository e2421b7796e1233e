"""Fatal error types raised before a probe is attempted.

Probe-stage failures never surface as exceptions; they are classified and
returned as :class:`rpcprobe.domain.models.ProbeResult`. Only configuration
and crypto bootstrap problems abort the run, and they do so with the errors
defined here.
"""

from __future__ import annotations

from enum import Enum
from typing import Final

from rpcprobe.domain.classifier import hints_for
from rpcprobe.domain.models import FailureCategory


class ErrorCode(str, Enum):
    CONFIG_MISSING_FIELDS = "CONFIG_MISSING_FIELDS"
    CONFIG_MISSING_PAIR = "CONFIG_MISSING_PAIR"
    CONFIG_INVALID_PORT = "CONFIG_INVALID_PORT"
    CONFIG_INVALID_PLUGIN = "CONFIG_INVALID_PLUGIN"
    CONFIG_MISSING_CRYPTO_LIBRARY = "CONFIG_MISSING_CRYPTO_LIBRARY"
    CRYPTO_LOAD_FAILED = "CRYPTO_LOAD_FAILED"


REASON_MISSING_FIELDS: Final = "missing-fields"
REASON_MISSING_PAIR: Final = "missing-pair"
REASON_INVALID_PORT: Final = "invalid-port"
REASON_INVALID_PLUGIN: Final = "invalid-plugin"
REASON_MISSING_CRYPTO_LIBRARY: Final = "missing-crypto-library"

_REASON_CODES: Final[dict[str, ErrorCode]] = {
    REASON_MISSING_FIELDS: ErrorCode.CONFIG_MISSING_FIELDS,
    REASON_MISSING_PAIR: ErrorCode.CONFIG_MISSING_PAIR,
    REASON_INVALID_PORT: ErrorCode.CONFIG_INVALID_PORT,
    REASON_INVALID_PLUGIN: ErrorCode.CONFIG_INVALID_PLUGIN,
    REASON_MISSING_CRYPTO_LIBRARY: ErrorCode.CONFIG_MISSING_CRYPTO_LIBRARY,
}

_CONFIG_HINTS: Final[dict[str, tuple[str, ...]]] = {
    REASON_MISSING_FIELDS: (
        "Set the missing values in config.toml, the environment or on the command line",
        "Run 'rpcprobe config show' to see where each value comes from",
    ),
    REASON_MISSING_PAIR: (
        "Provide both the TLS artifact path and its passphrase, or neither",
    ),
    REASON_INVALID_PORT: ("Use a numeric port between 1 and 65535",),
    REASON_INVALID_PLUGIN: (
        "Use an import path of the form 'package.module:attribute'",
        "Make sure the module is installed in the same environment as rpcprobe",
    ),
    REASON_MISSING_CRYPTO_LIBRARY: (
        "Set crypto.library_path (RPCPROBE_CRYPTO_LIB or --crypto-lib) for TLS connections",
        "Or drop the TLS artifact and passphrase to probe a plain connection",
    ),
}


class ProbeError(Exception):
    """Base class for fatal rpcprobe errors."""

    code: ErrorCode

    def __init__(self, message: str, *, code: ErrorCode) -> None:
        super().__init__(message)
        self.code = code

    @property
    def user_message(self) -> str:
        return str(self)

    @property
    def hints(self) -> tuple[str, ...]:
        return ()


class ConfigError(ProbeError):
    def __init__(
        self,
        reason: str,
        message: str,
        *,
        missing: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message, code=_REASON_CODES[reason])
        self.reason = reason
        self.missing = missing

    @property
    def hints(self) -> tuple[str, ...]:
        return _CONFIG_HINTS[self.reason]


class CryptoLoadError(ProbeError):
    category: Final = FailureCategory.CRYPTO_LOAD

    def __init__(self, message: str, path: str) -> None:
        super().__init__(
            f"Failed to load crypto library from {path}: {message}",
            code=ErrorCode.CRYPTO_LOAD_FAILED,
        )
        self.raw_message = message
        self.path = path

    @property
    def hints(self) -> tuple[str, ...]:
        return hints_for(FailureCategory.CRYPTO_LOAD)


__all__ = [
    "REASON_INVALID_PLUGIN",
    "REASON_INVALID_PORT",
    "REASON_MISSING_FIELDS",
    "REASON_MISSING_CRYPTO_LIBRARY",
    "REASON_MISSING_PAIR",
    "ConfigError",
    "CryptoLoadError",
    "ErrorCode",
    "ProbeError",
]
