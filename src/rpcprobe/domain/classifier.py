"""Map raw probe failures onto diagnostic categories with remediation hints.

Matching is a case-insensitive substring search over the failure message and
follows a fixed priority order; the first rule that matches wins. Messages
that mention several keywords (for example both ``host`` and
``authentication``) therefore resolve to the earlier rule.
"""

from __future__ import annotations

import socket
import ssl
from collections.abc import Mapping
from typing import Final

from rpcprobe.domain.models import Classification, FailureCategory

TIMEOUT_HINT: Final = (
    "The probe exceeded its deadline; raise --timeout or check for a slow or "
    "filtered network path"
)

REMEDIATION_HINTS: Final[Mapping[FailureCategory, tuple[str, ...]]] = {
    FailureCategory.CRYPTO_LOAD: (
        "Verify the crypto library file exists at the configured path",
        "Ensure the library's runtime dependencies are installed",
        "Check that the library matches the interpreter architecture (e.g. x64)",
    ),
    FailureCategory.TLS_HANDSHAKE: (
        "Verify the TLS artifact (PSE) exists at the configured path",
        "Check that the TLS passphrase matches the artifact password",
        "Ensure the crypto library is loaded and its directory is on the library search path",
        "Confirm the secure WebSocket port is active in the server's service list",
    ),
    FailureCategory.AUTHENTICATION: (
        "Verify the user name and password are correct",
        "Check whether the user is locked on the server",
        "Verify the client identifier is correct",
        "Ensure the user is authorized for remote calls",
    ),
    FailureCategory.NETWORK_UNREACHABLE: (
        "Check that the WebSocket RPC service is running on the server",
        "Verify that host and port are correct",
        "Check that the firewall allows connections to the configured port",
    ),
    FailureCategory.PROTOCOL_SERVICE: (
        "Check that the remote system is running",
        "Verify the RPC service endpoint is activated on the server",
        "Review the server's service and communication logs",
    ),
    FailureCategory.UNKNOWN: (
        "Check that the remote system is running",
        "Review the server's communication trace for handshake errors",
        "Check the server's system log",
        "Re-run with --debug for full details",
    ),
}

# Ordered rules; do not reorder without reviewing overlapping messages.
_MESSAGE_RULES: Final[tuple[tuple[FailureCategory, tuple[str, ...]], ...]] = (
    (FailureCategory.TLS_HANDSHAKE, ("pse", "tls", "ssl")),
    (FailureCategory.AUTHENTICATION, ("authentication", "logon")),
    (FailureCategory.NETWORK_UNREACHABLE, ("connection refused", "host")),
    (
        FailureCategory.PROTOCOL_SERVICE,
        (
            "service not active",
            "service-not-active",
            "service is not active",
            "not activated",
        ),
    ),
)


def hints_for(category: FailureCategory) -> tuple[str, ...]:
    return REMEDIATION_HINTS[category]


def classification_for(category: FailureCategory) -> Classification:
    return Classification(category=category, hints=hints_for(category))


def timeout_classification() -> Classification:
    """Network classification with the timeout hint placed first."""

    return Classification(
        category=FailureCategory.NETWORK_UNREACHABLE,
        hints=(TIMEOUT_HINT, *hints_for(FailureCategory.NETWORK_UNREACHABLE)),
    )


def describe_failure(raw: BaseException | str) -> str:
    if isinstance(raw, str):
        return raw
    message = str(raw).strip()
    if message:
        return message
    return type(raw).__name__


def _match_message(message: str) -> FailureCategory | None:
    lowered = message.lower()
    for category, tokens in _MESSAGE_RULES:
        if any(token in lowered for token in tokens):
            return category
    return None


def _match_exception_type(exc: BaseException) -> FailureCategory | None:
    if isinstance(exc, ssl.SSLError):
        return FailureCategory.TLS_HANDSHAKE
    if isinstance(exc, PermissionError):
        return FailureCategory.AUTHENTICATION
    if isinstance(exc, (ConnectionError, socket.gaierror, TimeoutError)):
        return FailureCategory.NETWORK_UNREACHABLE
    return None


def classify(raw: BaseException | str) -> Classification:
    """Return the diagnostic classification for ``raw``.

    ``raw`` may be an exception or a plain message. Message keywords are
    checked first; the exception type is only consulted when no keyword
    matched.
    """

    category = _match_message(describe_failure(raw))
    if category is None and isinstance(raw, BaseException):
        category = _match_exception_type(raw)
    return classification_for(category or FailureCategory.UNKNOWN)


__all__ = [
    "REMEDIATION_HINTS",
    "TIMEOUT_HINT",
    "classification_for",
    "classify",
    "describe_failure",
    "hints_for",
    "timeout_classification",
]
