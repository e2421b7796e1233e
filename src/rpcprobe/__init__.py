"""Top-level rpcprobe package API."""

from rpcprobe.application.bootstrap import CryptoBootstrap, get_crypto_bootstrap
from rpcprobe.application.probe import ProbeOptions, RpcClient, run_probe
from rpcprobe.config.resolver import resolve_connection_config
from rpcprobe.domain.classifier import classify
from rpcprobe.domain.models import (
    BootstrapState,
    Classification,
    ConnectionConfig,
    ConnectionInfo,
    FailureCategory,
    ProbeResult,
)

__all__ = [
    "BootstrapState",
    "Classification",
    "ConnectionConfig",
    "ConnectionInfo",
    "CryptoBootstrap",
    "FailureCategory",
    "ProbeOptions",
    "ProbeResult",
    "RpcClient",
    "classify",
    "get_crypto_bootstrap",
    "resolve_connection_config",
    "run_probe",
]
