"""One-time, process-wide initialization of the crypto provider.

The bootstrap moves from ``NOT_LOADED`` to either ``LOADED`` or ``FAILED``
exactly once and never goes back. A failed bootstrap is sticky: every later
``load`` re-raises the original :class:`CryptoLoadError` without calling the
provider again, so a monitoring loop cannot hammer a broken library.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from rpcprobe.domain.classifier import describe_failure
from rpcprobe.domain.models import BootstrapState
from rpcprobe.infrastructure.errors import CryptoLoadError
from rpcprobe.infrastructure.logging import BoundLogger, get_logger

CryptoProvider = Callable[[str], Any]


class CryptoBootstrap:
    def __init__(self, provider: CryptoProvider, *, logger: BoundLogger | None = None) -> None:
        self._provider = provider
        self._logger = logger or get_logger("rpcprobe.bootstrap")
        self._lock = threading.Lock()
        self._state = BootstrapState.NOT_LOADED
        self._library_path: str | None = None
        self._error: CryptoLoadError | None = None

    @property
    def state(self) -> BootstrapState:
        return self._state

    @property
    def library_path(self) -> str | None:
        return self._library_path

    @property
    def error(self) -> CryptoLoadError | None:
        return self._error

    def load(self, path: str) -> None:
        """Initialize the provider from ``path`` unless that already happened."""

        with self._lock:
            if self._state is BootstrapState.LOADED:
                if path != self._library_path:
                    self._logger.warning(
                        "crypto.bootstrap.already_loaded",
                        loaded_path=self._library_path,
                        requested_path=path,
                    )
                return
            if self._state is BootstrapState.FAILED:
                if self._error is None:
                    raise RuntimeError("crypto bootstrap failed without a recorded error")
                raise self._error

            self._library_path = path
            try:
                self._provider(path)
            except Exception as exc:
                self._error = CryptoLoadError(describe_failure(exc), path)
                self._state = BootstrapState.FAILED
                self._logger.error(
                    "crypto.bootstrap.failed", path=path, error=self._error.raw_message
                )
                raise self._error from exc

            self._state = BootstrapState.LOADED
            self._logger.info("crypto.bootstrap.loaded", path=path)


_PROCESS_BOOTSTRAP: CryptoBootstrap | None = None
_PROCESS_BOOTSTRAP_LOCK = threading.Lock()


def get_crypto_bootstrap(provider: CryptoProvider | None = None) -> CryptoBootstrap:
    """Return the process-wide bootstrap, creating it on first use.

    The provider is bound when the instance is created; later calls ignore
    ``provider``.
    """

    global _PROCESS_BOOTSTRAP
    with _PROCESS_BOOTSTRAP_LOCK:
        if _PROCESS_BOOTSTRAP is None:
            if provider is None:
                from rpcprobe.integrations.crypto import load_shared_library

                provider = load_shared_library
            _PROCESS_BOOTSTRAP = CryptoBootstrap(provider)
        return _PROCESS_BOOTSTRAP


__all__ = ["CryptoBootstrap", "CryptoProvider", "get_crypto_bootstrap"]
