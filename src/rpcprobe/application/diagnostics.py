"""End-to-end connection check: resolve, bootstrap, probe, report.

This module holds the orchestration shared by the ``check`` and ``monitor``
commands. It talks to its output through the :class:`CheckObserver` protocol
so it can be reused without pulling Typer- or Rich-specific dependencies.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from rpcprobe.application.bootstrap import CryptoBootstrap, get_crypto_bootstrap
from rpcprobe.application.probe import ClientFactory, ProbeOptions, run_probe
from rpcprobe.config.resolver import resolve_connection_config
from rpcprobe.config.settings import ProbeSettings
from rpcprobe.domain.models import ConnectionConfig, ProbeResult
from rpcprobe.infrastructure.errors import (
    REASON_INVALID_PLUGIN,
    REASON_MISSING_CRYPTO_LIBRARY,
    ConfigError,
    CryptoLoadError,
    ProbeError,
)
from rpcprobe.infrastructure.logging import BoundLogger, get_logger
from rpcprobe.integrations.loader import resolve_callable

SyncRunner = Callable[[Awaitable[Any]], Any]

STAGE_CONFIG = "config"
STAGE_CRYPTO = "crypto"
STAGE_PROBE = "probe"


def _default_run_sync(coro: Awaitable[Any]) -> Any:
    return asyncio.run(coro)  # type: ignore[arg-type]


def _sync(coro: Awaitable[Any], run_sync: SyncRunner | None = None) -> Any:
    runner = run_sync or _default_run_sync
    return runner(coro)


class CheckObserver(Protocol):
    def connection_parameters(self, config: ConnectionConfig) -> None: ...

    def bootstrap_loaded(self, path: str) -> None: ...

    def bootstrap_skipped(self) -> None: ...

    def config_error(self, error: ConfigError) -> None: ...

    def crypto_error(self, error: CryptoLoadError) -> None: ...

    def probe_started(self, config: ConnectionConfig) -> None: ...

    def probe_result(self, result: ProbeResult) -> None: ...

    def warnings(self, messages: tuple[str, ...]) -> None: ...


@dataclass(frozen=True)
class CheckOutcome:
    stage: str
    success: bool
    result: ProbeResult | None = None
    error: ProbeError | None = None

    @property
    def fatal(self) -> bool:
        return self.stage in (STAGE_CONFIG, STAGE_CRYPTO)

    def exit_code(self) -> int:
        return 0 if self.success else 1


@dataclass(frozen=True)
class MonitorSummary:
    outcomes: tuple[CheckOutcome, ...]

    @property
    def failures(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)

    def exit_code(self) -> int:
        if not self.outcomes or self.failures:
            return 1
        return 0


def _resolve_plugin(import_path: str, *, setting: str) -> Callable[..., Any]:
    try:
        return resolve_callable(import_path)
    except ValueError as exc:
        raise ConfigError(
            REASON_INVALID_PLUGIN, f"Invalid {setting}: {exc}", missing=(setting,)
        ) from exc


class ConnectionCheck:
    """Run one complete connection check and report it."""

    def __init__(
        self,
        *,
        connection_params: Mapping[str, Any],
        probe_settings: ProbeSettings,
        observer: CheckObserver,
        client_factory: ClientFactory | None = None,
        bootstrap: CryptoBootstrap | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._connection_params = dict(connection_params)
        self._probe_settings = probe_settings
        self._observer = observer
        self._client_factory = client_factory
        self._bootstrap = bootstrap
        self._logger = logger or get_logger("rpcprobe.diagnostics")

    @property
    def probe_options(self) -> ProbeOptions:
        return ProbeOptions(
            timeout=self._probe_settings.timeout,
            retries=self._probe_settings.retries,
            backoff=self._probe_settings.backoff,
        )

    def _resolve_client_factory(self) -> ClientFactory:
        if self._client_factory is None:
            self._client_factory = _resolve_plugin(
                self._probe_settings.client_factory, setting="probe.client_factory"
            )
        return self._client_factory

    def _resolve_bootstrap(self) -> CryptoBootstrap:
        if self._bootstrap is None:
            provider = _resolve_plugin(
                self._probe_settings.crypto_provider, setting="crypto.provider"
            )
            self._bootstrap = get_crypto_bootstrap(provider)
        return self._bootstrap

    def _run_bootstrap(self, config: ConnectionConfig) -> CryptoBootstrap | None:
        library_path = self._probe_settings.crypto_library_path
        if not library_path:
            if config.tls_enabled:
                raise ConfigError(
                    REASON_MISSING_CRYPTO_LIBRARY,
                    "A crypto library path is required for TLS connections",
                    missing=("crypto.library_path",),
                )
            self._logger.warning("crypto.bootstrap.skipped", reason="no library configured")
            self._observer.bootstrap_skipped()
            return None
        bootstrap = self._resolve_bootstrap()
        bootstrap.load(library_path)
        self._observer.bootstrap_loaded(library_path)
        return bootstrap

    async def run_async(self) -> CheckOutcome:
        if self._probe_settings.warnings:
            self._observer.warnings(self._probe_settings.warnings)

        try:
            config = resolve_connection_config(self._connection_params)
            client_factory = self._resolve_client_factory()
        except ConfigError as exc:
            self._logger.error("config.invalid", reason=exc.reason, missing=list(exc.missing))
            self._observer.config_error(exc)
            return CheckOutcome(stage=STAGE_CONFIG, success=False, error=exc)

        self._observer.connection_parameters(config)

        try:
            bootstrap = self._run_bootstrap(config)
        except ConfigError as exc:
            self._logger.error("config.invalid", reason=exc.reason, missing=list(exc.missing))
            self._observer.config_error(exc)
            return CheckOutcome(stage=STAGE_CONFIG, success=False, error=exc)
        except CryptoLoadError as exc:
            self._observer.crypto_error(exc)
            return CheckOutcome(stage=STAGE_CRYPTO, success=False, error=exc)

        self._observer.probe_started(config)
        result = await run_probe(
            config,
            client_factory,
            self.probe_options,
            bootstrap=bootstrap,
            logger=self._logger,
        )
        self._observer.probe_result(result)
        return CheckOutcome(stage=STAGE_PROBE, success=result.success, result=result)

    def run(self, run_sync: SyncRunner | None = None) -> CheckOutcome:
        return _sync(self.run_async(), run_sync=run_sync)


async def run_monitor(
    check: ConnectionCheck,
    *,
    interval: float,
    count: int | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    logger: BoundLogger | None = None,
) -> MonitorSummary:
    """Repeat ``check`` every ``interval`` seconds.

    Runs forever when ``count`` is ``None``. Fatal configuration or crypto
    failures stop the loop immediately since retrying them cannot succeed.
    """

    log = logger or get_logger("rpcprobe.monitor")
    outcomes: list[CheckOutcome] = []
    iteration = 0
    while count is None or iteration < count:
        iteration += 1
        outcome = await check.run_async()
        outcomes.append(outcome)
        log.info(
            "monitor.iteration",
            iteration=iteration,
            success=outcome.success,
            stage=outcome.stage,
        )
        if outcome.fatal:
            log.error("monitor.stopped", reason=outcome.stage)
            break
        if count is not None and iteration >= count:
            break
        await sleep(interval)
    return MonitorSummary(outcomes=tuple(outcomes))


__all__ = [
    "STAGE_CONFIG",
    "STAGE_CRYPTO",
    "STAGE_PROBE",
    "CheckObserver",
    "CheckOutcome",
    "ConnectionCheck",
    "MonitorSummary",
    "SyncRunner",
    "run_monitor",
]
