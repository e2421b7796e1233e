"""Connect, inspect, ping and close a connection through an abstract client.

:func:`run_probe` owns the whole sequence and always returns a
:class:`ProbeResult`. Step failures are classified at this boundary; they
never propagate as exceptions. Whatever happens, a client that reports itself
alive is closed exactly once per attempt, and a failing close is recorded as
a secondary warning without replacing the primary outcome.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Final, Protocol, runtime_checkable

from rpcprobe.application.bootstrap import CryptoBootstrap
from rpcprobe.domain.classifier import (
    classification_for,
    classify,
    describe_failure,
    timeout_classification,
)
from rpcprobe.domain.models import (
    BootstrapState,
    Classification,
    ConnectionConfig,
    ConnectionInfo,
    FailureCategory,
    ProbeResult,
)
from rpcprobe.infrastructure.logging import (
    BoundLogger,
    attach_probe_context,
    get_logger,
    log_event,
)

DEFAULT_PROBE_TIMEOUT: Final = 30.0
DEFAULT_CLOSE_TIMEOUT: Final = 5.0

RETRYABLE_CATEGORIES: Final[frozenset[FailureCategory]] = frozenset(
    {
        FailureCategory.NETWORK_UNREACHABLE,
        FailureCategory.PROTOCOL_SERVICE,
        FailureCategory.UNKNOWN,
    }
)


@runtime_checkable
class RpcClient(Protocol):
    """Capability consumed by the probe.

    Implementations are not expected to be safe for concurrent use; build one
    client per probe.
    """

    @property
    def alive(self) -> bool: ...

    async def open(self) -> None: ...

    async def info(self) -> ConnectionInfo | Mapping[str, Any] | None: ...

    async def ping(self) -> None: ...

    async def close(self) -> None: ...


ClientFactory = Callable[[ConnectionConfig], RpcClient]


@dataclass(frozen=True)
class ProbeOptions:
    timeout: float | None = DEFAULT_PROBE_TIMEOUT
    retries: int = 0
    backoff: float = 1.0
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.retries < 0:
            raise ValueError("retries must not be negative")
        if self.backoff < 0:
            raise ValueError("backoff must not be negative")

    def retry_delay(self, attempt: int) -> float:
        return self.backoff * (2 ** (attempt - 1))


@dataclass
class _AttemptState:
    step: str = "open"
    info: ConnectionInfo | None = None
    info_error: str | None = None
    close_error: str | None = None


def _normalize_info(payload: Any) -> ConnectionInfo:
    if payload is None:
        return ConnectionInfo()
    if isinstance(payload, ConnectionInfo):
        return payload
    if isinstance(payload, Mapping):
        return ConnectionInfo.from_mapping(payload)
    raise TypeError(f"Unsupported connection info payload: {type(payload).__name__}")


async def _execute_steps(
    client: RpcClient, state: _AttemptState, logger: BoundLogger
) -> None:
    state.step = "open"
    await client.open()
    log_event(logger, "probe.open.succeeded", level=logging.DEBUG)

    state.step = "info"
    try:
        state.info = _normalize_info(await client.info())
    except Exception as exc:
        state.info_error = describe_failure(exc)
        log_event(
            logger, "probe.info.failed", level=logging.WARNING, error=state.info_error
        )
    else:
        log_event(logger, "probe.info.collected", level=logging.DEBUG)

    state.step = "ping"
    await client.ping()
    log_event(logger, "probe.ping.succeeded", level=logging.DEBUG)


async def _guarded_steps(
    client: RpcClient,
    state: _AttemptState,
    remaining: float | None,
    logger: BoundLogger,
) -> tuple[Classification, str] | None:
    deadline = asyncio.timeout(None if remaining is None else max(remaining, 0.0))
    try:
        async with deadline:
            await _execute_steps(client, state, logger)
    except TimeoutError as exc:
        # Clients may raise TimeoutError themselves; keep their message then.
        if deadline.expired():
            raw_message = f"Probe deadline exceeded during {state.step}"
        else:
            raw_message = describe_failure(exc)
        return timeout_classification(), raw_message
    except Exception as exc:
        return classify(exc), describe_failure(exc)
    return None


async def _release(
    client: RpcClient, close_timeout: float, logger: BoundLogger
) -> str | None:
    try:
        alive = bool(client.alive)
    except Exception as exc:
        message = describe_failure(exc)
        log_event(logger, "probe.close.alive_check_failed", level=logging.WARNING, error=message)
        return message
    if not alive:
        return None

    try:
        await asyncio.wait_for(client.close(), timeout=close_timeout)
    except TimeoutError:
        message = f"close did not complete within {close_timeout:g}s"
        log_event(logger, "probe.close.failed", level=logging.WARNING, error=message)
        return message
    except Exception as exc:
        message = describe_failure(exc)
        log_event(logger, "probe.close.failed", level=logging.WARNING, error=message)
        return message
    log_event(logger, "probe.close.succeeded", level=logging.DEBUG)
    return None


async def _attempt(
    client: RpcClient,
    remaining: float | None,
    options: ProbeOptions,
    logger: BoundLogger,
) -> ProbeResult:
    state = _AttemptState()
    try:
        failure = await _guarded_steps(client, state, remaining, logger)
    finally:
        state.close_error = await _release(client, options.close_timeout, logger)

    if failure is not None:
        classification, raw_message = failure
        log_event(
            logger,
            "probe.step.failed",
            level=logging.ERROR,
            step=state.step,
            category=classification.name,
            error=raw_message,
        )
        return ProbeResult.failed(
            classification,
            raw_message,
            info_error=state.info_error,
            close_error=state.close_error,
        )

    return ProbeResult.ok(
        state.info or ConnectionInfo(),
        info_error=state.info_error,
        close_error=state.close_error,
    )


def _is_client_instance(client: RpcClient | ClientFactory) -> bool:
    # Classes satisfy the structural check too, so treat them as factories.
    return not isinstance(client, type) and isinstance(client, RpcClient)


def _client_for_attempt(
    client: RpcClient | ClientFactory, config: ConnectionConfig
) -> RpcClient:
    if _is_client_instance(client):
        return client
    return client(config)


def _bootstrap_failure(bootstrap: CryptoBootstrap) -> ProbeResult:
    error = bootstrap.error
    raw_message = str(error) if error is not None else "crypto bootstrap failed"
    return ProbeResult.failed(
        classification_for(FailureCategory.CRYPTO_LOAD),
        raw_message,
        attempts=0,
    )


async def run_probe(
    config: ConnectionConfig,
    client: RpcClient | ClientFactory,
    options: ProbeOptions | None = None,
    *,
    bootstrap: CryptoBootstrap | None = None,
    logger: BoundLogger | None = None,
) -> ProbeResult:
    """Probe the service described by ``config``.

    ``client`` is either a ready client instance or a factory called with
    ``config`` to build a fresh client for each attempt. A client instance is
    opened and closed once, so it gets a single attempt whatever
    ``options.retries`` says. Only network, protocol-service and unknown
    failures are retried, and never beyond the overall deadline in ``options``.
    """

    options = options or ProbeOptions()
    probe_logger = attach_probe_context(
        logger or get_logger("rpcprobe.probe"), host=config.host, port=config.port
    )

    if bootstrap is not None and bootstrap.state is BootstrapState.FAILED:
        log_event(probe_logger, "probe.skipped.crypto_failed", level=logging.ERROR)
        return _bootstrap_failure(bootstrap)

    retries = options.retries
    if retries and _is_client_instance(client):
        log_event(
            probe_logger,
            "probe.retry.disabled",
            level=logging.WARNING,
            reason="client instance can only be used for one attempt",
            requested_retries=retries,
        )
        retries = 0

    started = time.monotonic()
    deadline = None if options.timeout is None else started + options.timeout
    attempt = 0

    while True:
        attempt += 1
        attempt_logger = probe_logger.bind(attempt=attempt)
        remaining = None if deadline is None else deadline - time.monotonic()
        log_event(attempt_logger, "probe.attempt.started", level=logging.DEBUG)

        try:
            attempt_client = _client_for_attempt(client, config)
        except Exception as exc:
            raw_message = describe_failure(exc)
            log_event(
                attempt_logger,
                "probe.client.create_failed",
                level=logging.ERROR,
                error=raw_message,
            )
            result = ProbeResult.failed(classify(exc), raw_message)
        else:
            result = await _attempt(attempt_client, remaining, options, attempt_logger)

        if result.success:
            break
        if attempt > retries or result.category not in RETRYABLE_CATEGORIES:
            break

        delay = options.retry_delay(attempt)
        if deadline is not None and time.monotonic() + delay >= deadline:
            log_event(attempt_logger, "probe.retry.deadline_exhausted", level=logging.WARNING)
            break
        log_event(attempt_logger, "probe.retry.scheduled", delay=delay)
        await asyncio.sleep(delay)

    result = replace(result, attempts=attempt, elapsed=time.monotonic() - started)
    if result.success:
        log_event(probe_logger, "probe.succeeded", attempts=attempt)
    else:
        log_event(
            probe_logger,
            "probe.failed",
            level=logging.ERROR,
            attempts=attempt,
            category=result.classification.name if result.classification else None,
        )
    return result


__all__ = [
    "DEFAULT_CLOSE_TIMEOUT",
    "DEFAULT_PROBE_TIMEOUT",
    "RETRYABLE_CATEGORIES",
    "ClientFactory",
    "ProbeOptions",
    "RpcClient",
    "run_probe",
]
