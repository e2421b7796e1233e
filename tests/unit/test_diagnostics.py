from __future__ import annotations

import io
from dataclasses import replace
from typing import Any

import pytest
from rich.console import Console

from rpcprobe.application.bootstrap import CryptoBootstrap
from rpcprobe.application.diagnostics import (
    STAGE_CONFIG,
    STAGE_CRYPTO,
    STAGE_PROBE,
    ConnectionCheck,
    MonitorSummary,
    run_monitor,
)
from rpcprobe.cli.report import Reporter
from rpcprobe.config.settings import ProbeSettings
from rpcprobe.domain.models import BootstrapState, FailureCategory
from rpcprobe.infrastructure.errors import (
    REASON_INVALID_PLUGIN,
    REASON_MISSING_CRYPTO_LIBRARY,
    ConfigError,
)

CONNECTION_PARAMS = {
    "host": "rpc.example.test",
    "port": "8443",
    "client": "100",
    "user": "probe",
    "password": "s3cret-value",
    "language": "EN",
}

PROBE_SETTINGS = ProbeSettings(
    client_factory="rpcprobe.integrations.http_client:HttpRpcClient",
    crypto_provider="rpcprobe.integrations.crypto:load_shared_library",
    crypto_library_path="/opt/crypto/libcrypto.so",
    timeout=2.0,
    retries=0,
    backoff=0.0,
    debug=False,
)


class _Recorder:
    def __init__(self, make_client: Any, **client_kwargs: Any) -> None:
        self._make_client = make_client
        self._client_kwargs = client_kwargs
        self.clients: list[Any] = []

    def __call__(self, config: Any) -> Any:
        client = self._make_client(**self._client_kwargs)
        self.clients.append(client)
        return client


def _check(
    factory: Any,
    *,
    params: dict[str, Any] | None = None,
    settings: ProbeSettings = PROBE_SETTINGS,
    provider: Any = None,
) -> tuple[ConnectionCheck, io.StringIO, CryptoBootstrap]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=120, color_system=None)
    bootstrap = CryptoBootstrap(provider or (lambda path: None))
    check = ConnectionCheck(
        connection_params=params or CONNECTION_PARAMS,
        probe_settings=settings,
        observer=Reporter(console),
        client_factory=factory,
        bootstrap=bootstrap,
    )
    return check, buffer, bootstrap


def test_scenario_full_success(make_client: Any) -> None:
    factory = _Recorder(
        make_client,
        info_payload={
            "sysId": "NPL",
            "sysNumber": "00",
            "partnerHost": "vhcalnplci",
            "releaseversion": "758",
            "rfcProtocol": "WS",
        },
    )
    check, buffer, bootstrap = _check(factory)

    outcome = check.run()

    output = buffer.getvalue()
    assert outcome.exit_code() == 0
    assert outcome.stage == STAGE_PROBE
    assert bootstrap.state is BootstrapState.LOADED
    for value in ("NPL", "00", "vhcalnplci", "758", "WS"):
        assert value in output
    assert "not available" not in output
    assert factory.clients[0].close_calls == 1


def test_scenario_crypto_failure_skips_probe(make_client: Any) -> None:
    def provider(path: str) -> None:
        raise OSError("library not found")

    factory = _Recorder(make_client)
    check, buffer, bootstrap = _check(factory, provider=provider)

    outcome = check.run()

    assert outcome.exit_code() != 0
    assert outcome.stage == STAGE_CRYPTO
    assert outcome.fatal is True
    assert bootstrap.state is BootstrapState.FAILED
    assert factory.clients == []
    assert "CryptoLoadError" in buffer.getvalue()
    assert "library not found" in buffer.getvalue()


def test_scenario_connection_refused(make_client: Any) -> None:
    factory = _Recorder(make_client, open_error=ConnectionError("Connection refused"))
    check, buffer, _ = _check(factory)

    outcome = check.run()

    output = buffer.getvalue()
    assert outcome.exit_code() == 1
    assert outcome.result is not None
    assert outcome.result.category is FailureCategory.NETWORK_UNREACHABLE
    assert "Verify that host and port are correct" in output
    assert "firewall" in output
    assert factory.clients[0].close_calls == 0


def test_scenario_invalid_logon_on_ping(make_client: Any) -> None:
    factory = _Recorder(make_client, ping_error=RuntimeError("invalid logon"))
    check, buffer, _ = _check(factory)

    outcome = check.run()

    assert outcome.exit_code() == 1
    assert outcome.result is not None
    assert outcome.result.category is FailureCategory.AUTHENTICATION
    assert factory.clients[0].close_calls == 1
    assert "AuthenticationError" in buffer.getvalue()


def test_missing_configuration_performs_no_io(make_client: Any) -> None:
    provider_calls: list[str] = []
    factory = _Recorder(make_client)
    params = dict(CONNECTION_PARAMS, host="  ")
    check, buffer, bootstrap = _check(
        factory, params=params, provider=provider_calls.append
    )

    outcome = check.run()

    assert outcome.stage == STAGE_CONFIG
    assert outcome.exit_code() == 1
    assert isinstance(outcome.error, ConfigError)
    assert factory.clients == []
    assert provider_calls == []
    assert bootstrap.state is BootstrapState.NOT_LOADED
    assert "host" in buffer.getvalue()


def test_missing_library_path_skips_bootstrap(make_client: Any) -> None:
    factory = _Recorder(make_client)
    settings = replace(PROBE_SETTINGS, crypto_library_path=None)
    check, buffer, bootstrap = _check(factory, settings=settings)

    outcome = check.run()

    assert outcome.exit_code() == 0
    assert bootstrap.state is BootstrapState.NOT_LOADED
    assert "SKIPPED" in buffer.getvalue()


def test_tls_without_library_path_is_config_error(make_client: Any) -> None:
    factory = _Recorder(make_client)
    params = dict(
        CONNECTION_PARAMS,
        tls_artifact_path="/etc/rpcprobe/client.pem",
        tls_passphrase="pem-pass",
    )
    settings = replace(PROBE_SETTINGS, crypto_library_path=None)
    check, buffer, bootstrap = _check(factory, params=params, settings=settings)

    outcome = check.run()

    assert outcome.stage == STAGE_CONFIG
    assert outcome.exit_code() == 1
    assert isinstance(outcome.error, ConfigError)
    assert outcome.error.reason == REASON_MISSING_CRYPTO_LIBRARY
    assert outcome.error.missing == ("crypto.library_path",)
    assert factory.clients == []
    assert bootstrap.state is BootstrapState.NOT_LOADED
    assert "crypto library path is required" in buffer.getvalue()


def test_invalid_client_factory_is_config_error() -> None:
    buffer = io.StringIO()
    settings = replace(PROBE_SETTINGS, client_factory="rpcprobe_missing:Factory")
    check = ConnectionCheck(
        connection_params=CONNECTION_PARAMS,
        probe_settings=settings,
        observer=Reporter(Console(file=buffer, width=120)),
        bootstrap=CryptoBootstrap(lambda path: None),
    )

    outcome = check.run()

    assert outcome.stage == STAGE_CONFIG
    assert isinstance(outcome.error, ConfigError)
    assert outcome.error.reason == REASON_INVALID_PLUGIN


def test_probe_options_follow_settings() -> None:
    check, _, _ = _check(lambda config: None)
    options = check.probe_options

    assert options.timeout == PROBE_SETTINGS.timeout
    assert options.retries == PROBE_SETTINGS.retries


def test_settings_warnings_are_reported(make_client: Any) -> None:
    settings = replace(PROBE_SETTINGS, warnings=("Invalid probe timeout 'x'; using 30.0s",))
    check, buffer, _ = _check(_Recorder(make_client), settings=settings)

    check.run()

    assert "Invalid probe timeout 'x'" in buffer.getvalue()


async def test_monitor_runs_independent_probes(make_client: Any) -> None:
    factory = _Recorder(make_client)
    check, _, _ = _check(factory)
    sleeps: list[float] = []

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    summary = await run_monitor(check, interval=5.0, count=3, sleep=fake_sleep)

    assert len(summary.outcomes) == 3
    assert summary.exit_code() == 0
    assert sleeps == [5.0, 5.0]
    assert len(factory.clients) == 3
    assert all(client.close_calls == 1 for client in factory.clients)


async def test_monitor_counts_failures(make_client: Any) -> None:
    factory = _Recorder(make_client, open_error=ConnectionError("Connection refused"))
    check, _, _ = _check(factory)

    async def fake_sleep(delay: float) -> None:
        return None

    summary = await run_monitor(check, interval=0.0, count=2, sleep=fake_sleep)

    assert summary.failures == 2
    assert summary.exit_code() == 1


async def test_monitor_stops_on_fatal_outcome(make_client: Any) -> None:
    check, _, _ = _check(_Recorder(make_client), params={"host": "only-host"})

    async def fake_sleep(delay: float) -> None:
        pytest.fail("monitor should not sleep after a fatal outcome")

    summary = await run_monitor(check, interval=1.0, count=5, sleep=fake_sleep)

    assert len(summary.outcomes) == 1
    assert summary.outcomes[0].stage == STAGE_CONFIG


def test_empty_monitor_summary_fails() -> None:
    assert MonitorSummary(outcomes=()).exit_code() == 1
