from __future__ import annotations

import asyncio
from typing import Any

import pytest

from rpcprobe.config.settings import ENVVAR_TO_SETTINGS_KEY
from rpcprobe.domain.models import ConnectionConfig


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("rpcprobe")
    group.addoption(
        "--offline",
        action="store_true",
        dest="rpcprobe_offline",
        help="Run offline tests only (deselect tests marked 'online').",
    )
    group.addoption(
        "--online-only",
        action="store_true",
        dest="rpcprobe_online_only",
        help="Run only tests marked 'online' (deselect offline).",
    )


def _is_integration_path(s: str) -> bool:
    s = s.replace("\\", "/")
    return s.startswith("tests/integration/") or "/tests/integration/" in s


def _mark_by_path(items: list[pytest.Item]) -> None:
    for item in items:
        node_str = str(getattr(item, "fspath", item.nodeid))
        marker = (
            pytest.mark.online
            if _is_integration_path(node_str)
            else pytest.mark.offline
        )
        item.add_marker(marker)


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    _mark_by_path(items)

    offline_only = bool(config.getoption("rpcprobe_offline"))
    online_only = bool(config.getoption("rpcprobe_online_only"))

    if offline_only and online_only:
        raise pytest.UsageError("--offline and --online-only are mutually exclusive")

    deselect: list[pytest.Item] = []
    if online_only:
        deselect = [i for i in items if "online" not in i.keywords]
    elif offline_only:
        deselect = [i for i in items if "online" in i.keywords]

    if not deselect:
        return

    config.hook.pytest_deselected(items=deselect)
    items[:] = [i for i in items if i not in deselect]


class FakeClient:
    """Scriptable in-memory client recording every call it receives."""

    def __init__(
        self,
        *,
        open_error: BaseException | None = None,
        info_payload: Any = None,
        info_error: BaseException | None = None,
        ping_error: BaseException | None = None,
        close_error: BaseException | None = None,
        open_delay: float = 0.0,
        ping_delay: float = 0.0,
    ) -> None:
        self.open_error = open_error
        self.info_payload = info_payload
        self.info_error = info_error
        self.ping_error = ping_error
        self.close_error = close_error
        self.open_delay = open_delay
        self.ping_delay = ping_delay
        self.calls: list[str] = []
        self.close_calls = 0
        self._alive = False

    @property
    def alive(self) -> bool:
        return self._alive

    async def open(self) -> None:
        self.calls.append("open")
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if self.open_error is not None:
            raise self.open_error
        self._alive = True

    async def info(self) -> Any:
        self.calls.append("info")
        if self.info_error is not None:
            raise self.info_error
        return self.info_payload

    async def ping(self) -> None:
        self.calls.append("ping")
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        if self.ping_error is not None:
            raise self.ping_error

    async def close(self) -> None:
        self.calls.append("close")
        self.close_calls += 1
        self._alive = False
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(
        host="rpc.example.test",
        port=8443,
        client="100",
        user="probe",
        password="s3cret-value",
        language="EN",
    )


@pytest.fixture
def tls_connection_config(connection_config: ConnectionConfig) -> ConnectionConfig:
    return ConnectionConfig(
        host=connection_config.host,
        port=connection_config.port,
        client=connection_config.client,
        user=connection_config.user,
        password=connection_config.password,
        language=connection_config.language,
        tls_artifact_path="/etc/rpcprobe/client.pem",
        tls_passphrase="pem-pass",
    )


@pytest.fixture
def make_client() -> type[FakeClient]:
    return FakeClient


@pytest.fixture
def clean_environment(tmp_path, monkeypatch: pytest.MonkeyPatch):  # noqa: ANN001, ANN201
    """Run from an empty directory with no RPCPROBE_* variables set."""

    for env_var in (*ENVVAR_TO_SETTINGS_KEY, "RPCPROBE_CONFIG"):
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
