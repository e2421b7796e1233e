from __future__ import annotations

import importlib
import sys
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from rpcprobe.application import bootstrap as bootstrap_module
from rpcprobe.cli.commands import monitor as monitor_command

app_mod = importlib.import_module("rpcprobe.cli.app")

FAKE_MODULE_NAME = "rpcprobe_cli_fake_client"
FAKE_MODULE_SOURCE = textwrap.dedent(
    '''
    class Client:
        """Behaviour is selected by the configured host name."""

        def __init__(self, config):
            self.config = config
            self._alive = False

        @property
        def alive(self):
            return self._alive

        async def open(self):
            if self.config.host.startswith("refused"):
                raise ConnectionError("Connection refused")
            self._alive = True

        async def info(self):
            return {"sysId": "NPL", "sysNumber": "00", "partnerHost": self.config.host}

        async def ping(self):
            if self.config.host.startswith("badlogon"):
                raise RuntimeError("invalid logon")

        async def close(self):
            self._alive = False


    def load_ok(path):
        return None


    def load_broken(path):
        raise OSError("library not found")
    '''
)

BASE_ARGS = [
    "--port",
    "8443",
    "--client",
    "100",
    "--user",
    "probe",
    "--password",
    "s3cret-value",
    "--client-factory",
    f"{FAKE_MODULE_NAME}:Client",
]


@pytest.fixture
def cli_env(clean_environment: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (clean_environment / f"{FAKE_MODULE_NAME}.py").write_text(
        FAKE_MODULE_SOURCE, encoding="utf-8"
    )
    monkeypatch.syspath_prepend(str(clean_environment))
    monkeypatch.delitem(sys.modules, FAKE_MODULE_NAME, raising=False)
    monkeypatch.setattr(bootstrap_module, "_PROCESS_BOOTSTRAP", None)
    monkeypatch.setenv("COLUMNS", "200")
    return clean_environment


def _invoke(*args: str):  # noqa: ANN202
    return CliRunner().invoke(app_mod.app, list(args), color=False)


def test_check_success(cli_env: Path) -> None:
    result = _invoke("check", "--host", "rpc.example.test", *BASE_ARGS)

    assert result.exit_code == 0, result.stdout
    assert "CONNECTED" in result.stdout
    assert "NPL" in result.stdout
    assert "s3cret-value" not in result.stdout
    assert "SKIPPED" in result.stdout


def test_check_connection_refused(cli_env: Path) -> None:
    result = _invoke("check", "--host", "refused.example.test", *BASE_ARGS)

    assert result.exit_code == 1
    assert "NetworkUnreachableError" in result.stdout
    assert "Troubleshooting:" in result.stdout


def test_check_invalid_logon(cli_env: Path) -> None:
    result = _invoke("check", "--host", "badlogon.example.test", *BASE_ARGS)

    assert result.exit_code == 1
    assert "AuthenticationError" in result.stdout


def test_check_missing_configuration(cli_env: Path) -> None:
    result = _invoke("check", "--port", "8443")

    assert result.exit_code == 1
    assert "ConfigError" in result.stdout
    assert "host" in result.stdout


def test_check_crypto_failure(cli_env: Path) -> None:
    result = _invoke(
        "check",
        "--host",
        "rpc.example.test",
        *BASE_ARGS,
        "--crypto-lib",
        str(cli_env / "libcrypto.so"),
        "--crypto-provider",
        f"{FAKE_MODULE_NAME}:load_broken",
    )

    assert result.exit_code == 1
    assert "CryptoLoadError" in result.stdout
    assert "CONNECTED" not in result.stdout


def test_check_loads_crypto_once(cli_env: Path) -> None:
    result = _invoke(
        "check",
        "--host",
        "rpc.example.test",
        *BASE_ARGS,
        "--crypto-lib",
        "/opt/crypto/libcrypto.so",
        "--crypto-provider",
        f"{FAKE_MODULE_NAME}:load_ok",
    )

    assert result.exit_code == 0
    assert "Crypto library loaded: /opt/crypto/libcrypto.so" in result.stdout


def test_check_reads_environment(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RPCPROBE_HOST", "rpc.example.test")
    monkeypatch.setenv("RPCPROBE_PORT", "8443")
    monkeypatch.setenv("RPCPROBE_CLIENT", "100")
    monkeypatch.setenv("RPCPROBE_USER", "probe")
    monkeypatch.setenv("RPCPROBE_PASSWORD", "s3cret-value")
    monkeypatch.setenv("RPCPROBE_CLIENT_FACTORY", f"{FAKE_MODULE_NAME}:Client")

    result = _invoke("check")

    assert result.exit_code == 0
    assert "CONNECTED" in result.stdout


def test_invalid_log_format_is_rejected(cli_env: Path) -> None:
    result = _invoke("check", "--log-format", "xml")

    assert result.exit_code != 0


def test_monitor_with_count(cli_env: Path) -> None:
    result = _invoke(
        "monitor",
        "--host",
        "rpc.example.test",
        *BASE_ARGS,
        "--count",
        "2",
        "--interval",
        "0",
    )

    assert result.exit_code == 0
    assert result.stdout.count("CONNECTED") == 2
    assert "Probes: 2, failures: 0" in result.stdout


def test_monitor_failure_exit_code(cli_env: Path) -> None:
    result = _invoke(
        "monitor",
        "--host",
        "refused.example.test",
        *BASE_ARGS,
        "--count",
        "1",
        "--interval",
        "0",
    )

    assert result.exit_code == 1
    assert "Probes: 1, failures: 1" in result.stdout


def test_monitor_keyboard_interrupt(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def interrupted(*args: object, **kwargs: object) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr(monitor_command, "run_monitor", interrupted)

    result = _invoke("monitor", "--host", "rpc.example.test", *BASE_ARGS)

    assert result.exit_code == monitor_command.EXIT_INTERRUPTED


def test_config_show_reports_sources(cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (cli_env / "config.toml").write_text(
        '[connection]\nclient = "200"\npassword = "file-secret"\n\n[probe]\nretries = 3\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("RPCPROBE_HOST", "env-host.example.test")

    result = _invoke("config", "show", "--user", "cli-user")

    output = result.stdout
    assert result.exit_code == 0
    assert "Configuration files" in output
    assert "env-host.example.test" in output
    assert "ENV (RPCPROBE_HOST)" in output
    assert "cli-user" in output
    assert "Config File (config.toml)" in output
    assert "file-secret" not in output
    assert "fi*******et" in output


def test_keyboard_interrupt_banner_is_text() -> None:
    from rich.text import Text

    assert isinstance(app_mod._keyboard_interrupt_banner(), Text)


def test_version_uses_pyproject(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from importlib import metadata

    def missing(name: str) -> str:
        raise metadata.PackageNotFoundError(name)

    (tmp_path / "pyproject.toml").write_text("[project]\nversion='9.9.9'\n", encoding="utf-8")
    monkeypatch.setattr(app_mod, "PROJECT_ROOT", tmp_path)
    monkeypatch.setattr(metadata, "version", missing)

    result = _invoke("version")

    assert result.exit_code == 0
    assert result.stdout.strip() == "9.9.9"


def test_version_handles_missing_pyproject(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_mod, "PROJECT_ROOT", tmp_path)

    result = _invoke("version")

    assert result.exit_code == 0
    assert result.stdout.strip()
