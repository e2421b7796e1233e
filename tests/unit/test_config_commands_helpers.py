from __future__ import annotations

from pathlib import Path

import pytest
import typer

from rpcprobe.cli.commands import config as config_command
from rpcprobe.cli.commands.config import (
    config_file_candidates,
    determine_source,
    flatten_to_dotted,
    format_config_value,
)
from rpcprobe.config.settings import (
    CONNECTION_HOST_KEY,
    CONNECTION_PASSWORD_KEY,
    RUNTIME_DEBUG_KEY,
    TLS_PASSPHRASE_KEY,
)


def test_flatten_to_dotted_nests_sections() -> None:
    flattened = flatten_to_dotted({"connection": {"host": "h", "port": 1}, "top": True})
    assert flattened == {"connection.host": "h", "connection.port": 1, "top": True}


def test_format_config_value_masks_secrets() -> None:
    assert format_config_value(CONNECTION_PASSWORD_KEY, "supersecret") == "su*******et"
    assert format_config_value(TLS_PASSPHRASE_KEY, None) == "<unset>"
    assert format_config_value(CONNECTION_HOST_KEY, None) == "<unset>"
    assert format_config_value(CONNECTION_HOST_KEY, "  ") == "<unset>"
    assert format_config_value(RUNTIME_DEBUG_KEY, True) == "true"


def test_determine_source_precedence() -> None:
    cli = {CONNECTION_HOST_KEY: "CLI"}
    env = {CONNECTION_HOST_KEY: "ENV (RPCPROBE_HOST)", RUNTIME_DEBUG_KEY: "ENV (RPCPROBE_DEBUG)"}
    files = {CONNECTION_HOST_KEY: "config.toml", CONNECTION_PASSWORD_KEY: "config.local.toml"}

    assert determine_source(CONNECTION_HOST_KEY, cli, env, files) == "CLI"
    assert determine_source(RUNTIME_DEBUG_KEY, cli, env, files) == "ENV (RPCPROBE_DEBUG)"
    assert determine_source(CONNECTION_PASSWORD_KEY, cli, env, files) == (
        "Config File (config.local.toml)"
    )
    assert determine_source(TLS_PASSPHRASE_KEY, cli, env, files) == "Default"


def test_config_file_candidates(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert config_file_candidates(None) == [
        tmp_path / "config.toml",
        tmp_path / "config.local.toml",
    ]
    assert config_file_candidates("/etc/rpcprobe/site.toml") == [
        Path("/etc/rpcprobe/site.toml"),
        Path("/etc/rpcprobe/site.local.toml"),
    ]


def test_collect_config_file_entries_prefers_later_files(tmp_path: Path) -> None:
    base = tmp_path / "config.toml"
    local = tmp_path / "config.local.toml"
    base.write_text('[connection]\nhost = "a"\nuser = "u"\nclient = ""\n', encoding="utf-8")
    local.write_text('[connection]\nhost = "b"\n', encoding="utf-8")

    entries = config_command._collect_config_file_entries([base, local, tmp_path / "absent.toml"])

    assert entries == {"connection.host": "config.local.toml", "connection.user": "config.toml"}


def test_collect_config_file_entries_rejects_invalid_toml(tmp_path: Path) -> None:
    broken = tmp_path / "config.toml"
    broken.write_text("[connection\n", encoding="utf-8")

    with pytest.raises(typer.BadParameter):
        config_command._collect_config_file_entries([broken])
