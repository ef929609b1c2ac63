"""Tests for the command-line entry point.

Covers:
- an invalid configuration exits with status 2 before anything runs
- TestMode runs one report cycle against mocked HTTP and prints JSON
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx
import pytest
import respx

from stream_stats.cli import build_parser, main

_API = "https://api.twitch.tv/kraken"


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    for key in (
        "DSN",
        "STREAMCHANNEL",
        "STREAM_CHANNEL",
        "TESTMODE",
        "TEST_MODE",
        "AUTHTOKEN",
        "AUTH_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def test_parser_default_config_file() -> None:
    assert build_parser().parse_args([]).config == "stream_stats.conf"
    assert build_parser().parse_args(["-c", "other.conf"]).config == "other.conf"


def test_invalid_config_exits_with_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = tmp_path / "bad.conf"
    config.write_text("MonitorInterval=10\n", encoding="utf-8")

    assert main(["-c", str(config)]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_missing_auth_token_exits_with_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "no_token.conf"
    config.write_text(
        "DSN=sqlite+aiosqlite:///x.db\nStreamChannel=somechannel\nAuthToken=\n",
        encoding="utf-8",
    )

    assert main(["-c", str(config)]) == 2
    assert "AuthToken must not be empty" in capsys.readouterr().err


def test_test_mode_prints_report(
    tmp_path: Path,
    respx_mock: respx.MockRouter,
    capsys: pytest.CaptureFixture[str],
) -> None:
    config = tmp_path / "stream_stats.conf"
    config.write_text(
        f"DSN=sqlite+aiosqlite:///{tmp_path / 'stats.db'}\n"
        f"log_dir={tmp_path / 'logs'}\n"
        "StreamChannel=somechannel\n"
        "TestMode=true\n"
        "AuthToken=abc123\n",
        encoding="utf-8",
    )
    respx_mock.get(f"{_API}/channels/somechannel/subscriptions").mock(
        return_value=httpx.Response(200, json={"_total": 12})
    )
    respx_mock.get(f"{_API}/channels/somechannel/follows").mock(
        return_value=httpx.Response(200, json={"_total": 3400})
    )
    respx_mock.get(f"{_API}/streams/somechannel").mock(
        return_value=httpx.Response(200, json={"stream": None})
    )

    assert main(["-c", str(config)]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["channel"] == "somechannel"
    assert report["subscribers"] == 12
    assert report["followers"] == 3400
    assert report["snapshot"]["live"] is False
    assert report["state"]["active"] is False
    assert (tmp_path / "stats.db").is_file()
    assert list((tmp_path / "logs").glob("stream_stats-*.log"))
