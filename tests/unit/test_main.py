"""Unit tests for the eventrotator command-line entry point."""

import json
from pathlib import Path

import pytest

from eventrotator.__main__ import _create_parser, main
from eventrotator.domain.timeline import NO_SOURCES_ERROR
from eventrotator.sources.candidates import sources_from_config

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def test_parser_accepts_serve_port() -> None:
    args = _create_parser().parse_args(["--debug", "serve", "--port", "3000"])
    assert args.debug is True
    assert args.command == "serve"
    assert args.port == 3000


def test_refresh_without_sources_prints_error_and_fails(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)

    exit_code = main(["--config", str(tmp_path / "missing.yaml"), "refresh"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["error"] == NO_SOURCES_ERROR
    assert payload["occurrences"] == []


def test_invalid_config_exits_with_usage_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "eventrotator.yaml"
    config_path.write_text("- not\n- a mapping\n")

    exit_code = main(["--config", str(config_path)])

    assert exit_code == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_serve_port_override_moves_relay_candidates(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "eventrotator.yaml"
    config_path.write_text(
        "sources:\n  - https://sundevilcentral.eoss.asu.edu/ical/x.ics\nserver_port: 8080\n"
    )
    served = []
    monkeypatch.setattr("eventrotator.api.server.start_server", served.append)

    exit_code = main(["--config", str(config_path), "serve", "--port", "9000"])

    (config,) = served
    (source,) = sources_from_config(config)
    assert exit_code == 0
    assert config.server_port == 9000
    assert source.candidates[0] == "http://127.0.0.1:9000/ics-proxy/ical/x.ics"
