"""Tests for the audiofeed entry point."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

import audiofeed.__main__ as entry
from audiofeed.core.logging import VerbosityLevel, get_verbosity


def test_cli_overrides() -> None:
    args = entry._parse_args(["--host", "127.0.0.1", "--port", "8080", "--tracks-dir", "/music", "--verbose"])

    assert entry._cli_overrides(args) == {
        "server.host": "127.0.0.1",
        "server.port": 8080,
        "paths.tracks_dir": "/music",
        "logging.level": "verbose",
    }


def test_no_overrides() -> None:
    assert entry._cli_overrides(entry._parse_args([])) == {}


def test_plugins_dir_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUDIOFEED_PLUGINS_DIR", str(tmp_path))

    assert entry._find_plugins_dir() == tmp_path


def test_plugins_dir_found_in_repo() -> None:
    plugins_dir = entry._find_plugins_dir()

    assert (plugins_dir / "web_server" / "plugin.py").is_file()


def test_invalid_config_exits_with_error(tmp_path: Path, log_records) -> None:
    config = tmp_path / "config.yaml"
    config.write_text("covers:\n  mode: stretch\n")

    assert entry.main(["--config", str(config)]) == 1
    assert any("covers.mode" in r.message for r in log_records if r.level_name == "ERROR")


def test_main_prepares_directories_and_runs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        f"paths:\n  tracks_dir: {tmp_path / 'lib'}\n  covers_cache_dir: {tmp_path / 'covers'}\n"
    )
    started = []

    class FakePlugin:
        def __init__(self, settings) -> None:
            self.settings = settings

        def run(self) -> None:
            started.append(self.settings)

    monkeypatch.setattr(entry, "_load_web_server_module", lambda plugins_dir: SimpleNamespace(WebServerPlugin=FakePlugin))

    assert entry.main(["--config", str(config), "--port", "4000", "--verbose"]) == 0

    assert (tmp_path / "lib").is_dir()
    assert (tmp_path / "covers").is_dir()
    assert started[0].port == 4000
    assert get_verbosity() == VerbosityLevel.VERBOSE
