"""Tests for the library scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from audiofeed.core.scanner import (
    is_audio_file,
    library_signature,
    mime_type_for,
    parse_track_info,
    scan_library,
)


def _touch(path: Path, data: bytes = b"audio") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


class TestScanLibrary:
    def test_flat_and_one_level(self, tracks_dir: Path) -> None:
        _touch(tracks_dir / "root.mp3")
        _touch(tracks_dir / "Lumen - Night Drive" / "01.flac")
        _touch(tracks_dir / "Lumen - Night Drive" / "cover.jpg")
        _touch(tracks_dir / "notes.txt")

        assets = {a.relative_path: a for a in scan_library(tracks_dir)}

        assert set(assets) == {"root.mp3", "Lumen - Night Drive/01.flac"}
        assert assets["root.mp3"].containing_folder_name == ""
        assert assets["Lumen - Night Drive/01.flac"].containing_folder_name == "Lumen - Night Drive"
        assert assets["root.mp3"].size_bytes == 5
        assert assets["root.mp3"].absolute_path.is_absolute()
        assert assets["root.mp3"].modified_at.tzinfo is not None

    def test_deeper_nesting_is_ignored(self, tracks_dir: Path) -> None:
        _touch(tracks_dir / "a" / "b" / "deep.mp3")

        assert scan_library(tracks_dir) == []

    def test_extension_match_is_case_insensitive(self, tracks_dir: Path) -> None:
        _touch(tracks_dir / "LOUD.MP3")
        _touch(tracks_dir / "song.M4a")

        names = sorted(a.file_name for a in scan_library(tracks_dir))
        assert names == ["LOUD.MP3", "song.M4a"]

    def test_missing_root_gives_empty_list_and_warning(self, tmp_path: Path, log_records) -> None:
        assets = scan_library(tmp_path / "does-not-exist")

        assert assets == []
        warnings = [r for r in log_records if r.level_name == "WARNING"]
        assert len(warnings) == 1
        assert "Cannot read library directory" in warnings[0].message


class TestSignature:
    def test_independent_of_order(self, tracks_dir: Path) -> None:
        _touch(tracks_dir / "a.mp3")
        _touch(tracks_dir / "b.mp3")
        assets = scan_library(tracks_dir)

        assert library_signature(assets) == library_signature(list(reversed(assets)))

    def test_changes_when_file_added(self, tracks_dir: Path) -> None:
        _touch(tracks_dir / "a.mp3")
        before = library_signature(scan_library(tracks_dir))

        _touch(tracks_dir / "b.mp3")
        after = library_signature(scan_library(tracks_dir))

        assert before != after

    def test_ignores_content_changes(self, tracks_dir: Path) -> None:
        track = _touch(tracks_dir / "a.mp3", b"first")
        before = library_signature(scan_library(tracks_dir))

        track.write_bytes(b"a much longer second version")
        after = library_signature(scan_library(tracks_dir))

        assert before == after


class TestParseTrackInfo:
    @pytest.mark.parametrize(
        "folder,file_name,expected",
        [
            ("Lumen - Night Drive", "01.mp3", ("Lumen", "Night Drive")),
            ("Lumen - Night Drive - Extended", "01.mp3", ("Lumen", "Night Drive - Extended")),
            ("Compilation", "Track One.flac", ("Various", "Track One")),
            ("", "loose.mp3", ("Various", "loose")),
        ],
    )
    def test_fallbacks(self, folder, file_name, expected) -> None:
        assert parse_track_info(folder, file_name, " - ", "Various") == expected

    def test_custom_separator(self) -> None:
        assert parse_track_info("Lumen_Night", "x.mp3", "_", "Various") == ("Lumen", "Night")


def test_audio_extension_and_mime_type() -> None:
    assert is_audio_file("a.ogg")
    assert not is_audio_file("a.aac")
    assert mime_type_for("a.mp3") == "audio/mpeg"
    assert mime_type_for("a.M4A") == "audio/mp4"
    assert mime_type_for("a.flac") == "audio/flac"
