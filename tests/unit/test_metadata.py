"""Tests for tag extraction and tag lookups."""

from __future__ import annotations

from pathlib import Path

import pytest

from audiofeed.core.errors import CorruptedFileError, MetadataError
from audiofeed.core.metadata import ABSENT, TagKind, TagValue, TrackMetadata, extract_metadata


class TestExtractMetadata:
    def test_reads_id3_tags(self, tagged_mp3: Path, cover_bytes: bytes) -> None:
        metadata = extract_metadata(tagged_mp3)

        assert metadata.title == "Night Drive"
        assert metadata.artist == "Lumen"
        assert metadata.value("common.website") == "https://lumen.example.com"
        assert metadata.freeform_value(["dj"]) == "DJ Test"
        assert metadata.freeform_value(["release link"]) == "https://example.com/r/1"
        assert metadata.picture == cover_bytes

    def test_reads_stream_properties(self, tagged_mp3: Path) -> None:
        metadata = extract_metadata(tagged_mp3)

        assert metadata.duration is not None
        assert 0.5 < metadata.duration < 2.0
        assert metadata.format["codec"] == "MP3"
        assert metadata.format["sample_rate"] == 44100

    def test_untagged_file(self, tmp_path: Path, mp3_writer) -> None:
        metadata = extract_metadata(mp3_writer(tmp_path / "bare.mp3"))

        assert metadata.title is None
        assert metadata.common == {}
        assert metadata.freeform == ()
        assert metadata.picture is None

    def test_corrupted_file(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.mp3"
        broken.write_bytes(b"\x00\x01not really audio" * 4)

        with pytest.raises(CorruptedFileError) as exc_info:
            extract_metadata(broken)
        assert isinstance(exc_info.value, MetadataError)
        assert "broken.mp3" in exc_info.value.message

    def test_unsupported_format(self, tmp_path: Path) -> None:
        text = tmp_path / "notes.txt"
        text.write_text("hello")

        with pytest.raises(CorruptedFileError, match="unsupported audio format"):
            extract_metadata(text)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CorruptedFileError):
            extract_metadata(tmp_path / "gone.mp3")


class TestTagValue:
    def test_absent_values(self) -> None:
        assert TagValue.of(None) is ABSENT
        assert TagValue.of("") is ABSENT
        assert TagValue.of([]) is ABSENT
        assert TagValue.of(["", None]) is ABSENT
        assert not ABSENT.present
        assert ABSENT.text() is None

    def test_scalar_and_list(self) -> None:
        scalar = TagValue.of(128.5)
        listed = TagValue.of(["Lumen", "Guest"])

        assert scalar.kind is TagKind.SCALAR
        assert scalar.first() == 128.5
        assert listed.kind is TagKind.LIST
        assert listed.first() == "Lumen"
        assert listed.text() == "Lumen"

    def test_whitespace_text_is_none(self) -> None:
        assert TagValue.of("   ").text() is None


class TestLookup:
    def test_dotted_paths(self) -> None:
        metadata = TrackMetadata(common={"title": ["A", "B"]}, format={"duration": 61.0})

        assert metadata.lookup("common.title").kind is TagKind.LIST
        assert metadata.value("common.title") == "A"
        assert metadata.duration == 61.0
        assert metadata.lookup("common.album") is ABSENT
        assert metadata.lookup("nothing.here") is ABSENT

    def test_lists_are_unwrapped_mid_path(self) -> None:
        metadata = TrackMetadata(common={"performer": [{"name": "Lumen"}, {"name": "Other"}]})

        assert metadata.value("common.performer.name") == "Lumen"

    def test_path_through_scalar_is_absent(self) -> None:
        metadata = TrackMetadata(common={"title": ["A"]})

        assert metadata.lookup("common.title.deeper") is ABSENT

    def test_freeform_alias_order_wins_over_file_order(self) -> None:
        metadata = TrackMetadata(
            freeform=(("Release URL", "https://url"), ("RELEASE LINK", "https://link")),
        )

        assert metadata.freeform_value(["release link", "release url"]) == "https://link"
        assert metadata.freeform_value(["release url", "release link"]) == "https://url"

    def test_freeform_first_occurrence_and_blank_skipped(self) -> None:
        metadata = TrackMetadata(freeform=(("dj", "  "), ("DJ", "First"), ("dj", "Second")))

        assert metadata.freeform_value(["dj"]) == "First"
        assert metadata.freeform_value(["label"]) is None
