"""Error handling with friendly messages."""

from __future__ import annotations


class AudioFeedError(Exception):
    """Base exception for all AudioFeed errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(AudioFeedError):
    """Configuration error."""

    pass


class ScanError(AudioFeedError):
    """Library directory could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Cannot read library directory '{path}': {reason}",
            "Check that paths.tracks_dir exists and is readable",
        )


class MetadataError(AudioFeedError):
    """Metadata-related error."""

    pass


class CorruptedFileError(MetadataError):
    """File is corrupted or in an unsupported format."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        message = f"File '{path}' is corrupted or unreadable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, "Try re-downloading or check file integrity")


class CoverError(AudioFeedError):
    """Cover-related error."""

    pass


class NetworkError(CoverError):
    """Remote cover could not be fetched."""

    pass


class FeedBuildError(AudioFeedError):
    """Feed could not be built from the library."""

    pass
