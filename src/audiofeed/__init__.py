"""AudioFeed - publish a folder of audio files as a podcast feed."""

__version__ = "1.0.0"
