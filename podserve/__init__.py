"""podserve - serve a directory of audio files as a podcast."""

__version__ = "1.0.0"
