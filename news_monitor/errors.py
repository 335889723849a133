from __future__ import annotations


class NewsMonitorError(Exception):
    """Base class for errors raised by the news monitor."""


class ConfigurationError(NewsMonitorError):
    """Missing or malformed settings. Fatal at startup."""


class SourceFetchError(NewsMonitorError):
    """A news source could not be fetched or parsed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class StorageError(NewsMonitorError):
    """The article store could not complete an operation."""


class NotificationError(NewsMonitorError):
    """The notification endpoint rejected or failed to receive a message."""
