"""Errors that are allowed to leave their layer."""


class EventHubError(Exception):
    """Base class for the application errors."""


class SourceConfigError(EventHubError):
    """A data file (sources or field candidates) is missing or malformed."""


class UnknownSourceError(EventHubError, KeyError):
    """The requested source key is not configured."""

    def __init__(self, source_key: str):
        super().__init__(source_key)
        self.source_key = source_key

    def __str__(self) -> str:
        return f"Source '{self.source_key}' not found"
