"""Error taxonomy for sync and conversion runs."""


class ExporterError(Exception):
    """Base class for exporter errors."""

    pass


class ConfigurationError(ExporterError):
    """Missing credentials, invalid options or unreachable store. Fatal before any work starts."""

    pass


class TransportError(ExporterError):
    """Raised when a page fetch from the remote issue source fails."""

    pass


class StoreError(ExporterError):
    """Raised when the document store cannot read or write a document."""

    pass


class DuplicateKeyError(StoreError):
    """Raised when an insert collides with an existing unique key."""

    def __init__(self, collection: str, key: object) -> None:
        super().__init__(f"Duplicate key {key!r} in collection {collection}")
        self.collection = collection
        self.key = key


class MalformedBodyError(ExporterError):
    """Raised when an issue or comment body does not match the report template."""

    def __init__(self, message: str, line: int | None = None) -> None:
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)
        self.line = line
