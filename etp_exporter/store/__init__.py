"""Document store for issues and reports."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from etp_exporter.config import StoreConfig
from etp_exporter.errors import ConfigurationError
from etp_exporter.store.documents import Collection, DocumentStore, InsertResult

LOG = logging.getLogger("etp_exporter.store")


@contextmanager
def open_store(config: StoreConfig) -> Iterator[DocumentStore]:
    """Open the document store for one run and close it on every exit path.

    Raises ConfigurationError if the store directory is not usable.
    """
    store = DocumentStore(Path(config.path), config.database_name)
    LOG.info("Initializing store connection...")
    try:
        store.ping()
    except OSError as e:
        raise ConfigurationError(f"Store unreachable at {store.path}: {e}") from e
    LOG.info("Connected successfully to store at %s", store.path)
    try:
        yield store
    finally:
        store.close()


__all__ = ["Collection", "DocumentStore", "InsertResult", "open_store"]
