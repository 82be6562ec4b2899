"""Document store on the filesystem: one directory per collection, one YAML file per document.

A collection with a unique index names each file after the indexed field
({number}.yaml for issues) and creates it exclusively, so a second insert
of the same key is rejected instead of overwriting. Collections without an
index get generated file names.
"""

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List

import yaml

from etp_exporter.errors import DuplicateKeyError, StoreError

META_FILE = "_meta.yaml"

LOG = logging.getLogger("etp_exporter.store.documents")


def _dump(doc: Dict[str, Any]) -> str:
    return yaml.dump(
        doc,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=1000,
    )


def _sort_key(path: Path) -> tuple:
    stem = path.stem
    return (0, int(stem), "") if stem.isdigit() else (1, 0, stem)


def _matches(doc: Dict[str, Any], filter: Dict[str, Any] | None) -> bool:
    if not filter:
        return True
    return all(doc.get(k) == v for k, v in filter.items())


class InsertResult:
    """Outcome of an unordered bulk insert."""

    def __init__(self) -> None:
        self.inserted_count = 0
        self.duplicate_keys: List[Any] = []
        self.errors: List[StoreError] = []

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicate_keys)


class Collection:
    """A named set of documents in a directory."""

    def __init__(self, path: Path, name: str) -> None:
        self.path = Path(path)
        self.name = name
        self._unique_field = self._load_meta().get("unique")

    @property
    def unique_field(self) -> str | None:
        return self._unique_field

    def _load_meta(self) -> Dict[str, Any]:
        meta = self.path / META_FILE
        if not meta.is_file():
            return {}
        try:
            return yaml.safe_load(meta.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Failed to read {meta}: {e}") from e

    def _doc_paths(self) -> List[Path]:
        if not self.path.is_dir():
            return []
        return sorted((p for p in self.path.glob("*.yaml") if p.name != META_FILE), key=_sort_key)

    def _key_path(self, key: Any) -> Path:
        return self.path / f"{key}.yaml"

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Failed to read {path}: {e}") from e

    def _write(self, path: Path, doc: Dict[str, Any]) -> None:
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            tmp.write_text(_dump(doc), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

    def create_unique_index(self, field: str) -> None:
        """Enforce uniqueness of field on insert. No-op if already indexed on field."""
        if self._unique_field == field:
            return
        if self._unique_field is not None or self._doc_paths():
            raise StoreError(
                f"Cannot index non-empty collection {self.name} on {field} (indexed on {self._unique_field})"
            )
        self.path.mkdir(parents=True, exist_ok=True)
        self._write(self.path / META_FILE, {"unique": field})
        self._unique_field = field
        LOG.debug("Created unique index on %s.%s", self.name, field)

    def insert_one(self, doc: Dict[str, Any]) -> None:
        """Insert one document; raises DuplicateKeyError on a unique key collision."""
        self.path.mkdir(parents=True, exist_ok=True)
        if self._unique_field is None:
            self._write(self._key_path(uuid.uuid4().hex), doc)
            return
        if self._unique_field not in doc:
            raise StoreError(f"Document for {self.name} is missing unique field {self._unique_field}")
        key = doc[self._unique_field]
        path = self._key_path(key)
        try:
            with path.open("x", encoding="utf-8") as f:
                f.write(_dump(doc))
        except FileExistsError:
            raise DuplicateKeyError(self.name, key) from None
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

    def insert_many(self, docs: Iterable[Dict[str, Any]], ordered: bool = False) -> InsertResult:
        """Bulk insert.

        Unordered inserts continue past failed documents and report them in
        the result. Ordered inserts stop at the first failure and raise it.
        """
        result = InsertResult()
        for doc in docs:
            try:
                self.insert_one(doc)
            except DuplicateKeyError as e:
                if ordered:
                    raise
                result.duplicate_keys.append(e.key)
                continue
            except StoreError as e:
                if ordered:
                    raise
                result.errors.append(e)
                continue
            result.inserted_count += 1
        return result

    def find_one(self, key: Any) -> Dict[str, Any] | None:
        """Document with the given unique key, or None."""
        path = self._key_path(key)
        if not path.is_file():
            return None
        return self._read(path)

    def find(
        self,
        filter: Dict[str, Any] | None = None,
        projection: Iterable[str] | None = None,
    ) -> Iterator[Dict[str, Any]]:
        """Stream documents matching filter (field equality), reading one file at a time."""
        fields = list(projection) if projection is not None else None
        for path in self._doc_paths():
            doc = self._read(path)
            if not _matches(doc, filter):
                continue
            if fields is not None:
                doc = {k: doc[k] for k in fields if k in doc}
            yield doc

    def count(self, filter: Dict[str, Any] | None = None) -> int:
        if not filter:
            return len(self._doc_paths())
        return sum(1 for _ in self.find(filter))

    def update_one(
        self,
        key: Any,
        set: Dict[str, Any] | None = None,
        push: Dict[str, List[Any]] | None = None,
    ) -> bool:
        """Set fields and append to list fields of one document. Returns False if missing."""
        path = self._key_path(key)
        if not path.is_file():
            return False
        doc = self._read(path)
        for field, values in (push or {}).items():
            current = doc.get(field) or []
            doc[field] = [*current, *values]
        doc.update(set or {})
        self._write(path, doc)
        return True

    def staging(self) -> "Collection":
        """Empty sibling collection with the same unique index, to be swapped in with replace_with."""
        path = self.path.with_name(f".{self.path.name}.staging")
        try:
            if path.exists():
                shutil.rmtree(path)
        except OSError as e:
            raise StoreError(f"Failed to clear {path}: {e}") from e
        staged = Collection(path, self.name)
        if self._unique_field is not None:
            staged.create_unique_index(self._unique_field)
        return staged

    def replace_with(self, staged: "Collection") -> None:
        """Make staged's documents the contents of this collection; staged is consumed."""
        old = self.path.with_name(f".{self.path.name}.old")
        try:
            staged.path.mkdir(parents=True, exist_ok=True)
            if old.exists():
                shutil.rmtree(old)
            if self.path.exists():
                os.replace(self.path, old)
            os.replace(staged.path, self.path)
            if old.exists():
                shutil.rmtree(old)
        except OSError as e:
            raise StoreError(f"Failed to replace {self.name} with {staged.path}: {e}") from e
        self._unique_field = self._load_meta().get("unique")


class DocumentStore:
    """Database directory holding named collections."""

    def __init__(self, root: Path, database_name: str) -> None:
        self.path = Path(root) / database_name
        self._collections: Dict[str, Collection] = {}

    def ping(self) -> None:
        """Verify the database directory exists and is writable. Raises OSError."""
        self.path.mkdir(parents=True, exist_ok=True)
        marker = self.path / f".ping-{uuid.uuid4().hex}"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink()

    def collection(self, name: str) -> Collection:
        if name not in self._collections:
            self._collections[name] = Collection(self.path / name, name)
        return self._collections[name]

    def close(self) -> None:
        self._collections.clear()
