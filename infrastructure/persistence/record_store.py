"""Generic record store.

Documents are opaque JSON objects addressed by (collection, id). The core
only relies on ``get``/``put``/``delete``; nothing here is transactional.
"""

import copy
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from config.constants import COLLECTION_ALIASES, STORE_DIRECTORY
from domain.exceptions import InvalidStoreFileError, RecordNotFoundError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def resolve_collection(collection: str) -> str:
    """Canonical collection name (Spanish aliases accepted)."""
    name = str(collection or "").strip().lower()
    if not name:
        raise ValueError("Collection name cannot be empty")
    return COLLECTION_ALIASES.get(name, name)


def new_record_id() -> str:
    return uuid.uuid4().hex


class RecordStore(ABC):
    """Abstract record store interface."""

    @abstractmethod
    def get(self, collection: str, record_id: Optional[str] = None) -> Union[Document, List[Document]]:
        """Get one document, or every document of the collection.

        Args:
            collection: Collection name
            record_id: Document id (None = whole collection)

        Returns:
            A document copy, or a list of document copies

        Raises:
            RecordNotFoundError: If ``record_id`` is not in the collection
        """

    @abstractmethod
    def put(self, collection: str, document: Document) -> Document:
        """Insert or replace a document keyed by its ``id``.

        Args:
            collection: Collection name
            document: Document to store (an id is assigned when missing)

        Returns:
            The stored document
        """

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        """Delete a document.

        Raises:
            RecordNotFoundError: If the document does not exist
        """

    def get_all(self, collection: str) -> List[Document]:
        """Typed convenience wrapper over ``get(collection)``."""
        documents = self.get(collection)
        return list(documents) if isinstance(documents, list) else [documents]


class InMemoryRecordStore(RecordStore):
    """Thread-safe in-memory store.

    Useful for testing or as a scratch store.
    """

    def __init__(self, initial: Optional[Dict[str, List[Document]]] = None) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = threading.Lock()
        for collection, documents in (initial or {}).items():
            for document in documents:
                self.put(collection, document)

    def get(self, collection: str, record_id: Optional[str] = None) -> Union[Document, List[Document]]:
        name = resolve_collection(collection)
        with self._lock:
            records = self._collections.get(name, {})
            if record_id is None:
                return [copy.deepcopy(doc) for doc in records.values()]
            if str(record_id) not in records:
                raise RecordNotFoundError(f"{name}/{record_id} not found")
            return copy.deepcopy(records[str(record_id)])

    def put(self, collection: str, document: Document) -> Document:
        name = resolve_collection(collection)
        stored = copy.deepcopy(dict(document))
        if not stored.get("id") and stored.get("id") != 0:
            stored["id"] = new_record_id()
        stored["id"] = str(stored["id"])
        with self._lock:
            self._collections.setdefault(name, {})[stored["id"]] = stored
        return copy.deepcopy(stored)

    def delete(self, collection: str, record_id: str) -> None:
        name = resolve_collection(collection)
        with self._lock:
            records = self._collections.get(name, {})
            if str(record_id) not in records:
                raise RecordNotFoundError(f"{name}/{record_id} not found")
            del records[str(record_id)]


class JSONFileRecordStore(RecordStore):
    """Store each collection as a JSON array in ``<base>/<collection>.json``."""

    def __init__(self, base_directory: str = STORE_DIRECTORY) -> None:
        """Initialize store.

        Args:
            base_directory: Directory holding the collection files
        """
        self._base_dir = Path(base_directory)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, collection: str) -> Path:
        return self._base_dir / f"{resolve_collection(collection)}.json"

    def _read(self, collection: str) -> List[Document]:
        file_path = self._path(collection)
        if not file_path.exists():
            return []
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidStoreFileError(f"Invalid collection file: {file_path.name}") from exc
        if not isinstance(data, list):
            raise InvalidStoreFileError(f"Collection file must hold a list: {file_path.name}")
        return [doc for doc in data if isinstance(doc, dict)]

    def _write(self, collection: str, documents: List[Document]) -> None:
        file_path = self._path(collection)
        tmp_path = file_path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(documents, f, indent=2, ensure_ascii=False)
        tmp_path.replace(file_path)
        logger.debug("Wrote %d documents to %s", len(documents), file_path)

    def get(self, collection: str, record_id: Optional[str] = None) -> Union[Document, List[Document]]:
        with self._lock:
            documents = self._read(collection)
        if record_id is None:
            return documents
        for document in documents:
            if str(document.get("id")) == str(record_id):
                return document
        raise RecordNotFoundError(f"{resolve_collection(collection)}/{record_id} not found")

    def put(self, collection: str, document: Document) -> Document:
        stored = dict(document)
        if not stored.get("id") and stored.get("id") != 0:
            stored["id"] = new_record_id()
        stored["id"] = str(stored["id"])
        with self._lock:
            documents = self._read(collection)
            for index, existing in enumerate(documents):
                if str(existing.get("id")) == stored["id"]:
                    documents[index] = stored
                    break
            else:
                documents.append(stored)
            self._write(collection, documents)
        return stored

    def delete(self, collection: str, record_id: str) -> None:
        with self._lock:
            documents = self._read(collection)
            remaining = [doc for doc in documents if str(doc.get("id")) != str(record_id)]
            if len(remaining) == len(documents):
                raise RecordNotFoundError(f"{resolve_collection(collection)}/{record_id} not found")
            self._write(collection, remaining)

    def list_collections(self) -> List[str]:
        """Names of the collections that have a file on disk."""
        if not self._base_dir.exists():
            return []
        return sorted(path.stem for path in self._base_dir.glob("*.json"))
