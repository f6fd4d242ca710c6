"""Blob storage backends for the persisted record collections."""

from __future__ import annotations

from typing import Dict, Protocol

from pymongo import MongoClient
from pymongo.collection import Collection

from . import config
from .config import get_db_name, get_mongo_uri

_MONGO_CLIENT = None
_MONGO_DB = None
_BLOB_STORE = None


class BlobStore(Protocol):
    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...


class MemoryBlobStore:
    """Keep blobs in a dictionary; used by tests and the ``memory`` backend."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._blobs: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._blobs.get(key)

    def write(self, key: str, value: str) -> None:
        self._blobs[key] = value


class MongoBlobStore:
    """Store each blob as a ``{_id: key, value: text}`` document."""

    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    def read(self, key: str) -> str | None:
        document = self._collection.find_one({"_id": key}, projection={"value": 1})
        if not document:
            return None
        value = document.get("value")
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        self._collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)


def _get_client():
    """Create (or reuse) a MongoDB client using the configured URI."""

    global _MONGO_CLIENT

    if _MONGO_CLIENT is None:
        _MONGO_CLIENT = MongoClient(get_mongo_uri(), serverSelectionTimeoutMS=5000)
    return _MONGO_CLIENT


def get_db():
    """Return the application's MongoDB database instance."""

    global _MONGO_DB

    if _MONGO_DB is None:
        _MONGO_DB = _get_client()[get_db_name()]
    return _MONGO_DB


def get_blob_collection() -> Collection:
    """Return the collection that stores the record blobs."""

    return get_db()[config.get_blob_collection_name()]


def get_blob_store() -> BlobStore:
    """Return the process-wide blob store for the configured backend."""

    global _BLOB_STORE

    if _BLOB_STORE is None:
        if config.get_storage_backend() == "memory":
            _BLOB_STORE = MemoryBlobStore()
        else:
            _BLOB_STORE = MongoBlobStore(get_blob_collection())
    return _BLOB_STORE


__all__ = [
    "BlobStore",
    "MemoryBlobStore",
    "MongoBlobStore",
    "get_db",
    "get_blob_collection",
    "get_blob_store",
]
