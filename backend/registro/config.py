"""Application configuration helpers."""

import logging
import os

from dotenv import load_dotenv

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DOTENV_PATH = os.path.join(_BASE_DIR, ".env")

if os.path.exists(_DOTENV_PATH):
    load_dotenv(_DOTENV_PATH)


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


STORAGE_BACKENDS = ("mongo", "memory")

DEFAULT_KEY_PREFIX = "sgvu"
DEFAULT_BLOB_COLLECTION = "blobs"

_MONGO_URI_CACHE = None
_DB_NAME_CACHE = None


def get_mongo_uri():
    """Return the MongoDB connection string from the environment."""

    global _MONGO_URI_CACHE

    if _MONGO_URI_CACHE:
        return _MONGO_URI_CACHE

    uri = os.getenv("MONGODB_URI")
    if not uri:
        raise ConfigError("MONGODB_URI is not set. Define it in backend/.env.")

    _MONGO_URI_CACHE = uri
    return uri


def get_db_name():
    """Return the database name derived from the MongoDB URI or env var."""

    global _DB_NAME_CACHE

    if _DB_NAME_CACHE:
        return _DB_NAME_CACHE

    db_name = os.getenv("MONGODB_DB")
    if db_name:
        _DB_NAME_CACHE = db_name
        return db_name

    uri = get_mongo_uri()
    main = uri.split("?", 1)[0].rstrip("/")
    if "://" in main:
        main = main.split("://", 1)[1]

    candidate = main.split("/", 1)[1] if "/" in main else ""
    if not candidate:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    _DB_NAME_CACHE = candidate
    return candidate


def get_storage_backend():
    """Return the configured blob storage backend name."""

    backend = (os.getenv("REGISTRO_STORAGE") or "mongo").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(
            "REGISTRO_STORAGE must be one of: " + ", ".join(STORAGE_BACKENDS) + "."
        )
    return backend


def get_blob_collection_name():
    return os.getenv("REGISTRO_BLOB_COLLECTION") or DEFAULT_BLOB_COLLECTION


def get_key_prefix():
    """Return the namespace prefix used for the persisted collection keys."""

    prefix = (os.getenv("REGISTRO_KEY_PREFIX") or DEFAULT_KEY_PREFIX).strip()
    if not prefix:
        raise ConfigError("REGISTRO_KEY_PREFIX cannot be blank.")
    return prefix


def requires_course_consistency_check():
    """False when running the course-less schema variant."""

    raw = (os.getenv("REGISTRO_COURSELESS") or "").strip().lower()
    return raw not in {"1", "true", "yes", "on"}


def get_log_level():
    name = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigError(f"LOG_LEVEL '{name}' is not a valid logging level.")
    return level


__all__ = [
    "ConfigError",
    "get_mongo_uri",
    "get_db_name",
    "get_storage_backend",
    "get_blob_collection_name",
    "get_key_prefix",
    "requires_course_consistency_check",
    "get_log_level",
]
