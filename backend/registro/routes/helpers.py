"""Shared helpers for the API endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import current_app, jsonify
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..errors import GradebookError
from ..store import EntityStore, build_entity_store

logger = logging.getLogger(__name__)

STORE_CONFIG_KEY = "ENTITY_STORE"

ERROR_STATUS = {
    "not_found": 404,
    "duplicate_key": 409,
    "invalid_value": 400,
    "type_mismatch": 422,
}


def get_store() -> EntityStore:
    """Return the app's entity store, building it from the environment once."""

    store = current_app.config.get(STORE_CONFIG_KEY)
    if store is None:
        store = build_entity_store()
        current_app.config[STORE_CONFIG_KEY] = store
    return store


def clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def json_error(message: str, status: int, details: Dict[str, Any] | None = None):
    payload: Dict[str, Any] = {"error": message}
    if details:
        payload.update(details)
    return jsonify(payload), status


def record_error(exc: GradebookError):
    details: Dict[str, Any] = {"kind": exc.kind}
    if exc.field:
        details["field"] = exc.field
    return json_error(exc.message, ERROR_STATUS.get(exc.kind, 400), details)


def config_error(exc: ConfigError):
    logger.exception("Missing or invalid storage configuration")
    return json_error(str(exc), 500)


def db_error(action: str, exc: PyMongoError):
    logger.exception("%s due to MongoDB error", action)
    return json_error("Database unavailable. Please try again later.", 503)


__all__ = [
    "STORE_CONFIG_KEY",
    "get_store",
    "clean_string",
    "json_error",
    "record_error",
    "config_error",
    "db_error",
]
