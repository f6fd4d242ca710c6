"""Application route blueprints and helpers."""

from .helpers import STORE_CONFIG_KEY, get_store
from .reports import reports_bp

__all__ = ["reports_bp", "get_store", "STORE_CONFIG_KEY"]
