"""Seed helper that loads the sample records into the configured store."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from pymongo.errors import PyMongoError

ROOT_DIR = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT_DIR / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from registro import config  # noqa: E402
from registro.config import ConfigError  # noqa: E402
from registro.sample_data import seed_sample_data  # noqa: E402
from registro.store import build_entity_store  # noqa: E402


def main() -> None:
    try:
        logging.basicConfig(level=config.get_log_level())
        if config.get_storage_backend() == "memory":
            print("REGISTRO_STORAGE=memory keeps nothing after exit; nothing to seed.")
            raise SystemExit(1)
        store = build_entity_store()
    except ConfigError as exc:  # pragma: no cover - simple CLI utility
        print(f"Configuration error: {exc}")
        raise SystemExit(1)

    try:
        if seed_sample_data(store):
            print("Sample data loaded.")
        else:
            print("Store already contains students or courses; nothing to do.")
    except PyMongoError as exc:  # pragma: no cover - requires Mongo connection
        print(f"MongoDB error: {exc}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
