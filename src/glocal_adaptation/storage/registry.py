"""Store-backed one-time initialization markers."""

import logging
from datetime import datetime

from ..interfaces.store import IInitializationRegistry, IRecordStore


logger = logging.getLogger(__name__)

MARKERS_TABLE = "glocal_initialization_markers"


class InitializationRegistry(IInitializationRegistry):
    """
    Records which one-time setup steps have already run.

    Markers live in the same store as the data they guard, so a fresh
    process sees the same answer as the one that did the work.
    """

    def __init__(self, store: IRecordStore):
        self._store = store

    def is_initialized(self, key: str) -> bool:
        return bool(self._store.select(MARKERS_TABLE, {"key": key}, limit=1))

    def mark_initialized(self, key: str) -> None:
        self._store.upsert(
            MARKERS_TABLE,
            {"key": key, "initialized_at": datetime.utcnow()},
            conflict_key=["key"],
            ignore_duplicates=True,
        )
        logger.info(f"Marked initialized: {key}")
