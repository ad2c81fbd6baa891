"""
Record store wiring.

``get_record_store()`` builds the process-wide store from settings; routers
reach it through the ``get_store`` dependency so tests can swap it.
"""
import logging
from functools import lru_cache

from perfhub.core.config import settings
from perfhub.store.base import ListenerRegistration, RecordStore, Snapshot
from perfhub.store.logged import LoggedRecordStore

logger = logging.getLogger(__name__)


def build_record_store(backend: str = None) -> RecordStore:
    backend = backend or settings.store.backend
    if backend == "firebase":
        from perfhub.store.firebase import FirebaseRecordStore, initialize_firebase_app

        app = initialize_firebase_app(
            settings.store.firebase_credentials,
            settings.store.firebase_database_url,
        )
        inner = FirebaseRecordStore(app)
    elif backend == "sql":
        from perfhub.database import SessionLocal
        from perfhub.store.sql import SqlRecordStore

        inner = SqlRecordStore(SessionLocal, indexes=settings.store.indexes)
    else:
        raise ValueError(f"Unknown STORE_BACKEND: {backend}")
    logger.info(f"Record store backend: {backend}")
    return LoggedRecordStore(inner)


@lru_cache()
def get_record_store() -> RecordStore:
    return build_record_store()


def get_store() -> RecordStore:
    """FastAPI dependency."""
    return get_record_store()


__all__ = [
    "ListenerRegistration",
    "RecordStore",
    "Snapshot",
    "build_record_store",
    "get_record_store",
    "get_store",
]
