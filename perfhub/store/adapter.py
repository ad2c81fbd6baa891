"""
Record Store Adapter.

Generic create/read/update/delete over named collections. Every record the
adapter returns carries its store key as ``id``. Backend failures on writes
surface as StoreWriteError; a missing record is never an error.
"""
import logging
from typing import Any, Dict, List, Optional

from perfhub.core.exceptions import StoreError, StoreWriteError
from perfhub.store.base import RecordStore, Snapshot
from perfhub.store.clock import MonotonicClock, clock as default_clock

logger = logging.getLogger(__name__)


def annotate(snapshot: Snapshot) -> List[Dict[str, Any]]:
    """Snapshot -> list of records with their key folded in as ``id``."""
    return [{**body, "id": key} for key, body in snapshot.items()]


class RecordRepository:

    def __init__(self, store: RecordStore, clock: Optional[MonotonicClock] = None):
        self.store = store
        self.clock = clock or default_clock

    def create(self, collection: str, data: Dict[str, Any], key: Optional[str] = None) -> Dict[str, Any]:
        """
        Write a new record and return it with its id.

        A key is minted unless one is given (user profiles are keyed by uid).
        ``createdAt``/``updatedAt`` default to now when the caller left them out.
        """
        record_id = key or self.store.new_key(collection)
        now = self.clock.now_iso()
        record = {k: v for k, v in data.items() if v is not None}
        record["id"] = record_id
        record.setdefault("createdAt", now)
        record.setdefault("updatedAt", now)
        self._write("create", collection, record_id, self.store.set, record)
        return record

    def get_by_id(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        try:
            body = self.store.get(collection, record_id)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Store read failed: {collection}/{record_id}") from e
        if body is None:
            return None
        return {**body, "id": record_id}

    def update(self, collection: str, record_id: str, partial: Dict[str, Any], touch: bool = True) -> Dict[str, Any]:
        """
        Merge ``partial`` into the record and refresh ``updatedAt``.

        Update-on-missing follows the store's blind merge: the record is
        created with just these fields. Returns the fields written.
        ``touch=False`` leaves ``updatedAt`` alone (notification read flags).
        """
        payload = {k: v for k, v in partial.items() if k != "id"}
        if touch:
            payload["updatedAt"] = self.clock.now_iso()
        self._write("update", collection, record_id, self.store.update, payload)
        return payload

    def delete(self, collection: str, record_id: str) -> None:
        self._write("delete", collection, record_id, self.store.remove)

    def list_all(self, collection: str) -> List[Dict[str, Any]]:
        try:
            snapshot = self.store.get_all(collection)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Store read failed: {collection}") from e
        return annotate(snapshot or {})

    def _write(self, operation: str, collection: str, record_id: str, fn, *args) -> None:
        path = f"{collection}/{record_id}"
        try:
            fn(collection, record_id, *args)
        except StoreWriteError:
            raise
        except Exception as e:
            logger.error(f"Database operation failed: {operation} {path}: {e}")
            raise StoreWriteError(operation, path, e) from e
