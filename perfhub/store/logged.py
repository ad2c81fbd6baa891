"""
Logging decorator for a record store.

Wraps every primitive of another store so reads, writes and listener
traffic show up in the structured log with their path, without touching
the backend's own objects.
"""
import logging
import time
from typing import Any, Dict, Optional

from perfhub.store.base import (
    ErrorCallback,
    ListenerRegistration,
    RecordStore,
    Snapshot,
    SnapshotCallback,
)

logger = logging.getLogger("perfhub.store")


class LoggedRecordStore(RecordStore):

    def __init__(self, inner: RecordStore, level: int = logging.DEBUG):
        self.inner = inner
        self.level = level

    def _call(self, operation: str, path: str, fn, *args):
        started = time.perf_counter()
        try:
            result = fn(*args)
        except Exception as e:
            logger.error(
                f"Store {operation} failed for {path}: {e}",
                extra={"operation": operation, "path": path, "error_type": type(e).__name__},
            )
            raise
        logger.log(
            self.level,
            f"Store {operation} {path}",
            extra={"operation": operation, "path": path, "duration_ms": round((time.perf_counter() - started) * 1000, 2)},
        )
        return result

    def new_key(self, collection: str) -> str:
        return self.inner.new_key(collection)

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        return self._call("get", f"{collection}/{key}", self.inner.get, collection, key)

    def get_all(self, collection: str) -> Snapshot:
        return self._call("get_all", collection, self.inner.get_all, collection)

    def query_equal(self, collection: str, field: str, value: Any) -> Snapshot:
        return self._call("query", f"{collection}?{field}=={value!r}", self.inner.query_equal, collection, field, value)

    def set(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        return self._call("set", f"{collection}/{key}", self.inner.set, collection, key, data)

    def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        return self._call("update", f"{collection}/{key}", self.inner.update, collection, key, partial)

    def remove(self, collection: str, key: str) -> None:
        return self._call("remove", f"{collection}/{key}", self.inner.remove, collection, key)

    def listen(
        self,
        collection: str,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        field: Optional[str] = None,
        value: Any = None,
    ) -> ListenerRegistration:
        path = collection if field is None else f"{collection}?{field}=={value!r}"
        logger.log(self.level, f"Setting up listener for path: {path}")

        def logged_callback(snapshot: Snapshot) -> None:
            logger.log(self.level, f"Received data for path: {path}", extra={"records": len(snapshot)})
            callback(snapshot)

        registration = self._call("listen", path, self.inner.listen, collection, logged_callback, on_error, field, value)

        def close() -> None:
            logger.log(self.level, f"Removing listener for path: {path}")
            registration.close()

        return ListenerRegistration(close)

    def declares_index(self, collection: str, field: str) -> Optional[bool]:
        return self.inner.declares_index(collection, field)

    def close(self) -> None:
        self.inner.close()
