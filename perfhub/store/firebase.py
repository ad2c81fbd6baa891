"""
Firebase Realtime Database backend.

Thin mapping of the store contract onto ``firebase_admin.db``. The admin SDK
streams raw change events for a reference; listeners here re-read the
collection (or the indexed query) on every event so consumers always get a
full snapshot, never a diff.
"""
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin import exceptions as firebase_exceptions

from perfhub.core.exceptions import IndexNotDefinedError
from perfhub.store.base import (
    ErrorCallback,
    ListenerRegistration,
    RecordStore,
    Snapshot,
    SnapshotCallback,
    matches,
)
from perfhub.store.keys import PushIdGenerator

logger = logging.getLogger(__name__)

# The only signature the SDK gives for a missing ".indexOn" rule
_INDEX_ERROR_SIGNATURE = "Index not defined"


def initialize_firebase_app(credentials_path: Optional[str], database_url: str, name: str = "perfhub"):
    """Initialize (or reuse) the named firebase_admin app."""
    try:
        return firebase_admin.get_app(name)
    except ValueError:
        pass
    cred = credentials.Certificate(credentials_path) if credentials_path else credentials.ApplicationDefault()
    return firebase_admin.initialize_app(cred, {"databaseURL": database_url}, name=name)


def _as_snapshot(value: Any) -> Snapshot:
    # Sparse integer keys come back as a list; anything else non-dict is empty
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items() if isinstance(v, dict)}
    if isinstance(value, list):
        return {str(i): v for i, v in enumerate(value) if isinstance(v, dict)}
    return {}


class FirebaseRecordStore(RecordStore):

    def __init__(self, app, key_generator: Optional[PushIdGenerator] = None):
        self._app = app
        self._keys = key_generator or PushIdGenerator()

    def _ref(self, *parts: str):
        return db.reference("/" + "/".join(parts), app=self._app)

    def new_key(self, collection: str) -> str:
        return self._keys.generate()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        value = self._ref(collection, key).get()
        return value if isinstance(value, dict) else None

    def get_all(self, collection: str) -> Snapshot:
        return _as_snapshot(self._ref(collection).get())

    def query_equal(self, collection: str, field: str, value: Any) -> Snapshot:
        try:
            result = self._ref(collection).order_by_child(field).equal_to(value).get()
        except firebase_exceptions.InvalidArgumentError as e:
            if _INDEX_ERROR_SIGNATURE in str(e):
                raise IndexNotDefinedError(collection, field) from e
            raise
        return {k: v for k, v in _as_snapshot(result).items() if matches(v, field, value)}

    def set(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        self._ref(collection, key).set(data)

    def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        self._ref(collection, key).update(partial)

    def remove(self, collection: str, key: str) -> None:
        self._ref(collection, key).delete()

    def listen(
        self,
        collection: str,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        field: Optional[str] = None,
        value: Any = None,
    ) -> ListenerRegistration:
        if field is not None:
            # Surfaces a missing index at registration time
            self.query_equal(collection, field, value)

        def handle(event):
            try:
                if field is None:
                    snapshot = self.get_all(collection)
                else:
                    snapshot = self.query_equal(collection, field, value)
            except Exception as e:
                if on_error is not None:
                    on_error(e)
                else:
                    logger.error(f"Listener on {collection} failed: {e}")
                return
            try:
                callback(snapshot)
            except Exception:
                logger.exception(f"Listener callback on {collection} raised")

        registration = self._ref(collection).listen(handle)
        return ListenerRegistration(registration.close)

    def close(self) -> None:
        firebase_admin.delete_app(self._app)
