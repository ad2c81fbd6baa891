"""
Relational backend for the record store.

Every record is one row of the ``records`` table holding its JSON body.
Equality queries run in SQL against the JSON field, but only for fields
declared as indexed, so a deployment behaves exactly like the realtime
database it stands in for: querying an undeclared field is a configuration
error, not a slow query.

Listeners are in-process. After each committed write the listeners on that
collection are re-evaluated and called back on the writing thread.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from perfhub.core.exceptions import IndexNotDefinedError
from perfhub.models.record import Record
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


@dataclass(eq=False)
class _Listener:
    collection: str
    callback: SnapshotCallback
    on_error: Optional[ErrorCallback]
    field: Optional[str]
    value: Any
    active: bool = True


class SqlRecordStore(RecordStore):

    def __init__(
        self,
        session_factory: sessionmaker,
        indexes: Optional[Dict[str, Iterable[str]]] = None,
        key_generator: Optional[PushIdGenerator] = None,
    ):
        self._session_factory = session_factory
        self._indexes: Dict[str, Set[str]] = {c: set(f) for c, f in (indexes or {}).items()}
        self._keys = key_generator or PushIdGenerator()
        self._listeners: Dict[str, List[_Listener]] = {}
        self._lock = threading.RLock()

    @contextmanager
    def _session(self) -> Session:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def declares_index(self, collection: str, field: str) -> Optional[bool]:
        return self._has_index(collection, field)

    def _has_index(self, collection: str, field: str) -> bool:
        return field in self._indexes.get(collection, set())

    def new_key(self, collection: str) -> str:
        return self._keys.generate()

    # --- reads ---

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            record = db.get(Record, {"collection": collection, "key": key})
            return dict(record.data) if record is not None else None

    def get_all(self, collection: str) -> Snapshot:
        with self._session() as db:
            rows = (
                db.query(Record)
                .filter(Record.collection == collection)
                .order_by(Record.key)
                .all()
            )
            return {row.key: dict(row.data) for row in rows}

    def query_equal(self, collection: str, field: str, value: Any) -> Snapshot:
        if not self._has_index(collection, field):
            raise IndexNotDefinedError(collection, field)
        with self._session() as db:
            rows = (
                db.query(Record)
                .filter(Record.collection == collection, _json_equals(field, value))
                .order_by(Record.key)
                .all()
            )
            # JSON comparison semantics differ by dialect; re-check in Python
            return {row.key: dict(row.data) for row in rows if matches(row.data, field, value)}

    # --- writes ---

    def set(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        with self._lock, self._session() as db:
            record = self._locked_row(db, collection, key)
            if record is None:
                db.add(Record(collection=collection, key=key, data=dict(data)))
            else:
                record.data = dict(data)
            self._commit(db)
        self._notify(collection)

    def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        # Read, merge and commit as one step so concurrent partial updates
        # to different fields of a record all survive
        with self._lock, self._session() as db:
            record = self._locked_row(db, collection, key)
            merged = dict(record.data) if record is not None else {}
            for name, value in partial.items():
                # A null in an update removes the child, as in the realtime database
                if value is None:
                    merged.pop(name, None)
                else:
                    merged[name] = value
            if record is None:
                db.add(Record(collection=collection, key=key, data=merged))
            else:
                record.data = merged
            self._commit(db)
        self._notify(collection)

    def remove(self, collection: str, key: str) -> None:
        with self._lock, self._session() as db:
            deleted = (
                db.query(Record)
                .filter(Record.collection == collection, Record.key == key)
                .delete(synchronize_session=False)
            )
            self._commit(db)
        if deleted:
            self._notify(collection)

    @staticmethod
    def _locked_row(db: Session, collection: str, key: str) -> Optional[Record]:
        # FOR UPDATE holds other processes off the row; SQLite ignores it
        return db.get(Record, {"collection": collection, "key": key}, with_for_update=True)

    @staticmethod
    def _commit(db: Session) -> None:
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

    # --- listeners ---

    def listen(
        self,
        collection: str,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        field: Optional[str] = None,
        value: Any = None,
    ) -> ListenerRegistration:
        if field is not None and not self._has_index(collection, field):
            raise IndexNotDefinedError(collection, field)

        listener = _Listener(collection, callback, on_error, field, value)
        with self._lock:
            self._listeners.setdefault(collection, []).append(listener)
        self._deliver(listener)
        return ListenerRegistration(lambda: self._detach(listener))

    def listener_count(self, collection: Optional[str] = None) -> int:
        with self._lock:
            if collection is not None:
                return len(self._listeners.get(collection, []))
            return sum(len(group) for group in self._listeners.values())

    def _detach(self, listener: _Listener) -> None:
        listener.active = False
        with self._lock:
            group = self._listeners.get(listener.collection, [])
            if listener in group:
                group.remove(listener)

    def _notify(self, collection: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(collection, []))
        for listener in listeners:
            self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        if not listener.active:
            return
        try:
            if listener.field is None:
                snapshot = self.get_all(listener.collection)
            else:
                snapshot = self.query_equal(listener.collection, listener.field, listener.value)
        except Exception as e:
            if listener.on_error is not None:
                listener.on_error(e)
            else:
                logger.error(f"Listener on {listener.collection} failed: {e}")
            return
        try:
            listener.callback(snapshot)
        except Exception:
            # A broken consumer must not fail the write that triggered it
            logger.exception(f"Listener callback on {listener.collection} raised")

    def close(self) -> None:
        with self._lock:
            for group in self._listeners.values():
                for listener in group:
                    listener.active = False
            self._listeners.clear()


def _json_equals(field: str, value: Any):
    element = Record.data[field]
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    return element.as_string() == str(value)
