"""
Backing record store contract.

A store is a set of named collections, each a keyed mapping of
record-id -> JSON object. Backends expose point reads and writes, a
single-field equality query (which may need a server-side index), push-id
minting, and change subscriptions that re-deliver the full current value of
a collection or query on every change.
"""
import abc
import logging
import threading
from typing import Any, Callable, Dict, Optional

# record-id -> record body, as the store returns it (ids are keys, not fields)
Snapshot = Dict[str, Dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]

logger = logging.getLogger(__name__)


class ListenerRegistration:
    """Handle for a live listener. ``close()`` may be called any number of times."""

    def __init__(self, close_fn: Callable[[], None]):
        self._close_fn = close_fn
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._close_fn()


class RecordStore(abc.ABC):

    @abc.abstractmethod
    def new_key(self, collection: str) -> str:
        """Mint a unique, chronologically ordered child key."""

    @abc.abstractmethod
    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Return the record body or ``None``."""

    @abc.abstractmethod
    def get_all(self, collection: str) -> Snapshot:
        ...

    @abc.abstractmethod
    def query_equal(self, collection: str, field: str, value: Any) -> Snapshot:
        """
        Server-side equality query on one child field.
        Raises IndexNotDefinedError when the store has no index for ``field``.
        """

    @abc.abstractmethod
    def set(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        """Replace the record at ``key``."""

    @abc.abstractmethod
    def update(self, collection: str, key: str, partial: Dict[str, Any]) -> None:
        """Blind merge of ``partial`` into the record; creates it when absent."""

    @abc.abstractmethod
    def remove(self, collection: str, key: str) -> None:
        """Delete the record; deleting a missing key is not an error."""

    @abc.abstractmethod
    def listen(
        self,
        collection: str,
        callback: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        field: Optional[str] = None,
        value: Any = None,
    ) -> ListenerRegistration:
        """
        Deliver the current snapshot now and again after every change.

        With ``field`` set the listener is an indexed equality query and
        registration raises IndexNotDefinedError when the index is missing.
        Errors after registration go to ``on_error``.
        """

    def declares_index(self, collection: str, field: str) -> Optional[bool]:
        """
        Capability probe. ``True``/``False`` when the backend knows its index
        configuration, ``None`` when it only finds out by querying.
        """
        return None

    def close(self) -> None:
        """Release backend resources."""


def matches(record: Dict[str, Any], field: str, value: Any) -> bool:
    return isinstance(record, dict) and record.get(field) == value
