"""
Query/Subscription Layer.

Live and one-shot "records of a collection where field == value". Two
strategies answer that question:

- ``IndexedQuery`` asks the store for a server-side equality query. It needs
  an index on the field.
- ``FullScanFilter`` reads (or listens to) the whole collection and filters
  locally. It costs O(collection) per change but needs no index.

An ``IndexProbe`` picks the strategy. It trusts the backend's declared index
configuration when there is one, and otherwise learns from the first
IndexNotDefinedError it sees. Each call falls back at most once; if the
full scan fails too, the error goes to the caller.
"""
import abc
import logging
import threading
import weakref
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from perfhub.core.exceptions import IndexNotDefinedError
from perfhub.store.adapter import annotate
from perfhub.store.base import ErrorCallback, ListenerRegistration, RecordStore, Snapshot, matches

logger = logging.getLogger(__name__)

Records = List[Dict[str, Any]]
ChangeCallback = Callable[[Records], None]


def filter_snapshot(snapshot: Snapshot, field: str, value: Any) -> Snapshot:
    return {key: body for key, body in snapshot.items() if matches(body, field, value)}


class QueryStrategy(abc.ABC):
    name: str = ""

    @abc.abstractmethod
    def fetch(self, store: RecordStore, collection: str, field: str, value: Any) -> Snapshot:
        ...

    @abc.abstractmethod
    def listen(
        self,
        store: RecordStore,
        collection: str,
        field: str,
        value: Any,
        callback: Callable[[Snapshot], None],
        on_error: ErrorCallback,
    ) -> ListenerRegistration:
        ...

    def __repr__(self):
        return f"<{type(self).__name__}>"


class IndexedQuery(QueryStrategy):
    name = "indexed"

    def fetch(self, store, collection, field, value):
        return store.query_equal(collection, field, value)

    def listen(self, store, collection, field, value, callback, on_error):
        return store.listen(collection, callback, on_error=on_error, field=field, value=value)


class FullScanFilter(QueryStrategy):
    name = "full-scan"

    def fetch(self, store, collection, field, value):
        return filter_snapshot(store.get_all(collection), field, value)

    def listen(self, store, collection, field, value, callback, on_error):
        return store.listen(
            collection,
            lambda snapshot: callback(filter_snapshot(snapshot, field, value)),
            on_error=on_error,
        )


INDEXED = IndexedQuery()
FULL_SCAN = FullScanFilter()


class IndexProbe:
    """Capability probe: which (collection, field) pairs can use an index."""

    def __init__(self):
        self._missing: Set[Tuple[str, str]] = set()
        self._lock = threading.Lock()

    def select(self, store: RecordStore, collection: str, field: str) -> QueryStrategy:
        with self._lock:
            if (collection, field) in self._missing:
                return FULL_SCAN
        if store.declares_index(collection, field) is False:
            return FULL_SCAN
        return INDEXED

    def mark_missing(self, collection: str, field: str) -> None:
        with self._lock:
            first = (collection, field) not in self._missing
            self._missing.add((collection, field))
        if first:
            logger.warning(
                f'Index not defined for "{field}" on "/{collection}"; falling back to full-collection scans. '
                f'Add ".indexOn": "{field}" to the database rules.',
                extra={"collection": collection, "field": field},
            )


class Subscription:
    """
    Live filtered view. Every change delivers the complete matching set.
    ``unsubscribe()`` is idempotent.
    """

    def __init__(
        self,
        layer: "QueryLayer",
        collection: str,
        field: str,
        value: Any,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self._layer = layer
        self.collection = collection
        self.field = field
        self.value = value
        self._on_change = on_change
        self._on_error = on_error
        self._lock = threading.RLock()
        self._registration: Optional[ListenerRegistration] = None
        self._closed = False
        self._fell_back = False
        self.strategy: Optional[QueryStrategy] = None

    @property
    def active(self) -> bool:
        return not self._closed

    @property
    def fell_back(self) -> bool:
        return self._fell_back

    def open(self) -> "Subscription":
        strategy = self._layer.probe.select(self._layer.store, self.collection, self.field)
        if strategy is FULL_SCAN:
            self._fell_back = True
        try:
            self._start(strategy)
        except IndexNotDefinedError:
            if self._fell_back:
                raise
            self._fall_back()
        return self

    def _start(self, strategy: QueryStrategy) -> None:
        # Set first: the store delivers the initial snapshot during listen()
        self.strategy = strategy
        registration = strategy.listen(
            self._layer.store, self.collection, self.field, self.value, self._deliver, self._handle_error
        )
        with self._lock:
            if self._closed:
                registration.close()
                return
            self._registration = registration

    def _fall_back(self) -> None:
        self._fell_back = True
        self._layer.probe.mark_missing(self.collection, self.field)
        with self._lock:
            previous, self._registration = self._registration, None
        if previous is not None:
            previous.close()
        self._start(FULL_SCAN)

    def _deliver(self, snapshot: Snapshot) -> None:
        if self._closed:
            return
        self._on_change(annotate(snapshot))

    def _handle_error(self, error: Exception) -> None:
        if self._closed:
            return
        if isinstance(error, IndexNotDefinedError) and not self._fell_back:
            try:
                self._fall_back()
                return
            except Exception as e:
                error = e
        if self._on_error is not None:
            self._on_error(error)
        else:
            logger.error(f"Subscription to {self.collection} where {self.field}={self.value!r} failed: {error}")

    def unsubscribe(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            registration, self._registration = self._registration, None
        if registration is not None:
            registration.close()

    # Handles read naturally as callables: ``unsubscribe = layer.subscribe(...); unsubscribe()``
    __call__ = unsubscribe


class QueryLayer:

    def __init__(self, store: RecordStore, probe: Optional[IndexProbe] = None):
        self.store = store
        self.probe = probe or IndexProbe()

    def fetch_filtered(self, collection: str, field: str, value: Any) -> Records:
        strategy = self.probe.select(self.store, collection, field)
        try:
            snapshot = strategy.fetch(self.store, collection, field, value)
        except IndexNotDefinedError:
            if strategy is FULL_SCAN:
                raise
            self.probe.mark_missing(collection, field)
            snapshot = FULL_SCAN.fetch(self.store, collection, field, value)
        return annotate(snapshot)

    def find_one(self, collection: str, field: str, value: Any) -> Optional[Dict[str, Any]]:
        records = self.fetch_filtered(collection, field, value)
        return records[0] if records else None

    def subscribe(
        self,
        collection: str,
        field: str,
        value: Any,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        return Subscription(self, collection, field, value, on_change, on_error).open()


_layers: "weakref.WeakKeyDictionary[RecordStore, QueryLayer]" = weakref.WeakKeyDictionary()
_layers_lock = threading.Lock()


def get_query_layer(store: RecordStore) -> QueryLayer:
    """One layer (and so one index probe) per store instance."""
    with _layers_lock:
        layer = _layers.get(store)
        if layer is None:
            layer = QueryLayer(store)
            _layers[store] = layer
        return layer
