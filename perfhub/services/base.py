from perfhub.realtime.query import QueryLayer, get_query_layer
from perfhub.store.adapter import RecordRepository
from perfhub.store.base import RecordStore


class BaseService:
    """
    Common plumbing for services that work on the record store:
    the CRUD adapter and the filtered query layer.
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.records = RecordRepository(store)
        self.queries: QueryLayer = get_query_layer(store)
