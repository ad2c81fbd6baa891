"""Filtered live queries and the view state they feed."""
from perfhub.realtime.query import QueryLayer, Subscription, get_query_layer
from perfhub.realtime.reconciliation import OptimisticList, Toast

__all__ = ["OptimisticList", "QueryLayer", "Subscription", "Toast", "get_query_layer"]
