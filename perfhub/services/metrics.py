from typing import Any, Dict, List, Optional

from perfhub.realtime.query import ChangeCallback, Subscription
from perfhub.services.base import BaseService
from perfhub.services.notification import NotificationService
from perfhub.store import collections
from perfhub.store.clock import EPOCH, parse_iso

METRIC_TARGETS = {
    "communication": 90,
    "technicalSkills": 95,
    "teamwork": 85,
}
DEFAULT_TARGET = 80


def target_for(metric: str) -> int:
    return METRIC_TARGETS.get(metric, DEFAULT_TARGET)


def latest_by_metric(metrics: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Latest value wins: one entry per metric name, the one with max(date)."""
    latest: Dict[str, Dict[str, Any]] = {}
    for entry in metrics:
        name = entry.get("metric")
        if not name:
            continue
        current = latest.get(name)
        when = parse_iso(entry.get("date")) or EPOCH
        if current is None or when >= (parse_iso(current.get("date")) or EPOCH):
            latest[name] = entry
    return latest


class MetricService(BaseService):

    def __init__(self, store, notifications: Optional[NotificationService] = None):
        super().__init__(store)
        self.notifications = notifications or NotificationService(store)

    def create(self, employee_id: str, metric: str, value: float, date: Optional[str] = None) -> Dict[str, Any]:
        record = self.records.create(
            collections.PERFORMANCE_METRICS,
            {
                "employeeId": employee_id,
                "metric": metric,
                "value": value,
                "date": date or self.records.clock.now_iso(),
            },
        )
        self.notifications.on_metric_created(record)
        return record

    def list_for_employee(self, employee_id: str) -> List[Dict[str, Any]]:
        return self.queries.fetch_filtered(collections.PERFORMANCE_METRICS, "employeeId", employee_id)

    def latest_for_employee(self, employee_id: str) -> List[Dict[str, Any]]:
        latest = latest_by_metric(self.list_for_employee(employee_id))
        return [
            {**entry, "target": target_for(name)}
            for name, entry in sorted(latest.items())
        ]

    def subscribe_for_employee(self, employee_id: str, on_change: ChangeCallback, on_error=None) -> Subscription:
        return self.queries.subscribe(collections.PERFORMANCE_METRICS, "employeeId", employee_id, on_change, on_error)
