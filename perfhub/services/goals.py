from typing import Any, Dict, List, Optional

from perfhub.core.exceptions import NotFoundError
from perfhub.realtime.query import ChangeCallback, Subscription
from perfhub.services.base import BaseService
from perfhub.services.notification import NotificationService
from perfhub.store import collections

GOAL_STATUSES = ("pending", "in-progress", "completed", "overdue")

# Progress bar fill per status
COMPLETION_PERCENT = {
    "completed": 100,
    "in-progress": 60,
    "overdue": 80,
    "pending": 10,
}

# Dashboard order: active work first, finished and late work last
STATUS_ORDER = {"in-progress": 0, "pending": 1, "completed": 2, "overdue": 3}

EMPTY_GOALS_MESSAGE = "No goals set yet."


def completion_percentage(status: Optional[str]) -> int:
    return COMPLETION_PERCENT.get(status, 0)


def sort_for_dashboard(goals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(goals, key=lambda g: (STATUS_ORDER.get(g.get("status"), len(STATUS_ORDER)), g.get("targetDate") or ""))


class GoalService(BaseService):

    def __init__(self, store, notifications: Optional[NotificationService] = None):
        super().__init__(store)
        self.notifications = notifications or NotificationService(store)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        goal = self.records.create(collections.GOALS, {"status": "pending", **data})
        self.notifications.on_goal_created(goal)
        return goal

    def get(self, goal_id: str) -> Optional[Dict[str, Any]]:
        return self.records.get_by_id(collections.GOALS, goal_id)

    def require(self, goal_id: str) -> Dict[str, Any]:
        goal = self.get(goal_id)
        if goal is None:
            raise NotFoundError("Goal", goal_id)
        return goal

    def list_for_employee(self, employee_id: str) -> List[Dict[str, Any]]:
        return self.queries.fetch_filtered(collections.GOALS, "employeeId", employee_id)

    def list_all(self) -> List[Dict[str, Any]]:
        return self.records.list_all(collections.GOALS)

    def update(self, goal_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        goal = self.require(goal_id)
        goal.update(self.records.update(collections.GOALS, goal_id, changes))
        return goal

    def complete(self, goal_id: str) -> Dict[str, Any]:
        return self.update(goal_id, {"status": "completed"})

    def delete(self, goal_id: str) -> None:
        self.records.delete(collections.GOALS, goal_id)

    def subscribe_for_employee(self, employee_id: str, on_change: ChangeCallback, on_error=None) -> Subscription:
        return self.queries.subscribe(collections.GOALS, "employeeId", employee_id, on_change, on_error)
