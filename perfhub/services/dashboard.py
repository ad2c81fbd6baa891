"""View models for the employee dashboard and the admin summary."""
from typing import Any, Dict, List, Optional

from perfhub.services.base import BaseService
from perfhub.services.employees import EmployeeService
from perfhub.services.feedback import FeedbackService, is_request
from perfhub.services.goals import EMPTY_GOALS_MESSAGE, GoalService, completion_percentage, sort_for_dashboard
from perfhub.services.metrics import MetricService
from perfhub.services.notification import NotificationService
from perfhub.services.scoring import display_score, score_percent


def employee_view(employee: Dict[str, Any]) -> Dict[str, Any]:
    score = employee.get("performanceScore")
    return {**employee, "scoreDisplay": display_score(score), "scorePercent": score_percent(score)}


def goals_view(goals: List[Dict[str, Any]]) -> Dict[str, Any]:
    items = [{**g, "completion": completion_percentage(g.get("status"))} for g in sort_for_dashboard(goals)]
    return {"items": items, "emptyMessage": None if items else EMPTY_GOALS_MESSAGE}


class DashboardService(BaseService):

    def __init__(self, store):
        super().__init__(store)
        self.notifications = NotificationService(store)
        self.employees = EmployeeService(store)
        self.goals = GoalService(store, self.notifications)
        self.feedback = FeedbackService(store, self.notifications)
        self.metrics = MetricService(store, self.notifications)

    def for_user(self, user_id: str, employee: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        notifications = self.notifications.list_for_user(user_id)
        view = {
            "employee": None,
            "goals": goals_view([]),
            "feedback": [],
            "requests": [],
            "metrics": [],
            "unreadNotifications": sum(1 for n in notifications if not n.get("read")),
        }
        if employee is None:
            return view

        feedback = sorted(
            self.feedback.list_for_employee(employee["id"]),
            key=lambda f: str(f.get("createdAt") or ""),
            reverse=True,
        )
        view.update(
            employee=employee_view(employee),
            goals=goals_view(self.goals.list_for_employee(employee["id"])),
            feedback=[f for f in feedback if not is_request(f)],
            requests=[f for f in feedback if is_request(f)],
            metrics=self.metrics.latest_for_employee(employee["id"]),
        )
        return view

    def admin_summary(self) -> Dict[str, Any]:
        summary = self.employees.summary()
        summary["pendingRequests"] = len(self.feedback.pending_requests())
        return summary
