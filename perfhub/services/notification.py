import logging
import random
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from perfhub.realtime.query import ChangeCallback, Subscription
from perfhub.services.base import BaseService
from perfhub.store import collections
from perfhub.store.clock import EPOCH, parse_iso, to_iso

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("feedback", "goal", "review", "request", "system")

# Message preview length for plain feedback notifications
FEEDBACK_PREVIEW_CHARS = 50

DEMO_TITLES = {
    "feedback": ["New Feedback", "Feedback Response", "Team Feedback"],
    "goal": ["Goal Update", "Goal Assigned", "Goal Completed"],
    "review": ["Review Submitted", "Performance Review", "Quarterly Review"],
    "request": ["Feedback Request", "Document Request", "Meeting Request"],
    "system": ["Account Update", "System Maintenance", "Profile Update"],
}

DEMO_MESSAGES = {
    "feedback": [
        "Your team leader has provided feedback on your recent project.",
        "Your recent work has been recognized by management.",
        "A colleague has shared feedback on your presentation.",
    ],
    "goal": [
        "A new goal has been assigned to you for this quarter.",
        'Your goal "Improve Customer Service" is due next week.',
        "You have completed 3 of your 5 assigned goals.",
    ],
    "review": [
        "Your annual performance review is now available.",
        "Your manager has submitted a new quarterly review.",
        "Your 360° feedback is ready for your review.",
    ],
    "request": [
        "A team member has requested your feedback on their project.",
        "Your manager has requested a project status update.",
        "The HR department requests your updated information.",
    ],
    "system": [
        "Welcome to the new employee feedback system.",
        "Your account has been successfully updated.",
        "System maintenance scheduled for this weekend.",
    ],
}


def _created(notification: Dict[str, Any]) -> datetime:
    return parse_iso(notification.get("createdAt")) or EPOCH


def newest_first(notifications: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(notifications, key=lambda n: (_created(n), n["id"]), reverse=True)


def feedback_preview(content: str) -> str:
    content = content or ""
    if len(content) > FEEDBACK_PREVIEW_CHARS:
        return content[:FEEDBACK_PREVIEW_CHARS] + "..."
    return content


class NotificationService(BaseService):
    """
    Notification records and the fan-out that follows domain writes.

    The ``on_*_created`` hooks run after the triggering write has succeeded.
    They never raise: a failed notification is logged and dropped, and the
    action that triggered it still succeeds.
    """

    def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        type: str = "system",
        related_item_id: Optional[str] = None,
        related_item_type: Optional[str] = None,
        read: bool = False,
        created_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.records.create(
            collections.NOTIFICATIONS,
            {
                "userId": user_id,
                "title": title,
                "message": message,
                "type": type,
                "read": read,
                "createdAt": created_at,
                "relatedItemId": related_item_id,
                "relatedItemType": related_item_type,
            },
        )

    def _recipient_for_employee(self, employee_id: str) -> Optional[Dict[str, Any]]:
        employee = self.records.get_by_id(collections.EMPLOYEES, employee_id)
        if employee is None or not employee.get("userId"):
            logger.debug(f"No user linked to employee {employee_id}; skipping notification")
            return None
        return employee

    # --- fan-out ---

    def on_goal_created(self, goal: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            employee = self._recipient_for_employee(goal.get("employeeId"))
            if employee is None:
                return []
            return [self.create_notification(
                employee["userId"],
                "New Goal Assigned",
                f"A new goal has been assigned to you: {goal.get('title')}",
                type="goal",
                related_item_id=goal["id"],
                related_item_type="goal",
            )]
        except Exception as e:
            logger.error(f"Error creating notification for goal {goal.get('id')}: {e}")
            return []

    def on_feedback_created(self, feedback: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            employee = self._recipient_for_employee(feedback.get("employeeId"))
            if employee is None:
                return []

            category = feedback.get("category") or ""
            if category.startswith("request-"):
                admins = self.queries.fetch_filtered(collections.USERS, "role", "admin")
                return [
                    self.create_notification(
                        admin["id"],
                        "New Feedback Request",
                        f"{employee.get('name')} has requested feedback: {feedback.get('content')}",
                        type="request",
                        related_item_id=feedback["id"],
                        related_item_type="feedback",
                    )
                    for admin in admins
                ]

            if not feedback.get("reviewerId"):
                return []
            if category == "performance review":
                title, message, kind = "New Performance Review", "You have received a new performance review", "review"
            else:
                title = "New Feedback"
                message = f"You have received new feedback: {feedback_preview(feedback.get('content'))}"
                kind = "feedback"
            return [self.create_notification(
                employee["userId"], title, message,
                type=kind,
                related_item_id=feedback["id"],
                related_item_type="feedback",
            )]
        except Exception as e:
            logger.error(f"Error creating notification for feedback {feedback.get('id')}: {e}")
            return []

    def on_metric_created(self, metric: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            employee = self._recipient_for_employee(metric.get("employeeId"))
            if employee is None:
                return []
            return [self.create_notification(
                employee["userId"],
                "Performance Update",
                f"Your {metric.get('metric')} performance has been updated to {metric.get('value')}%",
                type="review",
                related_item_id=metric["id"],
                related_item_type="metric",
            )]
        except Exception as e:
            logger.error(f"Error creating notification for metric {metric.get('id')}: {e}")
            return []

    # --- reads and the one mutable field ---

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Dict[str, Any]]:
        notifications = self.queries.fetch_filtered(collections.NOTIFICATIONS, "userId", user_id)
        if unread_only:
            notifications = [n for n in notifications if not n.get("read")]
        return newest_first(notifications)

    def get_for_user(self, notification_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        notification = self.records.get_by_id(collections.NOTIFICATIONS, notification_id)
        if notification is None or notification.get("userId") != user_id:
            return None
        return notification

    def mark_read(self, notification_id: str) -> None:
        self.records.update(collections.NOTIFICATIONS, notification_id, {"read": True}, touch=False)

    def mark_all_read(self, user_id: str) -> int:
        unread = [n for n in self.list_for_user(user_id) if not n.get("read")]
        for notification in unread:
            self.mark_read(notification["id"])
        return len(unread)

    def subscribe_for_user(self, user_id: str, on_change: ChangeCallback, on_error=None) -> Subscription:
        return self.queries.subscribe(
            collections.NOTIFICATIONS,
            "userId",
            user_id,
            lambda notifications: on_change(newest_first(notifications)),
            on_error,
        )

    def generate_demo(self, user_id: str, count: int = 5) -> List[Dict[str, Any]]:
        """Sample notifications for trying out the UI: the first three unread."""
        now = self.records.clock.now()
        created = []
        for i in range(count):
            kind = NOTIFICATION_TYPES[i % len(NOTIFICATION_TYPES)]
            offset = timedelta(milliseconds=random.randint(0, 7 * 24 * 60 * 60 * 1000))
            created.append(self.create_notification(
                user_id,
                random.choice(DEMO_TITLES[kind]),
                random.choice(DEMO_MESSAGES[kind]),
                type=kind,
                read=i > 2,
                created_at=to_iso(now - offset),
            ))
        return created
