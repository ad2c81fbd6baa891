"""
Feedback, reviews and feedback requests.

A request is a feedback record an employee creates about themselves with a
``request-<type>`` category and ``status: pending``. Admins answer it with a
regular feedback record flagged ``isResponseToRequest``, and the request is
marked ``responded``.
"""
import logging
from typing import Any, Dict, List, Optional

from perfhub.core.exceptions import AppException, NotFoundError
from perfhub.realtime.query import ChangeCallback, Subscription
from perfhub.services.base import BaseService
from perfhub.services.notification import NotificationService
from perfhub.store import collections

logger = logging.getLogger(__name__)

REQUEST_PREFIX = "request-"
PERFORMANCE_REVIEW = "performance review"


def is_request(feedback: Dict[str, Any]) -> bool:
    return (feedback.get("category") or "").startswith(REQUEST_PREFIX)


def is_pending_request(feedback: Dict[str, Any]) -> bool:
    return is_request(feedback) and feedback.get("status") == "pending"


class FeedbackService(BaseService):

    def __init__(self, store, notifications: Optional[NotificationService] = None):
        super().__init__(store)
        self.notifications = notifications or NotificationService(store)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        feedback = self.records.create(collections.FEEDBACKS, data)
        self.notifications.on_feedback_created(feedback)
        return feedback

    def give(
        self,
        employee_id: str,
        reviewer_id: str,
        reviewer_name: str,
        content: str,
        category: str,
        rating: int = 0,
        is_response: bool = False,
    ) -> Dict[str, Any]:
        return self.create({
            "employeeId": employee_id,
            "reviewerId": reviewer_id,
            "reviewerName": reviewer_name or "Admin",
            "content": content,
            "rating": rating,
            "category": category,
            "isResponseToRequest": is_response,
        })

    def request_feedback(self, employee_id: str, requested_by: str, feedback_type: str, description: str) -> Dict[str, Any]:
        return self.create({
            "employeeId": employee_id,
            "reviewerId": "",
            "reviewerName": "",
            "content": description,
            "rating": 0,
            "category": f"{REQUEST_PREFIX}{feedback_type}",
            "requestedBy": requested_by or "Employee",
            "requestDescription": description,
            "status": "pending",
        })

    def respond(
        self,
        request_id: str,
        reviewer_id: str,
        reviewer_name: str,
        content: str,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        request = self.require(request_id)
        if not is_request(request):
            raise AppException("Feedback is not a request", error_code="NOT_A_REQUEST")
        if request.get("status") != "pending":
            raise AppException("Request has already been answered", status_code=409, error_code="ALREADY_RESPONDED")

        response = self.give(
            request["employeeId"],
            reviewer_id,
            reviewer_name,
            content,
            category or request["category"][len(REQUEST_PREFIX):],
            is_response=True,
        )
        self.records.update(collections.FEEDBACKS, request_id, {"status": "responded"})
        logger.info(f"Request {request_id} answered by feedback {response['id']}")
        return response

    def get(self, feedback_id: str) -> Optional[Dict[str, Any]]:
        return self.records.get_by_id(collections.FEEDBACKS, feedback_id)

    def require(self, feedback_id: str) -> Dict[str, Any]:
        feedback = self.get(feedback_id)
        if feedback is None:
            raise NotFoundError("Feedback", feedback_id)
        return feedback

    def list_for_employee(self, employee_id: str) -> List[Dict[str, Any]]:
        return self.queries.fetch_filtered(collections.FEEDBACKS, "employeeId", employee_id)

    def pending_requests(self, employee_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if employee_id:
            feedbacks = self.list_for_employee(employee_id)
        else:
            feedbacks = self.records.list_all(collections.FEEDBACKS)
        return sorted(
            (f for f in feedbacks if is_pending_request(f)),
            key=lambda f: str(f.get("createdAt") or ""),
            reverse=True,
        )

    def delete(self, feedback_id: str) -> None:
        self.records.delete(collections.FEEDBACKS, feedback_id)

    def clear_all(self, employee_id: str) -> int:
        """Delete every feedback record of one employee. Stops at the first failure."""
        feedbacks = self.list_for_employee(employee_id)
        for feedback in feedbacks:
            self.delete(feedback["id"])
        return len(feedbacks)

    def subscribe_for_employee(self, employee_id: str, on_change: ChangeCallback, on_error=None) -> Subscription:
        return self.queries.subscribe(collections.FEEDBACKS, "employeeId", employee_id, on_change, on_error)
