import logging
from typing import Any, Dict, Optional

from perfhub.core.exceptions import AppException
from perfhub.services.employees import EmployeeService
from perfhub.services.feedback import PERFORMANCE_REVIEW, FeedbackService
from perfhub.services.metrics import MetricService
from perfhub.services.notification import NotificationService
from perfhub.services.scoring import METRIC_DIMENSIONS, ScoringPolicy

logger = logging.getLogger(__name__)


class ReviewService:
    """
    360° review: one submission updates the employee's score and metric
    snapshot, records a metric entry per dimension, and files the comment as
    ``performance review`` feedback. Each of those writes fans out its own
    notification.
    """

    def __init__(self, store, policy: Optional[ScoringPolicy] = None):
        notifications = NotificationService(store)
        self.employees = EmployeeService(store)
        self.metrics = MetricService(store, notifications)
        self.feedback = FeedbackService(store, notifications)
        self.policy = policy or ScoringPolicy.from_settings()

    def submit(
        self,
        employee_id: str,
        ratings: Dict[str, int],
        comment: str,
        reviewer_id: str,
        reviewer_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.employees.require(employee_id)
        try:
            score = self.policy.overall_score(ratings)
        except ValueError as e:
            raise AppException(str(e), status_code=422, error_code="INVALID_RATING")
        dimensions = self.policy.dimension_scores(ratings)

        employee = self.employees.update(employee_id, {"performanceScore": score, "metrics": dimensions})

        timestamp = self.metrics.records.clock.now_iso()
        metrics = [self.metrics.create(employee_id, name, dimensions[name], date=timestamp) for name in METRIC_DIMENSIONS]

        feedback = self.feedback.give(
            employee_id,
            reviewer_id,
            reviewer_name,
            comment,
            PERFORMANCE_REVIEW,
            rating=ratings["overall"],
        )
        logger.info(f"Review for employee {employee_id} scored {score}")
        return {"employee": employee, "metrics": metrics, "feedback": feedback}
