from typing import List, Optional

from perfhub.schemas.common import CamelModel
from perfhub.schemas.employee import EmployeeView
from perfhub.schemas.feedback import FeedbackResponse
from perfhub.schemas.goal import GoalList
from perfhub.schemas.metric import LatestMetric


class DashboardView(CamelModel):
    employee: Optional[EmployeeView] = None
    goals: GoalList
    feedback: List[FeedbackResponse]
    requests: List[FeedbackResponse]
    metrics: List[LatestMetric]
    unread_notifications: int
