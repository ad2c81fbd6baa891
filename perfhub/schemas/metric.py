from typing import Optional

from perfhub.schemas.common import RecordModel, Timestamp


class MetricResponse(RecordModel):
    employee_id: Optional[str] = None
    metric: Optional[str] = None
    value: Optional[float] = None
    date: Timestamp = None


class LatestMetric(MetricResponse):
    target: int
