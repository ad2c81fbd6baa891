from typing import List, Literal, Optional

from pydantic import Field

from perfhub.schemas.common import CamelModel, RecordModel, Timestamp

GoalStatus = Literal["pending", "in-progress", "completed", "overdue"]


class GoalCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    target_date: Optional[str] = None
    status: GoalStatus = "pending"


class GoalUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    target_date: Optional[str] = None
    status: Optional[GoalStatus] = None


class GoalResponse(RecordModel):
    employee_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    target_date: Optional[str] = None
    status: Optional[str] = None
    created_at: Timestamp = None
    updated_at: Timestamp = None


class GoalItem(GoalResponse):
    completion: int


class GoalList(CamelModel):
    items: List[GoalItem]
    empty_message: Optional[str] = None
