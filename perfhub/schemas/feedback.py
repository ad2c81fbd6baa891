from typing import Optional

from pydantic import Field

from perfhub.schemas.common import CamelModel, RecordModel, Timestamp


class FeedbackCreate(CamelModel):
    employee_id: str
    content: str = Field(min_length=1)
    category: str = Field(min_length=1)
    rating: int = Field(default=0, ge=0, le=5)


class FeedbackRequestCreate(CamelModel):
    feedback_type: str = Field(min_length=1)
    description: str = Field(min_length=1)


class FeedbackRespond(CamelModel):
    content: str = Field(min_length=1)
    category: Optional[str] = None


class FeedbackResponse(RecordModel):
    employee_id: Optional[str] = None
    reviewer_id: Optional[str] = None
    reviewer_name: Optional[str] = None
    content: Optional[str] = None
    rating: Optional[float] = None
    category: Optional[str] = None
    created_at: Timestamp = None
    requested_by: Optional[str] = None
    request_description: Optional[str] = None
    status: Optional[str] = None
    is_response_to_request: Optional[bool] = None


class ClearResult(CamelModel):
    deleted: int
