from typing import Dict, List, Optional

from pydantic import EmailStr, Field

from perfhub.schemas.common import CamelModel, RecordModel, Timestamp


class EmployeeMetrics(CamelModel):
    communication: Optional[float] = None
    technical_skills: Optional[float] = None
    teamwork: Optional[float] = None


class EmployeeResponse(RecordModel):
    user_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    performance_score: Optional[float] = None
    metrics: Optional[EmployeeMetrics] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    created_at: Timestamp = None
    updated_at: Timestamp = None


class EmployeeView(EmployeeResponse):
    score_display: str
    score_percent: float


class EmployeeOnboard(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    position: Optional[str] = None
    department: Optional[str] = None


class EmployeeUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    position: Optional[str] = None
    department: Optional[str] = None
    performance_score: Optional[float] = Field(default=None, ge=0, le=100)
    metrics: Optional[EmployeeMetrics] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None


class ProfileUpdate(CamelModel):
    """What employees may change about themselves."""
    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None


class AdminSummary(CamelModel):
    employee_count: int
    average_score: int
    rated_count: int
    pending_requests: int


class ReviewRatings(CamelModel):
    overall: int
    communication: int
    teamwork: int
    technical_skills: int


class ReviewSubmit(CamelModel):
    ratings: ReviewRatings
    comment: str = ""


class ReviewResult(CamelModel):
    employee: EmployeeResponse
    metrics: List[Dict]
    feedback: Dict
