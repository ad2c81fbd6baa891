from typing import Any, Dict

from fastapi import APIRouter, Depends

from perfhub.routers.auth_deps import require_admin
from perfhub.schemas.employee import AdminSummary, ReviewResult, ReviewSubmit
from perfhub.services.dashboard import DashboardService
from perfhub.services.reviews import ReviewService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/summary", response_model=AdminSummary)
def admin_summary(
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return DashboardService(store).admin_summary()


@router.post("/employees/{employee_id}/review", response_model=ReviewResult)
def submit_review(
    employee_id: str,
    data: ReviewSubmit,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    """360° review: rates four dimensions and files the comment as feedback."""
    return ReviewService(store).submit(
        employee_id,
        ratings=data.ratings.model_dump(by_alias=True),
        comment=data.comment,
        reviewer_id=admin["uid"],
        reviewer_name=admin.get("displayName"),
    )
