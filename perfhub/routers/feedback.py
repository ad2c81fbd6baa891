from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Response, status

from perfhub.routers.auth_deps import check_employee_access, get_current_user, require_admin, require_employee
from perfhub.schemas.feedback import (
    ClearResult,
    FeedbackCreate,
    FeedbackRequestCreate,
    FeedbackRespond,
    FeedbackResponse,
)
from perfhub.services.employees import EmployeeService
from perfhub.services.feedback import FeedbackService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

router = APIRouter(prefix="/feedback", tags=["feedback"])


def _newest_first(feedbacks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(feedbacks, key=lambda f: str(f.get("createdAt") or ""), reverse=True)


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def give_feedback(
    data: FeedbackCreate,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    EmployeeService(store).require(data.employee_id)
    return FeedbackService(store).give(
        data.employee_id,
        reviewer_id=admin["uid"],
        reviewer_name=admin.get("displayName"),
        content=data.content,
        category=data.category,
        rating=data.rating,
    )


@router.post("/request", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def request_feedback(
    data: FeedbackRequestCreate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
):
    return FeedbackService(store).request_feedback(
        employee["id"],
        requested_by=current_user.get("displayName"),
        feedback_type=data.feedback_type,
        description=data.description,
    )


@router.get("/requests", response_model=List[FeedbackResponse])
def list_pending_requests(
    employee_id: Optional[str] = None,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return FeedbackService(store).pending_requests(employee_id)


@router.post("/requests/{request_id}/respond", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
def respond_to_request(
    request_id: str,
    data: FeedbackRespond,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return FeedbackService(store).respond(
        request_id,
        reviewer_id=admin["uid"],
        reviewer_name=admin.get("displayName"),
        content=data.content,
        category=data.category,
    )


@router.get("/me", response_model=List[FeedbackResponse])
def list_my_feedback(
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
):
    return _newest_first(FeedbackService(store).list_for_employee(employee["id"]))


@router.delete("/me", response_model=ClearResult)
def clear_my_feedback(
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
):
    return {"deleted": FeedbackService(store).clear_all(employee["id"])}


@router.get("/employee/{employee_id}", response_model=List[FeedbackResponse])
def list_employee_feedback(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    check_employee_access(current_user, employee_id, store)
    return _newest_first(FeedbackService(store).list_for_employee(employee_id))


@router.delete("/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_feedback(
    feedback_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    service = FeedbackService(store)
    feedback = service.get(feedback_id)
    # Deleting an already-deleted record is a no-op
    if feedback is not None:
        check_employee_access(current_user, feedback.get("employeeId"), store)
        service.delete(feedback_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
