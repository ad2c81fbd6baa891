from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status

from perfhub.routers.auth_deps import check_employee_access, get_current_user, require_admin, require_employee
from perfhub.schemas.goal import GoalCreate, GoalList, GoalResponse, GoalUpdate
from perfhub.services.dashboard import goals_view
from perfhub.services.employees import EmployeeService
from perfhub.services.goals import GoalService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("/me", response_model=GoalList)
def list_my_goals(
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
):
    return goals_view(GoalService(store).list_for_employee(employee["id"]))


@router.get("/employee/{employee_id}", response_model=GoalList)
def list_employee_goals(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    check_employee_access(current_user, employee_id, store)
    return goals_view(GoalService(store).list_for_employee(employee_id))


@router.post("/employee/{employee_id}", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(
    employee_id: str,
    data: GoalCreate,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    EmployeeService(store).require(employee_id)
    payload = data.model_dump(by_alias=True, exclude_none=True)
    return GoalService(store).create({"employeeId": employee_id, **payload})


@router.patch("/{goal_id}", response_model=GoalResponse)
def update_goal(
    goal_id: str,
    data: GoalUpdate,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return GoalService(store).update(goal_id, data.model_dump(by_alias=True, exclude_unset=True))


@router.post("/{goal_id}/complete", response_model=GoalResponse)
def complete_goal(
    goal_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    goals = GoalService(store)
    check_employee_access(current_user, goals.require(goal_id).get("employeeId"), store)
    return goals.complete(goal_id)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(
    goal_id: str,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    GoalService(store).delete(goal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
