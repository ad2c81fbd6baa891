from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from perfhub.routers.auth_deps import check_employee_access, get_current_user, require_employee
from perfhub.schemas.metric import LatestMetric, MetricResponse
from perfhub.services.metrics import MetricService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/me/latest", response_model=List[LatestMetric])
def my_latest_metrics(
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
):
    return MetricService(store).latest_for_employee(employee["id"])


@router.get("/employee/{employee_id}", response_model=List[MetricResponse])
def list_metrics(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    check_employee_access(current_user, employee_id, store)
    metrics = MetricService(store).list_for_employee(employee_id)
    return sorted(metrics, key=lambda m: str(m.get("date") or ""), reverse=True)


@router.get("/employee/{employee_id}/latest", response_model=List[LatestMetric])
def latest_metrics(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    check_employee_access(current_user, employee_id, store)
    return MetricService(store).latest_for_employee(employee_id)
