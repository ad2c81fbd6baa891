from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from perfhub.routers.auth_deps import get_current_employee, get_current_user
from perfhub.schemas.dashboard import DashboardView
from perfhub.services.dashboard import DashboardService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/me", response_model=DashboardView)
def my_dashboard(
    current_user: Dict[str, Any] = Depends(get_current_user),
    employee: Optional[Dict[str, Any]] = Depends(get_current_employee),
    store: RecordStore = Depends(get_store),
):
    return DashboardService(store).for_user(current_user["uid"], employee)
