import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from starlette.concurrency import run_in_threadpool

from perfhub.routers.auth_deps import get_current_user, require_admin, require_employee
from perfhub.schemas.employee import EmployeeOnboard, EmployeeResponse, EmployeeUpdate, EmployeeView, ProfileUpdate
from perfhub.services.dashboard import employee_view
from perfhub.services.employees import EmployeeService
from perfhub.services.identity import IdentityProvider, get_identity
from perfhub.services.photos import LocalPhotoStore, check_photo_size, get_photo_store, photo_key
from perfhub.store import collections, get_store
from perfhub.store.adapter import RecordRepository
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=List[EmployeeView])
def list_employees(
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return [employee_view(e) for e in EmployeeService(store).list_all()]


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
def onboard_employee(
    data: EmployeeOnboard,
    store: RecordStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return EmployeeService(store).onboard(
        identity,
        name=data.name,
        email=data.email,
        password=data.password,
        position=data.position,
        department=data.department,
    )


# --- the caller's own record ---

@router.get("/me", response_model=EmployeeView)
def get_my_employee(employee: Dict[str, Any] = Depends(require_employee)):
    return employee_view(employee)


@router.patch("/me", response_model=EmployeeView)
def update_my_employee(
    data: ProfileUpdate,
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
):
    changes = data.model_dump(by_alias=True, exclude_unset=True)
    return employee_view(EmployeeService(store).update(employee["id"], changes))


@router.post("/me/photo", response_model=EmployeeView)
async def upload_my_photo(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    employee: Dict[str, Any] = Depends(require_employee),
    store: RecordStore = Depends(get_store),
    identity: IdentityProvider = Depends(get_identity),
    photos: LocalPhotoStore = Depends(get_photo_store),
):
    key = photo_key(current_user["uid"], file.content_type)
    data = await file.read()
    check_photo_size(data)
    # File and store writes block, so they run off the event loop
    updated = await run_in_threadpool(
        _save_photo, key, data, current_user["uid"], employee["id"], store, identity, photos
    )
    return employee_view(updated)


def _save_photo(
    key: str,
    data: bytes,
    uid: str,
    employee_id: str,
    store: RecordStore,
    identity: IdentityProvider,
    photos: LocalPhotoStore,
) -> Dict[str, Any]:
    url = photos.upload(key, data)

    # The URL is kept on the employee record, the user profile and the identity
    updated = EmployeeService(store).update(employee_id, {"photoURL": url})
    RecordRepository(store).update(collections.USERS, uid, {"photoURL": url})
    identity.update_profile(uid, photo_url=url)
    logger.info(f"Profile photo updated for user {uid}")
    return updated


# --- admin access by id ---

@router.get("/{employee_id}", response_model=EmployeeView)
def get_employee(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    return employee_view(EmployeeService(store).require(employee_id))


@router.patch("/{employee_id}", response_model=EmployeeView)
def update_employee(
    employee_id: str,
    data: EmployeeUpdate,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    changes = data.model_dump(by_alias=True, exclude_unset=True)
    return employee_view(EmployeeService(store).update(employee_id, changes))


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_employee(
    employee_id: str,
    store: RecordStore = Depends(get_store),
    admin: Dict[str, Any] = Depends(require_admin),
):
    EmployeeService(store).delete(employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
