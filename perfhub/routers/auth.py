import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from perfhub.core.limiter import limiter
from perfhub.routers.auth_deps import get_current_user
from perfhub.schemas.auth import LoginRequest, RefreshRequest, Token, UserProfile
from perfhub.schemas.common import Message
from perfhub.services.employees import EmployeeService
from perfhub.services.identity import IdentityProvider, get_identity
from perfhub.store import collections, get_store
from perfhub.store.adapter import RecordRepository
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/login", response_model=Token)
@limiter.limit("10/minute")
def login(
    request: Request,
    login_data: LoginRequest,
    identity: IdentityProvider = Depends(get_identity),
    store: RecordStore = Depends(get_store),
):
    signed_in = identity.sign_in(login_data.email, login_data.password)

    # The profile-sync listener has run by now; a missing profile means it
    # could not be recreated
    profile = RecordRepository(store).get_by_id(collections.USERS, signed_in.uid)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User profile not found. Please contact an administrator.",
        )
    if profile.get("active") is False:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    employee = EmployeeService(store).get_by_user_id(signed_in.uid)
    tokens = identity.issue_tokens(signed_in, profile.get("role"))
    logger.info(f"User {signed_in.uid} signed in")
    return {
        **tokens,
        "user": {
            "uid": signed_in.uid,
            "email": signed_in.email,
            "displayName": profile.get("displayName"),
            "role": profile.get("role"),
            "employeeId": employee["id"] if employee else None,
        },
    }


@router.post("/refresh", response_model=Token)
def refresh_token(data: RefreshRequest, identity: IdentityProvider = Depends(get_identity)):
    return identity.refresh(data.refresh_token)


@router.post("/logout", response_model=Message)
def logout(
    current_user: Dict[str, Any] = Depends(get_current_user),
    identity: IdentityProvider = Depends(get_identity),
):
    identity.sign_out(current_user["uid"])
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserProfile)
def get_me(
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
):
    employee = EmployeeService(store).get_by_user_id(current_user["uid"])
    return {**current_user, "employeeId": employee["id"] if employee else None}
