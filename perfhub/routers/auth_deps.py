"""
Auth dependencies.

Access tokens carry the identity uid as ``sub``; the role comes from the
``users/{uid}`` profile in the record store, read fresh on each request so a
role change takes effect without a new login.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from perfhub.services import auth as auth_service
from perfhub.services.employees import EmployeeService
from perfhub.store import collections, get_store
from perfhub.store.adapter import RecordRepository
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def user_from_token(token: str, store: RecordStore) -> Dict[str, Any]:
    payload = auth_service.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="TOKEN_EXPIRED",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = payload.get("sub")
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing subject in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile = RecordRepository(store).get_by_id(collections.USERS, uid)
    if profile is None:
        logger.warning(f"Authentication failed: no profile for {uid}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if profile.get("active") is False:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    profile.setdefault("uid", uid)
    return profile


def get_current_user(token: str = Depends(oauth2_scheme), store: RecordStore = Depends(get_store)) -> Dict[str, Any]:
    return user_from_token(token, store)


def require_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admins only.",
        )
    return current_user


def get_current_employee(
    current_user: Dict[str, Any] = Depends(get_current_user),
    store: RecordStore = Depends(get_store),
) -> Optional[Dict[str, Any]]:
    return EmployeeService(store).get_by_user_id(current_user["uid"])


def require_employee(employee: Optional[Dict[str, Any]] = Depends(get_current_employee)) -> Dict[str, Any]:
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No employee record is linked to this account",
        )
    return employee


def check_employee_access(current_user: Dict[str, Any], employee_id: str, store: RecordStore) -> None:
    """Admins reach every employee; everyone else only their own record."""
    if current_user.get("role") == "admin":
        return
    employee = EmployeeService(store).get_by_user_id(current_user["uid"])
    if employee is None or employee["id"] != employee_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You can only access your own records.",
        )
