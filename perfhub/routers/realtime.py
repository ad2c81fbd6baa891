import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from perfhub.core.config import settings
from perfhub.realtime.channel import DashboardChannel
from perfhub.routers.auth_deps import user_from_token
from perfhub.services.employees import EmployeeService
from perfhub.store import get_store
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


@router.websocket("/dashboard")
async def dashboard_socket(websocket: WebSocket, token: str = "", store: RecordStore = Depends(get_store)):
    try:
        user = await run_in_threadpool(user_from_token, token, store)
    except HTTPException as e:
        logger.info(f"Rejected dashboard socket: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    employee = await run_in_threadpool(EmployeeService(store).get_by_user_id, user["uid"])
    await websocket.accept()

    channel = DashboardChannel(
        websocket, store, user, employee, rollback_deletions=settings.rollback_failed_deletions
    )
    try:
        await channel.open()
        await channel.run()
    except WebSocketDisconnect:
        logger.info(f"Dashboard socket disconnected for {user['uid']}")
    finally:
        channel.close()
