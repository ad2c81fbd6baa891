"""
Live dashboard channel.

One per connected WebSocket client. Holds the client's view lists (goals,
feedback, metrics, notifications), keeps them fed from store subscriptions,
and runs the client's optimistic actions against them.

Store callbacks fire on whatever thread performed the write; they are
handed to the event loop with ``call_soon_threadsafe`` and applied there, so
the view lists are only ever touched from the loop.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocket

from perfhub.realtime.query import Subscription
from perfhub.realtime.reconciliation import OptimisticList, Toast
from perfhub.services.feedback import FeedbackService
from perfhub.services.goals import GoalService, sort_for_dashboard
from perfhub.services.metrics import MetricService
from perfhub.services.notification import NotificationService, newest_first
from perfhub.store.base import RecordStore

logger = logging.getLogger(__name__)

GOALS = "goals"
FEEDBACKS = "feedbacks"
METRICS = "performanceMetrics"
NOTIFICATIONS = "notifications"

# How each view is ordered before it is sent
_ORDERING: Dict[str, Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]] = {
    GOALS: sort_for_dashboard,
    FEEDBACKS: lambda items: sorted(items, key=lambda f: str(f.get("createdAt") or ""), reverse=True),
    METRICS: lambda items: sorted(items, key=lambda m: str(m.get("date") or ""), reverse=True),
    NOTIFICATIONS: newest_first,
}


class ActionError(Exception):
    """A client action that cannot be carried out; reported as an error toast."""


class DashboardChannel:

    def __init__(
        self,
        websocket: WebSocket,
        store: RecordStore,
        user: Dict[str, Any],
        employee: Optional[Dict[str, Any]] = None,
        rollback_deletions: bool = True,
    ):
        self.websocket = websocket
        self.user = user
        self.employee = employee
        self.notifications = NotificationService(store)
        self.goals = GoalService(store, self.notifications)
        self.feedback = FeedbackService(store, self.notifications)
        self.metrics = MetricService(store, self.notifications)
        self.views: Dict[str, OptimisticList] = {
            GOALS: OptimisticList(),
            FEEDBACKS: OptimisticList(rollback_on_failure=rollback_deletions),
            METRICS: OptimisticList(),
            NOTIFICATIONS: OptimisticList(),
        }
        self._events: "asyncio.Queue" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscriptions: List[Subscription] = []
        self._actions = {
            "clear_feedback": self._clear_feedback,
            "clear_all_feedback": self._clear_all_feedback,
            "complete_goal": self._complete_goal,
            "mark_notification_read": self._mark_notification_read,
            "mark_all_notifications_read": self._mark_all_notifications_read,
        }

    # --- subscriptions ---

    def _listener(self, name: str):
        def deliver(records):
            self._loop.call_soon_threadsafe(self._events.put_nowait, ("snapshot", name, records))
        return deliver

    def _error_listener(self, name: str):
        def report(error: Exception):
            self._loop.call_soon_threadsafe(self._events.put_nowait, ("error", name, error))
        return report

    async def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        uid = self.user["uid"]
        self._subscriptions.append(await run_in_threadpool(
            self.notifications.subscribe_for_user, uid, self._listener(NOTIFICATIONS), self._error_listener(NOTIFICATIONS)
        ))
        if self.employee is None:
            return
        employee_id = self.employee["id"]
        for name, service in ((GOALS, self.goals), (FEEDBACKS, self.feedback), (METRICS, self.metrics)):
            self._subscriptions.append(await run_in_threadpool(
                service.subscribe_for_employee, employee_id, self._listener(name), self._error_listener(name)
            ))

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        logger.info(f"Dashboard channel closed for {self.user['uid']}")

    # --- outgoing frames ---

    async def send_view(self, name: str, optimistic: bool = False) -> None:
        items = _ORDERING[name](self.views[name].items)
        await self.websocket.send_json({
            "type": "snapshot",
            "collection": name,
            "items": items,
            "optimistic": optimistic,
        })

    async def send_toast(self, toast: Toast) -> None:
        await self.websocket.send_json(toast.to_dict())

    async def _apply_event(self, event) -> None:
        kind, name, payload = event
        if kind == "snapshot":
            self.views[name].apply_snapshot(payload)
            await self.send_view(name)
        else:
            logger.error(f"Live {name} view failed for {self.user['uid']}: {payload}")
            await self.send_toast(Toast.error(f"Live updates for {name} stopped"))

    # --- main loop ---

    async def run(self) -> None:
        """Pump store events and client messages until the client goes away."""
        receive = asyncio.ensure_future(self.websocket.receive_json())
        event = asyncio.ensure_future(self._events.get())
        try:
            while True:
                done, _ = await asyncio.wait({receive, event}, return_when=asyncio.FIRST_COMPLETED)
                if event in done:
                    await self._apply_event(event.result())
                    event = asyncio.ensure_future(self._events.get())
                if receive in done:
                    try:
                        message = receive.result()
                    except (ValueError, KeyError):
                        # Not JSON, or a binary frame with no text payload
                        await self.send_toast(Toast.error("Malformed message"))
                    else:
                        await self.handle(message)
                    receive = asyncio.ensure_future(self.websocket.receive_json())
        finally:
            receive.cancel()
            event.cancel()

    async def handle(self, message: Any) -> None:
        action = message.get("action") if isinstance(message, dict) else None
        handler = self._actions.get(action)
        if handler is None:
            await self.send_toast(Toast.error(f"Unknown action: {action}"))
            return
        try:
            await handler(message)
        except ActionError as e:
            await self.send_toast(Toast.error(str(e)))

    # --- optimistic actions ---

    def _commit(self, name: str, fn: Callable[..., Any], *args) -> Callable[[], Awaitable[Any]]:
        """Commit step: show the optimistic view, then run the write off the loop."""
        async def commit():
            await self.send_view(name, optimistic=True)
            return await run_in_threadpool(fn, *args)
        return commit

    async def _run_optimistic(self, name: str, mutate: Awaitable[None], success: str, failure: str) -> None:
        try:
            await mutate
        except Exception as e:
            logger.warning(f"{failure} for {self.user['uid']}: {e}")
            await self.send_view(name)
            await self.send_toast(Toast.error(failure))
            return
        await self.send_toast(Toast.success(success))

    def _require_item(self, name: str, item_id: Any, label: str) -> str:
        if not item_id or self.views[name].get(item_id) is None:
            raise ActionError(f"{label} not found")
        return item_id

    async def _clear_feedback(self, message: Dict[str, Any]) -> None:
        feedback_id = self._require_item(FEEDBACKS, message.get("id"), "Feedback")
        view = self.views[FEEDBACKS]
        await self._run_optimistic(
            FEEDBACKS,
            view.remove(feedback_id, self._commit(FEEDBACKS, self.feedback.delete, feedback_id)),
            "Feedback removed successfully",
            "Failed to remove feedback",
        )

    async def _clear_all_feedback(self, message: Dict[str, Any]) -> None:
        view = self.views[FEEDBACKS]
        ids = view.ids

        def delete_all():
            for feedback_id in ids:
                self.feedback.delete(feedback_id)

        await self._run_optimistic(
            FEEDBACKS,
            view.remove_all(self._commit(FEEDBACKS, delete_all)),
            "All feedback cleared successfully",
            "Failed to clear all feedback",
        )

    async def _complete_goal(self, message: Dict[str, Any]) -> None:
        goal_id = self._require_item(GOALS, message.get("id"), "Goal")
        view = self.views[GOALS]
        await self._run_optimistic(
            GOALS,
            view.patch(goal_id, {"status": "completed"}, self._commit(GOALS, self.goals.complete, goal_id)),
            "Goal marked as complete!",
            "Failed to update goal",
        )

    async def _mark_notification_read(self, message: Dict[str, Any]) -> None:
        notification_id = self._require_item(NOTIFICATIONS, message.get("id"), "Notification")
        view = self.views[NOTIFICATIONS]
        await self._run_optimistic(
            NOTIFICATIONS,
            view.patch(notification_id, {"read": True},
                       self._commit(NOTIFICATIONS, self.notifications.mark_read, notification_id)),
            "Notification marked as read",
            "Failed to update notification",
        )

    async def _mark_all_notifications_read(self, message: Dict[str, Any]) -> None:
        view = self.views[NOTIFICATIONS]
        unread = [n["id"] for n in view.items if not n.get("read")]

        def mark_all():
            for notification_id in unread:
                self.notifications.mark_read(notification_id)

        await self._run_optimistic(
            NOTIFICATIONS,
            view.patch_many(unread, {"read": True}, self._commit(NOTIFICATIONS, mark_all)),
            "All notifications marked as read",
            "Failed to update notifications",
        )
