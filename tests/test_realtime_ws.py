import pytest
from starlette.websockets import WebSocketDisconnect

from perfhub.core.config import settings
from perfhub.services.feedback import FeedbackService
from perfhub.services.goals import GoalService
from perfhub.services.notification import NotificationService


def _url(token):
    return f"/api/realtime/dashboard?token={token}"


def _receive_until(ws, predicate, limit=20):
    """Read frames until one matches; return it with everything read before it."""
    seen = []
    for _ in range(limit):
        frame = ws.receive_json()
        seen.append(frame)
        if predicate(frame):
            return frame, seen
    raise AssertionError(f"No matching frame in {seen}")


def _snapshot_of(name):
    return lambda f: f.get("type") == "snapshot" and f.get("collection") == name and not f.get("optimistic")


def _toast(f):
    return f.get("type") == "toast"


def _initial_views(ws, names=("notifications", "goals", "feedbacks", "performanceMetrics")):
    views = {}
    for _ in names:
        frame = ws.receive_json()
        views[frame["collection"]] = frame["items"]
    assert set(views) == set(names)
    return views


def test_socket_rejects_invalid_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(_url("not-a-token")) as ws:
            ws.receive_json()
    assert exc.value.code == 1008


def test_initial_snapshots(client, employee, store, get_token):
    GoalService(store).create({"employeeId": employee["id"], "title": "Ship it"})

    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        views = _initial_views(ws)
    assert [g["title"] for g in views["goals"]] == ["Ship it"]
    assert [n["title"] for n in views["notifications"]] == ["New Goal Assigned"]
    assert views["feedbacks"] == []


def test_user_without_employee_gets_only_notifications(client, admin_user, get_token):
    with client.websocket_connect(_url(get_token(admin_user["uid"]))) as ws:
        views = _initial_views(ws, names=("notifications",))
        ws.send_json({"action": "clear_all_feedback"})
        frame, _ = _receive_until(ws, _toast)
    assert views["notifications"] == []
    assert frame["kind"] == "success"


def test_store_changes_are_pushed(client, employee, admin_user, store, get_token):
    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        FeedbackService(store).give(employee["id"], admin_user["uid"], "Admin User", "Pushed", "general")
        frame, _ = _receive_until(ws, lambda f: _snapshot_of("feedbacks")(f) and f["items"])
    assert frame["items"][0]["content"] == "Pushed"


def test_clear_feedback_is_optimistic(client, employee, admin_user, store, get_token):
    feedback = FeedbackService(store).give(employee["id"], admin_user["uid"], "Admin User", "Remove me", "general")

    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "clear_feedback", "id": feedback["id"]})
        toast, frames = _receive_until(ws, _toast)

    optimistic = [f for f in frames if f.get("optimistic")]
    assert optimistic and optimistic[0]["collection"] == "feedbacks"
    assert optimistic[0]["items"] == []
    assert toast["kind"] == "success"
    assert toast["message"] == "Feedback removed successfully"
    assert toast["dismissAfter"] == 5
    assert FeedbackService(store).get(feedback["id"]) is None


def test_failed_delete_rolls_back(client, employee, admin_user, store, get_token, monkeypatch):
    feedback = FeedbackService(store).give(employee["id"], admin_user["uid"], "Admin User", "Sticky", "general")

    def refuse(self, feedback_id):
        raise RuntimeError("permission denied")

    monkeypatch.setattr(FeedbackService, "delete", refuse)
    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "clear_feedback", "id": feedback["id"]})
        toast, frames = _receive_until(ws, _toast)

    assert toast["kind"] == "error"
    assert toast["message"] == "Failed to remove feedback"
    restored = frames[-2]
    assert restored["collection"] == "feedbacks"
    assert [f["id"] for f in restored["items"]] == [feedback["id"]]


def test_complete_goal(client, employee, store, get_token):
    goal = GoalService(store).create({"employeeId": employee["id"], "title": "Finish"})

    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "complete_goal", "id": goal["id"]})
        toast, _ = _receive_until(ws, _toast)
    assert toast["message"] == "Goal marked as complete!"
    assert GoalService(store).get(goal["id"])["status"] == "completed"


def test_mark_all_notifications_read(client, employee, store, get_token):
    notifications = NotificationService(store)
    notifications.create_notification(employee["userId"], "One", "first")
    notifications.create_notification(employee["userId"], "Two", "second")

    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "mark_all_notifications_read"})
        toast, frames = _receive_until(ws, _toast)

    optimistic = [f for f in frames if f.get("optimistic")][0]
    assert all(n["read"] for n in optimistic["items"])
    assert toast["message"] == "All notifications marked as read"
    assert notifications.list_for_user(employee["userId"], unread_only=True) == []


def test_unknown_action_and_missing_item(client, employee, get_token):
    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "launch_rockets"})
        unknown = ws.receive_json()
        ws.send_json({"action": "clear_feedback", "id": "missing"})
        missing = ws.receive_json()
    assert unknown["message"] == "Unknown action: launch_rockets"
    assert missing["kind"] == "error"
    assert missing["message"] == "Feedback not found"


def test_mark_single_notification_read(client, employee, store, get_token):
    notifications = NotificationService(store)
    note = notifications.create_notification(employee["userId"], "One", "first")

    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "mark_notification_read", "id": note["id"]})
        toast, _ = _receive_until(ws, _toast)
    assert toast["message"] == "Notification marked as read"
    assert notifications.list_for_user(employee["userId"], unread_only=True) == []


def test_failed_delete_stays_hidden_without_deletion_rollback(client, employee, admin_user, store, get_token, monkeypatch):
    feedback = FeedbackService(store).give(employee["id"], admin_user["uid"], "Admin User", "Hidden", "general")

    def refuse(self, feedback_id):
        raise RuntimeError("permission denied")

    monkeypatch.setattr(FeedbackService, "delete", refuse)
    monkeypatch.setattr(settings, "rollback_failed_deletions", False)
    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_json({"action": "clear_feedback", "id": feedback["id"]})
        toast, frames = _receive_until(ws, _toast)

    assert toast["kind"] == "error"
    assert toast["message"] == "Failed to remove feedback"
    after_failure = frames[-2]
    assert after_failure["collection"] == "feedbacks"
    assert after_failure["items"] == []
    # The record itself was never deleted
    assert FeedbackService(store).get(feedback["id"]) is not None


def test_malformed_and_binary_frames_get_a_toast(client, employee, get_token):
    with client.websocket_connect(_url(get_token(employee["userId"]))) as ws:
        _initial_views(ws)
        ws.send_text("not json")
        malformed = ws.receive_json()
        ws.send_bytes(b"\x00\x01")
        binary = ws.receive_json()
        ws.send_json({"action": "launch_rockets"})
        still_open = ws.receive_json()

    assert malformed["message"] == "Malformed message"
    assert binary["message"] == "Malformed message"
    assert still_open["message"] == "Unknown action: launch_rockets"
