import pytest
from fastapi import status


def _give(client, headers, employee_id, content="Great work", category="general", rating=4):
    payload = {"employeeId": employee_id, "content": content, "category": category, "rating": rating}
    return client.post("/api/feedback", json=payload, headers=headers)


def test_admin_gives_feedback(client, admin_headers, employee_headers, employee):
    response = _give(client, admin_headers, employee["id"])
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["reviewerName"] == "Admin User"
    assert data["isResponseToRequest"] is False

    mine = client.get("/api/feedback/me", headers=employee_headers).json()
    assert [f["id"] for f in mine] == [data["id"]]


def test_feedback_rating_out_of_range(client, admin_headers, employee):
    response = _give(client, admin_headers, employee["id"], rating=9)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_request_and_respond_flow(client, admin_headers, employee_headers, employee):
    response = client.post(
        "/api/feedback/request",
        json={"feedbackType": "technical", "description": "Please review my design doc"},
        headers=employee_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    request = response.json()
    assert request["category"] == "request-technical"
    assert request["status"] == "pending"
    assert request["requestedBy"] == "Jane Doe"

    admin_inbox = client.get("/api/notifications", headers=admin_headers).json()
    assert admin_inbox[0]["title"] == "New Feedback Request"

    pending = client.get("/api/feedback/requests", headers=admin_headers).json()
    assert [r["id"] for r in pending] == [request["id"]]

    response = client.post(
        f"/api/feedback/requests/{request['id']}/respond",
        json={"content": "Clear and well argued."},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    answer = response.json()
    assert answer["isResponseToRequest"] is True
    assert answer["category"] == "technical"

    assert client.get("/api/feedback/requests", headers=admin_headers).json() == []

    response = client.post(
        f"/api/feedback/requests/{request['id']}/respond",
        json={"content": "Twice?"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_admin_cannot_request_feedback_without_employee_record(client, admin_headers):
    response = client.post(
        "/api/feedback/request",
        json={"feedbackType": "general", "description": "?"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_employee_deletes_own_feedback(client, admin_headers, employee_headers, employee):
    feedback = _give(client, admin_headers, employee["id"]).json()
    response = client.delete(f"/api/feedback/{feedback['id']}", headers=employee_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/api/feedback/me", headers=employee_headers).json() == []

    # Already gone: still a success
    response = client.delete(f"/api/feedback/{feedback['id']}", headers=employee_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT


def test_clear_all_feedback(client, admin_headers, employee_headers, employee):
    _give(client, admin_headers, employee["id"], content="one")
    _give(client, admin_headers, employee["id"], content="two")

    response = client.delete("/api/feedback/me", headers=employee_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"deleted": 2}
    assert client.get("/api/feedback/me", headers=employee_headers).json() == []


def test_employee_cannot_read_other_feedback(client, admin_headers, employee_headers, identity, store):
    from perfhub.services.employees import EmployeeService
    other = EmployeeService(store).onboard(identity, name="Bob", email="bob@perfhub.io", password="Password123!")
    feedback = _give(client, admin_headers, other["id"]).json()

    response = client.get(f"/api/feedback/employee/{other['id']}", headers=employee_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.delete(f"/api/feedback/{feedback['id']}", headers=employee_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_notification_endpoints(client, admin_headers, employee_headers, employee):
    _give(client, admin_headers, employee["id"], content="one")
    _give(client, admin_headers, employee["id"], content="two")

    inbox = client.get("/api/notifications", headers=employee_headers).json()
    assert len(inbox) == 2

    response = client.patch(f"/api/notifications/{inbox[0]['id']}/read", headers=employee_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["read"] is True

    unread = client.get("/api/notifications", params={"unread_only": True}, headers=employee_headers).json()
    assert [n["id"] for n in unread] == [inbox[1]["id"]]

    response = client.post("/api/notifications/mark-all-read", headers=employee_headers)
    assert response.json() == {"updated": 1}


def test_cannot_mark_someone_elses_notification(client, admin_headers, employee_headers, employee):
    _give(client, admin_headers, employee["id"])
    note = client.get("/api/notifications", headers=employee_headers).json()[0]
    response = client.patch(f"/api/notifications/{note['id']}/read", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_demo_notifications_disabled_by_default(client, employee_headers):
    response = client.post("/api/notifications/demo", headers=employee_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_dashboard_for_employee(client, admin_headers, employee_headers, employee):
    _give(client, admin_headers, employee["id"], content="Nice")
    client.post(
        "/api/feedback/request",
        json={"feedbackType": "general", "description": "How am I doing?"},
        headers=employee_headers,
    )

    data = client.get("/api/dashboard/me", headers=employee_headers).json()
    assert data["employee"]["scoreDisplay"] == "N/A"
    assert data["goals"]["emptyMessage"] == "No goals set yet."
    assert [f["content"] for f in data["feedback"]] == ["Nice"]
    assert [r["category"] for r in data["requests"]] == ["request-general"]
    assert data["metrics"] == []
    assert data["unreadNotifications"] == 1


def test_dashboard_without_employee_record(client, admin_headers):
    data = client.get("/api/dashboard/me", headers=admin_headers).json()
    assert data["employee"] is None
    assert data["feedback"] == []
