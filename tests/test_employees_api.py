import asyncio

import pytest
from fastapi import status

from perfhub.services.goals import GoalService
from perfhub.services.photos import LocalPhotoStore
from perfhub.store import collections
from perfhub.store.adapter import RecordRepository


def test_admin_onboards_employee(client, admin_headers, store):
    payload = {
        "name": "Sam Lee",
        "email": "sam@perfhub.io",
        "password": "Password123!",
        "position": "Designer",
        "department": "Product",
    }
    response = client.post("/api/employees", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["name"] == "Sam Lee"
    assert data["performanceScore"] == 0
    assert data["userId"]

    profile = RecordRepository(store).get_by_id(collections.USERS, data["userId"])
    assert profile["role"] == "employee"

    login = client.post("/api/auth/login", json={"email": "sam@perfhub.io", "password": "Password123!"})
    assert login.json()["user"]["employeeId"] == data["id"]


def test_onboard_duplicate_email(client, admin_headers, employee):
    payload = {"name": "Jane Again", "email": "jane@perfhub.io", "password": "Password123!"}
    response = client.post("/api/employees", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["errors"][0]["code"] == "EMAIL_IN_USE"


def test_onboard_short_password_is_a_validation_error(client, admin_headers):
    payload = {"name": "Short", "email": "short@perfhub.io", "password": "123"}
    response = client.post("/api/employees", json=payload, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["success"] is False


def test_onboarding_requires_admin(client, employee_headers):
    payload = {"name": "Nope", "email": "nope@perfhub.io", "password": "Password123!"}
    response = client.post("/api/employees", json=payload, headers=employee_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unrated_employee_shows_not_available(client, employee, employee_headers):
    response = client.get("/api/employees/me", headers=employee_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == employee["id"]
    assert data["scoreDisplay"] == "N/A"
    assert data["scorePercent"] == 0


def test_admin_lists_and_updates_employees(client, admin_headers, employee):
    response = client.patch(
        f"/api/employees/{employee['id']}", json={"performanceScore": 85}, headers=admin_headers
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["scoreDisplay"] == "85"

    listed = client.get("/api/employees", headers=admin_headers).json()
    assert [e["id"] for e in listed] == [employee["id"]]
    assert listed[0]["performanceScore"] == 85
    assert listed[0]["scorePercent"] == 85


def test_get_missing_employee(client, admin_headers):
    response = client.get("/api/employees/missing", headers=admin_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["errors"][0]["code"] == "NOT_FOUND"


def test_employee_updates_own_profile(client, employee_headers):
    response = client.patch(
        "/api/employees/me",
        json={"phone": "555-0100", "bio": "Backend engineer"},
        headers=employee_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["phone"] == "555-0100"
    assert data["bio"] == "Backend engineer"
    assert data["position"] == "Engineer"


def test_employee_cannot_set_own_score(client, employee_headers):
    response = client.patch("/api/employees/me", json={"performanceScore": 100}, headers=employee_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["performanceScore"] == 0


def test_photo_upload(client, employee, employee_headers, store, identity, photo_store):
    files = {"file": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")}
    response = client.post("/api/employees/me/photo", files=files, headers=employee_headers)
    assert response.status_code == status.HTTP_200_OK
    url = response.json()["photoURL"]
    assert url == f"/media/profile_photos/{employee['userId']}.png"

    profile = RecordRepository(store).get_by_id(collections.USERS, employee["userId"])
    assert profile["photoURL"] == url
    assert identity.get_identity(employee["userId"]).photo_url == url


def test_photo_write_runs_off_the_event_loop(client, employee_headers, monkeypatch):
    loops_seen = []
    original_upload = LocalPhotoStore.upload

    def recording_upload(self, key, data):
        try:
            loops_seen.append(asyncio.get_running_loop())
        except RuntimeError:
            loops_seen.append(None)
        return original_upload(self, key, data)

    monkeypatch.setattr(LocalPhotoStore, "upload", recording_upload)
    files = {"file": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")}
    response = client.post("/api/employees/me/photo", files=files, headers=employee_headers)
    assert response.status_code == status.HTTP_200_OK
    assert loops_seen == [None]


def test_photo_upload_rejects_non_images(client, employee_headers):
    files = {"file": ("notes.txt", b"hello", "text/plain")}
    response = client.post("/api/employees/me/photo", files=files, headers=employee_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"][0]["msg"] == "Please upload an image file"


def test_delete_employee_leaves_related_records(client, admin_headers, employee, store):
    goal = GoalService(store).create({"employeeId": employee["id"], "title": "Orphan me"})

    response = client.delete(f"/api/employees/{employee['id']}", headers=admin_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert GoalService(store).get(goal["id"]) is not None

    # Deleting again is not an error
    response = client.delete(f"/api/employees/{employee['id']}", headers=admin_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT


def test_admin_summary(client, admin_headers, employee, store):
    RecordRepository(store).create(collections.EMPLOYEES, {"name": "Rated", "performanceScore": 75})
    response = client.get("/api/admin/summary", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["employeeCount"] == 2
    assert data["ratedCount"] == 2
    assert data["averageScore"] == 38
    assert data["pendingRequests"] == 0


def test_submit_review(client, admin_headers, employee):
    ratings = {"overall": 4, "communication": 5, "teamwork": 3, "technicalSkills": 4}
    response = client.post(
        f"/api/admin/employees/{employee['id']}/review",
        json={"ratings": ratings, "comment": "Strong quarter"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["employee"]["performanceScore"] == 80
    assert len(data["metrics"]) == 3
    assert data["feedback"]["category"] == "performance review"


def test_submit_review_out_of_range(client, admin_headers, employee):
    ratings = {"overall": 7, "communication": 5, "teamwork": 3, "technicalSkills": 4}
    response = client.post(
        f"/api/admin/employees/{employee['id']}/review",
        json={"ratings": ratings},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["errors"][0]["code"] == "INVALID_RATING"
