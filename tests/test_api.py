# /tests/test_api.py

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.services.providers.base import ProviderError, ProviderResponse
from app.services.providers.sql_provider import SQLProvider

from conftest import TEACHER_EMAIL, TEACHER_PASSWORD

ANN = {"name": "Ann", "email": "a@x.com", "grade": "5"}


@pytest.fixture
def client(sql_store):
    settings = Settings(provider="sql", log_level="DEBUG")
    app = create_app(settings=settings, provider_factory=sql_store.client)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    signup = client.post(
        "/api/auth/signup",
        json={"email": TEACHER_EMAIL, "password": TEACHER_PASSWORD, "full_name": "Jane Doe", "school_name": "Maple High"},
    )
    assert signup.status_code == 201
    login = client.post("/api/auth/login", json={"email": TEACHER_EMAIL, "password": TEACHER_PASSWORD})
    assert login.status_code == 200
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


def test_health_check(client):
    assert client.get("/").json()["status"].startswith("Teacher Dashboard API")


def test_login_returns_token_and_dashboard_redirect(client, auth_headers):
    state = client.get("/api/auth/state", headers=auth_headers).json()
    assert state["authenticated"] is True
    assert state["user"] == {"name": "Jane Doe", "school": "Maple High"}


def test_login_response_carries_redirect_and_notification(client, auth_headers):
    response = client.post("/api/auth/login", json={"email": TEACHER_EMAIL, "password": TEACHER_PASSWORD})
    state = response.json()["state"]
    assert state["redirect"] == {"target": "dashboard", "delay": 1.0}
    assert state["notification"]["level"] == "success"


def test_bad_login_is_400_with_provider_message(client, auth_headers):
    response = client.post("/api/auth/login", json={"email": TEACHER_EMAIL, "password": "wrong"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid login credentials"


def test_dashboard_without_session_redirects_to_login(client):
    state = client.get("/api/dashboard").json()
    assert state["redirect"]["target"] == "login"
    assert state["students"] == []


def test_protected_routes_require_token(client):
    assert client.get("/api/students").status_code == 401
    assert client.get("/api/students", headers={"Authorization": "Bearer bogus"}).status_code == 401


def test_dashboard_modal_flow(client, auth_headers):
    state = client.get("/api/dashboard", headers=auth_headers).json()
    assert state["user"]["name"] == "Jane Doe"
    assert "No students yet" in state["table_html"]

    opened = client.post("/api/dashboard/modal/new", headers=auth_headers).json()
    assert opened["modal"]["phase"] == "editing"

    submitted = client.post("/api/dashboard/modal/submit", json=ANN, headers=auth_headers).json()
    assert submitted["result"]["success"] is True
    assert submitted["state"]["modal"]["phase"] == "idle"
    assert submitted["state"]["stats"]["totalStudents"] == 1
    student_id = submitted["state"]["students"][0]["id"]

    editing = client.post(f"/api/dashboard/modal/edit/{student_id}", headers=auth_headers).json()
    assert editing["modal"]["title"] == "Edit Student"
    assert editing["modal"]["fields"]["email"] == "a@x.com"


def test_delete_requires_confirmation(client, auth_headers):
    created = client.post("/api/students", json=ANN, headers=auth_headers)
    assert created.status_code == 201
    student_id = created.json()[0]["id"]

    asked = client.post(f"/api/dashboard/students/{student_id}/delete", headers=auth_headers).json()
    assert asked["confirmation"]["action"] == "delete"

    answered = client.post("/api/dashboard/confirmation", json={"decision": True}, headers=auth_headers).json()
    assert answered["result"]["success"] is True
    assert answered["state"]["students"] == []

    nothing_pending = client.post("/api/dashboard/confirmation", json={"decision": True}, headers=auth_headers)
    assert nothing_pending.status_code == 409


def test_rest_crud_endpoints(client, auth_headers):
    student_id = client.post("/api/students", json=ANN, headers=auth_headers).json()[0]["id"]

    updated = client.put(f"/api/students/{student_id}", json={**ANN, "grade": "6"}, headers=auth_headers)
    assert updated.json()[0]["grade"] == "6"

    assert client.delete(f"/api/students/{student_id}", headers=auth_headers).status_code == 400
    assert client.delete(f"/api/students/{student_id}?confirm=true", headers=auth_headers).status_code == 204
    assert client.delete(f"/api/students/{student_id}?confirm=true", headers=auth_headers).status_code == 404
    assert client.get("/api/students", headers=auth_headers).json() == []


def test_export_csv(client, auth_headers):
    client.post("/api/students", json=ANN, headers=auth_headers)
    response = client.get("/api/students/export", headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Ann,a@x.com,5" in response.text


def test_logout_invalidates_token(client, auth_headers):
    response = client.post("/api/auth/logout", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["authenticated"] is False
    assert client.get("/api/auth/me", headers=auth_headers).status_code == 401


def test_expired_session_loses_access(client, auth_headers, sql_store):
    assert client.get("/api/students", headers=auth_headers).status_code == 200

    # Past the 60 minute session lifetime.
    sql_store.clock = lambda: datetime.now(timezone.utc) + timedelta(hours=5)

    assert client.get("/api/students", headers=auth_headers).status_code == 401
    assert client.post("/api/students", json=ANN, headers=auth_headers).status_code == 401
    state = client.get("/api/dashboard", headers=auth_headers).json()
    assert state["redirect"]["target"] == "login"
    assert state["students"] == []


def test_refresh_extends_session(client, auth_headers):
    response = client.post("/api/auth/refresh", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["access_token"] == auth_headers["Authorization"].split(" ", 1)[1]
    assert body["token_type"] == "bearer"
    assert body["state"]["authenticated"] is True


def test_refresh_failure_is_401(client, auth_headers, mocker):
    mocker.patch.object(
        SQLProvider,
        "refresh_session",
        return_value=ProviderResponse(error=ProviderError("Refresh token revoked", code="session_expired")),
    )

    response = client.post("/api/auth/refresh", headers=auth_headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "Refresh token revoked"


def test_dashboard_summary_has_placeholder_stats(client, auth_headers):
    client.post("/api/students", json=ANN, headers=auth_headers)

    response = client.get("/api/dashboard/summary", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "totalStudents": 1,
        "activeClasses": 1,
        "totalAssignments": None,
        "averageGrade": None,
    }


def test_dashboard_refresh_reloads_roster(client, auth_headers):
    client.get("/api/dashboard", headers=auth_headers)
    client.post("/api/students", json=ANN, headers=auth_headers)

    response = client.post("/api/dashboard/refresh", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["success"] is True
    assert [s["name"] for s in body["state"]["students"]] == ["Ann"]
    assert body["state"]["stats"]["totalStudents"] == 1


def test_dashboard_modal_close(client, auth_headers):
    client.post("/api/dashboard/modal/new", headers=auth_headers)

    response = client.post("/api/dashboard/modal/close", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["modal"]["phase"] == "idle"


def test_dashboard_logout_after_confirmation(client, auth_headers):
    asked = client.post("/api/dashboard/logout", headers=auth_headers)
    assert asked.status_code == 200
    assert asked.json()["confirmation"]["action"] == "logout"

    answered = client.post("/api/dashboard/confirmation", json={"decision": True}, headers=auth_headers)

    assert answered.status_code == 200
    body = answered.json()
    assert body["result"]["success"] is True
    assert body["state"]["redirect"] == {"target": "login", "delay": 1.0}
    assert body["state"]["notification"]["message"] == "Logging out..."
    assert client.get("/api/auth/me", headers=auth_headers).status_code == 401


def test_confirmation_without_pending_action_is_409(client, auth_headers):
    response = client.post("/api/dashboard/confirmation", json={"decision": False}, headers=auth_headers)

    assert response.status_code == 409
    assert response.json()["detail"] == "Nothing is awaiting confirmation"
