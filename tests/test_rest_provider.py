# /tests/test_rest_provider.py

import json

import httpx
import pytest

from app.models.session_model import SessionEvent
from app.services.providers.base import OrderBy
from app.services.providers.rest_provider import RestProvider

API_KEY = "anon-key"
USER = {"id": "u-1", "email": "teacher@example.com", "user_metadata": {"full_name": "Jane Doe", "school_name": "Maple High"}}
TOKEN_PAYLOAD = {"access_token": "at-1", "refresh_token": "rt-1", "expires_in": 3600, "user": USER}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://backend.test", transport=httpx.MockTransport(handler))


@pytest.fixture
def requests_seen():
    return []


async def test_sign_in_parses_session_and_emits_event(requests_seen):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        return httpx.Response(200, json=TOKEN_PAYLOAD)

    async with _client(handler) as http:
        provider = RestProvider(http, API_KEY)
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        response = await provider.sign_in("teacher@example.com", "secret123")

    assert response.data.user_id == "u-1"
    assert response.data.school_name == "Maple High"
    assert events == [SessionEvent.SIGNED_IN]
    request = requests_seen[0]
    assert request.url.path == "/auth/v1/token"
    assert request.url.params["grant_type"] == "password"
    assert request.headers["apikey"] == API_KEY


async def test_auth_error_message_comes_from_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})

    async with _client(handler) as http:
        response = await RestProvider(http, API_KEY).sign_in("teacher@example.com", "bad")

    assert response.error.message == "Invalid login credentials"


async def test_network_failure_becomes_error_value():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as http:
        response = await RestProvider(http, API_KEY).sign_up("a@x.com", "secret123", "A", "B")

    assert response.error.code == "network_error"


async def test_table_requests_use_postgrest_filters(requests_seen):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        if request.url.path == "/auth/v1/token":
            return httpx.Response(200, json=TOKEN_PAYLOAD)
        if request.method == "GET":
            return httpx.Response(200, json=[{"id": "stu_1", "teacher_id": "u-1", "name": "Ann", "email": "a@x.com", "grade": "5"}])
        if request.method == "DELETE":
            return httpx.Response(200, json=[])
        return httpx.Response(201, json=json.loads(request.content))

    async with _client(handler) as http:
        provider = RestProvider(http, API_KEY)
        await provider.sign_in("teacher@example.com", "secret123")
        table = provider.table("students")

        selected = await table.select({"teacher_id": "u-1"}, OrderBy("created_at", ascending=False))
        inserted = await table.insert([{"name": "Ben", "teacher_id": "u-1"}])
        deleted = await table.delete({"id": "stu_9", "teacher_id": "u-1"})

    get_request, post_request, delete_request = requests_seen[1:]
    assert get_request.url.params["teacher_id"] == "eq.u-1"
    assert get_request.url.params["order"] == "created_at.desc"
    assert get_request.headers["Authorization"] == "Bearer at-1"
    assert post_request.headers["Prefer"] == "return=representation"
    assert delete_request.url.params["id"] == "eq.stu_9"
    assert selected.data[0]["name"] == "Ann"
    assert inserted.data == [{"name": "Ben", "teacher_id": "u-1"}]
    assert deleted.data == []


async def test_set_session_fetches_user():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/auth/v1/user"
        assert request.headers["Authorization"] == "Bearer at-7"
        return httpx.Response(200, json=USER)

    async with _client(handler) as http:
        provider = RestProvider(http, API_KEY)
        response = await provider.set_session("at-7")
        current = await provider.get_current_session()

    assert response.data.access_token == "at-7"
    assert current.data.full_name == "Jane Doe"


async def test_sign_out_emits_signed_out():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth/v1/logout":
            return httpx.Response(204)
        return httpx.Response(200, json=TOKEN_PAYLOAD)

    async with _client(handler) as http:
        provider = RestProvider(http, API_KEY)
        await provider.sign_in("teacher@example.com", "secret123")
        events = []
        provider.on_session_change(lambda event, session: events.append(event))

        response = await provider.sign_out()

    assert response.ok
    assert events == [SessionEvent.SIGNED_OUT]
    assert (await provider.get_current_session()).data is None
