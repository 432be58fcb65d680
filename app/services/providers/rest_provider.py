# /app/services/providers/rest_provider.py

"""
A `DataProvider` for a hosted backend-as-a-service that speaks GoTrue-style
auth (`/auth/v1/...`) and PostgREST-style tables (`/rest/v1/<table>`).

The `httpx.AsyncClient` is shared by every client and owned by the
application lifespan; each `RestProvider` only holds its own session.
Transport failures and non-2xx responses are converted into
`ProviderError`s, so nothing from httpx escapes this module.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from ...models.session_model import Session, SessionEvent
from .base import DataProvider, Filters, OrderBy, ProviderError, ProviderResponse, TableGateway

logger = logging.getLogger(__name__)


def _error_from_response(response: httpx.Response) -> ProviderError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("msg")
        or body.get("error_description")
        or body.get("message")
        or body.get("error")
        or f"Request failed with status {response.status_code}"
    )
    code = body.get("error_code") or body.get("code") or str(response.status_code)
    return ProviderError(str(message), code=str(code))


def _session_from_payload(payload: Dict[str, Any]) -> Session:
    user = payload.get("user") or {}
    metadata = user.get("user_metadata") or {}
    expires_at = None
    if payload.get("expires_in"):
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(payload["expires_in"]))
    return Session(
        user_id=user["id"],
        email=user.get("email", ""),
        full_name=metadata.get("full_name"),
        school_name=metadata.get("school_name"),
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
        expires_at=expires_at,
    )


class RestClientBase:
    def __init__(self, http: httpx.AsyncClient, api_key: str):
        self.http = http
        self.api_key = api_key

    def _headers(self, access_token: Optional[str] = None, **extra: str) -> Dict[str, str]:
        headers = {"apikey": self.api_key, "Authorization": f"Bearer {access_token or self.api_key}"}
        headers.update(extra)
        return headers

    async def _request(self, method: str, url: str, **kwargs) -> ProviderResponse:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            return ProviderResponse(error=ProviderError(f"Network error: {e}", code="network_error"))
        if response.is_error:
            return ProviderResponse(error=_error_from_response(response))
        if response.status_code == 204 or not response.content:
            return ProviderResponse(data=None)
        return ProviderResponse(data=response.json())


class RestTable(RestClientBase, TableGateway):
    def __init__(self, http: httpx.AsyncClient, api_key: str, name: str, access_token: Optional[str]):
        super().__init__(http, api_key)
        self.path = f"/rest/v1/{name}"
        self.access_token = access_token

    @staticmethod
    def _params(filters: Filters) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in filters.items()}

    def _write_headers(self) -> Dict[str, str]:
        return self._headers(self.access_token, Prefer="return=representation")

    async def select(self, filters: Filters, order: Optional[OrderBy] = None) -> ProviderResponse:
        params = {"select": "*", **self._params(filters)}
        if order:
            params["order"] = f"{order.column}.{'asc' if order.ascending else 'desc'}"
        response = await self._request("GET", self.path, params=params, headers=self._headers(self.access_token))
        if response.ok and response.data is None:
            response.data = []
        return response

    async def insert(self, rows: List[Dict[str, Any]]) -> ProviderResponse:
        return await self._request("POST", self.path, json=rows, headers=self._write_headers())

    async def update(self, row: Dict[str, Any], filters: Filters) -> ProviderResponse:
        response = await self._request(
            "PATCH", self.path, params=self._params(filters), json=row, headers=self._write_headers()
        )
        if response.ok and response.data is None:
            response.data = []
        return response

    async def delete(self, filters: Filters) -> ProviderResponse:
        if not filters:
            return ProviderResponse(error=ProviderError("DELETE requires a filter", code="missing_filter"))
        response = await self._request(
            "DELETE", self.path, params=self._params(filters), headers=self._write_headers()
        )
        if response.ok and response.data is None:
            response.data = []
        return response


class RestProvider(RestClientBase, DataProvider):
    """One browser's client for the hosted backend."""

    def __init__(self, http: httpx.AsyncClient, api_key: str):
        RestClientBase.__init__(self, http, api_key)
        DataProvider.__init__(self)

    async def sign_up(self, email: str, password: str, full_name: str, school_name: str) -> ProviderResponse:
        body = {
            "email": email,
            "password": password,
            "data": {"full_name": full_name, "school_name": school_name},
        }
        return await self._request("POST", "/auth/v1/signup", json=body, headers=self._headers())

    async def sign_in(self, email: str, password: str) -> ProviderResponse:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        if not response.ok:
            return response
        self._session = _session_from_payload(response.data)
        await self._emit_session_change(SessionEvent.SIGNED_IN, self._session)
        return ProviderResponse(data=self._session)

    async def sign_out(self) -> ProviderResponse:
        if self._session is None:
            return ProviderResponse()
        response = await self._request("POST", "/auth/v1/logout", headers=self._headers(self._session.access_token))
        if response.ok:
            self._session = None
            await self._emit_session_change(SessionEvent.SIGNED_OUT, None)
        return response

    async def _fetch_user(self, access_token: str) -> ProviderResponse:
        return await self._request("GET", "/auth/v1/user", headers=self._headers(access_token))

    async def get_current_session(self) -> ProviderResponse:
        if self._session is None:
            return ProviderResponse(data=None)
        if self._session.expires_at and self._session.expires_at <= datetime.now(timezone.utc):
            return await self._drop_session("Session expired")
        return ProviderResponse(data=self._session)

    async def set_session(self, access_token: str) -> ProviderResponse:
        response = await self._fetch_user(access_token)
        if not response.ok:
            return response
        self._session = _session_from_payload({"user": response.data, "access_token": access_token})
        return ProviderResponse(data=self._session)

    async def refresh_session(self) -> ProviderResponse:
        if self._session is None or not self._session.refresh_token:
            return ProviderResponse(error=ProviderError("No session to refresh", code="session_missing"))
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
            headers=self._headers(),
        )
        if not response.ok:
            return response
        self._session = _session_from_payload(response.data)
        await self._emit_session_change(SessionEvent.TOKEN_REFRESHED, self._session)
        return ProviderResponse(data=self._session)

    def table(self, name: str) -> TableGateway:
        token = self._session.access_token if self._session else None
        return RestTable(self.http, self.api_key, name, token)
