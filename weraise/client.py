"""Async client for the WeRaise REST API.

Tokens live on an explicit ``ApiSession`` owned by the caller instead of
module-level state. When a request comes back 401 the client calls
``POST /auth/refresh`` once, stores the rotated tokens on the session and
replays the original request a single time.

    session = ApiSession(access_token=..., refresh_token=...)
    async with WeRaiseClient("https://api.weraise.example/api/v1", session) as client:
        profile = await client.get_profile()
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from http.cookies import SimpleCookie
from typing import Any

import httpx

logger = logging.getLogger(__name__)

REFRESH_COOKIE = "refresh_token"


@dataclass
class ApiSession:
    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def update(self, access_token: str, refresh_token: str | None = None) -> None:
        self.access_token = access_token
        if refresh_token is not None:
            self.refresh_token = refresh_token

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None


class ApiClientError(Exception):
    """Non-2xx response, carrying the server's {error, message, details} envelope."""

    def __init__(self, status_code: int, error: str, message: str, details: Any = None):
        super().__init__(f"{status_code} {error}: {message}")
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiClientError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return cls(
            response.status_code,
            body.get("error", response.reason_phrase or "Error"),
            body.get("message", response.text),
            body.get("details"),
        )


def _refresh_cookie_from(response: httpx.Response) -> str | None:
    for header in response.headers.get_list("set-cookie"):
        cookie = SimpleCookie()
        cookie.load(header)
        if REFRESH_COOKIE in cookie:
            return cookie[REFRESH_COOKIE].value
    return None


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_json_safe(v) for v in value]
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    return value


class WeRaiseClient:
    def __init__(
        self,
        base_url: str,
        session: ApiSession | None = None,
        *,
        timeout: float = 15.0,
        origin: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session or ApiSession()
        self._origin = origin
        self._http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> "WeRaiseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -----------------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        if self.session.access_token:
            return {"Authorization": f"Bearer {self.session.access_token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        body = _json_safe(json) if json is not None else None
        query = _json_safe(params) if params else None

        token_used = self.session.access_token
        response = await self._http.request(
            method, path, json=body, params=query, headers=self._auth_headers()
        )

        if response.status_code == 401 and self.session.refresh_token:
            if await self.refresh(stale_token=token_used):
                response = await self._http.request(
                    method, path, json=body, params=query, headers=self._auth_headers()
                )

        if response.is_error:
            raise ApiClientError.from_response(response)
        if not response.content:
            return None
        return response.json()

    async def refresh(self, stale_token: str | None = None) -> bool:
        """Exchange the session's refresh token for a new access token.

        Concurrent callers that saw the same expired token share one refresh.
        Returns False (and clears the session) when the server rejects it.
        """
        async with self._refresh_lock:
            if stale_token is not None and self.session.access_token != stale_token:
                return True
            if not self.session.refresh_token:
                return False

            headers = {
                "Content-Type": "application/json",
                "Cookie": f"{REFRESH_COOKIE}={self.session.refresh_token}",
            }
            if self._origin:
                headers["Origin"] = self._origin

            response = await self._http.post("/auth/refresh", json={}, headers=headers)
            if response.status_code != 200:
                logger.warning("Token refresh failed with status %s", response.status_code)
                self.session.clear()
                return False

            self.session.update(
                access_token=response.json()["access_token"],
                refresh_token=_refresh_cookie_from(response),
            )
            return True

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    async def get_profile(self) -> dict:
        return await self.request("GET", "/users/me")

    async def update_profile(self, **fields: Any) -> dict:
        return await self.request("PUT", "/users/me", json=fields)

    async def become_creator(self) -> dict:
        return await self.request("POST", "/users/me/become-creator")

    # -----------------------------------------------------------------------
    # Categories and campaigns
    # -----------------------------------------------------------------------

    async def list_categories(self) -> list[dict]:
        return await self.request("GET", "/categories")

    async def list_campaigns(self, **params: Any) -> dict:
        return await self.request("GET", "/campaigns", params=params)

    async def my_campaigns(self, **params: Any) -> dict:
        return await self.request("GET", "/campaigns/my-campaigns", params=params)

    async def get_campaign(self, campaign_id: uuid.UUID | str) -> dict:
        return await self.request("GET", f"/campaigns/{campaign_id}")

    async def create_campaign(self, data: dict) -> dict:
        return await self.request("POST", "/campaigns", json=data)

    async def update_campaign(self, campaign_id: uuid.UUID | str, data: dict) -> dict:
        return await self.request("PUT", f"/campaigns/{campaign_id}", json=data)

    async def set_campaign_status(self, campaign_id: uuid.UUID | str, status: str) -> dict:
        return await self.request(
            "PATCH", f"/campaigns/{campaign_id}/status", json={"status": status}
        )

    # -----------------------------------------------------------------------
    # Pledges
    # -----------------------------------------------------------------------

    async def create_paypal_order(
        self,
        campaign_id: uuid.UUID | str,
        amount: Decimal | str,
        reward_tier_id: uuid.UUID | str | None = None,
    ) -> dict:
        return await self.request(
            "POST",
            "/pledges/paypal/create-order",
            json={"campaignId": campaign_id, "amount": amount, "rewardTierId": reward_tier_id},
        )

    async def capture_paypal_order(self, order_id: str, pledge_id: uuid.UUID | str) -> dict:
        return await self.request(
            "POST",
            "/pledges/paypal/capture-order",
            json={"orderId": order_id, "pledgeId": pledge_id},
        )

    async def cancel_paypal_order(self, pledge_id: uuid.UUID | str) -> dict:
        return await self.request(
            "POST", "/pledges/paypal/cancel-order", json={"pledgeId": pledge_id}
        )

    async def pledge_history(self, **params: Any) -> dict:
        return await self.request("GET", "/pledges/history", params=params)

    async def campaign_pledges(self, campaign_id: uuid.UUID | str, **params: Any) -> dict:
        return await self.request("GET", f"/pledges/campaign/{campaign_id}", params=params)

    async def creator_pledges(self, **params: Any) -> dict:
        return await self.request("GET", "/pledges/creator/all", params=params)

    async def get_pledge(self, pledge_id: uuid.UUID | str) -> dict:
        return await self.request("GET", f"/pledges/{pledge_id}")

    async def update_pledge(self, pledge_id: uuid.UUID | str, data: dict) -> dict:
        return await self.request("PUT", f"/pledges/{pledge_id}", json=data)
