"""PayPal Orders v2 adapter.

Pure request/response mapping: no database access and no retries. Every
failure (HTTP error, timeout, malformed payload, missing credentials) is
raised as ``PaymentProviderError`` with a message safe to show to the caller.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Protocol

import httpx

from weraise.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_EXPIRY_MARGIN_SECONDS = 60


class PaymentProviderError(Exception):
    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


@dataclass
class ProviderOrder:
    order_id: str
    approval_url: str
    status: str | None = None


@dataclass
class CaptureResult:
    order_id: str
    status: str
    amount: Decimal | None = None
    currency: str | None = None
    capture_id: str | None = None
    paypal_fee: Decimal | None = None
    raw: dict = field(default_factory=dict, repr=False)


class PaymentProvider(Protocol):
    async def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        reference_id: str,
        return_url: str,
        cancel_url: str,
    ) -> ProviderOrder: ...

    async def capture_order(
        self, order_id: str, request_id: str | None = None
    ) -> CaptureResult: ...

    async def void_order(self, order_id: str) -> str: ...

    async def check_connection(self) -> bool: ...


def _money(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.01")))


def _parse_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_capture(payload: dict) -> CaptureResult:
    """Map a capture response to CaptureResult.

    The first capture of the first purchase unit carries the settled amount and
    the PayPal fee breakdown. Missing pieces come back as None so callers can
    decide how strict to be.
    """
    capture: dict = {}
    units = payload.get("purchase_units") or []
    if units:
        captures = (units[0].get("payments") or {}).get("captures") or []
        if captures:
            capture = captures[0]

    amount = capture.get("amount") or {}
    breakdown = capture.get("seller_receivable_breakdown") or {}
    fee = breakdown.get("paypal_fee") or {}

    return CaptureResult(
        order_id=payload.get("id", ""),
        status=payload.get("status", ""),
        amount=_parse_decimal(amount.get("value")),
        currency=amount.get("currency_code"),
        capture_id=capture.get("id"),
        paypal_fee=_parse_decimal(fee.get("value")),
        raw=payload,
    )


class PayPalClient:
    """Thin async client for the PayPal REST API."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id if client_id is not None else settings.PAYPAL_CLIENT_ID
        self.client_secret = (
            client_secret if client_secret is not None else settings.PAYPAL_CLIENT_SECRET
        )
        self.base_url = base_url or settings.paypal_base_url
        self.timeout = timeout if timeout is not None else settings.PAYPAL_TIMEOUT_SECONDS
        self._transport = transport
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        if not self.client_id or not self.client_secret:
            raise PaymentProviderError("PayPal credentials are not configured")

        try:
            async with self._client() as client:
                resp = await client.post(
                    "/v1/oauth2/token",
                    data={"grant_type": "client_credentials"},
                    auth=(self.client_id, self.client_secret),
                )
        except httpx.TimeoutException as exc:
            raise PaymentProviderError("PayPal authentication timed out") from exc
        except httpx.HTTPError as exc:
            raise PaymentProviderError(f"PayPal authentication failed: {exc}") from exc

        if resp.status_code >= 400:
            body = _json_or_empty(resp)
            message = body.get("error_description") or "Unknown error"
            raise PaymentProviderError(
                f"PayPal token generation failed: {message}", status_code=resp.status_code
            )

        body = _json_or_empty(resp)
        token = body.get("access_token")
        if not token:
            raise PaymentProviderError("PayPal token generation failed: no access token returned")

        expires_in = int(body.get("expires_in", 0) or 0)
        self._access_token = token
        self._token_expires_at = time.monotonic() + max(
            expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0
        )
        return token

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        json: dict | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict:
        token = await self._get_access_token()
        request_headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        try:
            async with self._client() as client:
                resp = await client.request(method, path, json=json, headers=request_headers)
        except httpx.TimeoutException as exc:
            logger.error("PayPal %s timed out after %ss", action, self.timeout)
            raise PaymentProviderError(f"PayPal {action} timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("PayPal %s transport error: %s", action, exc)
            raise PaymentProviderError(f"PayPal {action} failed: {exc}") from exc

        body = _json_or_empty(resp)
        if resp.status_code >= 400:
            message = body.get("message") or body.get("name") or "Unknown error"
            logger.error(
                "PayPal %s failed status=%s debug_id=%s",
                action,
                resp.status_code,
                body.get("debug_id"),
            )
            raise PaymentProviderError(
                f"PayPal {action} failed: {message}",
                status_code=resp.status_code,
                details=body,
            )
        return body

    async def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        reference_id: str,
        return_url: str,
        cancel_url: str,
    ) -> ProviderOrder:
        if amount <= 0:
            raise PaymentProviderError("Invalid amount: amount must be greater than 0")

        value = _money(amount)
        order = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference_id,
                    "custom_id": reference_id,
                    "description": description[:127],
                    "items": [
                        {
                            "name": description[:127],
                            "quantity": "1",
                            "unit_amount": {"currency_code": currency, "value": value},
                        }
                    ],
                    "amount": {
                        "currency_code": currency,
                        "value": value,
                        "breakdown": {"item_total": {"currency_code": currency, "value": value}},
                    },
                }
            ],
            "application_context": {
                "return_url": return_url,
                "cancel_url": cancel_url,
                "shipping_preference": "NO_SHIPPING",
                "user_action": "PAY_NOW",
                "brand_name": settings.PAYPAL_BRAND_NAME,
            },
        }

        body = await self._request(
            "POST",
            "/v2/checkout/orders",
            "order creation",
            json=order,
            headers={"PayPal-Request-Id": f"order-{reference_id}-{int(time.time())}"},
        )

        order_id = body.get("id")
        if not order_id:
            raise PaymentProviderError("PayPal order creation failed: No order ID returned")

        approval_url = next(
            (link.get("href") for link in body.get("links", []) if link.get("rel") == "approve"),
            None,
        )
        if not approval_url:
            raise PaymentProviderError("PayPal order creation failed: No approval URL returned")

        return ProviderOrder(
            order_id=order_id, approval_url=approval_url, status=body.get("status")
        )

    async def capture_order(self, order_id: str, request_id: str | None = None) -> CaptureResult:
        body = await self._request(
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            "payment capture",
            headers={"PayPal-Request-Id": request_id or f"capture-{order_id}"},
        )
        return parse_capture(body)

    async def void_order(self, order_id: str) -> str:
        """Release an unapproved or uncaptured order and report its provider status.

        Orders that were never captured simply expire on PayPal's side, so
        there is nothing to reverse; the returned status lets the caller
        refuse cancelling an order that has already been captured.
        """
        body = await self._request("GET", f"/v2/checkout/orders/{order_id}", "order lookup")
        return body.get("status", "")

    async def check_connection(self) -> bool:
        try:
            await self._get_access_token()
        except PaymentProviderError as exc:
            logger.warning("PayPal connection test failed: %s", exc.message)
            return False
        return True


def _json_or_empty(resp: httpx.Response) -> dict:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
