from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from storefront.core.config import Settings, get_settings
from storefront.domain.errors import GatewayConfigurationError

logger = logging.getLogger(__name__)


class PaymentGatewayError(RuntimeError):
    """The gateway could not be reached or answered with an error."""


@dataclass(frozen=True)
class GatewayPayment:
    payment_id: str
    status: str
    merchant_uid: str | None
    amount: Any
    paid_at: datetime | None
    raw: dict[str, Any]


class IamportClient:
    """Token issuance and payment lookup against the iamport REST API."""

    name = "iamport"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.payment_gateway_base_url.rstrip("/")
        self.timeout = max(0.1, float(self.settings.payment_gateway_timeout_seconds))

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        with httpx.Client(timeout=self.timeout) as client:
            response = client.request(method, url, headers=headers, json=json_body)
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict):
            return payload
        raise PaymentGatewayError(f"unexpected gateway payload type: {type(payload).__name__}")

    @staticmethod
    def _unwrap(payload: dict[str, Any], action: str) -> dict[str, Any]:
        if payload.get("code") != 0:
            raise PaymentGatewayError(f"{action} rejected by gateway: {payload.get('message')}")
        result = payload.get("response")
        if not isinstance(result, dict):
            raise PaymentGatewayError(f"{action} returned no response body")
        return result

    def get_access_token(self) -> str:
        api_key = self.settings.payment_gateway_api_key
        api_secret = self.settings.payment_gateway_api_secret
        if not api_key or not api_secret:
            raise GatewayConfigurationError("payment gateway credentials are not configured")

        payload = self._call(
            "POST",
            "/users/getToken",
            "token issuance",
            json_body={"imp_key": api_key, "imp_secret": api_secret},
        )
        token = self._unwrap(payload, "token issuance").get("access_token")
        if not token:
            raise PaymentGatewayError("token issuance returned no access token")
        return str(token)

    def get_payment(self, payment_id: str) -> GatewayPayment:
        token = self.get_access_token()
        payload = self._call("GET", f"/payments/{payment_id}", "payment lookup", headers={"Authorization": token})
        result = self._unwrap(payload, "payment lookup")
        paid_at_raw = result.get("paid_at")
        paid_at = None
        if isinstance(paid_at_raw, (int, float)) and paid_at_raw > 0:
            paid_at = datetime.fromtimestamp(paid_at_raw, tz=timezone.utc)
        return GatewayPayment(
            payment_id=str(result.get("imp_uid") or payment_id),
            status=str(result.get("status") or ""),
            merchant_uid=result.get("merchant_uid"),
            amount=result.get("amount"),
            paid_at=paid_at,
            raw=result,
        )

    def _call(self, method: str, path: str, action: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return self._request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise PaymentGatewayError(f"{action} timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise PaymentGatewayError(f"{action} failed with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise PaymentGatewayError(f"{action} failed: {exc}") from exc
        except ValueError as exc:
            raise PaymentGatewayError(f"{action} returned invalid JSON") from exc
