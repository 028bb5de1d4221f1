from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from storefront.core.config import Settings, get_settings
from storefront.payments.gateway import GatewayPayment, IamportClient, PaymentGatewayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentReference:
    gateway_payment_id: str
    expected_order_number: str
    expected_amount: int


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    reason: str
    gateway: str
    transaction_id: str | None = None
    paid_at: datetime | None = None
    record: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "verified": self.verified,
            "reason": self.reason,
            "gateway": self.gateway,
            "transaction_id": self.transaction_id,
        }


class PaymentVerifier(Protocol):
    name: str

    def verify(self, reference: PaymentReference) -> VerificationResult:
        ...


class PaymentLookup(Protocol):
    name: str

    def get_payment(self, payment_id: str) -> GatewayPayment:
        ...


def _exact_amount(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def check_payment(payment: GatewayPayment, reference: PaymentReference) -> str | None:
    """Return the first failed condition, or None when the payment matches."""
    if payment.status != "paid":
        return f"payment is not completed (gateway status: {payment.status or 'unknown'})"
    if payment.merchant_uid != reference.expected_order_number:
        return (
            f"order number mismatch: expected {reference.expected_order_number}, "
            f"gateway reported {payment.merchant_uid}"
        )
    amount = _exact_amount(payment.amount)
    if amount is None or amount != reference.expected_amount:
        return f"amount mismatch: expected {reference.expected_amount}, gateway reported {payment.amount}"
    return None


class GatewayPaymentVerifier:
    """Single-attempt, fail-closed verification over any payment lookup.

    Gateway errors and timeouts become unverified results. Missing server
    credentials are a deployment problem and propagate as
    ``GatewayConfigurationError``.
    """

    def __init__(self, lookup: PaymentLookup):
        self.lookup = lookup
        self.name = lookup.name

    def verify(self, reference: PaymentReference) -> VerificationResult:
        try:
            payment = self.lookup.get_payment(reference.gateway_payment_id)
        except PaymentGatewayError as exc:
            logger.warning(
                "payment verification failed: gateway=%s payment_id=%s reason=%s",
                self.name,
                reference.gateway_payment_id,
                exc,
            )
            return VerificationResult(verified=False, reason=str(exc), gateway=self.name)

        failure = check_payment(payment, reference)
        if failure is not None:
            logger.warning(
                "payment verification rejected: gateway=%s payment_id=%s order_number=%s reason=%s",
                self.name,
                reference.gateway_payment_id,
                reference.expected_order_number,
                failure,
            )
            return VerificationResult(verified=False, reason=failure, gateway=self.name, record=payment.raw)

        logger.info(
            "payment verified: gateway=%s payment_id=%s order_number=%s amount=%s",
            self.name,
            payment.payment_id,
            reference.expected_order_number,
            reference.expected_amount,
        )
        return VerificationResult(
            verified=True,
            reason="payment verified",
            gateway=self.name,
            transaction_id=payment.payment_id,
            paid_at=payment.paid_at,
            record=payment.raw,
        )


def build_payment_verifier(settings: Settings | None = None) -> PaymentVerifier:
    cfg = settings or get_settings()
    return GatewayPaymentVerifier(IamportClient(cfg))


def get_payment_verifier() -> PaymentVerifier:
    return build_payment_verifier()
