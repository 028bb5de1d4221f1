from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OrderStatus(str, Enum):
    ORDER_CONFIRMED = "order_confirmed"
    PREPARING = "preparing"
    SHIPPING_STARTED = "shipping_started"
    IN_DELIVERY = "in_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit-card"
    BANK_TRANSFER = "bank-transfer"
    REAL_TIME_TRANSFER = "real-time-transfer"
    NAVER_PAY = "naver-pay"
    KAKAO_PAY = "kakao-pay"
    TOSS_PAY = "toss-pay"


NEXT_STATUS: dict[OrderStatus, OrderStatus] = {
    OrderStatus.ORDER_CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.SHIPPING_STARTED,
    OrderStatus.SHIPPING_STARTED: OrderStatus.IN_DELIVERY,
    OrderStatus.IN_DELIVERY: OrderStatus.DELIVERED,
}
CANCELLABLE = frozenset({OrderStatus.ORDER_CONFIRMED, OrderStatus.PREPARING})
TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Payment may be (re)verified only while it has not settled either way.
VERIFIABLE_PAYMENT = frozenset({PaymentStatus.PENDING, PaymentStatus.FAILED})


@dataclass(frozen=True)
class TransitionResult:
    allowed: bool
    current: OrderStatus
    target: OrderStatus
    reason: str

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "current": self.current.value,
            "target": self.target.value,
            "reason": self.reason,
        }


def evaluate_transition(current: OrderStatus | str, target: OrderStatus | str) -> TransitionResult:
    """Single source of truth for order status changes.

    Forward moves go one step at a time along ``NEXT_STATUS``; cancellation is
    open only before shipping starts; terminal states never change again.
    """
    current = OrderStatus(current)
    target = OrderStatus(target)

    if current in TERMINAL:
        return TransitionResult(False, current, target, f"order is already {current.value}; no further transitions")
    if current == target:
        return TransitionResult(False, current, target, f"order is already {current.value}")

    if target == OrderStatus.CANCELLED:
        if current in CANCELLABLE:
            return TransitionResult(True, current, target, "cancellation accepted")
        return TransitionResult(
            False,
            current,
            target,
            f"order can no longer be cancelled once shipping has started (current status: {current.value})",
        )

    expected = NEXT_STATUS.get(current)
    if target == expected:
        return TransitionResult(True, current, target, f"{current.value} -> {target.value}")
    return TransitionResult(
        False,
        current,
        target,
        f"cannot move from {current.value} to {target.value}; next status is {expected.value}",
    )
