from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.clock import now_utc
from storefront.core.config import Settings, get_settings
from storefront.core.security import Principal
from storefront.domain.cart.snapshot import clear_cart, read_cart_snapshot
from storefront.domain.errors import (
    DiscountNotAllowed,
    IllegalTransition,
    OrderNumberConflict,
    PaymentAlreadyUsed,
    PaymentAmountMismatch,
    PaymentVerificationFailed,
)
from storefront.domain.inventory.ledger import InventoryLedger, aggregate_quantities
from storefront.domain.orders.aggregates import OrderLine, Pricing, ShippingPolicy, price_lines
from storefront.domain.orders.numbering import allocate_order_number
from storefront.domain.orders.queries import get_order, payment_in_use
from storefront.domain.orders.schemas import (
    CreateOrderRequest,
    ShippingInfo,
    StatusChangeRequest,
    VerifiedCheckoutRequest,
)
from storefront.domain.orders.status import (
    VERIFIABLE_PAYMENT,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    TransitionResult,
    evaluate_transition,
)
from storefront.payments.verifier import PaymentReference, PaymentVerifier, VerificationResult
from storefront.persistence.models import OrderModel

logger = logging.getLogger(__name__)


@dataclass
class CancellationOutcome:
    order: OrderModel
    result: TransitionResult

    @property
    def cancelled(self) -> bool:
        return self.result.allowed


def _ordered_quantities(order: OrderModel) -> dict[str, int]:
    return aggregate_quantities((item["product_id"], int(item["quantity"])) for item in order.items or [])


def _ensure_payment_unused(session: Session, payment_id: str | None) -> None:
    if payment_id and payment_in_use(session, payment_id):
        logger.warning("payment replay refused: payment_id=%s", payment_id)
        raise PaymentAlreadyUsed(payment_id)


def _flush_order(session: Session, order: OrderModel) -> None:
    try:
        session.flush()
    except IntegrityError as exc:
        message = str(exc.orig)
        if "order_number" in message:
            raise OrderNumberConflict() from exc
        if "transaction_id" in message:
            raise PaymentAlreadyUsed(order.transaction_id or "") from exc
        raise


def _insert_order(
    session: Session,
    user_id: str,
    lines: list[OrderLine],
    pricing: Pricing,
    shipping: ShippingInfo,
    method: PaymentMethod,
    now: datetime,
    settings: Settings,
    payment: VerificationResult | None = None,
    payment_extra: dict | None = None,
) -> OrderModel:
    order_number = allocate_order_number(session, now, max_attempts=settings.order_number_max_attempts)
    order = OrderModel(
        order_number=order_number,
        user_id=user_id,
        items=[line.snapshot() for line in lines],
        subtotal=pricing.subtotal,
        shipping_fee=pricing.shipping_fee,
        discount=pricing.discount,
        total=pricing.total,
        recipient_name=shipping.recipient_name,
        phone=shipping.phone,
        zip_code=shipping.zip_code,
        address=shipping.address,
        detail_address=shipping.detail_address,
        instructions=shipping.instructions,
        payment_method=method.value,
        payment_status=PaymentStatus.PENDING.value,
        payment_record={},
        status=OrderStatus.ORDER_CONFIRMED.value,
        admin_notes="",
        created_at=now,
        updated_at=now,
    )
    if payment is not None:
        order.payment_status = PaymentStatus.COMPLETED.value
        order.paid_at = payment.paid_at or now
        order.transaction_id = payment.transaction_id
        order.payment_record = {**payment.record, **(payment_extra or {})}

    session.add(order)
    _flush_order(session, order)
    return order


def _commit_cart(
    session: Session,
    principal: Principal,
    request: CreateOrderRequest,
    now: datetime,
    settings: Settings,
    payment: VerificationResult | None = None,
    paid_amount: int | None = None,
    payment_extra: dict | None = None,
) -> OrderModel:
    if request.discount and not principal.is_admin:
        raise DiscountNotAllowed()
    cart, lines = read_cart_snapshot(session, principal.user_id)
    if request.discount:
        logger.info("discount applied: user_id=%s discount=%s", principal.user_id, request.discount)
    pricing = price_lines(lines, ShippingPolicy.from_settings(settings), discount=request.discount)
    if paid_amount is not None and pricing.total != paid_amount:
        raise PaymentAmountMismatch(pricing.total, paid_amount)

    order = _insert_order(
        session,
        principal.user_id,
        lines,
        pricing,
        request.shipping,
        request.payment.method,
        now,
        settings,
        payment=payment,
        payment_extra=payment_extra,
    )
    # Same transaction as the insert: a refused decrement rolls the order back.
    InventoryLedger(session).decrement_all(_ordered_quantities(order))
    clear_cart(cart, now)
    session.flush()
    logger.info(
        "order placed: order_number=%s user_id=%s lines=%s total=%s payment_status=%s",
        order.order_number,
        order.user_id,
        len(lines),
        order.total,
        order.payment_status,
    )
    return order


def place_order(
    session: Session,
    principal: Principal,
    request: CreateOrderRequest,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> OrderModel:
    """Turn the principal's cart into an order awaiting payment.

    Stock validation and decrement, the order insert and the cart clear share
    the caller's transaction; any failure leaves all three untouched.
    """
    return _commit_cart(session, principal, request, now or now_utc(), settings or get_settings())


def place_verified_order(
    session: Session,
    principal: Principal,
    request: VerifiedCheckoutRequest,
    verifier: PaymentVerifier,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> tuple[OrderModel, VerificationResult]:
    # merchant_uid is the client's own reference here, so only the payment id
    # ties a gateway payment to a single order.
    _ensure_payment_unused(session, request.gateway_payment_id)
    result = verifier.verify(
        PaymentReference(
            gateway_payment_id=request.gateway_payment_id,
            expected_order_number=request.merchant_uid,
            expected_amount=request.amount,
        )
    )
    if not result.verified:
        raise PaymentVerificationFailed(result.reason)
    if result.transaction_id != request.gateway_payment_id:
        _ensure_payment_unused(session, result.transaction_id)

    order = _commit_cart(
        session,
        principal,
        request,
        now or now_utc(),
        settings or get_settings(),
        payment=result,
        paid_amount=request.amount,
        payment_extra={"merchant_uid": request.merchant_uid},
    )
    return order, result


def cancel_order(
    session: Session,
    order_id: str,
    reason: str = "",
    user_id: str | None = None,
    now: datetime | None = None,
) -> CancellationOutcome:
    order = get_order(session, order_id, user_id=user_id, for_update=True)
    result = evaluate_transition(order.status, OrderStatus.CANCELLED)
    if not result.allowed:
        logger.info("cancellation refused: order_number=%s reason=%s", order.order_number, result.reason)
        return CancellationOutcome(order=order, result=result)

    order.status = OrderStatus.CANCELLED.value
    order.payment_status = PaymentStatus.CANCELLED.value
    if reason:
        order.admin_notes = f"cancel reason: {reason}"
    order.updated_at = now or now_utc()
    InventoryLedger(session).increment_all(_ordered_quantities(order))
    session.flush()
    logger.info("order cancelled: order_number=%s by_owner=%s", order.order_number, user_id is not None)
    return CancellationOutcome(order=order, result=result)


def change_order_status(
    session: Session,
    order_id: str,
    request: StatusChangeRequest,
    now: datetime | None = None,
) -> tuple[OrderModel, TransitionResult]:
    if request.status == OrderStatus.CANCELLED:
        outcome = cancel_order(session, order_id, reason=request.admin_notes or "", now=now)
        return outcome.order, outcome.result

    order = get_order(session, order_id, for_update=True)
    result = evaluate_transition(order.status, request.status)
    if not result.allowed:
        logger.info("status change refused: order_number=%s reason=%s", order.order_number, result.reason)
        return order, result

    order.status = request.status.value
    if request.admin_notes is not None:
        order.admin_notes = request.admin_notes
    if request.tracking is not None:
        tracking = request.tracking
        if tracking.carrier is not None:
            order.tracking_carrier = tracking.carrier
        if tracking.tracking_number is not None:
            order.tracking_number = tracking.tracking_number
        if tracking.estimated_delivery is not None:
            order.estimated_delivery = tracking.estimated_delivery
    order.updated_at = now or now_utc()
    session.flush()
    logger.info(
        "order status changed: order_number=%s %s -> %s",
        order.order_number,
        result.current.value,
        result.target.value,
    )
    return order, result


def verify_order_payment(
    session: Session,
    order_id: str,
    gateway_payment_id: str,
    verifier: PaymentVerifier,
    user_id: str | None = None,
    now: datetime | None = None,
) -> tuple[OrderModel, VerificationResult]:
    """Confirm an externally initiated payment against this order's number and total.

    Only a verified result completes the payment; anything else marks it failed.
    """
    order = get_order(session, order_id, user_id=user_id, for_update=True)
    if order.status == OrderStatus.CANCELLED.value:
        raise IllegalTransition("cancelled orders cannot be paid")
    if PaymentStatus(order.payment_status) not in VERIFIABLE_PAYMENT:
        raise IllegalTransition(f"payment is already {order.payment_status}")
    _ensure_payment_unused(session, gateway_payment_id)

    result = verifier.verify(
        PaymentReference(
            gateway_payment_id=gateway_payment_id,
            expected_order_number=order.order_number,
            expected_amount=int(order.total),
        )
    )
    now = now or now_utc()
    if result.verified:
        if result.transaction_id != gateway_payment_id:
            _ensure_payment_unused(session, result.transaction_id)
        order.payment_status = PaymentStatus.COMPLETED.value
        order.paid_at = result.paid_at or now
        order.transaction_id = result.transaction_id
        order.payment_record = dict(result.record)
    else:
        order.payment_status = PaymentStatus.FAILED.value
        order.payment_record = {
            "gateway": result.gateway,
            "gateway_payment_id": gateway_payment_id,
            "failure": result.reason,
        }
    order.updated_at = now
    _flush_order(session, order)
    return order, result
