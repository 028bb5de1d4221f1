from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.api.utils import refusal, resolve_page_size
from storefront.core.config import get_settings
from storefront.core.security import Principal, get_principal, require_admin
from storefront.domain.orders.commands import (
    cancel_order,
    change_order_status,
    place_order,
    place_verified_order,
    verify_order_payment,
)
from storefront.domain.orders.queries import get_order, list_orders, order_detail
from storefront.domain.orders.schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    StatusChangeRequest,
    VerifiedCheckoutRequest,
    VerifyPaymentRequest,
)
from storefront.domain.orders.status import OrderStatus
from storefront.payments.verifier import PaymentVerifier, get_payment_verifier
from storefront.persistence.pg import get_session

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    body: CreateOrderRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    order = place_order(session, principal, body)
    return {"order": order_detail(session, order)}


@router.post("/verify-payment", status_code=status.HTTP_201_CREATED)
def create_order_with_verified_payment(
    body: VerifiedCheckoutRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    order, result = place_verified_order(session, principal, body, verifier)
    return {"order": order_detail(session, order), "payment": result.to_dict()}


@router.get("/my-orders")
def list_my_orders(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    size = resolve_page_size(limit, get_settings().my_orders_page_size)
    return list_orders(session, principal.user_id, page=page, limit=size, status=order_status)


@router.get("/admin/all")
def list_all_orders(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    user_id: str | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    require_admin(principal)
    size = resolve_page_size(limit, get_settings().admin_orders_page_size)
    return list_orders(session, user_id, page=page, limit=size, status=order_status)


@router.patch("/admin/{order_id}/status")
def update_order_status(
    order_id: str,
    body: StatusChangeRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    require_admin(principal)
    order, result = change_order_status(session, order_id, body)
    if not result.allowed:
        return refusal(409, "illegal_transition", result.reason, order=order_detail(session, order))
    return {"order": order_detail(session, order), "transition": result.to_dict()}


@router.post("/admin/{order_id}/payment/verify")
def admin_verify_payment(
    order_id: str,
    body: VerifyPaymentRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    require_admin(principal)
    return _verify_payment(session, order_id, body, verifier, user_id=None)


@router.get("/{order_id}")
def get_my_order(
    order_id: str,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    order = get_order(session, order_id, user_id=principal.user_id)
    return {"order": order_detail(session, order)}


@router.patch("/{order_id}/cancel")
def cancel_my_order(
    order_id: str,
    body: CancelOrderRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    outcome = cancel_order(session, order_id, reason=body.reason, user_id=principal.user_id)
    if not outcome.cancelled:
        return refusal(409, "illegal_transition", outcome.result.reason, order=order_detail(session, outcome.order))
    return {"order": order_detail(session, outcome.order)}


@router.post("/{order_id}/payment/verify")
def verify_my_payment(
    order_id: str,
    body: VerifyPaymentRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
):
    return _verify_payment(session, order_id, body, verifier, user_id=principal.user_id)


def _verify_payment(
    session: Session,
    order_id: str,
    body: VerifyPaymentRequest,
    verifier: PaymentVerifier,
    user_id: str | None,
):
    order, result = verify_order_payment(session, order_id, body.gateway_payment_id, verifier, user_id=user_id)
    detail = order_detail(session, order)
    if not result.verified:
        # Returned rather than raised so the failed payment status is committed.
        return refusal(400, "payment_verification_failed", result.reason, order=detail, payment=result.to_dict())
    return {"order": detail, "payment": result.to_dict()}
