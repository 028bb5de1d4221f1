from __future__ import annotations

import math

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.core.clock import iso_utc
from storefront.domain.errors import OrderNotFound
from storefront.domain.orders.status import OrderStatus
from storefront.persistence.models import OrderModel, ProductModel


def get_order(
    session: Session,
    order_id: str,
    user_id: str | None = None,
    for_update: bool = False,
) -> OrderModel:
    """Load one order; ``user_id`` restricts the lookup to the owner's orders."""
    stmt = select(OrderModel).where(OrderModel.id == order_id)
    if user_id is not None:
        stmt = stmt.where(OrderModel.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    order = session.scalar(stmt)
    if order is None:
        raise OrderNotFound(order_id)
    return order


def payment_in_use(session: Session, transaction_id: str) -> bool:
    stmt = select(OrderModel.id).where(OrderModel.transaction_id == transaction_id)
    return session.scalar(stmt) is not None


def status_counts(session: Session, user_id: str | None = None) -> dict[str, int]:
    stmt = select(OrderModel.status, func.count()).group_by(OrderModel.status)
    if user_id is not None:
        stmt = stmt.where(OrderModel.user_id == user_id)
    counts = {status.value: 0 for status in OrderStatus}
    for status, count in session.execute(stmt).all():
        counts[status] = int(count)
    counts["total"] = sum(counts[status.value] for status in OrderStatus)
    return counts


def list_orders(
    session: Session,
    user_id: str | None,
    page: int,
    limit: int,
    status: OrderStatus | None = None,
) -> dict:
    """One newest-first page of orders for a user (or everyone when ``user_id`` is None).

    ``status_counts`` always covers the whole scope so tab counters stay put
    while the caller filters and pages.
    """
    stmt = select(OrderModel)
    count_stmt = select(func.count()).select_from(OrderModel)
    if user_id is not None:
        stmt = stmt.where(OrderModel.user_id == user_id)
        count_stmt = count_stmt.where(OrderModel.user_id == user_id)
    if status is not None:
        stmt = stmt.where(OrderModel.status == status.value)
        count_stmt = count_stmt.where(OrderModel.status == status.value)

    total = int(session.scalar(count_stmt) or 0)
    total_pages = math.ceil(total / limit) if limit else 0
    rows = list(
        session.scalars(
            stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    )
    products = resolve_products(session, rows)
    return {
        "orders": [serialize_order(order, products) for order in rows],
        "pagination": {
            "current_page": page,
            "page_size": limit,
            "total_pages": total_pages,
            "total_orders": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
        "status_counts": status_counts(session, user_id),
    }


def resolve_products(session: Session, orders: list[OrderModel]) -> dict[str, ProductModel]:
    ids = {item["product_id"] for order in orders for item in order.items or []}
    if not ids:
        return {}
    rows = session.scalars(select(ProductModel).where(ProductModel.id.in_(ids))).all()
    return {row.id: row for row in rows}


def _serialize_item(item: dict, products: dict[str, ProductModel]) -> dict:
    product = products.get(item["product_id"])
    current = None
    if product is not None:
        current = {"id": product.id, "name": product.name, "sku": product.sku}
    return {**item, "product": current}


def serialize_order(order: OrderModel, products: dict[str, ProductModel] | None = None) -> dict:
    products = products or {}
    return {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "items": [_serialize_item(item, products) for item in order.items or []],
        "total_items": order.total_items,
        "pricing": {
            "subtotal": order.subtotal,
            "shipping_fee": order.shipping_fee,
            "discount": order.discount,
            "total": order.total,
        },
        "shipping": {
            "recipient_name": order.recipient_name,
            "phone": order.phone,
            "zip_code": order.zip_code,
            "address": order.address,
            "detail_address": order.detail_address,
            "instructions": order.instructions,
        },
        "payment": {
            "method": order.payment_method,
            "status": order.payment_status,
            "paid_at": iso_utc(order.paid_at),
            "transaction_id": order.transaction_id,
        },
        "status": order.status,
        "tracking": {
            "carrier": order.tracking_carrier,
            "tracking_number": order.tracking_number,
            "estimated_delivery": iso_utc(order.estimated_delivery),
        },
        "admin_notes": order.admin_notes,
        "created_at": iso_utc(order.created_at),
        "updated_at": iso_utc(order.updated_at),
    }


def order_detail(session: Session, order: OrderModel) -> dict:
    return serialize_order(order, resolve_products(session, [order]))
