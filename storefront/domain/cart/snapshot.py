from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.domain.errors import EmptyCart, InsufficientStock, ProductInactive
from storefront.domain.inventory.ledger import aggregate_quantities
from storefront.domain.orders.aggregates import OrderLine
from storefront.persistence.models import CartItemModel, CartModel


def load_cart(session: Session, user_id: str) -> CartModel | None:
    return session.scalar(
        select(CartModel)
        .where(CartModel.user_id == user_id)
        .options(selectinload(CartModel.items).selectinload(CartItemModel.product))
    )


def read_cart_snapshot(session: Session, user_id: str) -> tuple[CartModel, list[OrderLine]]:
    """Resolve the user's cart against live products.

    Any inactive product or short stock aborts the whole read. Lines are
    priced at the product's current price, not ``price_at_add``.
    """
    cart = load_cart(session, user_id)
    if cart is None or not cart.items:
        raise EmptyCart()

    for item in cart.items:
        if not item.product.is_active:
            raise ProductInactive(item.product.id, item.product.name)

    requested = aggregate_quantities((item.product_id, item.quantity) for item in cart.items)
    products = {item.product_id: item.product for item in cart.items}
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.stock < qty:
            raise InsufficientStock(product.id, product.name, available=int(product.stock), requested=qty)

    lines = [
        OrderLine(
            product_id=item.product.id,
            sku=item.product.sku,
            name=item.product.name,
            unit_price=int(item.product.price),
            quantity=int(item.quantity),
            category=item.product.category,
            image={"url": item.product.image_url, "alt": item.product.image_alt},
            selected_options=dict(item.selected_options or {}),
        )
        for item in cart.items
    ]
    return cart, lines


def recalculate_totals(cart: CartModel, now: datetime) -> None:
    cart.total_amount = sum(int(item.price_at_add) * int(item.quantity) for item in cart.items)
    cart.total_items = sum(int(item.quantity) for item in cart.items)
    cart.updated_at = now


def clear_cart(cart: CartModel, now: datetime) -> None:
    cart.items.clear()
    recalculate_totals(cart, now)
