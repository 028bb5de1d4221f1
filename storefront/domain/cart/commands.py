from __future__ import annotations

import logging

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from storefront.core.clock import iso_utc, now_utc
from storefront.domain.cart.snapshot import clear_cart, load_cart, recalculate_totals
from storefront.domain.catalog.products import get_product
from storefront.domain.errors import CartItemNotFound, InsufficientStock, ProductInactive, ValidationFailed
from storefront.persistence.models import CartItemModel, CartModel

logger = logging.getLogger(__name__)


class SelectedOptions(BaseModel):
    color: str | None = Field(default=None, max_length=32)
    size: str | None = Field(default=None, max_length=32)

    def normalized(self) -> dict:
        return {k: v.strip() for k, v in self.model_dump(exclude_none=True).items() if v.strip()}


class AddCartItemRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    selected_options: SelectedOptions = Field(default_factory=SelectedOptions)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


def get_or_create_cart(session: Session, user_id: str) -> CartModel:
    cart = load_cart(session, user_id)
    if cart is not None:
        return cart
    now = now_utc()
    cart = CartModel(user_id=user_id, total_amount=0, total_items=0, created_at=now, updated_at=now)
    session.add(cart)
    session.flush()
    return cart


def _check_quantity(quantity: int, max_quantity: int) -> None:
    if quantity < 1 or quantity > max_quantity:
        raise ValidationFailed(f"quantity must be between 1 and {max_quantity}")


def add_item(session: Session, user_id: str, request: AddCartItemRequest, max_quantity: int = 99) -> CartModel:
    _check_quantity(request.quantity, max_quantity)
    product = get_product(session, request.product_id)
    if not product.is_active:
        raise ProductInactive(product.id, product.name)

    cart = get_or_create_cart(session, user_id)
    options = request.selected_options.normalized()
    existing = next(
        (item for item in cart.items if item.product_id == product.id and (item.selected_options or {}) == options),
        None,
    )
    quantity = request.quantity + (existing.quantity if existing else 0)
    _check_quantity(quantity, max_quantity)
    if product.stock < quantity:
        raise InsufficientStock(product.id, product.name, available=int(product.stock), requested=quantity)

    now = now_utc()
    if existing is not None:
        existing.quantity = quantity
    else:
        cart.items.append(
            CartItemModel(
                product=product,
                product_id=product.id,
                position=max((item.position for item in cart.items), default=-1) + 1,
                quantity=quantity,
                selected_options=options,
                price_at_add=int(product.price),
                added_at=now,
            )
        )
    recalculate_totals(cart, now)
    session.flush()
    logger.info("cart item added: user_id=%s product_id=%s quantity=%s", user_id, product.id, quantity)
    return cart


def _find_item(cart: CartModel, item_id: str) -> CartItemModel:
    for item in cart.items:
        if item.id == item_id:
            return item
    raise CartItemNotFound(item_id)


def update_item(
    session: Session,
    user_id: str,
    item_id: str,
    request: UpdateCartItemRequest,
    max_quantity: int = 99,
) -> CartModel:
    _check_quantity(request.quantity, max_quantity)
    cart = get_or_create_cart(session, user_id)
    item = _find_item(cart, item_id)
    if item.product.stock < request.quantity:
        raise InsufficientStock(
            item.product.id,
            item.product.name,
            available=int(item.product.stock),
            requested=request.quantity,
        )
    item.quantity = request.quantity
    recalculate_totals(cart, now_utc())
    session.flush()
    return cart


def remove_item(session: Session, user_id: str, item_id: str) -> CartModel:
    cart = get_or_create_cart(session, user_id)
    item = _find_item(cart, item_id)
    cart.items.remove(item)
    recalculate_totals(cart, now_utc())
    session.flush()
    return cart


def empty_cart(session: Session, user_id: str) -> CartModel:
    cart = get_or_create_cart(session, user_id)
    clear_cart(cart, now_utc())
    session.flush()
    return cart


def validate_cart(session: Session, user_id: str) -> dict:
    """Report every line that would block or change checkout.

    ``price_changed`` is informational: checkout charges the live price.
    """
    cart = get_or_create_cart(session, user_id)
    issues: list[dict] = []
    valid = 0
    for item in cart.items:
        product = item.product
        if not product.is_active:
            issues.append({"item_id": item.id, "product_name": product.name, "issue": "product_inactive"})
            continue
        if product.stock < item.quantity:
            issues.append(
                {
                    "item_id": item.id,
                    "product_name": product.name,
                    "issue": "insufficient_stock",
                    "requested_quantity": item.quantity,
                    "available_stock": product.stock,
                }
            )
            continue
        if int(item.price_at_add) != int(product.price):
            issues.append(
                {
                    "item_id": item.id,
                    "product_name": product.name,
                    "issue": "price_changed",
                    "old_price": item.price_at_add,
                    "new_price": product.price,
                }
            )
        valid += 1
    return {
        "is_valid": not issues and bool(cart.items),
        "is_empty": not cart.items,
        "issues": issues,
        "valid_items_count": valid,
        "total_issues": len(issues),
    }


def serialize_cart(cart: CartModel) -> dict:
    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "items": [
            {
                "id": item.id,
                "product": {
                    "id": item.product.id,
                    "sku": item.product.sku,
                    "name": item.product.name,
                    "price": item.product.price,
                    "stock": item.product.stock,
                    "is_active": item.product.is_active,
                },
                "quantity": item.quantity,
                "selected_options": item.selected_options or {},
                "price_at_add": item.price_at_add,
                "added_at": iso_utc(item.added_at),
            }
            for item in cart.items
        ],
        "total_amount": cart.total_amount,
        "total_items": cart.total_items,
        "updated_at": iso_utc(cart.updated_at),
    }
