from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.config import get_settings
from storefront.core.security import Principal, get_principal
from storefront.domain.cart.commands import (
    AddCartItemRequest,
    UpdateCartItemRequest,
    add_item,
    empty_cart,
    get_or_create_cart,
    remove_item,
    serialize_cart,
    update_item,
    validate_cart,
)
from storefront.persistence.pg import get_session

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(principal: Principal = Depends(get_principal), session: Session = Depends(get_session)):
    return {"cart": serialize_cart(get_or_create_cart(session, principal.user_id))}


@router.post("/items")
def add_cart_item(
    body: AddCartItemRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    cart = add_item(session, principal.user_id, body, max_quantity=get_settings().cart_max_quantity)
    return {"cart": serialize_cart(cart)}


@router.patch("/items/{item_id}")
def update_cart_item(
    item_id: str,
    body: UpdateCartItemRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    cart = update_item(session, principal.user_id, item_id, body, max_quantity=get_settings().cart_max_quantity)
    return {"cart": serialize_cart(cart)}


@router.delete("/items/{item_id}")
def delete_cart_item(
    item_id: str,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    return {"cart": serialize_cart(remove_item(session, principal.user_id, item_id))}


@router.delete("")
def clear_my_cart(principal: Principal = Depends(get_principal), session: Session = Depends(get_session)):
    return {"cart": serialize_cart(empty_cart(session, principal.user_id))}


@router.get("/validate")
def validate_my_cart(principal: Principal = Depends(get_principal), session: Session = Depends(get_session)):
    return validate_cart(session, principal.user_id)
