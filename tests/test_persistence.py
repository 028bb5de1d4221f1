from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

import storefront.persistence.pg as pg
from storefront.core.clock import now_utc
from storefront.persistence.models import CartItemModel, CartModel


def test_sqlite_connections_enforce_foreign_keys(session):
    assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1


def test_cart_item_must_reference_an_existing_product(new_user):
    now = now_utc()
    cart = CartModel(user_id=new_user(), total_amount=0, total_items=0, created_at=now, updated_at=now)
    cart.items.append(
        CartItemModel(
            product_id="no-such-product",
            position=0,
            quantity=1,
            selected_options={},
            price_at_add=1000,
            added_at=now,
        )
    )

    with pytest.raises(IntegrityError):
        with pg.session_scope() as s:
            s.add(cart)
            s.flush()
