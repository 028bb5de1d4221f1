from __future__ import annotations

import random
import re
from datetime import datetime, timezone

import pytest

import storefront.domain.orders.commands as order_commands
import storefront.persistence.pg as pg
from storefront.core.security import Principal
from storefront.domain.errors import OrderNumberConflict
from storefront.domain.orders.commands import place_order
from storefront.domain.orders.numbering import allocate_order_number, candidate_order_number
from storefront.domain.orders.schemas import CreateOrderRequest
from storefront.persistence.models import OrderModel


def _place(user_id: str, payload: dict) -> OrderModel:
    with pg.session_scope() as s:
        return place_order(s, Principal(user_id=user_id), CreateOrderRequest.model_validate(payload))


def test_candidate_format_carries_the_date():
    now = datetime(2026, 3, 14, 9, 26, 53, 589000, tzinfo=timezone.utc)
    number = candidate_order_number(now, rng=random.Random(7))

    assert re.fullmatch(r"ORD\d{14}", number)
    assert number.startswith("ORD20260314589")


def test_allocation_retries_past_collisions(make_product, fill_cart, new_user, order_payload, session):
    user_id = new_user()
    fill_cart(user_id, (make_product(), 1))
    taken = _place(user_id, order_payload).order_number

    candidates = iter([taken, taken, "ORD20260101000001"])
    number = allocate_order_number(
        session,
        datetime.now(timezone.utc),
        max_attempts=5,
        candidate=lambda _now: next(candidates),
    )
    assert number == "ORD20260101000001"


def test_allocation_gives_up_after_max_attempts(make_product, fill_cart, new_user, order_payload, session):
    user_id = new_user()
    fill_cart(user_id, (make_product(), 1))
    taken = _place(user_id, order_payload).order_number

    with pytest.raises(OrderNumberConflict) as excinfo:
        allocate_order_number(session, datetime.now(timezone.utc), max_attempts=3, candidate=lambda _now: taken)
    assert excinfo.value.status_code == 422
    assert excinfo.value.code == "duplicate_order_number"


def test_unique_constraint_backstops_a_lost_race(
    monkeypatch, make_product, fill_cart, new_user, order_payload, stock_of
):
    first_user = new_user()
    fill_cart(first_user, (make_product(), 1))
    taken = _place(first_user, order_payload).order_number

    second_user = new_user()
    product_id = make_product(stock=5)
    fill_cart(second_user, (product_id, 2))
    monkeypatch.setattr(order_commands, "allocate_order_number", lambda *args, **kwargs: taken)

    with pytest.raises(OrderNumberConflict):
        _place(second_user, order_payload)

    assert stock_of(product_id) == 5
