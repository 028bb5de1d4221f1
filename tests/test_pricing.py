from __future__ import annotations

import pytest

from storefront.domain.errors import ValidationFailed
from storefront.domain.orders.aggregates import OrderLine, Pricing, ShippingPolicy, price_lines


def _line(unit_price: int, quantity: int, product_id: str = "p-1") -> OrderLine:
    return OrderLine(product_id=product_id, sku="SKU-1", name="Tee", unit_price=unit_price, quantity=quantity)


def test_subtotal_is_sum_of_line_totals_and_total_adds_shipping():
    lines = [_line(20000, 2, "a"), _line(5000, 1, "b")]
    pricing = price_lines(lines, ShippingPolicy())

    assert pricing.subtotal == 45000
    assert pricing.shipping_fee == 3000
    assert pricing.discount == 0
    assert pricing.total == 48000
    assert pricing.to_dict() == {"subtotal": 45000, "shipping_fee": 3000, "discount": 0, "total": 48000}


@pytest.mark.parametrize(
    ("subtotal", "fee"),
    [(0, 3000), (49999, 3000), (50000, 0), (120000, 0)],
)
def test_shipping_fee_threshold(subtotal, fee):
    assert ShippingPolicy().fee_for(subtotal) == fee


def test_shipping_policy_follows_settings():
    class _Cfg:
        free_shipping_threshold = 10000
        flat_shipping_fee = 2500

    policy = ShippingPolicy.from_settings(_Cfg())
    assert policy.fee_for(9999) == 2500
    assert policy.fee_for(10000) == 0


def test_discount_reduces_total_but_never_below_zero():
    pricing = price_lines([_line(10000, 1)], ShippingPolicy(), discount=4000)
    assert pricing.total == 10000 + 3000 - 4000

    exact = Pricing(subtotal=10000, shipping_fee=3000, discount=13000)
    assert exact.total == 0

    with pytest.raises(ValidationFailed):
        Pricing(subtotal=10000, shipping_fee=3000, discount=13001)


def test_negative_components_are_rejected():
    with pytest.raises(ValidationFailed):
        Pricing(subtotal=-1, shipping_fee=0)
    with pytest.raises(ValidationFailed):
        Pricing(subtotal=0, shipping_fee=0, discount=-5)


def test_line_snapshot_keeps_price_and_options():
    line = OrderLine(
        product_id="p-9",
        sku="CAP-001",
        name="Ball Cap",
        unit_price=5000,
        quantity=3,
        category="accessories",
        image={"url": "https://cdn.example.com/cap.jpg", "alt": "Ball Cap"},
        selected_options={"color": "navy"},
    )
    snap = line.snapshot()

    assert snap["unit_price"] == 5000
    assert snap["line_total"] == 15000
    assert snap["selected_options"] == {"color": "navy"}
    assert snap["image"]["alt"] == "Ball Cap"
