from __future__ import annotations

from dataclasses import dataclass, field, replace

from storefront.core.config import Settings, get_settings
from storefront.domain.errors import ValidationFailed


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    sku: str
    name: str
    unit_price: int
    quantity: int
    category: str | None = None
    image: dict = field(default_factory=dict)
    selected_options: dict = field(default_factory=dict)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def snapshot(self) -> dict:
        return {
            "product_id": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "unit_price": self.unit_price,
            "image": dict(self.image),
            "category": self.category,
            "quantity": self.quantity,
            "selected_options": dict(self.selected_options),
            "line_total": self.line_total,
        }


@dataclass(frozen=True)
class Pricing:
    subtotal: int
    shipping_fee: int
    discount: int = 0

    def __post_init__(self) -> None:
        if self.subtotal < 0 or self.shipping_fee < 0 or self.discount < 0:
            raise ValidationFailed("pricing components must not be negative")
        if self.discount > self.subtotal + self.shipping_fee:
            raise ValidationFailed(
                f"discount {self.discount} exceeds payable amount {self.subtotal + self.shipping_fee}"
            )

    @property
    def total(self) -> int:
        return self.subtotal + self.shipping_fee - self.discount

    def with_discount(self, discount: int) -> "Pricing":
        return replace(self, discount=discount)

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "shipping_fee": self.shipping_fee,
            "discount": self.discount,
            "total": self.total,
        }


@dataclass(frozen=True)
class ShippingPolicy:
    free_threshold: int = 50000
    flat_fee: int = 3000

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ShippingPolicy":
        cfg = settings or get_settings()
        return cls(free_threshold=cfg.free_shipping_threshold, flat_fee=cfg.flat_shipping_fee)

    def fee_for(self, subtotal: int) -> int:
        return 0 if subtotal >= self.free_threshold else self.flat_fee


def price_lines(lines: list[OrderLine], policy: ShippingPolicy, discount: int = 0) -> Pricing:
    subtotal = sum(line.line_total for line in lines)
    return Pricing(subtotal=subtotal, shipping_fee=policy.fee_for(subtotal)).with_discount(discount)
