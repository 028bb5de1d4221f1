from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.core.clock import now_utc
from storefront.domain.errors import InsufficientStock, ProductNotFound, ValidationFailed
from storefront.persistence.models import ProductModel

logger = logging.getLogger(__name__)


def aggregate_quantities(lines: Iterable[tuple[str, int]]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for product_id, qty in lines:
        totals[product_id] = totals.get(product_id, 0) + int(qty)
    return totals


class InventoryLedger:
    """Stock counter mutations.

    ``decrement`` is a single conditional UPDATE, so two concurrent checkouts
    cannot both take the last units of a product: whichever statement runs
    second matches no row and fails.
    """

    def __init__(self, session: Session):
        self.session = session

    def stock_of(self, product_id: str) -> int:
        stock = self.session.scalar(select(ProductModel.stock).where(ProductModel.id == product_id))
        if stock is None:
            raise ProductNotFound(product_id)
        return int(stock)

    def decrement(self, product_id: str, qty: int) -> None:
        if qty <= 0:
            raise ValidationFailed(f"decrement quantity must be positive, got {qty}")
        result = self.session.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .where(ProductModel.stock >= qty)
            .values(stock=ProductModel.stock - qty, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        row = self.session.execute(
            select(ProductModel.name, ProductModel.stock).where(ProductModel.id == product_id)
        ).first()
        if row is None:
            raise ProductNotFound(product_id)
        logger.warning(
            "stock decrement refused: product_id=%s requested=%s available=%s",
            product_id,
            qty,
            row.stock,
        )
        raise InsufficientStock(product_id, row.name, available=int(row.stock), requested=qty)

    def increment(self, product_id: str, qty: int) -> None:
        if qty <= 0:
            raise ValidationFailed(f"increment quantity must be positive, got {qty}")
        result = self.session.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + qty, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ProductNotFound(product_id)

    def decrement_all(self, quantities: dict[str, int]) -> None:
        # Sorted so concurrent multi-product checkouts lock rows in one order.
        for product_id in sorted(quantities):
            self.decrement(product_id, quantities[product_id])

    def increment_all(self, quantities: dict[str, int]) -> None:
        for product_id in sorted(quantities):
            self.increment(product_id, quantities[product_id])
