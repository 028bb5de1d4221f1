from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.domain.errors import OrderNumberConflict
from storefront.persistence.models import OrderModel

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"

_system_random = random.SystemRandom()


def candidate_order_number(now: datetime, rng: random.Random | None = None) -> str:
    """ORD + YYYYMMDD + six digits mixing the millisecond clock with noise."""
    source = rng or _system_random
    millis = now.microsecond // 1000
    noise = source.randrange(1000)
    return f"{ORDER_NUMBER_PREFIX}{now:%Y%m%d}{millis:03d}{noise:03d}"


def allocate_order_number(
    session: Session,
    now: datetime,
    max_attempts: int = 10,
    candidate: Callable[[datetime], str] | None = None,
) -> str:
    """Pick an order number not present in the orders table.

    The unique constraint on ``orders.order_number`` still guards the window
    between this check and the insert.
    """
    make = candidate or candidate_order_number
    for attempt in range(1, max_attempts + 1):
        number = make(now)
        exists = session.scalar(select(OrderModel.id).where(OrderModel.order_number == number))
        if exists is None:
            return number
        logger.info("order number collision: number=%s attempt=%s", number, attempt)
    raise OrderNumberConflict()
