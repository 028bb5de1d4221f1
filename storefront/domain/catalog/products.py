from __future__ import annotations

import logging
import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.core.clock import iso_utc, now_utc
from storefront.domain.errors import DuplicateSku, ProductNotFound
from storefront.persistence.models import ProductModel

logger = logging.getLogger(__name__)

Category = Literal["tops", "bottoms", "accessories"]

_SKU_CHARS = re.compile(r"^[A-Z0-9\-]{3,20}$")


def normalize_sku(value: str) -> str:
    sku = value.strip().upper()
    if not _SKU_CHARS.match(sku) or sku.startswith("-") or sku.endswith("-") or "--" in sku:
        raise ValueError("sku must be 3-20 characters of A-Z, 0-9 and single inner hyphens (e.g. PRD-001)")
    return sku


class ProductCreateRequest(BaseModel):
    sku: str
    name: str = Field(min_length=1, max_length=100)
    price: int = Field(ge=0)
    category: Category
    stock: int = Field(default=0, ge=0)
    image_url: str | None = Field(default=None, pattern=r"^https?://")
    image_alt: str | None = Field(default=None, max_length=200)
    is_active: bool = True

    @field_validator("sku")
    @classmethod
    def _sku(cls, value: str) -> str:
        return normalize_sku(value)


class ProductUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    price: int | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


def create_product(session: Session, request: ProductCreateRequest) -> ProductModel:
    if session.scalar(select(ProductModel.id).where(ProductModel.sku == request.sku)) is not None:
        raise DuplicateSku(f"sku {request.sku} is already in use")
    now = now_utc()
    product = ProductModel(
        sku=request.sku,
        name=request.name.strip(),
        price=request.price,
        category=request.category,
        stock=request.stock,
        image_url=request.image_url,
        image_alt=request.image_alt or request.name.strip(),
        is_active=request.is_active,
        created_at=now,
        updated_at=now,
    )
    session.add(product)
    session.flush()
    logger.info("product created: id=%s sku=%s stock=%s", product.id, product.sku, product.stock)
    return product


def get_product(session: Session, product_id: str) -> ProductModel:
    product = session.get(ProductModel, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def update_product(session: Session, product_id: str, request: ProductUpdateRequest) -> ProductModel:
    # Catalog edits never touch orders: line items carry their own snapshot.
    product = get_product(session, product_id)
    changes = request.model_dump(exclude_none=True)
    for key, value in changes.items():
        setattr(product, key, value)
    product.updated_at = now_utc()
    session.flush()
    logger.info("product updated: id=%s fields=%s", product.id, sorted(changes))
    return product


def list_products(session: Session, page: int, limit: int, include_inactive: bool = False) -> dict:
    stmt = select(ProductModel)
    count_stmt = select(func.count()).select_from(ProductModel)
    if not include_inactive:
        stmt = stmt.where(ProductModel.is_active.is_(True))
        count_stmt = count_stmt.where(ProductModel.is_active.is_(True))
    total = int(session.scalar(count_stmt) or 0)
    rows = session.scalars(
        stmt.order_by(ProductModel.created_at.desc(), ProductModel.id).offset((page - 1) * limit).limit(limit)
    ).all()
    return {"products": [serialize_product(p) for p in rows], "total": total, "page": page, "limit": limit}


def serialize_product(product: ProductModel) -> dict:
    return {
        "id": product.id,
        "sku": product.sku,
        "name": product.name,
        "price": product.price,
        "category": product.category,
        "image": {"url": product.image_url, "alt": product.image_alt},
        "stock": product.stock,
        "is_active": product.is_active,
        "created_at": iso_utc(product.created_at),
        "updated_at": iso_utc(product.updated_at),
    }
