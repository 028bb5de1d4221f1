from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront.core.security import Principal, get_principal, require_admin
from storefront.domain.catalog.products import (
    ProductCreateRequest,
    ProductUpdateRequest,
    create_product,
    get_product,
    list_products,
    serialize_product,
    update_product,
)
from storefront.persistence.pg import get_session

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_catalog(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    return list_products(session, page=page, limit=limit)


@router.get("/{product_id}")
def get_catalog_product(product_id: str, session: Session = Depends(get_session)):
    return {"product": serialize_product(get_product(session, product_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_catalog_product(
    body: ProductCreateRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    require_admin(principal)
    return {"product": serialize_product(create_product(session, body))}


@router.patch("/{product_id}")
def update_catalog_product(
    product_id: str,
    body: ProductUpdateRequest,
    principal: Principal = Depends(get_principal),
    session: Session = Depends(get_session),
):
    require_admin(principal)
    return {"product": serialize_product(update_product(session, product_id, body))}
