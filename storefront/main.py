from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from storefront.api.routes_cart import router as cart_router
from storefront.api.routes_orders import router as orders_router
from storefront.api.routes_products import router as products_router
from storefront.core.config import get_settings
from storefront.core.logging import configure_logging
from storefront.domain.errors import GatewayConfigurationError, StorefrontError
from storefront.persistence.pg import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    logger.info("storefront ready: env=%s auth_enabled=%s", settings.env, settings.auth_enabled)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(_: Request, exc: StorefrontError):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.reason,
            "error": exc.code,
        },
    )


@app.exception_handler(StaleDataError)
async def stale_data_handler(_: Request, exc: StaleDataError):
    return JSONResponse(
        status_code=409,
        content={
            "detail": "order was modified concurrently, reload and retry",
            "error": "concurrent_modification",
        },
    )


@app.exception_handler(GatewayConfigurationError)
async def gateway_configuration_handler(_: Request, exc: GatewayConfigurationError):
    logger.error("payment gateway misconfigured: %s", exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "payment verification is unavailable",
            "error": "payment_gateway_unconfigured",
        },
    )


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(products_router)
app.include_router(cart_router)
app.include_router(orders_router)
