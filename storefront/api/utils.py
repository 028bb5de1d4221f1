from __future__ import annotations

from fastapi.responses import JSONResponse

from storefront.core.config import get_settings


def resolve_page_size(limit: int | None, default: int) -> int:
    settings = get_settings()
    if limit is None:
        return min(default, settings.max_page_size)
    return min(limit, settings.max_page_size)


def refusal(status_code: int, error: str, detail: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "error": error, **extra})
