from __future__ import annotations

import base64
import hmac
import json
import time
from hashlib import sha256
from typing import Literal

from fastapi import Header, HTTPException
from pydantic import BaseModel

from storefront.core.config import get_settings


Role = Literal["customer", "admin"]


class Principal(BaseModel):
    user_id: str
    role: Role = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _auth_error(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _token_key() -> bytes:
    settings = get_settings()
    return settings.token_signing_secret.encode("utf-8")


def create_access_token(user_id: str, role: Role = "customer", ttl_seconds: int | None = None) -> str:
    ttl = ttl_seconds if ttl_seconds is not None else get_settings().access_token_ttl_seconds
    now = int(time.time())
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + ttl,
    }
    body = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    mac = hmac.new(_token_key(), body, sha256).digest()
    return base64.urlsafe_b64encode(body + mac).decode("ascii")


def verify_access_token(token: str) -> Principal:
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
    except ValueError as exc:
        raise _auth_error("invalid token encoding") from exc

    if len(raw) <= 32:
        raise _auth_error("invalid token body")

    body, mac = raw[:-32], raw[-32:]
    expected = hmac.new(_token_key(), body, sha256).digest()
    if not hmac.compare_digest(mac, expected):
        raise _auth_error("token signature mismatch")

    payload = json.loads(body.decode("utf-8"))
    if int(time.time()) > int(payload.get("exp", 0)):
        raise _auth_error("token expired")
    if payload.get("role") not in {"customer", "admin"} or not payload.get("sub"):
        raise _auth_error("invalid token claims")
    return Principal(user_id=str(payload["sub"]), role=payload["role"])


def get_principal(authorization: str | None = Header(default=None)) -> Principal:
    settings = get_settings()
    if not settings.auth_enabled:
        return Principal(user_id=settings.dev_user_id, role=settings.dev_user_role)

    if not authorization:
        raise _auth_error("missing access token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _auth_error("invalid authorization header")
    return verify_access_token(token.strip())


def require_admin(principal: Principal) -> None:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="admin role required")
