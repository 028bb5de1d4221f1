from __future__ import annotations

import base64

from storefront.core.config import get_settings
from storefront.core.security import create_access_token, verify_access_token


def test_token_round_trip_carries_user_and_role():
    principal = verify_access_token(create_access_token("user-7", role="admin"))
    assert principal.user_id == "user-7"
    assert principal.is_admin is True


def test_expired_and_tampered_tokens_are_rejected(client):
    expired = create_access_token("user-7", ttl_seconds=-5)
    resp = client.get("/cart", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "token expired"

    raw = bytearray(base64.urlsafe_b64decode(create_access_token("user-7").encode("ascii")))
    raw[2] ^= 0x01
    forged = base64.urlsafe_b64encode(bytes(raw)).decode("ascii")
    resp = client.get("/cart", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "token signature mismatch"


def test_token_signed_with_another_secret_is_rejected(client):
    settings = get_settings()
    original = settings.token_signing_secret
    try:
        settings.token_signing_secret = "another-secret"
        token = create_access_token("user-7", role="admin")
    finally:
        settings.token_signing_secret = original

    resp = client.get("/orders/admin/all", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_auth_disabled_uses_dev_principal(client):
    settings = get_settings()
    original = settings.auth_enabled
    try:
        settings.auth_enabled = False
        resp = client.get("/cart")
        assert resp.status_code == 200
        assert resp.json()["cart"]["user_id"] == settings.dev_user_id

        assert client.get("/orders/admin/all").status_code == 403
    finally:
        settings.auth_enabled = original
