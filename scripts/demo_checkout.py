#!/usr/bin/env python3
"""Walk a running API through catalog -> cart -> order -> cancel.

Tokens come from `storefront token issue`, e.g.:

    storefront token issue --user-id admin-1 --role admin
    storefront token issue --user-id customer-1
"""
from __future__ import annotations

import argparse
import json
import uuid

import requests


def _call(method: str, url: str, token: str, **kwargs) -> dict:
    resp = requests.request(method, url, headers={"Authorization": f"Bearer {token}"}, timeout=30, **kwargs)
    resp.raise_for_status()
    return resp.json()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a demo checkout against the storefront API")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--admin-token", required=True)
    parser.add_argument("--user-token", required=True)
    parser.add_argument("--cancel", action="store_true", help="Cancel the order after placing it")
    args = parser.parse_args()

    base = args.base_url.rstrip("/")
    suffix = uuid.uuid4().hex[:6].upper()
    products = []
    for sku, name, price, category in (
        (f"TEE-{suffix}", "Basic Tee", 20000, "tops"),
        (f"CAP-{suffix}", "Ball Cap", 5000, "accessories"),
    ):
        created = _call(
            "POST",
            f"{base}/products",
            args.admin_token,
            json={
                "sku": sku,
                "name": name,
                "price": price,
                "category": category,
                "image_url": f"https://example.com/{sku.lower()}.jpg",
                "stock": 10,
            },
        )
        products.append(created["product"])

    _call("DELETE", f"{base}/cart", args.user_token)
    _call("POST", f"{base}/cart/items", args.user_token, json={"product_id": products[0]["id"], "quantity": 2})
    _call("POST", f"{base}/cart/items", args.user_token, json={"product_id": products[1]["id"], "quantity": 1})

    order = _call(
        "POST",
        f"{base}/orders",
        args.user_token,
        json={
            "shipping": {
                "recipient_name": "Demo Customer",
                "phone": "010-1234-5678",
                "zip_code": "06236",
                "address": "123 Teheran-ro, Gangnam-gu, Seoul",
                "detail_address": "Suite 501",
            },
            "payment": {"method": "credit-card"},
        },
    )["order"]
    print(json.dumps(order, indent=2, ensure_ascii=False))

    mine = _call("GET", f"{base}/orders/my-orders", args.user_token, params={"limit": 5})
    print(json.dumps({"pagination": mine["pagination"], "status_counts": mine["status_counts"]}, indent=2))

    if args.cancel:
        cancelled = _call(
            "PATCH",
            f"{base}/orders/{order['id']}/cancel",
            args.user_token,
            json={"reason": "demo cancellation"},
        )
        print(json.dumps(cancelled, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
