from __future__ import annotations

import uuid


def _sku() -> str:
    return f"tee-{uuid.uuid4().hex[:6]}"


def _product(**overrides) -> dict:
    return {
        "sku": _sku(),
        "name": "Oxford Shirt",
        "price": 39000,
        "category": "tops",
        "stock": 12,
        "image_url": "https://cdn.example.com/oxford.jpg",
        **overrides,
    }


def test_admin_creates_and_updates_products(client, admin_headers):
    payload = _product()
    created = client.post("/products", json=payload, headers=admin_headers)
    assert created.status_code == 201
    product = created.json()["product"]
    assert product["sku"] == payload["sku"].upper()
    assert product["image"] == {"url": "https://cdn.example.com/oxford.jpg", "alt": "Oxford Shirt"}
    assert product["is_active"] is True

    duplicate = client.post("/products", json={**payload, "sku": payload["sku"].upper()}, headers=admin_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "duplicate_sku"

    updated = client.patch(
        f"/products/{product['id']}",
        json={"price": 35000, "stock": 3},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["product"]["price"] == 35000
    assert updated.json()["product"]["stock"] == 3

    fetched = client.get(f"/products/{product['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["product"]["name"] == "Oxford Shirt"


def test_catalog_writes_need_admin(client, bearer):
    assert client.post("/products", json=_product()).status_code == 401
    assert client.post("/products", json=_product(), headers=bearer("shopper")).status_code == 403


def test_product_payload_validation(client, admin_headers):
    assert client.post("/products", json=_product(sku="x"), headers=admin_headers).status_code == 422
    assert client.post("/products", json=_product(sku="AB--01"), headers=admin_headers).status_code == 422
    assert client.post("/products", json=_product(price=-1), headers=admin_headers).status_code == 422
    assert client.post("/products", json=_product(category="shoes"), headers=admin_headers).status_code == 422
    assert (
        client.post("/products", json=_product(image_url="ftp://cdn.example.com/x.jpg"), headers=admin_headers)
        .status_code
        == 422
    )
    assert client.patch("/products/anything", json={"stock": -2}, headers=admin_headers).status_code == 422


def test_listing_hides_inactive_products(client, admin_headers, make_product):
    hidden = make_product(is_active=False)

    listing = client.get("/products", params={"limit": 100})
    assert listing.status_code == 200
    body = listing.json()
    assert body["limit"] == 100
    assert all(product["is_active"] for product in body["products"])
    assert hidden not in {product["id"] for product in body["products"]}

    assert client.get(f"/products/{hidden}").json()["product"]["is_active"] is False
    assert client.get("/products/no-such-product").status_code == 404
