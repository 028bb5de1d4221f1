from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import storefront.persistence.pg as pg
from storefront.core.config import get_settings
from storefront.core.security import create_access_token
from storefront.domain.cart.commands import AddCartItemRequest, SelectedOptions, add_item
from storefront.domain.catalog.products import ProductCreateRequest, create_product
from storefront.domain.inventory.ledger import InventoryLedger
from storefront.payments import PaymentReference, VerificationResult
from storefront.persistence.models import Base


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.auth_enabled = True
    settings.payment_gateway_api_key = None
    settings.payment_gateway_api_secret = None

    engine = pg.create_engine_from_url(f"sqlite+pysqlite:///{test_db_path}")
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(configure_test_engine):
    from storefront.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def new_user():
    def _new(prefix: str = "user") -> str:
        return f"{prefix}-{uuid.uuid4().hex[:10]}"

    return _new


@pytest.fixture()
def bearer():
    def _headers(user_id: str, role: str = "customer") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}

    return _headers


@pytest.fixture()
def admin_headers(bearer):
    return bearer("admin-ops", role="admin")


@pytest.fixture()
def make_product(configure_test_engine):
    def _make(
        price: int = 10000,
        stock: int = 10,
        name: str | None = None,
        category: str = "tops",
        is_active: bool = True,
    ) -> str:
        sku = f"T-{uuid.uuid4().hex[:10].upper()}"
        request = ProductCreateRequest(
            sku=sku,
            name=name or f"Product {sku}",
            price=price,
            category=category,
            stock=stock,
            image_url=f"https://cdn.example.com/{sku.lower()}.jpg",
            is_active=is_active,
        )
        with pg.session_scope() as s:
            return create_product(s, request).id

    return _make


@pytest.fixture()
def fill_cart(configure_test_engine):
    def _fill(user_id: str, *lines: tuple) -> None:
        with pg.session_scope() as s:
            for line in lines:
                product_id, quantity = line[0], line[1]
                options = line[2] if len(line) > 2 else {}
                add_item(
                    s,
                    user_id,
                    AddCartItemRequest(
                        product_id=product_id,
                        quantity=quantity,
                        selected_options=SelectedOptions(**options),
                    ),
                )

    return _fill


@pytest.fixture()
def stock_of(configure_test_engine):
    def _stock(product_id: str) -> int:
        with pg.session_scope() as s:
            return InventoryLedger(s).stock_of(product_id)

    return _stock


@pytest.fixture()
def order_payload() -> dict:
    return {
        "shipping": {
            "recipient_name": "Kim Minji",
            "phone": "010-1234-5678",
            "zip_code": "06236",
            "address": "123 Teheran-ro, Gangnam-gu, Seoul",
            "detail_address": "Apt 501",
            "instructions": "leave at the door",
        },
        "payment": {"method": "credit-card"},
    }


class FakeVerifier:
    name = "fake"

    def __init__(self, verified: bool = True, reason: str = "payment verified"):
        self.verified = verified
        self.reason = reason
        self.references: list[PaymentReference] = []

    def verify(self, reference: PaymentReference) -> VerificationResult:
        self.references.append(reference)
        if not self.verified:
            return VerificationResult(verified=False, reason=self.reason, gateway=self.name)
        return VerificationResult(
            verified=True,
            reason=self.reason,
            gateway=self.name,
            transaction_id=reference.gateway_payment_id,
            paid_at=datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc),
            record={"amount": reference.expected_amount, "merchant_uid": reference.expected_order_number},
        )


@pytest.fixture()
def make_verifier():
    return FakeVerifier
