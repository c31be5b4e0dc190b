from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.inventory.models import MovementReason, StockMovement
from modules.inventory.repositories.django_repository import (
    StockMovementDjangoRepository,
)
from modules.inventory.services import StockLedgerService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.repositories.django_repository import (
    PaymentMethodDjangoRepository,
)
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.refunds.repositories.django_repository import RefundDjangoRepository

User = get_user_model()

SHIPPING_ADDRESS = {
    "name": "Aung Aung",
    "address": "12 Pansodan Street, Yangon",
    "phone": "+95 9 123 456 789",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def user():
    return User.objects.create_user(username="customer", password="testpass123")


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="someone_else", password="testpass123")


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="staff", password="testpass123", is_staff=True
    )


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated customer."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def staff_client(staff_user):
    """APIClient with a force-authenticated staff member."""
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


# ---------------------------------------------------------------------------
# Catalog / ledger
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    """Factory: a product whose stock is seeded through one RESTOCK movement."""

    def _make(
        sku: str = "SKU-001",
        price: str | Decimal = "10.00",
        stock: int = 10,
        **flags,
    ) -> Product:
        product = Product.objects.create(
            sku=sku,
            name=f"Product {sku}",
            price=Decimal(str(price)),
            **flags,
        )
        if stock:
            StockMovement.objects.create(
                product=product,
                delta_quantity=stock,
                unit_cost=Decimal("1.00"),
                reason=MovementReason.RESTOCK,
            )
        return product

    return _make


@pytest.fixture()
def ledger():
    return StockLedgerService(
        movement_repository=StockMovementDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def order_service(ledger):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        ledger=ledger,
        refund_repository=RefundDjangoRepository(),
        payment_method_repository=PaymentMethodDjangoRepository(),
    )


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)
