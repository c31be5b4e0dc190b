"""Integration tests for order idempotency.

Covers:
- Replaying the same Idempotency-Key returns the same order with 200
  and writes nothing else.
- Different keys create distinct orders.
- A key used by another user is a 409 conflict.
- Losing the insert race on the key resolves to the winner's order.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from rest_framework.test import APIClient

from modules.inventory.models import StockMovement
from modules.orders.constants import PaymentType
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order
from modules.orders.services import OrderService

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def product(make_product):
    return make_product(sku="IDEMP-A", price="10.00", stock=100)


@pytest.fixture()
def order_payload(product, shipping_address):
    return {
        "items": [{"product_id": str(product.id), "quantity": 2}],
        "shipping_address": shipping_address,
        "payment_type": PaymentType.COD,
    }


class TestIdempotencyReplay:
    def test_replay_returns_same_order(self, auth_client, order_payload):
        headers = {"HTTP_IDEMPOTENCY_KEY": "idem-key-001"}

        first = auth_client.post(URL, order_payload, format="json", **headers)
        replays = [
            auth_client.post(URL, order_payload, format="json", **headers)
            for _ in range(2)
        ]

        assert first.status_code == 201
        assert all(r.status_code == 200 for r in replays)
        assert {r.data["id"] for r in replays} == {first.data["id"]}
        assert Order.objects.count() == 1

    def test_replay_does_not_touch_stock(
        self, auth_client, order_payload, product, ledger
    ):
        headers = {"HTTP_IDEMPOTENCY_KEY": "idem-stock"}
        auth_client.post(URL, order_payload, format="json", **headers)
        auth_client.post(URL, order_payload, format="json", **headers)

        assert ledger.current_stock(product.id) == 98
        assert StockMovement.objects.filter(order__isnull=False).count() == 1

    def test_replay_with_different_payload_returns_original(
        self, auth_client, order_payload
    ):
        headers = {"HTTP_IDEMPOTENCY_KEY": "idem-changed"}
        first = auth_client.post(URL, order_payload, format="json", **headers)

        order_payload["items"][0]["quantity"] = 5
        second = auth_client.post(URL, order_payload, format="json", **headers)

        assert second.status_code == 200
        assert second.data["id"] == first.data["id"]
        assert second.data["items"][0]["quantity"] == 2

    def test_different_keys_create_distinct_orders(self, auth_client, order_payload):
        a = auth_client.post(
            URL, order_payload, format="json", HTTP_IDEMPOTENCY_KEY="key-a"
        )
        b = auth_client.post(
            URL, order_payload, format="json", HTTP_IDEMPOTENCY_KEY="key-b"
        )

        assert a.status_code == b.status_code == 201
        assert a.data["id"] != b.data["id"]

    def test_no_key_means_no_deduplication(self, auth_client, order_payload):
        auth_client.post(URL, order_payload, format="json")
        auth_client.post(URL, order_payload, format="json")
        assert Order.objects.count() == 2
        assert not Order.objects.filter(idempotency_key__isnull=False).exists()


class TestIdempotencyConflict:
    def test_key_of_another_user(self, auth_client, order_payload, other_user):
        intruder = APIClient()
        intruder.force_authenticate(user=other_user)
        auth_client.post(
            URL, order_payload, format="json", HTTP_IDEMPOTENCY_KEY="shared-key"
        )

        response = intruder.post(
            URL, order_payload, format="json", HTTP_IDEMPOTENCY_KEY="shared-key"
        )

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "idempotency_key_conflict"
        assert Order.objects.count() == 1


class TestIdempotencyRace:
    def test_insert_race_resolves_to_winner(
        self, order_service, product, user, shipping_address, ledger
    ):
        """Both lookups miss, the insert hits the unique key, the winner is replayed."""
        dto = CreateOrderDTO(
            user_id=user.pk,
            items=[{"product_id": product.id, "quantity": 1}],
            shipping_address=shipping_address,
            payment_type=PaymentType.COD,
            idempotency_key="race-key",
        )
        winner = order_service.create_order(dto).order

        real_replay = OrderService._replay
        calls = {"n": 0}

        def blind_then_real(self, dto):
            calls["n"] += 1
            if calls["n"] <= 2:
                return None
            return real_replay(self, dto)

        with patch.object(OrderService, "_replay", blind_then_real):
            result = order_service.create_order(dto)

        assert result.replayed is True
        assert result.order.id == winner.id
        assert Order.objects.count() == 1
        assert ledger.current_stock(product.id) == 99
