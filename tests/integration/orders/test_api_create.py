"""Integration tests for the order creation endpoint.

Covers:
- Success 201: COD and online-transfer orders, totals, price snapshot.
- Stock: one SALE movement per line, backorders, flags.
- Validation 400: empty lines, bad quantities, repeated products,
  missing payment info, malformed payloads.
- Business 404/409: unknown or disabled product, insufficient stock,
  someone else's payment method.
- Auth 401.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.inventory.models import MovementReason, StockMovement
from modules.orders.constants import OrderStatus, PaymentType
from modules.orders.models import Order, OrderStatusHistory
from modules.payments.models import PaymentMethod, PaymentMethodType

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def product_a(make_product):
    return make_product(sku="CREATE-A", price="10.00", stock=100)


@pytest.fixture()
def product_b(make_product):
    return make_product(sku="CREATE-B", price="25.50", stock=50)


@pytest.fixture()
def order_payload(product_a, product_b, shipping_address):
    return {
        "items": [
            {"product_id": str(product_a.id), "quantity": 2},
            {"product_id": str(product_b.id), "quantity": 1},
        ],
        "shipping_address": shipping_address,
        "payment_type": PaymentType.COD,
        "notes": "Leave at the door",
    }


def _error_code(response) -> str:
    return response.data["errors"][0]["code"]


# ===========================================================================
# Success (201)
# ===========================================================================


class TestOrderCreateSuccess:
    def test_cod_order_starts_processing(self, auth_client, order_payload, user):
        response = auth_client.post(URL, order_payload, format="json")

        assert response.status_code == 201
        data = response.data
        assert data["status"] == OrderStatus.PROCESSING
        assert data["order_number"].startswith("ORD-")
        assert data["user_id"] == user.pk
        assert len(data["items"]) == 2
        assert data["notes"] == "Leave at the door"
        assert data["shipping_address"]["name"] == "Aung Aung"

    def test_online_transfer_with_transaction_id_starts_pending(
        self, auth_client, order_payload
    ):
        order_payload.update(
            payment_type=PaymentType.ONLINE_TRANSFER, transaction_id="KBZ-778899"
        )

        response = auth_client.post(URL, order_payload, format="json")

        assert response.status_code == 201
        assert response.data["status"] == OrderStatus.PENDING
        assert response.data["transaction_id"] == "KBZ-778899"

    def test_online_transfer_with_own_payment_method(
        self, auth_client, order_payload, user
    ):
        method = PaymentMethod.objects.create(
            user=user, type=PaymentMethodType.KBZ_PAY, details={"account_name": "A"}
        )
        order_payload.update(
            payment_type=PaymentType.ONLINE_TRANSFER,
            payment_method_ref=str(method.id),
        )

        response = auth_client.post(URL, order_payload, format="json")

        assert response.status_code == 201
        assert response.data["payment_method_id"] == method.id
        # No id supplied: one is generated.
        assert len(response.data["transaction_id"]) == 32

    def test_total_is_sum_of_lines(self, auth_client, order_payload):
        response = auth_client.post(URL, order_payload, format="json")
        # 2 * 10.00 + 1 * 25.50
        assert Decimal(response.data["total_amount"]) == Decimal("45.50")

    def test_unit_price_is_snapshot(self, auth_client, order_payload, product_a):
        response = auth_client.post(URL, order_payload, format="json")

        product_a.price = Decimal("99.00")
        product_a.save()

        order = Order.objects.get(id=response.data["id"])
        item = order.items.get(product=product_a)
        assert item.unit_price == Decimal("10.00")
        assert item.subtotal == Decimal("20.00")

    def test_creation_history_entry(self, auth_client, order_payload, user):
        response = auth_client.post(URL, order_payload, format="json")

        history = OrderStatusHistory.objects.get(order_id=response.data["id"])
        assert history.old_status is None
        assert history.new_status == OrderStatus.PROCESSING
        assert history.changed_by_id == user.pk


# ===========================================================================
# Stock
# ===========================================================================


class TestOrderCreateStock:
    def test_sale_movement_per_line(
        self, auth_client, order_payload, product_a, product_b, ledger
    ):
        response = auth_client.post(URL, order_payload, format="json")

        sales = StockMovement.objects.filter(
            order_id=response.data["id"], reason=MovementReason.SALE
        )
        assert {(m.product_id, m.delta_quantity) for m in sales} == {
            (product_a.id, -2),
            (product_b.id, -1),
        }
        assert ledger.current_stock(product_a.id) == 98
        assert ledger.current_stock(product_b.id) == 49

    def test_exact_remaining_stock_can_be_bought(
        self, auth_client, make_product, shipping_address, ledger
    ):
        product = make_product(sku="LAST-ONES", stock=3)
        payload = {
            "items": [{"product_id": str(product.id), "quantity": 3}],
            "shipping_address": shipping_address,
            "payment_type": PaymentType.COD,
        }

        assert auth_client.post(URL, payload, format="json").status_code == 201
        assert ledger.current_stock(product.id) == 0

    def test_backorder_product_goes_negative(
        self, auth_client, make_product, shipping_address, ledger
    ):
        product = make_product(
            sku="PREORDER", stock=1, allow_sell_without_stock=True
        )
        payload = {
            "items": [{"product_id": str(product.id), "quantity": 4}],
            "shipping_address": shipping_address,
            "payment_type": PaymentType.COD,
        }

        assert auth_client.post(URL, payload, format="json").status_code == 201
        assert ledger.current_stock(product.id) == -3


# ===========================================================================
# Validation (400)
# ===========================================================================


class TestOrderCreateValidation:
    def test_empty_items(self, auth_client, order_payload):
        order_payload["items"] = []
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert _error_code(response) == "invalid_line_items"

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity(self, auth_client, order_payload, quantity):
        order_payload["items"][0]["quantity"] = quantity
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert _error_code(response) == "invalid_line_items"

    def test_repeated_product(self, auth_client, order_payload, product_a):
        order_payload["items"].append({"product_id": str(product_a.id), "quantity": 1})
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert _error_code(response) == "invalid_line_items"

    def test_online_transfer_without_payment_info(self, auth_client, order_payload):
        order_payload["payment_type"] = PaymentType.ONLINE_TRANSFER
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert _error_code(response) == "payment_info_required"

    def test_unknown_payment_type(self, auth_client, order_payload):
        order_payload["payment_type"] = "BARTER"
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "payment_type"

    def test_missing_shipping_address_field(self, auth_client, order_payload):
        del order_payload["shipping_address"]["phone"]
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"][0]["attr"] == "shipping_address.phone"

    def test_malformed_product_id(self, auth_client, order_payload):
        order_payload["items"][0]["product_id"] = "not-a-uuid"
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "items.0.product_id"

    def test_rejected_order_writes_nothing(self, auth_client, order_payload):
        order_payload["items"] = []
        auth_client.post(URL, order_payload, format="json")
        assert Order.objects.count() == 0


# ===========================================================================
# Business errors (404 / 409)
# ===========================================================================


class TestOrderCreateBusinessErrors:
    def test_unknown_product(self, auth_client, order_payload):
        order_payload["items"][0]["product_id"] = str(uuid4())
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 404
        assert _error_code(response) == "product_not_found"

    def test_disabled_product(self, auth_client, make_product, order_payload):
        hidden = make_product(sku="HIDDEN", stock=5, disabled=True)
        order_payload["items"].append({"product_id": str(hidden.id), "quantity": 1})
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 409
        assert _error_code(response) == "product_unavailable"

    def test_insufficient_stock(self, auth_client, make_product, order_payload):
        scarce = make_product(sku="SCARCE", stock=2)
        order_payload["items"].append({"product_id": str(scarce.id), "quantity": 3})
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 409
        assert _error_code(response) == "insufficient_stock"
        assert "SCARCE" in response.data["errors"][0]["detail"]

    def test_out_of_stock_flag(self, auth_client, make_product, order_payload):
        flagged = make_product(sku="FLAGGED", stock=50, out_of_stock=True)
        order_payload["items"] = [{"product_id": str(flagged.id), "quantity": 1}]
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 409
        assert _error_code(response) == "insufficient_stock"

    def test_failed_line_rolls_back_earlier_lines(
        self, auth_client, make_product, order_payload, product_a, ledger
    ):
        scarce = make_product(sku="SCARCE", stock=1)
        order_payload["items"].append({"product_id": str(scarce.id), "quantity": 2})

        auth_client.post(URL, order_payload, format="json")

        assert Order.objects.count() == 0
        assert ledger.current_stock(product_a.id) == 100
        assert not StockMovement.objects.filter(reason=MovementReason.SALE).exists()

    def test_someone_elses_payment_method(self, auth_client, order_payload, other_user):
        method = PaymentMethod.objects.create(
            user=other_user, type=PaymentMethodType.AYA_PAY
        )
        order_payload.update(
            payment_type=PaymentType.ONLINE_TRANSFER,
            payment_method_ref=str(method.id),
        )
        response = auth_client.post(URL, order_payload, format="json")
        assert response.status_code == 409
        assert _error_code(response) == "foreign_payment_method"


# ===========================================================================
# Auth (401)
# ===========================================================================


class TestOrderCreateAuth:
    def test_anonymous_rejected(self, api_client, order_payload):
        response = api_client.post(URL, order_payload, format="json")
        assert response.status_code == 401
        assert response.data["type"] == "client_error"
