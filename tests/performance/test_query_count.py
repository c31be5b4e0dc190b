"""Performance regression tests: constant query count (N+1 prevention).

Verifies that list and retrieve endpoints execute a bounded number of
SQL queries regardless of the number of records, proving that
``prefetch_related`` and the ledger annotation are correctly applied.
"""

from __future__ import annotations

import pytest

from modules.orders.constants import PaymentType
from modules.orders.dtos import CreateOrderDTO


@pytest.fixture()
def products(make_product):
    return [make_product(sku=f"PERF-{i:03d}", stock=1000) for i in range(5)]


@pytest.fixture()
def orders_with_items(order_service, products, user, shipping_address):
    """Ten orders of three lines each, placed through the service."""
    return [
        order_service.create_order(
            CreateOrderDTO(
                user_id=user.pk,
                items=[{"product_id": p.id, "quantity": 1} for p in products[:3]],
                shipping_address=shipping_address,
                payment_type=PaymentType.COD,
            )
        ).order
        for _ in range(10)
    ]


class TestOrderListQueryCount:
    def test_list_query_count_is_constant(
        self, auth_client, orders_with_items, django_assert_max_num_queries
    ):
        """GET /api/v1/orders/: COUNT, SELECT orders, prefetch items."""
        with django_assert_max_num_queries(4):
            response = auth_client.get("/api/v1/orders/")

        assert response.status_code == 200
        assert response.data["count"] == 10
        assert {row["item_count"] for row in response.data["results"]} == {3}


class TestOrderRetrieveQueryCount:
    def test_retrieve_query_count_is_constant(
        self, auth_client, orders_with_items, django_assert_max_num_queries
    ):
        """GET /api/v1/orders/{id}/: order, items, products, history, refunds."""
        order = orders_with_items[0]

        with django_assert_max_num_queries(6):
            response = auth_client.get(f"/api/v1/orders/{order.id}/")

        assert response.status_code == 200
        assert len(response.data["items"]) == 3


class TestProductListQueryCount:
    def test_stock_is_aggregated_in_one_query(
        self, auth_client, products, django_assert_max_num_queries
    ):
        """GET /api/v1/products/: COUNT plus one annotated SELECT."""
        with django_assert_max_num_queries(3):
            response = auth_client.get("/api/v1/products/")

        assert response.status_code == 200
        assert {row["current_stock"] for row in response.data["results"]} == {1000}
