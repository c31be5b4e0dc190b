"""Unit tests for the API error envelope."""

from __future__ import annotations

import pytest
from rest_framework import exceptions

from modules.core.dtos import build_dto
from modules.core.exception_handler import api_exception_handler
from modules.core.exceptions import (
    ContentionError,
    DomainValidationError,
    NotFoundError,
    PersistenceError,
)
from modules.inventory.exceptions import InsufficientStock
from modules.orders.dtos import ShippingAddressDTO
from modules.orders.state_machine import InvalidTransition

pytestmark = pytest.mark.unit

CONTEXT = {"view": None}


class TestDomainErrors:
    @pytest.mark.parametrize(
        ("exc", "status", "kind", "code"),
        [
            (DomainValidationError("bad"), 400, "validation_error", "invalid"),
            (NotFoundError("gone"), 404, "not_found", "not_found"),
            (InsufficientStock("short"), 409, "conflict", "insufficient_stock"),
            (InvalidTransition("nope"), 409, "conflict", "invalid_transition"),
            (ContentionError("busy"), 503, "contention", "contention"),
        ],
    )
    def test_status_kind_and_code(self, exc, status, kind, code):
        response = api_exception_handler(exc, CONTEXT)
        assert response.status_code == status
        assert response.data["type"] == kind
        assert response.data["errors"] == [
            {"code": code, "detail": str(exc), "attr": None}
        ]

    def test_contention_sets_retry_after(self):
        response = api_exception_handler(ContentionError("busy"), CONTEXT)
        assert response["Retry-After"] == "1"

    def test_persistence_error_detail_is_masked(self):
        response = api_exception_handler(
            PersistenceError("UNIQUE constraint failed: orders.secret_column"), CONTEXT
        )
        assert response.status_code == 500
        assert response.data["type"] == "server_error"
        assert "secret_column" not in response.data["errors"][0]["detail"]

    def test_code_override(self):
        exc = DomainValidationError("empty", code="payment_info_empty")
        response = api_exception_handler(exc, CONTEXT)
        assert response.data["errors"][0]["code"] == "payment_info_empty"


class TestDrfErrors:
    def test_nested_validation_errors_get_dotted_attrs(self):
        exc = exceptions.ValidationError(
            {
                "items": [{"quantity": ["A valid integer is required."]}],
                "shipping_address": {"phone": ["This field is required."]},
                "non_field_errors": ["Broken."],
            }
        )
        response = api_exception_handler(exc, CONTEXT)

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        attrs = {error["attr"] for error in response.data["errors"]}
        assert attrs == {"items.0.quantity", "shipping_address.phone", None}

    def test_permission_denied_is_client_error(self):
        response = api_exception_handler(exceptions.PermissionDenied(), CONTEXT)
        assert response.status_code == 403
        assert response.data["type"] == "client_error"
        assert response.data["errors"][0]["code"] == "permission_denied"

    def test_unhandled_exception_returns_none(self):
        assert api_exception_handler(RuntimeError("boom"), CONTEXT) is None


class TestBuildDto:
    def test_pydantic_errors_become_domain_validation_error(self):
        with pytest.raises(DomainValidationError) as exc_info:
            build_dto(ShippingAddressDTO, {"name": "", "address": "x"})
        message = str(exc_info.value)
        assert "name" in message
        assert "phone" in message

    def test_valid_data_builds_dto(self):
        dto = build_dto(
            ShippingAddressDTO, {"name": "A", "address": "B", "phone": "1"}
        )
        assert dto.phone == "1"
