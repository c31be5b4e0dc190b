"""Order API views.

Exposes the ``OrderService`` via HTTP using a DRF ViewSet.  Views only
translate HTTP into DTOs and back; domain exceptions propagate to
``modules.core.exception_handler`` which renders the error envelope.

Customers see and act on their own orders only.  Arbitrary status
transitions (``PATCH /orders/{id}/``) are reserved for staff.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.dtos import build_dto
from modules.inventory.views import build_ledger_service
from modules.orders.dtos import CreateOrderDTO, UpdatePaymentInfoDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderActionSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdatePaymentInfoSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderService
from modules.payments.repositories.django_repository import (
    PaymentMethodDjangoRepository,
)
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.refunds.repositories.django_repository import RefundDjangoRepository
from modules.refunds.serializers import RefundSerializer


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        ledger=build_ledger_service(),
        refund_repository=RefundDjangoRepository(),
        payment_method_repository=PaymentMethodDjangoRepository(),
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "transaction_id"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self):
        if self.action == "partial_update":
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        payload = CreateOrderSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        dto = build_dto(
            CreateOrderDTO,
            {
                **payload.validated_data,
                "user_id": request.user.pk,
                "idempotency_key": request.headers.get("Idempotency-Key") or None,
            },
        )
        result = self._service.create_order(dto)

        return Response(
            OrderSerializer(result.order).data,
            status=status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_orders(user=self.request.user)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, payment type, date range, total range,
        transaction id) is handled by ``OrderFilter``; results are
        paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(pk, user=request.user)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/ (staff)

        ``{"status": "...", "refund": {"amount": ..., "reason": "..."}}``;
        ``refund`` is read only when the target is ``REFUNDED``.
        """
        payload = UpdateStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        order = self._service.update_status(
            pk,
            data["status"],
            refund=data.get("refund"),
            notes=data["notes"],
            changed_by=request.user,
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        payload = OrderActionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        order = self._service.cancel_order(
            pk, request.user, notes=payload.validated_data["notes"]
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="return", url_name="return")
    def return_order(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/return/"""
        payload = OrderActionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        order = self._service.request_return(
            pk, request.user, notes=payload.validated_data["notes"]
        )
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Payment proof / refunds
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"])
    def payment(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/payment/"""
        payload = UpdatePaymentInfoSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        dto = build_dto(UpdatePaymentInfoDTO, payload.validated_data)
        order = self._service.update_payment_info(pk, dto, user=request.user)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def refunds(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/refunds/"""
        refunds = self._service.list_refunds(pk, user=request.user)
        return Response(RefundSerializer(refunds, many=True).data)
