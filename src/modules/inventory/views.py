"""Stock ledger API views (staff only).

``POST`` appends a manual movement, ``GET`` lists ledger rows newest
first.  There is no update or delete route: the ledger is append-only.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.dtos import build_dto
from modules.inventory.dtos import RecordStockMovementDTO
from modules.inventory.filters import StockMovementFilter
from modules.inventory.models import StockMovement
from modules.inventory.repositories.django_repository import (
    StockMovementDjangoRepository,
)
from modules.inventory.serializers import (
    RecordStockMovementSerializer,
    StockMovementSerializer,
)
from modules.inventory.services import StockLedgerService
from modules.products.repositories.django_repository import ProductDjangoRepository


def build_ledger_service() -> StockLedgerService:
    return StockLedgerService(
        movement_repository=StockMovementDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


class StockMovementViewSet(GenericViewSet):
    """Manual restocks/corrections and the ledger audit trail."""

    queryset = StockMovement.objects.all()
    serializer_class = StockMovementSerializer
    permission_classes = [IsAdminUser]
    filterset_class = StockMovementFilter
    filter_backends = [DjangoFilterBackend]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_ledger_service()

    def get_queryset(self):
        return self._service.history()

    def list(self, request: Request) -> Response:
        """GET /api/v1/stock-movements/?product=<id>"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = StockMovementSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/stock-movements/"""
        payload = RecordStockMovementSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        dto = build_dto(RecordStockMovementDTO, payload.validated_data)

        movement = self._service.record_manual(dto)
        movement = self._service.history().get(id=movement.id)
        return Response(
            StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED
        )
