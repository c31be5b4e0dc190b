"""Product API views.

Exposes the ``ProductService`` via HTTP using DRF ViewSets.  Any
authenticated user may browse the catalog; only staff may create or
update products.  Domain exceptions propagate to the central exception
handler, which renders them in the standard error envelope.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.dtos import build_dto
from modules.inventory.views import build_ledger_service
from modules.products.dtos import CreateProductDTO, UpdateProductDTO
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import (
    CreateProductSerializer,
    ProductSerializer,
    UpdateProductSerializer,
)
from modules.products.services import ProductService


class ProductViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for the product catalog.

    Uses ``ProductService`` with ``ProductDjangoRepository`` (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    filterset_class = ProductFilter
    search_fields = ["name", "sku", "description"]
    ordering_fields = ["name", "price", "current_stock", "created_at"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Product.objects.all()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(
            repository=ProductDjangoRepository(),
            ledger=build_ledger_service(),
        )

    def get_permissions(self):
        if self.action in {"create", "partial_update"}:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_products()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{pk}/"""
        product = self._service.get_product(pk)
        return Response(ProductSerializer(product).data)

    # ------------------------------------------------------------------
    # Create / Update
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        payload = CreateProductSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        dto = build_dto(CreateProductDTO, payload.validated_data)

        product = self._service.create_product(dto)
        return Response(
            ProductSerializer(product).data, status=status.HTTP_201_CREATED
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{pk}/"""
        payload = UpdateProductSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        dto = build_dto(UpdateProductDTO, payload.validated_data)

        product = self._service.update_product(pk, dto)
        return Response(ProductSerializer(product).data)
