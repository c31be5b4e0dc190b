"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: methods return ``None``
instead of raising HTTP-level exceptions; the Service Layer decides
how to translate a missing entity into a domain error.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog

from django.core.exceptions import ValidationError
from django.db.models import QuerySet, Sum, Value
from django.db.models.functions import Coalesce

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def with_current_stock(queryset: QuerySet) -> QuerySet:
    """Annotate ``current_stock`` as the point-in-time ledger sum."""
    return queryset.annotate(
        current_stock=Coalesce(Sum("stock_movements__delta_quantity"), Value(0))
    )


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product (with ``current_stock``) by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return with_current_stock(Product.objects.filter(id=id)).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"disabled": False}
            {"name__icontains": "widget"}
        """
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return with_current_stock(queryset)

    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info(
            "product.saved",
            product_id=str(entity.id),
            sku=entity.sku,
        )
        return entity

    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU (case-insensitive via upper normalisation)."""
        return Product.objects.filter(sku=sku.strip().upper()).first()

    def lock_many(self, ids: Iterable[Any]) -> List[Product]:
        # A fixed lock order keeps two orders for overlapping products
        # from deadlocking each other.
        return list(
            Product.objects.select_for_update()
            .filter(id__in=list(ids))
            .order_by("id")
        )
