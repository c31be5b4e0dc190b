"""Product repository interface.

Extends ``IRepository[Product]`` with the look-ups the catalog and the
order core need: unique SKU checks and row locks for stock reservation.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[Product]":
        """List products annotated with ``current_stock``."""

    @abstractmethod
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""

    @abstractmethod
    def get_by_sku(self, sku: str) -> Optional[Product]:
        """Retrieve a product by SKU."""

    @abstractmethod
    def lock_many(self, ids: Iterable[Any]) -> List[Product]:
        """Lock product rows (SELECT FOR UPDATE) in ascending id order.

        Missing ids are silently absent from the result; the caller
        decides how to report them.
        """
