"""Product service layer (Use Cases).

Orchestrates the product catalog, delegating persistence to the
injected ``IProductRepository``.  Stock is never stored on the product:
``initial_stock`` on creation becomes the first ledger movement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog

from modules.core.transactions import atomic_with_retry
from modules.inventory.models import MovementReason
from modules.products.exceptions import ProductAlreadyExists, ProductNotFound
from modules.products.models import Product

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.inventory.services import StockLedgerService
    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "description",
    "price",
    "disabled",
    "out_of_stock",
    "allow_sell_without_stock",
)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` and the stock ledger via
    constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository, ledger: StockLedgerService) -> None:
        self._repo = repository
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @atomic_with_retry
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a new product, seeding the ledger with ``initial_stock``.

        Raises:
            ProductAlreadyExists: if SKU is already taken.
        """
        log = logger.bind(sku=dto.sku)

        if self._repo.get_by_sku(dto.sku):
            log.warning("product.duplicate_sku")
            raise ProductAlreadyExists(f"SKU '{dto.sku}' already registered.")

        product = Product(
            sku=dto.sku,
            name=dto.name,
            price=dto.price,
            description=dto.description,
            disabled=dto.disabled,
            out_of_stock=dto.out_of_stock,
            allow_sell_without_stock=dto.allow_sell_without_stock,
        )
        product = self._repo.save(product)

        if dto.initial_stock:
            self._ledger.record(
                product.id,
                dto.initial_stock,
                dto.initial_unit_cost,
                reason=MovementReason.RESTOCK,
                note="Initial stock",
            )

        log.info(
            "product.created",
            product_id=str(product.id),
            initial_stock=dto.initial_stock,
        )
        return self.get_product(str(product.id))

    @atomic_with_retry
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Update price, description or availability flags.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")

        changed = []
        for field in UPDATABLE_FIELDS:
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)
                changed.append(field)

        if changed:
            product.save(update_fields=changed)
        logger.info("product.updated", product_id=str(id), fields=changed)
        return self.get_product(id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Return products annotated with ``current_stock``."""
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single product (with ``current_stock``) by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product
