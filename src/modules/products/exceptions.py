"""Product domain exceptions.

Raised by the Service Layer when business rules are violated and
rendered by ``modules.core.exception_handler``.
"""

from __future__ import annotations

from modules.core.exceptions import ConflictError, NotFoundError


class ProductAlreadyExists(ConflictError):
    """A product with the same SKU already exists."""

    code = "product_already_exists"


class ProductNotFound(NotFoundError):
    """The requested product does not exist."""

    code = "product_not_found"


class ProductUnavailable(ConflictError):
    """The product is disabled and cannot be ordered."""

    code = "product_unavailable"
