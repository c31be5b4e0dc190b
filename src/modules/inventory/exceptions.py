"""Stock ledger exceptions."""

from __future__ import annotations

from modules.core.exceptions import ConflictError


class InsufficientStock(ConflictError):
    """Requested quantity exceeds what the product can currently sell."""

    code = "insufficient_stock"
