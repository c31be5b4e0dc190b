"""Order domain constants.

The status set is closed; the transition table itself lives in
``modules.orders.state_machine``.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    ON_HOLD = "ON_HOLD", "On hold"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELED = "CANCELED", "Canceled"
    RETURNED = "RETURNED", "Returned"
    REFUNDED = "REFUNDED", "Refunded"


class PaymentType(models.TextChoices):
    COD = "COD", "Cash on delivery"
    ONLINE_TRANSFER = "ONLINE_TRANSFER", "Online transfer"


# Status an order starts in, by how it is paid.
INITIAL_STATUS: dict[str, str] = {
    PaymentType.COD: OrderStatus.PROCESSING,
    PaymentType.ONLINE_TRANSFER: OrderStatus.PENDING,
}

# Customers may only cancel before the order is put on hold or shipped.
CUSTOMER_CANCELLABLE_STATES: frozenset[str] = frozenset(
    {OrderStatus.PENDING, OrderStatus.PROCESSING}
)

RETURNABLE_STATES: frozenset[str] = frozenset({OrderStatus.DELIVERED})

# Transfer proof can be attached until the order is confirmed and moving.
PAYMENT_EDITABLE_STATES: frozenset[str] = frozenset(
    {OrderStatus.PENDING, OrderStatus.PROCESSING}
)

ORDER_NUMBER_MAX_RETRIES = 5

TRANSACTION_ID_BYTES = 16
