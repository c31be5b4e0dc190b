"""Saved payment methods.

Only what order creation needs: who owns a method and what kind it is.
Managing methods (CRUD) happens outside this service.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel


class PaymentMethodType(models.TextChoices):
    AYA_BANK = "AYA_BANK", "AYA Bank"
    KBZ_BANK = "KBZ_BANK", "KBZ Bank"
    AYA_PAY = "AYA_PAY", "AYA Pay"
    KBZ_PAY = "KBZ_PAY", "KBZ Pay"


class PaymentMethod(BaseModel):
    """A user's bank account or wallet used for online transfers.

    ``details`` holds provider-specific fields (account name/number).
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payment_methods",
    )
    type = models.CharField(max_length=20, choices=PaymentMethodType.choices)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "payment_methods"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user"], name="payment_methods_user_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type} ({self.user_id})"
