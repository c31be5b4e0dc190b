"""Stock ledger URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.inventory.views import StockMovementViewSet

router = DefaultRouter(trailing_slash=True)
router.register("stock-movements", StockMovementViewSet, basename="stock-movement")

urlpatterns = router.urls
