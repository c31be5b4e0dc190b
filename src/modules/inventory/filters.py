import django_filters

from modules.inventory.models import MovementReason, StockMovement


class StockMovementFilter(django_filters.FilterSet):
    product = django_filters.UUIDFilter(field_name="product_id")
    order = django_filters.UUIDFilter(field_name="order_id")
    reason = django_filters.ChoiceFilter(choices=MovementReason.choices)
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = StockMovement
        fields = ["product", "order", "reason", "start_date", "end_date"]
