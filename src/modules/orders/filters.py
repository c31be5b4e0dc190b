import django_filters

from modules.orders.constants import OrderStatus, PaymentType
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_type = django_filters.ChoiceFilter(choices=PaymentType.choices)
    user = django_filters.NumberFilter(field_name="user_id")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )
    transaction_id = django_filters.CharFilter(
        field_name="transaction_id", lookup_expr="iexact"
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "payment_type",
            "user",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
            "transaction_id",
        ]
