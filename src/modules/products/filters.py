import django_filters

from modules.products.models import Product


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    sku = django_filters.CharFilter(field_name="sku", lookup_expr="iexact")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    disabled = django_filters.BooleanFilter(field_name="disabled")
    out_of_stock = django_filters.BooleanFilter(field_name="out_of_stock")
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")

    class Meta:
        model = Product
        fields = [
            "name",
            "sku",
            "min_price",
            "max_price",
            "disabled",
            "out_of_stock",
            "in_stock",
        ]

    def filter_in_stock(self, queryset, name, value):
        # ``current_stock`` is annotated by the repository.
        if value:
            return queryset.filter(current_stock__gt=0)
        return queryset.filter(current_stock__lte=0)
