import django_filters
from django.db.models import Q

from modules.orders.models import Order

ALL = "all"


class OrderFilter(django_filters.FilterSet):
    """Admin list filters.  ``all`` disables a filter, as older clients send it."""

    status = django_filters.CharFilter(method="filter_exact_unless_all")
    payment_method = django_filters.CharFilter(method="filter_exact_unless_all")
    type = django_filters.ChoiceFilter(
        method="filter_type",
        choices=[("guest", "guest"), ("registered", "registered"), (ALL, ALL)],
    )
    search = django_filters.CharFilter(method="filter_search")
    start_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    end_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )
    min_total = django_filters.NumberFilter(field_name="total", lookup_expr="gte")
    max_total = django_filters.NumberFilter(field_name="total", lookup_expr="lte")

    class Meta:
        model = Order
        fields = [
            "status",
            "payment_method",
            "type",
            "search",
            "start_date",
            "end_date",
            "min_total",
            "max_total",
        ]

    def filter_exact_unless_all(self, queryset, name, value):
        if not value or value.lower() == ALL:
            return queryset
        return queryset.filter(**{f"{name}__iexact": value})

    def filter_type(self, queryset, name, value):
        if value == "guest":
            return queryset.filter(user__isnull=True)
        if value == "registered":
            return queryset.filter(user__isnull=False)
        return queryset

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value)
            | Q(customer_name__icontains=value)
            | Q(customer_email__icontains=value)
        )
