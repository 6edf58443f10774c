import django_filters

from .models import Order


class OrderFilter(django_filters.FilterSet):
    """
    Filters for the order list. ``start_date`` / ``end_date`` are inclusive
    calendar days on ``created_at``.
    """

    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    table = django_filters.CharFilter(field_name="customer_table")

    class Meta:
        model = Order
        fields = ["status", "payment_method", "payment_status", "order_creator"]
