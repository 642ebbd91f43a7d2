from django_filters import rest_framework as filters

from .models import Order


class OrderFilterSet(filters.FilterSet):
    """Filters shared by the customer and staff order lists."""

    number = filters.CharFilter(field_name="number", lookup_expr="iexact")
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "number", "payment_method"]


class AdminOrderFilterSet(OrderFilterSet):
    email = filters.CharFilter(field_name="customer_email", lookup_expr="iexact")
    coupon = filters.CharFilter(field_name="coupon_code", lookup_expr="iexact")
    min_total = filters.NumberFilter(field_name="total_price", lookup_expr="gte")
    max_total = filters.NumberFilter(field_name="total_price", lookup_expr="lte")

    class Meta(OrderFilterSet.Meta):
        fields = OrderFilterSet.Meta.fields + ["user"]
