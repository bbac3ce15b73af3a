from django_filters import BooleanFilter, DateTimeFilter, NumberFilter
from django_filters.rest_framework import FilterSet, OrderingFilter

from receipts.models import Receipt


class ReceiptFilter(FilterSet):
    completed = BooleanFilter(field_name="completed_at", lookup_expr="isnull", exclude=True)
    is_delivery = BooleanFilter(field_name="is_delivery")
    table = NumberFilter(field_name="table__number", lookup_expr="exact")
    table_id = NumberFilter(field_name="table_id", lookup_expr="exact")
    created_from = DateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_to = DateTimeFilter(field_name="created_at", lookup_expr="lte")

    ordering = OrderingFilter(fields=(("id", "id"), ("number", "number"), ("created_at", "created_at")))

    class Meta:
        model = Receipt
        fields = ["completed", "is_delivery", "table", "table_id", "created_from", "created_to"]
