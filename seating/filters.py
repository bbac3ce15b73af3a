from django_filters import ChoiceFilter, NumberFilter
from django_filters.rest_framework import FilterSet, OrderingFilter

from seating.models import Table, TableStatus


class TableFilter(FilterSet):
    status = ChoiceFilter(field_name="status", choices=TableStatus.choices)
    number = NumberFilter(field_name="number", lookup_expr="exact")
    capacity__gte = NumberFilter(field_name="capacity", lookup_expr="gte")
    capacity__lte = NumberFilter(field_name="capacity", lookup_expr="lte")

    ordering = OrderingFilter(fields=(("id", "id"), ("number", "number"), ("capacity", "capacity")))

    class Meta:
        model = Table
        fields = ["status", "number", "capacity__gte", "capacity__lte"]
