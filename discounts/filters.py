from django_filters import BooleanFilter, CharFilter, ChoiceFilter
from django_filters.rest_framework import FilterSet, OrderingFilter

from discounts.models import Discount, DiscountType


class DiscountFilter(FilterSet):
    code = CharFilter(field_name="code", lookup_expr="iexact")
    name = CharFilter(field_name="name", lookup_expr="icontains")
    type = ChoiceFilter(field_name="type", choices=DiscountType.choices)
    is_active = BooleanFilter(field_name="is_active")

    ordering = OrderingFilter(fields=(("id", "id"), ("code", "code"), ("name", "name"), ("end_date", "end_date")))

    class Meta:
        model = Discount
        fields = ["code", "name", "type", "is_active"]
