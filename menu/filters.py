from django_filters import CharFilter, NumberFilter
from django_filters.rest_framework import FilterSet, OrderingFilter

from menu.models import Item, Section


class SectionFilter(FilterSet):
    name = CharFilter(field_name="name", lookup_expr="icontains")

    ordering = OrderingFilter(fields=(("id", "id"), ("name", "name")))

    class Meta:
        model = Section
        fields = ["name"]


class ItemFilter(FilterSet):
    name = CharFilter(field_name="name", lookup_expr="icontains")
    section = CharFilter(field_name="section__name", lookup_expr="icontains")
    section_id = NumberFilter(field_name="section_id", lookup_expr="exact")
    min_price = NumberFilter(field_name="price", lookup_expr="gte")
    max_price = NumberFilter(field_name="price", lookup_expr="lte")

    ordering = OrderingFilter(
        fields=(
            ("id", "id"),
            ("name", "name"),
            ("section__name", "section"),
            ("price", "price"),
        )
    )

    class Meta:
        model = Item
        fields = ["name", "section", "section_id", "min_price", "max_price"]
