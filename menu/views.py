from menu.filters import ItemFilter, SectionFilter
from menu.models import Item, Section
from menu.serializers import (ItemDetailSerializer, ItemSerializer,
                              SectionSerializer)
from restaurant_project.paginators import CustomNumberPaginator
from restaurant_project.viewsets import DisplayViewSet


class SectionViewSet(DisplayViewSet):
    model = Section
    serializer_class = SectionSerializer
    pagination_class = CustomNumberPaginator
    filterset_class = SectionFilter


class ItemViewSet(DisplayViewSet):
    model = Item
    serializer_class = ItemSerializer
    pagination_class = CustomNumberPaginator
    filterset_class = ItemFilter

    def get_queryset(self):
        queryset = self.model.objects.alive().select_related("section")
        if self.action == "retrieve":
            return queryset.prefetch_related("price_history")
        return queryset

    def get_serializer_class(self):
        if self.action == "retrieve":
            return ItemDetailSerializer
        return self.serializer_class
