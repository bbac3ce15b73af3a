from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from restaurant_project.paginators import CustomNumberPaginator
from restaurant_project.viewsets import DisplayViewSet
from seating.filters import TableFilter
from seating.models import Table, TableStatus
from seating.serializers import TableSerializer


class TableViewSet(DisplayViewSet):
    model = Table
    serializer_class = TableSerializer
    pagination_class = CustomNumberPaginator
    filterset_class = TableFilter

    @action(detail=False, methods=['get'])
    def available(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset().filter(status=TableStatus.AVAILABLE))
        serializer = self.get_serializer(instance=queryset, many=True)
        return Response(data=serializer.data, status=status.HTTP_200_OK)
