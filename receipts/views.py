from django.db.models import Prefetch
from drf_spectacular.utils import (OpenApiParameter, extend_schema,
                                   inline_serializer)
from pydantic import ValidationError
from rest_framework import serializers, status
from rest_framework.decorators import action
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from receipts.filters import ReceiptFilter
from receipts.kitchen import items_by_receipt, pending_items
from receipts.models import Receipt, ReceiptItem
from receipts.serializers import (CompleteReceiptBaseModel,
                                  CreateReceiptBaseModel, ItemStatusBaseModel,
                                  KitchenItemSerializer, ReceiptDetailSerializer,
                                  ReceiptItemSerializer, ReceiptSerializer)
from receipts.services import ReceiptLifecycle
from receipts.status_machine import advance_item_status
from receipts.totals import calculate_total, totals_for
from restaurant_project.exceptions import pydantic_errors
from restaurant_project.paginators import CustomNumberPaginator
from restaurant_project.viewsets import DisplayViewSet, get_actor_id

TOTALS_SERIALIZER = inline_serializer(
    name='ReceiptTotals',
    fields={
        'subtotal': serializers.DecimalField(max_digits=12, decimal_places=2),
        'discount_total': serializers.DecimalField(max_digits=12, decimal_places=2),
        'quick_discount': serializers.DecimalField(max_digits=12, decimal_places=2),
        'total': serializers.DecimalField(max_digits=12, decimal_places=2),
    }
)

ACTOR_PARAMETER = OpenApiParameter(name='X-Actor-Id', location=OpenApiParameter.HEADER,
                                   description='Id of the user performing operation', required=False, type=int)


class ReceiptViewSet(DisplayViewSet):
    model = Receipt
    serializer_class = ReceiptSerializer
    pagination_class = CustomNumberPaginator
    filterset_class = ReceiptFilter
    lifecycle_class = ReceiptLifecycle
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        queryset = self.model.objects.alive().select_related("table")
        if self.action == "retrieve":
            return queryset.prefetch_related(
                Prefetch("items", queryset=ReceiptItem.objects.alive().select_related("item")),
                "applied_discounts__discount",
            )
        return queryset

    def get_serializer_class(self):
        if self.action == "retrieve":
            return ReceiptDetailSerializer
        return self.serializer_class

    @extend_schema(
        parameters=[ACTOR_PARAMETER],
        request=inline_serializer(
            name='CreateReceipt',
            fields={
                'is_delivery': serializers.BooleanField(default=False),
                'phone_number': serializers.CharField(required=False),
                'location': serializers.CharField(required=False),
                'table_id': serializers.IntegerField(required=False),
                'notes': serializers.CharField(required=False),
                'items': inline_serializer(
                    name='CreateReceiptItem',
                    fields={
                        'item_id': serializers.IntegerField(),
                        'quantity': serializers.IntegerField(min_value=1),
                        'notes': serializers.CharField(required=False),
                    },
                    many=True
                ),
            }
        ),
        responses={201: ReceiptDetailSerializer}
    )
    def create(self, request, *args, **kwargs):
        try:
            order = CreateReceiptBaseModel(**request.data)
        except ValidationError as e:
            return Response(data=pydantic_errors(e), status=status.HTTP_400_BAD_REQUEST)

        created = self.lifecycle_class().create(order, get_actor_id(request))
        data = ReceiptSerializer(instance=created['receipt']).data
        data['items'] = ReceiptItemSerializer(instance=created['items'], many=True).data
        data['totals'] = created['totals']
        return Response(data=data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        receipt = self.get_object()
        data = self.get_serializer(instance=receipt).data
        data['totals'] = totals_for(receipt)
        return Response(data=data, status=status.HTTP_200_OK)

    @extend_schema(responses={200: TOTALS_SERIALIZER})
    @action(detail=True, methods=['get'])
    def total(self, request, *args, **kwargs):
        return Response(data=calculate_total(int(self.kwargs.get(self.lookup_field))), status=status.HTTP_200_OK)

    @extend_schema(
        parameters=[ACTOR_PARAMETER],
        request=inline_serializer(
            name='CompleteReceipt',
            fields={'quick_discount': serializers.DecimalField(max_digits=10, decimal_places=2, required=False)}
        )
    )
    @action(detail=True, methods=['put'])
    def complete(self, request, *args, **kwargs):
        try:
            payload = CompleteReceiptBaseModel(**request.data)
        except ValidationError as e:
            return Response(data=pydantic_errors(e), status=status.HTTP_400_BAD_REQUEST)

        result = self.lifecycle_class().complete(int(self.kwargs.get(self.lookup_field)), get_actor_id(request),
                                                 quick_discount=payload.quick_discount)
        return Response(data=result, status=status.HTTP_200_OK)

    @extend_schema(
        parameters=[ACTOR_PARAMETER],
        request=inline_serializer(name='ItemStatus', fields={'status': serializers.CharField()})
    )
    @action(detail=True, methods=['put'], url_path=r'items/(?P<item_id>\d+)/status')
    def item_status(self, request, *args, **kwargs):
        try:
            payload = ItemStatusBaseModel(**request.data)
        except ValidationError as e:
            return Response(data=pydantic_errors(e), status=status.HTTP_400_BAD_REQUEST)

        result = advance_item_status(int(self.kwargs.get(self.lookup_field)), int(self.kwargs.get('item_id')),
                                     payload.status.value, get_actor_id(request))
        return Response(data=result, status=status.HTTP_200_OK)


class KitchenPendingAPIView(ListAPIView):
    serializer_class = KitchenItemSerializer
    pagination_class = None

    def get_queryset(self):
        return pending_items()


class KitchenByReceiptAPIView(APIView):

    @extend_schema(responses={200: serializers.ListSerializer(child=serializers.DictField())})
    def get(self, request, *args, **kwargs):
        return Response(data=items_by_receipt(), status=status.HTTP_200_OK)
