from drf_spectacular.utils import (OpenApiParameter, extend_schema,
                                   inline_serializer)
from pydantic import ValidationError
from rest_framework import serializers, status
from rest_framework.generics import CreateAPIView
from rest_framework.response import Response

from discounts.engine import DiscountEngine
from discounts.filters import DiscountFilter
from discounts.models import Discount
from discounts.serializers import (ApplyDiscountBaseModel,
                                   DiscountDetailSerializer,
                                   DiscountSerializer)
from restaurant_project.exceptions import pydantic_errors
from restaurant_project.paginators import CustomNumberPaginator
from restaurant_project.viewsets import DisplayViewSet, get_actor_id


class DiscountViewSet(DisplayViewSet):
    model = Discount
    serializer_class = DiscountSerializer
    pagination_class = CustomNumberPaginator
    filterset_class = DiscountFilter

    def get_queryset(self):
        queryset = self.model.objects.alive()
        if self.action == "retrieve":
            return queryset.prefetch_related("combo_items__item", "conditions")
        return queryset

    def get_serializer_class(self):
        if self.action == "retrieve":
            return DiscountDetailSerializer
        return self.serializer_class


class ApplyDiscountAPIView(CreateAPIView):
    serializer_class = None
    engine_class = DiscountEngine

    @extend_schema(
        parameters=[
            OpenApiParameter(name='X-Actor-Id', location=OpenApiParameter.HEADER,
                             description='Id of the user performing operation', required=False, type=int)
        ],
        request=inline_serializer(
            name='ApplyDiscount',
            fields={
                'code': serializers.CharField(),
                'receipt_id': serializers.IntegerField(),
            }
        ),
        responses={
            200: inline_serializer(
                name='AppliedDiscount',
                fields={
                    'message': serializers.CharField(),
                    'discount_code': serializers.CharField(),
                    'discount_amount': serializers.DecimalField(max_digits=10, decimal_places=2),
                    'receipt_id': serializers.IntegerField(),
                }
            )
        }
    )
    def post(self, request, *args, **kwargs) -> Response:
        try:
            payload = ApplyDiscountBaseModel(**request.data)
        except ValidationError as e:
            return Response(data=pydantic_errors(e), status=status.HTTP_400_BAD_REQUEST)

        result = self.engine_class().apply_discount(payload.code, payload.receipt_id, get_actor_id(request))
        return Response(data=result, status=status.HTTP_200_OK)
