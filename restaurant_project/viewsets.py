from typing import Optional

from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.generics import ListAPIView, RetrieveAPIView
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

ACTOR_HEADER = 'HTTP_X_ACTOR_ID'


def get_actor_id(request) -> Optional[int]:
    """
    Returns id of the acting user taken from "X-Actor-Id" header
    """
    raw_value = request.META.get(ACTOR_HEADER)
    if raw_value in (None, ''):
        return None
    try:
        return int(raw_value)
    except (TypeError, ValueError):
        raise ValidationError(detail={"detail": _("X-Actor-Id header must be an integer.")})


class DisplayViewSet(ListAPIView, RetrieveAPIView, GenericViewSet):
    model = None

    def check_model_variable(self):
        if not self.model:
            raise AttributeError(f'You did not define "model" variable in {self.__class__.__name__}')

    def get_queryset(self):
        self.check_model_variable()

        # if you have to make some select_related or prefetch_related, overwrite this method
        return self.model.objects.alive()

    def get_object(self):
        self.check_model_variable()
        try:
            return self.get_queryset().get(pk=self.kwargs.get(self.lookup_field))
        except (self.model.DoesNotExist, ValueError):
            raise NotFound(detail=_("Not found."))

    def list(self, request, *args, **kwargs):
        queryset = self.get_queryset()
        filtered_queryset = self.filter_queryset(queryset)
        paginated_queryset = self.paginate_queryset(filtered_queryset)
        if paginated_queryset is not None:
            serializer = self.get_serializer(instance=paginated_queryset, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(instance=filtered_queryset, many=True)
        return Response(data=serializer.data, status=status.HTTP_200_OK)

    def retrieve(self, request, *args, **kwargs):
        obj = self.get_object()
        serializer = self.get_serializer(instance=obj)
        return Response(data=serializer.data, status=status.HTTP_200_OK)
