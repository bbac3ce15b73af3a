from rest_framework.serializers import ModelSerializer

from seating.models import Table


class TableDisplaySerializer(ModelSerializer):
    class Meta:
        model = Table
        fields = ["id", "number"]


class TableSerializer(ModelSerializer):
    class Meta:
        model = Table
        fields = ["id", "number", "capacity", "status", "created_at", "updated_at"]
