from rest_framework.serializers import ModelSerializer

from menu.models import Item, ItemPriceHistory, Section


class SectionDisplaySerializer(ModelSerializer):
    class Meta:
        model = Section
        fields = ["id", "name"]


class SectionSerializer(ModelSerializer):
    class Meta:
        model = Section
        fields = ["id", "name", "description", "created_at", "updated_at"]


class ItemPriceHistorySerializer(ModelSerializer):
    class Meta:
        model = ItemPriceHistory
        fields = ["price", "effective_from", "effective_to"]


class ItemSerializer(ModelSerializer):
    section = SectionDisplaySerializer()

    class Meta:
        model = Item
        fields = ["id", "name", "section", "description", "price", "created_at", "updated_at"]


class ItemDetailSerializer(ItemSerializer):
    price_history = ItemPriceHistorySerializer(many=True)

    class Meta(ItemSerializer.Meta):
        fields = ItemSerializer.Meta.fields + ["price_history"]
