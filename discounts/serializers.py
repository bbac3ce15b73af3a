from django.utils.translation import gettext_lazy as _
from pydantic import BaseModel, Field, field_validator
from rest_framework.serializers import CharField, ModelSerializer

from discounts.models import (Discount, DiscountCondition, DiscountItem,
                              ReceiptDiscount)


class DiscountItemSerializer(ModelSerializer):
    item_name = CharField(source="item.name")

    class Meta:
        model = DiscountItem
        fields = ["item", "item_name", "min_quantity"]


class DiscountConditionSerializer(ModelSerializer):
    class Meta:
        model = DiscountCondition
        fields = ["condition_type", "value"]


class DiscountSerializer(ModelSerializer):
    class Meta:
        model = Discount
        fields = ["id", "code", "name", "type", "amount", "percentage", "max_receipts", "start_date", "end_date",
                  "is_active"]


class DiscountDetailSerializer(DiscountSerializer):
    combo_items = DiscountItemSerializer(many=True)
    conditions = DiscountConditionSerializer(many=True)

    class Meta(DiscountSerializer.Meta):
        fields = DiscountSerializer.Meta.fields + ["description", "combo_items", "conditions"]


class AppliedDiscountSerializer(ModelSerializer):
    code = CharField(source="discount.code")
    name = CharField(source="discount.name")

    class Meta:
        model = ReceiptDiscount
        fields = ["id", "code", "name", "amount", "applied_by", "applied_at"]


class ApplyDiscountBaseModel(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    receipt_id: int = Field(gt=0)

    @field_validator('code')
    def strip_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError(str(_("Discount code can not be blank.")))
        return value
