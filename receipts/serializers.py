from decimal import Decimal
from typing import Optional

from django.utils.translation import gettext_lazy as _
from pydantic import BaseModel, Field, field_validator, model_validator
from rest_framework.serializers import CharField, IntegerField, ModelSerializer

from discounts.serializers import AppliedDiscountSerializer
from menu.models import Item
from receipts.models import Receipt, ReceiptItem, ReceiptItemStatus
from seating.serializers import TableDisplaySerializer


class ItemDisplaySerializer(ModelSerializer):
    class Meta:
        model = Item
        fields = ["id", "name"]


class ReceiptItemSerializer(ModelSerializer):
    item = ItemDisplaySerializer()

    class Meta:
        model = ReceiptItem
        fields = ["id", "item", "quantity", "unit_price", "status", "notes", "created_at"]


class KitchenItemSerializer(ReceiptItemSerializer):
    receipt_id = IntegerField()
    receipt_number = IntegerField(source="receipt.number")
    table_number = IntegerField(source="receipt.table.number", allow_null=True)
    section = CharField(source="item.section.name")

    class Meta(ReceiptItemSerializer.Meta):
        fields = ["id", "receipt_id", "receipt_number", "table_number", "item", "section", "quantity", "status",
                  "notes", "created_at"]


class ReceiptSerializer(ModelSerializer):
    table = TableDisplaySerializer()

    class Meta:
        model = Receipt
        fields = ["id", "number", "is_delivery", "phone_number", "location", "table", "notes",
                  "completed_at", "quick_discount", "created_at", "created_by"]


class ReceiptDetailSerializer(ReceiptSerializer):
    items = ReceiptItemSerializer(many=True)
    discounts = AppliedDiscountSerializer(source="applied_discounts", many=True)

    class Meta(ReceiptSerializer.Meta):
        fields = ReceiptSerializer.Meta.fields + ["items", "discounts"]


class ReceiptItemBaseModel(BaseModel):
    item_id: int
    quantity: int = Field(gt=0)
    notes: Optional[str] = None


class CreateReceiptBaseModel(BaseModel):
    """
    Receipt is either delivery (phone and location) or dine-in (table), never both
    """
    is_delivery: bool = False
    phone_number: Optional[str] = None
    location: Optional[str] = None
    table_id: Optional[int] = None
    notes: Optional[str] = None
    items: list[ReceiptItemBaseModel] = Field(min_length=1)

    @model_validator(mode='after')
    def check_order_kind(self):
        if self.is_delivery:
            if not self.phone_number or not self.location:
                raise ValueError(str(_("Delivery orders require phone_number and location")))
            if self.table_id is not None:
                raise ValueError(str(_("Delivery orders cannot have table_id")))
        else:
            if self.table_id is None:
                raise ValueError(str(_("Dine-in orders require table_id")))
            if self.phone_number or self.location:
                raise ValueError(str(_("Dine-in orders cannot have phone_number or location")))
        return self


class CompleteReceiptBaseModel(BaseModel):
    quick_discount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)

    @field_validator('quick_discount', mode='before')
    @classmethod
    def parse_json_number(cls, value):
        # JSON numbers are parsed as floats
        if isinstance(value, float):
            return str(value)
        return value


class ItemStatusBaseModel(BaseModel):
    status: ReceiptItemStatus
