from audit.models import AuditLog
from discounts.models import (Discount, DiscountCondition, DiscountItem,
                              ReceiptDiscount, ReceiptItemDiscount)
from menu.models import Item, ItemPriceHistory, Section
from receipts.models import Receipt, ReceiptItem, ReceiptNumberSequence
from seating.models import Table


def run():
    ReceiptItemDiscount.objects.all().delete()
    ReceiptDiscount.objects.all().delete()
    DiscountCondition.objects.all().delete()
    DiscountItem.objects.all().delete()
    Discount.objects.all().delete()

    ReceiptItem.objects.all().delete()
    Receipt.objects.all().delete()
    ReceiptNumberSequence.objects.all().delete()

    Table.objects.all().delete()

    ItemPriceHistory.objects.all().delete()
    Item.objects.all().delete()
    Section.objects.all().delete()

    AuditLog.objects.all().delete()
