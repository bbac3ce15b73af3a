from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.db.models import Sum
from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import NotFound

from discounts.models import ReceiptItemDiscount
from receipts.models import Receipt, ReceiptItem

CENT = Decimal('0.01')
ZERO = Decimal('0')


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(receipt_item: ReceiptItem) -> Decimal:
    """
    Snapshot price is used, live catalog price only for legacy rows without it
    """
    price = receipt_item.unit_price if receipt_item.unit_price is not None else receipt_item.item.price
    return price * receipt_item.quantity


def active_items(receipt_id: int) -> list[ReceiptItem]:
    return list(ReceiptItem.objects.alive().filter(receipt_id=receipt_id).select_related('item').order_by('id'))


def items_subtotal(receipt_items: Iterable[ReceiptItem]) -> Decimal:
    return sum((line_total(receipt_item) for receipt_item in receipt_items), ZERO)


def system_discount(receipt_id: int) -> Decimal:
    """
    Sum of all discount allocations written against lines of the receipt
    """
    applied = ReceiptItemDiscount.objects \
        .filter(receipt_item__receipt_id=receipt_id) \
        .aggregate(applied=Sum('applied_amount'))['applied']
    return applied or ZERO


def totals_for(receipt: Receipt) -> dict:
    subtotal = items_subtotal(active_items(receipt.pk))
    quick_discount = receipt.quick_discount or ZERO
    discount_total = system_discount(receipt.pk) + quick_discount
    return {
        'subtotal': round_money(subtotal),
        'discount_total': round_money(discount_total),
        'quick_discount': round_money(quick_discount),
        'total': round_money(subtotal - discount_total),
    }


def calculate_total(receipt_id: int) -> dict:
    """
    Recomputes subtotal, discounts and net total of the receipt from its rows
    """
    receipt = Receipt.objects.alive().filter(pk=receipt_id).first()
    if receipt is None:
        raise NotFound(detail=_("Receipt with ID %(id)s not found") % {'id': receipt_id})
    return totals_for(receipt)
