"""
Validation and application of discount codes to receipts.

Each discount type has its own allocation strategy which decides how much
is deducted and which receipt lines carry the deduction.
"""
import logging
from collections import defaultdict
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Type

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import NotFound

from audit import sink
from audit.models import AuditAction
from discounts.constants import WEEKDAYS
from discounts.models import (ConditionType, Discount, DiscountCondition,
                              DiscountType, ReceiptDiscount,
                              ReceiptItemDiscount)
from receipts.models import Receipt, ReceiptItem
from receipts.totals import (CENT, ZERO, items_subtotal, line_total,
                             round_money)
from restaurant_project.exceptions import BusinessRuleError

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')


class AllocationStrategy:
    discount_type = None

    def __init__(self, discount: Discount, receipt_items: list[ReceiptItem]):
        if self.discount_type is None:
            raise AttributeError(f'The field "discount_type" is not defined in {self.__class__.__name__}.')

        self.discount = discount
        self.receipt_items = receipt_items

    def validate(self) -> None:
        pass

    def allocate(self) -> list[tuple[ReceiptItem, Decimal]]:
        """
        Returns pairs of (receipt line, deducted amount)
        """
        raise NotImplementedError

    def first_item_allocation(self, amount: Decimal) -> list[tuple[ReceiptItem, Decimal]]:
        return [(self.receipt_items[0], round_money(amount))]


class AmountAllocation(AllocationStrategy):
    discount_type = DiscountType.amount

    def allocate(self) -> list[tuple[ReceiptItem, Decimal]]:
        return self.first_item_allocation(self.discount.amount or ZERO)


class PercentageAllocation(AllocationStrategy):
    discount_type = DiscountType.percentage

    def allocate(self) -> list[tuple[ReceiptItem, Decimal]]:
        """
        Every line but the last gets its share cut down to whole cents, the last
        line takes the rest. Shares sum up to the rounded discount amount and
        none of them is negative.
        """
        percentage = self.discount.percentage or ZERO
        amount = round_money(items_subtotal(self.receipt_items) * percentage / HUNDRED)

        allocation = []
        allocated = ZERO
        for receipt_item in self.receipt_items[:-1]:
            share = (line_total(receipt_item) * percentage / HUNDRED).quantize(CENT, rounding=ROUND_DOWN)
            allocation.append((receipt_item, share))
            allocated += share
        allocation.append((self.receipt_items[-1], amount - allocated))
        return allocation


class ComboAllocation(AllocationStrategy):
    discount_type = DiscountType.combo

    def __init__(self, discount: Discount, receipt_items: list[ReceiptItem]):
        super().__init__(discount, receipt_items)
        self.combo_items = list(discount.combo_items.select_related('item').order_by('id'))
        self.quantities = defaultdict(int)
        for receipt_item in receipt_items:
            self.quantities[receipt_item.item_id] += receipt_item.quantity

    def validate(self) -> None:
        missing = [combo_item.item.name for combo_item in self.combo_items
                   if combo_item.item_id not in self.quantities]
        if missing:
            raise BusinessRuleError(detail=_("Combo discount requires all items: %(items)s") % {
                'items': ', '.join(missing)
            })

        short = [
            _("Item %(name)s requires minimum quantity of %(quantity)s") % {
                'name': combo_item.item.name, 'quantity': combo_item.min_quantity
            }
            for combo_item in self.combo_items
            if self.quantities[combo_item.item_id] < combo_item.min_quantity
        ]
        if short:
            raise BusinessRuleError(detail='; '.join(str(message) for message in short))

    def allocate(self) -> list[tuple[ReceiptItem, Decimal]]:
        if self.discount.amount:
            return self.first_item_allocation(self.discount.amount)

        combo_ids = {combo_item.item_id for combo_item in self.combo_items}
        eligible_total = items_subtotal(receipt_item for receipt_item in self.receipt_items
                                        if receipt_item.item_id in combo_ids)
        percentage = self.discount.percentage or ZERO
        return self.first_item_allocation(eligible_total * percentage / HUNDRED)


class AllocationStrategyEnum(Enum):
    amount = (DiscountType.amount, AmountAllocation)
    percentage = (DiscountType.percentage, PercentageAllocation)
    combo = (DiscountType.combo, ComboAllocation)

    @classmethod
    def get_strategy_by_type(cls, discount_type: str) -> Type[AllocationStrategy]:
        for item in cls:
            if item.value[0] == discount_type:
                return item.value[1]
        raise ValueError(_("Unknown discount type '%(type)s'.") % {'type': discount_type})

    @classmethod
    def get_all_types(cls) -> list[str]:
        return [item.value[0] for item in cls]


if set(AllocationStrategyEnum.get_all_types()) != set(DiscountType.values):
    raise ImportError('Every discount type must have an allocation strategy.')


class DiscountEngine:

    def check_min_amount(self, condition: DiscountCondition, subtotal: Decimal) -> None:
        try:
            threshold = Decimal(condition.value.strip())
        except InvalidOperation:
            threshold = None
        if threshold is None or not threshold.is_finite():
            raise BusinessRuleError(detail=_("Discount condition value '%(value)s' is not a number") % {
                'value': condition.value
            })
        if subtotal < threshold:
            raise BusinessRuleError(detail=_("Order subtotal must be at least %(amount)s") % {
                'amount': round_money(threshold)
            })

    def check_day_of_week(self, condition: DiscountCondition, moment=None) -> None:
        valid_days = [day.strip() for day in condition.value.split(',') if day.strip()]
        today = WEEKDAYS[timezone.localtime(moment).weekday()]
        if today not in [day.lower() for day in valid_days]:
            raise BusinessRuleError(detail=_("Discount is only valid on: %(days)s") % {
                'days': ', '.join(valid_days)
            })

    def check_conditions(self, discount: Discount, subtotal: Decimal) -> None:
        for condition in discount.conditions.all():
            if condition.condition_type == ConditionType.min_amount:
                self.check_min_amount(condition, subtotal)
            elif condition.condition_type == ConditionType.day_of_week:
                self.check_day_of_week(condition)
            else:
                raise ValueError(_("Unknown condition type '%(type)s'.") % {'type': condition.condition_type})

    def get_discount(self, code: str) -> Discount:
        discount = Discount.objects.alive().select_for_update().filter(code=code).first()
        if discount is None:
            raise NotFound(detail=_("Discount code not found"))
        if not discount.is_active:
            raise BusinessRuleError(detail=_("Discount code is not active"))
        if not discount.is_running():
            raise BusinessRuleError(detail=_("Discount code is not valid at this time"))
        if discount.max_receipts is not None and discount.usages.count() >= discount.max_receipts:
            raise BusinessRuleError(detail=_("Discount code has reached maximum usage limit"))
        return discount

    def get_receipt(self, receipt_id: int) -> tuple[Receipt, list[ReceiptItem]]:
        receipt = Receipt.objects.alive().select_for_update().filter(pk=receipt_id).first()
        if receipt is None:
            raise NotFound(detail=_("Receipt not found"))
        if receipt.is_completed:
            raise BusinessRuleError(detail=_("Discount can not be applied to completed receipt"))

        receipt_items = list(receipt.items.alive().select_related('item').order_by('id'))
        if not receipt_items:
            raise BusinessRuleError(detail=_("Receipt has no items"))
        return receipt, receipt_items

    def apply_discount(self, code: str, receipt_id: int, actor_id: Optional[int]) -> dict:
        with transaction.atomic():
            discount = self.get_discount(code)
            receipt, receipt_items = self.get_receipt(receipt_id)

            if not settings.DISCOUNT_ALLOW_REAPPLY and discount.usages.filter(receipt=receipt).exists():
                raise BusinessRuleError(detail=_("Discount %(code)s is already applied to this receipt") % {
                    'code': discount.code
                })

            self.check_conditions(discount, items_subtotal(receipt_items))

            strategy = AllocationStrategyEnum.get_strategy_by_type(discount.type)(discount, receipt_items)
            strategy.validate()
            allocation = strategy.allocate()
            discount_amount = round_money(sum((share for receipt_item, share in allocation), ZERO))

            receipt_discount = ReceiptDiscount.objects.create(discount=discount, receipt=receipt,
                                                              amount=discount_amount, applied_by=actor_id)
            ReceiptItemDiscount.objects.bulk_create([
                ReceiptItemDiscount(receipt_discount=receipt_discount, receipt_item=receipt_item,
                                    discount=discount, applied_amount=share)
                for receipt_item, share in allocation
            ])
            sink.record(receipt, AuditAction.updated, actor_id)

        logger.info('Discount %s applied to receipt %s, amount %s', discount.code, receipt.pk, discount_amount)
        return {
            'message': _('Discount applied successfully'),
            'discount_code': discount.code,
            'discount_amount': discount_amount,
            'receipt_id': receipt.pk,
        }
