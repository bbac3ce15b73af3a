from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from audit.models import AuditedModel
from menu.models import Item


class DiscountType(models.TextChoices):
    amount = 'amount'
    percentage = 'percentage'
    combo = 'combo'


class ConditionType(models.TextChoices):
    min_amount = 'min_amount'
    day_of_week = 'day_of_week'


class Discount(AuditedModel):
    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    type = models.CharField(max_length=16, choices=DiscountType.choices)
    amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True,
                                 validators=[MinValueValidator(0)])
    percentage = models.DecimalField(max_digits=5, decimal_places=2, blank=True, null=True,
                                     validators=[MinValueValidator(0), MaxValueValidator(100)])
    max_receipts = models.PositiveIntegerField(blank=True, null=True)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ('code',)

    def __str__(self):
        return self.code

    def is_running(self, moment=None) -> bool:
        moment = moment or timezone.now()
        return self.start_date <= moment <= self.end_date


class DiscountItem(models.Model):
    """
    Catalog item required by combo discount
    """
    discount = models.ForeignKey(Discount, on_delete=models.CASCADE, related_name='combo_items')
    item = models.ForeignKey(Item, on_delete=models.PROTECT)
    min_quantity = models.PositiveIntegerField(default=1)


class DiscountCondition(models.Model):
    discount = models.ForeignKey(Discount, on_delete=models.CASCADE, related_name='conditions')
    condition_type = models.CharField(max_length=16, choices=ConditionType.choices)
    value = models.CharField(max_length=255)


class ReceiptDiscount(models.Model):
    """
    Usage record of a discount on a receipt
    """
    discount = models.ForeignKey(Discount, on_delete=models.PROTECT, related_name='usages')
    receipt = models.ForeignKey('receipts.Receipt', on_delete=models.PROTECT, related_name='applied_discounts')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    applied_by = models.PositiveBigIntegerField(blank=True, null=True)
    applied_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ('applied_at', 'id')


class ReceiptItemDiscount(models.Model):
    receipt_discount = models.ForeignKey(ReceiptDiscount, on_delete=models.CASCADE, related_name='allocations')
    receipt_item = models.ForeignKey('receipts.ReceiptItem', on_delete=models.PROTECT,
                                     related_name='discount_allocations')
    discount = models.ForeignKey(Discount, on_delete=models.PROTECT, related_name='allocations')
    applied_amount = models.DecimalField(max_digits=10, decimal_places=2)
