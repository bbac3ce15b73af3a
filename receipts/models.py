from django.core.validators import MinValueValidator
from django.db import models

from audit.models import AuditedModel
from menu.models import Item
from seating.models import Table


class ReceiptItemStatus(models.TextChoices):
    pending = 'pending'
    preparing = 'preparing'
    ready = 'ready'
    done = 'done'


class Receipt(AuditedModel):
    number = models.PositiveIntegerField(unique=True)
    is_delivery = models.BooleanField(default=False)
    phone_number = models.CharField(max_length=32, blank=True, null=True)
    location = models.CharField(max_length=512, blank=True, null=True)
    table = models.ForeignKey(Table, on_delete=models.PROTECT, blank=True, null=True, related_name='receipts')
    notes = models.TextField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    quick_discount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)

    class Meta:
        ordering = ('-number',)

    def __str__(self):
        return f'Receipt #{self.number}'

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class ReceiptItem(AuditedModel):
    receipt = models.ForeignKey(Receipt, on_delete=models.PROTECT, related_name='items')
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='receipt_items')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    status = models.CharField(max_length=16, choices=ReceiptItemStatus.choices, default=ReceiptItemStatus.pending)
    notes = models.TextField(blank=True, null=True)

    class Meta:
        ordering = ('id',)


class ReceiptNumberSequence(models.Model):
    """
    Single-row counter of the last assigned receipt number
    """
    last_number = models.PositiveIntegerField(default=0)
