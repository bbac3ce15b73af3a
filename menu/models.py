from django.core.validators import MinValueValidator
from django.db import models

from audit.models import AuditedModel


class Section(AuditedModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)

    def __str__(self):
        return self.name


class Item(AuditedModel):
    name = models.CharField(max_length=255)
    section = models.ForeignKey(Section, on_delete=models.PROTECT)
    description = models.TextField(blank=True, null=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])

    def __str__(self):
        return self.name


class ItemPriceHistory(models.Model):
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='price_history')
    price = models.DecimalField(max_digits=10, decimal_places=2)
    effective_from = models.DateTimeField()
    effective_to = models.DateTimeField(blank=True, null=True)  # null means current price
    created_by = models.PositiveBigIntegerField(blank=True, null=True)

    class Meta:
        ordering = ('-effective_from', '-id')
