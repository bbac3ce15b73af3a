from django.db import models

from audit.models import AuditedModel


class TableStatus(models.TextChoices):
    AVAILABLE = 'AVAILABLE'
    OCCUPIED = 'OCCUPIED'
    RESERVED = 'RESERVED'


class Table(AuditedModel):
    number = models.PositiveIntegerField(unique=True)
    capacity = models.PositiveIntegerField(default=4)
    status = models.CharField(max_length=16, choices=TableStatus.choices, default=TableStatus.AVAILABLE)

    class Meta:
        ordering = ('number',)

    def __str__(self):
        return f'Table {self.number}'
