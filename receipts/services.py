"""
Receipt lifecycle: atomic creation and one-way completion
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import NotFound

from audit import sink
from audit.models import AuditAction
from menu.pricing import snapshot_prices
from receipts.models import (Receipt, ReceiptItem, ReceiptItemStatus,
                             ReceiptNumberSequence)
from receipts.serializers import CreateReceiptBaseModel
from receipts.totals import (ZERO, active_items, items_subtotal, round_money,
                             totals_for)
from restaurant_project.exceptions import BusinessRuleError
from seating import availability
from seating.models import Table, TableStatus

logger = logging.getLogger(__name__)


def next_receipt_number() -> int:
    """
    Increments the locked counter row. Must be called inside a transaction,
    so a rolled back creation gives its number back.
    """
    sequence = ReceiptNumberSequence.objects.select_for_update().filter(pk=1).first()
    if sequence is None:
        try:
            with transaction.atomic():
                sequence = ReceiptNumberSequence.objects.create(
                    pk=1, last_number=Receipt.objects.aggregate(last=Max('number'))['last'] or 0
                )
        except IntegrityError:
            # counter row was created by a concurrent transaction
            sequence = ReceiptNumberSequence.objects.select_for_update().get(pk=1)

    sequence.last_number += 1
    sequence.save(update_fields=['last_number'])
    logger.debug('Receipt number %s assigned', sequence.last_number)
    return sequence.last_number


class ReceiptLifecycle:

    def check_table(self, table_id: int) -> Table:
        table = Table.objects.alive().filter(pk=table_id).first()
        if table is None:
            raise NotFound(detail=_("Table with ID %(id)s not found") % {'id': table_id})
        if table.status != TableStatus.AVAILABLE:
            raise BusinessRuleError(detail=_("Table %(number)s is not available (current status: %(status)s)") % {
                'number': table.number, 'status': table.status
            })
        return table

    def create(self, request: CreateReceiptBaseModel, actor_id: Optional[int]) -> dict:
        """
        Creates receipt with its items priced by current catalog prices.
        Dine-in receipt occupies its table in the same transaction.
        """
        table = self.check_table(request.table_id) if not request.is_delivery else None
        prices = snapshot_prices(line.item_id for line in request.items)

        with transaction.atomic():
            receipt = Receipt.objects.create(
                number=next_receipt_number(),
                is_delivery=request.is_delivery,
                phone_number=request.phone_number if request.is_delivery else None,
                location=request.location if request.is_delivery else None,
                table=table,
                notes=request.notes,
                created_by=actor_id,
            )
            receipt_items = ReceiptItem.objects.bulk_create([
                ReceiptItem(
                    receipt=receipt,
                    item_id=line.item_id,
                    quantity=line.quantity,
                    unit_price=prices[line.item_id],
                    status=ReceiptItemStatus.pending,
                    notes=line.notes,
                    created_by=actor_id,
                )
                for line in request.items
            ])

            if table is not None and not availability.occupy(table.pk, actor_id):
                table.refresh_from_db(fields=['status'])
                raise BusinessRuleError(
                    detail=_("Table %(number)s is not available (current status: %(status)s)") % {
                        'number': table.number, 'status': table.status
                    }
                )
            sink.record(receipt, AuditAction.created, actor_id)

        logger.info('Receipt %s (#%s) created with %s items', receipt.pk, receipt.number, len(receipt_items))
        return {
            'receipt': receipt,
            'items': receipt_items,
            'totals': totals_for(receipt),
        }

    def complete(self, receipt_id: int, actor_id: Optional[int], quick_discount: Optional[Decimal] = None) -> dict:
        """
        Closes receipt for good and frees its table
        """
        with transaction.atomic():
            receipt = Receipt.objects.alive().select_for_update().filter(pk=receipt_id).first()
            if receipt is None:
                raise NotFound(detail=_("Receipt with ID %(id)s not found") % {'id': receipt_id})
            if receipt.is_completed:
                raise BusinessRuleError(detail=_("Receipt is already completed"))

            quick_discount = Decimal(quick_discount) if quick_discount else ZERO
            subtotal = round_money(items_subtotal(active_items(receipt.pk)))
            if quick_discount > subtotal:
                raise BusinessRuleError(
                    detail=_("Quick discount (%(quick)s) cannot exceed subtotal (%(subtotal)s)") % {
                        'quick': round_money(quick_discount), 'subtotal': subtotal
                    }
                )

            receipt.completed_at = timezone.now()
            receipt.quick_discount = quick_discount or None
            receipt.save(update_fields=['completed_at', 'quick_discount', *receipt.touch(actor_id)])
            sink.record(receipt, AuditAction.updated, actor_id)

            if receipt.table_id is not None and not availability.release(receipt.table_id, actor_id):
                logger.warning('Table %s of receipt %s was not OCCUPIED at completion and was left as is',
                               receipt.table_id, receipt.pk)

            totals = totals_for(receipt)

        logger.info('Receipt %s (#%s) completed, total %s', receipt.pk, receipt.number, totals['total'])
        return {
            'message': _('Receipt completed successfully'),
            'receipt_id': receipt.pk,
            'receipt_number': receipt.number,
            **totals,
        }
