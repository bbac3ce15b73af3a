"""
Kitchen workflow of a single receipt line: pending -> preparing -> ready -> done
"""
import logging
from typing import Optional

from django.db import transaction
from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import NotFound, ValidationError

from audit import sink
from audit.models import AuditAction
from receipts.models import ReceiptItem, ReceiptItemStatus
from restaurant_project.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

TRANSITIONS: dict[str, tuple[str, ...]] = {
    ReceiptItemStatus.pending: (ReceiptItemStatus.preparing,),
    ReceiptItemStatus.preparing: (ReceiptItemStatus.ready,),
    ReceiptItemStatus.ready: (ReceiptItemStatus.done,),
    ReceiptItemStatus.done: (),
}


def allowed_transitions(current: str) -> tuple[str, ...]:
    return TRANSITIONS.get(current, ())


def validate_transition(current: str, target: str) -> None:
    """
    Raises InvalidTransitionError unless 'target' directly follows 'current'
    """
    allowed = allowed_transitions(current)
    if target not in allowed:
        raise InvalidTransitionError(current=str(current), target=str(target), allowed=[str(s) for s in allowed])


def advance_item_status(receipt_id: int, item_id: int, target_status: str, actor_id: Optional[int]) -> dict:
    if target_status not in ReceiptItemStatus.values:
        raise ValidationError(detail={
            "detail": _("Status must be one of: %(statuses)s") % {'statuses': ', '.join(ReceiptItemStatus.values)}
        })

    with transaction.atomic():
        receipt_item = ReceiptItem.objects.alive() \
            .select_for_update() \
            .filter(pk=item_id, receipt_id=receipt_id) \
            .first()
        if receipt_item is None:
            raise NotFound(detail=_("Receipt item with ID %(item)s not found in receipt %(receipt)s") % {
                'item': item_id, 'receipt': receipt_id
            })

        previous_status = receipt_item.status
        validate_transition(previous_status, target_status)

        receipt_item.status = target_status
        receipt_item.save(update_fields=['status', *receipt_item.touch(actor_id)])
        sink.record(receipt_item, AuditAction.updated, actor_id)

    logger.info('Receipt item %s status updated from %s to %s', item_id, previous_status, target_status)
    return {
        'message': _('Status updated successfully'),
        'item_id': receipt_item.pk,
        'previous_status': previous_status,
        'new_status': target_status,
    }
