"""
Price capture for ordered items and catalog price history.

Prices returned by snapshot_prices() are copied into receipt lines once
and never recomputed, so later catalog edits do not change sold receipts.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import ValidationError

from audit import sink
from audit.models import AuditAction
from menu.models import Item, ItemPriceHistory

logger = logging.getLogger(__name__)


def snapshot_prices(item_ids: Iterable[int]) -> dict[int, Decimal]:
    """
    Resolves all requested catalog items in one query and returns their current prices
    """
    requested_ids: list[int] = list(dict.fromkeys(item_ids))
    prices: dict[int, Decimal] = dict(
        Item.objects.alive().filter(pk__in=requested_ids).values_list('pk', 'price')
    )

    missing_ids = [item_id for item_id in requested_ids if item_id not in prices]
    if missing_ids:
        raise ValidationError(detail={
            "detail": _("Items not found or deleted: %(ids)s") % {'ids': ', '.join(map(str, missing_ids))}
        })

    return prices


def record_price_change(item: Item, new_price: Decimal, actor_id: Optional[int]) -> Optional[ItemPriceHistory]:
    """
    Closes currently open history record and opens a new one with 'new_price'.
    Returns None when price did not change.
    """
    new_price = Decimal(new_price)
    if item.price == new_price:
        return None

    now = timezone.now()
    with transaction.atomic():
        open_records = ItemPriceHistory.objects.filter(item=item, effective_to__isnull=True)
        if not open_records.exists():
            # item loaded without history: its current price was in effect since creation
            open_price_history(item, actor_id)
        open_records.update(effective_to=now)
        history = ItemPriceHistory.objects.create(item=item, price=new_price, effective_from=now,
                                                  created_by=actor_id)
        previous_price = item.price
        item.price = new_price
        item.save(update_fields=['price', *item.touch(actor_id)])
        sink.record(item, AuditAction.updated, actor_id)

    logger.info('Price of item %s changed from %s to %s', item.pk, previous_price, new_price)
    return history


def open_price_history(item: Item, actor_id: Optional[int] = None) -> ItemPriceHistory:
    return ItemPriceHistory.objects.create(item=item, price=item.price, effective_from=item.created_at,
                                           created_by=actor_id)


def price_at(item_id: int, moment: datetime) -> Optional[Decimal]:
    """
    Returns price of the item which was in effect at 'moment'
    """
    record = ItemPriceHistory.objects \
        .filter(item_id=item_id, effective_from__lte=moment) \
        .filter(Q(effective_to__isnull=True) | Q(effective_to__gte=moment)) \
        .order_by('-effective_from', '-id') \
        .first()
    return record.price if record else None
