import logging

import pandas as pd
from django.db.models import F

from receipts.models import ReceiptItem, ReceiptItemStatus

logger = logging.getLogger(__name__)

KITCHEN_STATUSES = (ReceiptItemStatus.pending, ReceiptItemStatus.preparing)

ITEM_COLUMNS = ['id', 'item_id', 'item_name', 'section', 'quantity', 'status', 'notes']
RECEIPT_COLUMNS = ['receipt_id', 'receipt_number', 'table_number', 'is_delivery', 'delivery_location']


def pending_items():
    """
    Lines waiting for the kitchen, oldest first
    """
    return ReceiptItem.objects.alive() \
        .filter(status__in=KITCHEN_STATUSES, receipt__is_deleted=False) \
        .select_related('item__section', 'receipt__table') \
        .order_by('created_at', 'id')


def items_by_receipt() -> list[dict]:
    """
    Groups pending lines by their receipt, keeping FIFO order of receipts
    """
    records = list(
        pending_items().values(
            'id',
            'item_id',
            'quantity',
            'status',
            'notes',
            'receipt_id',
            'created_at',
            item_name=F('item__name'),
            section=F('item__section__name'),
            receipt_number=F('receipt__number'),
            table_number=F('receipt__table__number'),
            is_delivery=F('receipt__is_delivery'),
            delivery_location=F('receipt__location'),
        )
    )
    if not records:
        return []

    df = pd.DataFrame(records, dtype=object)

    grouped = []
    for _, receipt_df in df.groupby('receipt_id', sort=False):
        head = receipt_df.iloc[0]
        order = {column: head[column] for column in RECEIPT_COLUMNS}
        # first line of the receipt marks when the order reached the kitchen
        order['order_time'] = head['created_at']
        order['items'] = receipt_df[ITEM_COLUMNS].to_dict(orient='records')
        grouped.append(order)

    logger.debug('Grouped %s kitchen lines into %s orders', len(df), len(grouped))
    return grouped
