"""
Table occupancy changes. Both operations are single conditional UPDATE
statements guarded by the current status.
"""
import logging
from typing import Optional

from django.utils import timezone

from seating.models import Table, TableStatus

logger = logging.getLogger(__name__)


def _switch(table_id: int, source: str, target: str, actor_id: Optional[int]) -> bool:
    changed = Table.objects.alive() \
        .filter(pk=table_id, status=source) \
        .update(status=target, updated_at=timezone.now(), updated_by=actor_id)
    if changed:
        logger.info('Table %s switched from %s to %s', table_id, source, target)
    return bool(changed)


def occupy(table_id: int, actor_id: Optional[int] = None) -> bool:
    """
    AVAILABLE -> OCCUPIED. Returns False when table is not available anymore
    """
    return _switch(table_id, TableStatus.AVAILABLE, TableStatus.OCCUPIED, actor_id)


def release(table_id: int, actor_id: Optional[int] = None) -> bool:
    """
    OCCUPIED -> AVAILABLE. Reserved or already free table is left untouched
    """
    return _switch(table_id, TableStatus.OCCUPIED, TableStatus.AVAILABLE, actor_id)
