import logging

from django.db import models, transaction

from audit.models import AuditLog

logger = logging.getLogger(__name__)


def record(instance: models.Model, action: str, actor_id: int | None) -> None:
    """
    Registers "entity touched" event. Event is written only after the
    surrounding transaction commits; failures here never reach the caller.
    """
    entity = instance._meta.label
    entity_id = instance.pk
    transaction.on_commit(lambda: _write(entity, entity_id, action, actor_id))


def _write(entity: str, entity_id: int, action: str, actor_id: int | None) -> None:
    try:
        AuditLog.objects.create(entity=entity, entity_id=entity_id, action=action, actor_id=actor_id)
    except Exception:
        logger.exception('Audit event %s for %s #%s by %s was not written', action, entity, entity_id, actor_id)
