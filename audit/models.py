from django.db import models
from django.utils import timezone


class AuditedQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(is_deleted=False)


class AuditedModel(models.Model):
    """
    Carries "who and when" stamps and soft-delete flag for entities
    that are never removed physically
    """
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    created_by = models.PositiveBigIntegerField(blank=True, null=True)
    updated_at = models.DateTimeField(blank=True, null=True)
    updated_by = models.PositiveBigIntegerField(blank=True, null=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(blank=True, null=True)
    deleted_by = models.PositiveBigIntegerField(blank=True, null=True)

    objects = AuditedQuerySet.as_manager()

    class Meta:
        abstract = True

    def touch(self, actor_id: int | None) -> list[str]:
        """
        Stamps "updated" marker and returns changed field names for save(update_fields=...)
        """
        self.updated_at = timezone.now()
        self.updated_by = actor_id
        return ['updated_at', 'updated_by']

    def soft_delete(self, actor_id: int | None) -> None:
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.deleted_by = actor_id
        self.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by'])


class AuditAction(models.TextChoices):
    created = 'created'
    updated = 'updated'
    deleted = 'deleted'


class AuditLog(models.Model):
    entity = models.CharField(max_length=64)
    entity_id = models.PositiveBigIntegerField()
    action = models.CharField(max_length=16, choices=AuditAction.choices)
    actor_id = models.PositiveBigIntegerField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [models.Index(fields=['entity', 'entity_id'])]
