from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, transaction
from django.test import TestCase

from audit import sink
from audit.models import AuditAction, AuditLog
from menu.models import Item, Section
from menu.pricing import record_price_change


class AuditSinkTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.section = Section.objects.create(name='Desserts')
        cls.item = Item.objects.create(name='Cheesecake', section=cls.section, price=Decimal('6.00'))

    def test_written_on_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            sink.record(self.item, AuditAction.updated, actor_id=11)
        self.assertFalse(AuditLog.objects.exists())
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        log = AuditLog.objects.get()
        self.assertEqual((log.entity, log.entity_id, log.action, log.actor_id),
                         ('menu.Item', self.item.pk, 'updated', 11))

    def test_not_written_on_rollback(self):
        with self.captureOnCommitCallbacks(execute=True):
            try:
                with transaction.atomic():
                    sink.record(self.item, AuditAction.deleted, actor_id=None)
                    raise DatabaseError('boom')
            except DatabaseError:
                pass
        self.assertFalse(AuditLog.objects.exists())

    def test_failure_does_not_break_operation(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('audit table is gone')):
            with self.assertLogs('audit.sink', level='ERROR'):
                with self.captureOnCommitCallbacks(execute=True):
                    history = record_price_change(self.item, Decimal('6.50'), actor_id=1)

        self.assertIsNotNone(history)
        self.item.refresh_from_db()
        self.assertEqual(self.item.price, Decimal('6.50'))
        self.assertFalse(AuditLog.objects.exists())
