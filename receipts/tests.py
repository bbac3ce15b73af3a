from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework.exceptions import NotFound, ValidationError

from audit.models import AuditLog
from menu.models import Item, Section
from menu.pricing import record_price_change
from receipts.kitchen import items_by_receipt, pending_items
from receipts.models import Receipt, ReceiptItem, ReceiptItemStatus
from receipts.serializers import CreateReceiptBaseModel
from receipts.services import ReceiptLifecycle
from receipts.status_machine import (advance_item_status, allowed_transitions,
                                     validate_transition)
from receipts.totals import calculate_total
from restaurant_project.exceptions import (BusinessRuleError,
                                           InvalidTransitionError)
from seating.models import Table, TableStatus


class ReceiptFixturesMixin:

    @classmethod
    def setUpTestData(cls):
        cls.section = Section.objects.create(name='Main')
        cls.burger = Item.objects.create(name='Burger', section=cls.section, price=Decimal('10.00'))
        cls.soda = Item.objects.create(name='Soda', section=cls.section, price=Decimal('4.99'))
        cls.table = Table.objects.create(number=5, capacity=4)
        cls.reserved_table = Table.objects.create(number=6, capacity=2, status=TableStatus.RESERVED)

    def dine_in_payload(self, table=None):
        return {
            'table_id': (table or self.table).pk,
            'items': [
                {'item_id': self.burger.pk, 'quantity': 2},
                {'item_id': self.soda.pk, 'quantity': 1, 'notes': 'no ice'},
            ],
        }

    def delivery_payload(self):
        return {
            'is_delivery': True,
            'phone_number': '+380501112233',
            'location': 'Main street 1',
            'items': [{'item_id': self.soda.pk, 'quantity': 3}],
        }

    def create_receipt(self, payload: dict, actor_id=None) -> Receipt:
        return ReceiptLifecycle().create(CreateReceiptBaseModel(**payload), actor_id)['receipt']


class ReceiptAppTest(ReceiptFixturesMixin, TestCase):

    def test_create_dine_in(self):
        response = self.client.post(
            path='/receipts/receipt/',
            data=self.dine_in_payload(),
            content_type='application/json',
            HTTP_X_ACTOR_ID='7'
        )
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['number'], 1)
        self.assertEqual(data['created_by'], 7)
        self.assertEqual(data['table']['number'], 5)
        self.assertEqual(len(data['items']), 2)
        self.assertEqual([item['status'] for item in data['items']], ['pending', 'pending'])
        self.assertEqual(data['totals']['subtotal'], 24.99)
        self.assertEqual(data['totals']['total'], 24.99)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.OCCUPIED)

    def test_create_delivery(self):
        response = self.client.post(
            path='/receipts/receipt/',
            data=self.delivery_payload(),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['table'], None)
        self.assertEqual(response.json()['totals']['subtotal'], 14.97)

    def test_create_mixed_order_kind(self):
        payload = self.delivery_payload()
        payload['table_id'] = self.table.pk
        response = self.client.post(
            path='/receipts/receipt/',
            data=payload,
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Receipt.objects.exists())

    def test_create_delivery_without_location(self):
        payload = self.delivery_payload()
        del payload['location']
        response = self.client.post(
            path='/receipts/receipt/',
            data=payload,
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('Delivery orders require phone_number and location', response.json()[0]['msg'])

    def test_create_dine_in_without_table(self):
        payload = self.dine_in_payload()
        del payload['table_id']
        response = self.client.post(
            path='/receipts/receipt/',
            data=payload,
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_create_zero_quantity(self):
        payload = self.dine_in_payload()
        payload['items'][0]['quantity'] = 0
        response = self.client.post(
            path='/receipts/receipt/',
            data=payload,
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()[0]['loc'], ['items', 0, 'quantity'])

    def test_create_on_busy_table(self):
        self.create_receipt(self.dine_in_payload())
        response = self.client.post(
            path='/receipts/receipt/',
            data=self.dine_in_payload(),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('current status: OCCUPIED', response.json()['detail'])
        self.assertEqual(Receipt.objects.count(), 1)

    def test_create_on_missing_table(self):
        payload = self.dine_in_payload()
        payload['table_id'] = 87987879889
        response = self.client.post(
            path='/receipts/receipt/',
            data=payload,
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 404)

    def test_create_with_missing_items(self):
        payload = self.dine_in_payload()
        payload['items'].append({'item_id': 987654, 'quantity': 1})
        response = self.client.post(
            path='/receipts/receipt/',
            data=payload,
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'Items not found or deleted: 987654')

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.AVAILABLE)
        self.assertFalse(ReceiptItem.objects.exists())

    def test_receipt_list(self):
        self.create_receipt(self.dine_in_payload())
        self.create_receipt(self.delivery_payload())
        response = self.client.get(
            path='/receipts/receipt/?is_delivery=true'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 1)
        self.assertEqual(response.json()['results'][0]['number'], 2)

        response = self.client.get(
            path='/receipts/receipt/?table=5&completed=false'
        )
        self.assertEqual(response.json()['count'], 1)

    def test_non_existing_receipt_page(self):
        response = self.client.get(
            path='/receipts/receipt/?page_size=200&page=78364576347856'
        )
        self.assertEqual(response.status_code, 404)

    def test_receipt_detail(self):
        receipt = self.create_receipt(self.dine_in_payload())
        response = self.client.get(
            path=f'/receipts/receipt/{receipt.pk}/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['items']), 2)
        self.assertEqual(response.json()['discounts'], [])
        self.assertEqual(response.json()['totals']['subtotal'], 24.99)

    def test_non_existing_id_receipt(self):
        response = self.client.get(
            path='/receipts/receipt/87987879889/'
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(bool(response.json().get('detail', None)), True)

    def test_receipt_total(self):
        receipt = self.create_receipt(self.dine_in_payload())
        response = self.client.get(
            path=f'/receipts/receipt/{receipt.pk}/total/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'subtotal': 24.99, 'discount_total': 0.0, 'quick_discount': 0.0,
                                           'total': 24.99})

    def test_create_writes_audit_log(self):
        with self.captureOnCommitCallbacks(execute=True):
            receipt = self.create_receipt(self.delivery_payload(), actor_id=3)
        self.assertTrue(AuditLog.objects.filter(entity='receipts.Receipt', entity_id=receipt.pk,
                                                action='created', actor_id=3).exists())


class ReceiptNumberingTest(ReceiptFixturesMixin, TestCase):

    def test_sequential_numbers(self):
        numbers = [self.create_receipt(self.delivery_payload()).number for _ in range(3)]
        self.assertEqual(numbers, [1, 2, 3])

    def test_failed_creation_keeps_number(self):
        self.create_receipt(self.delivery_payload())

        with mock.patch('seating.availability.occupy', return_value=False):
            with self.assertRaises(BusinessRuleError):
                self.create_receipt(self.dine_in_payload())

        self.assertEqual(Receipt.objects.count(), 1)
        self.assertEqual(ReceiptItem.objects.count(), 1)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.AVAILABLE)

        self.assertEqual(self.create_receipt(self.dine_in_payload()).number, 2)

    def test_numbering_continues_existing_receipts(self):
        Receipt.objects.create(number=41, is_delivery=True, phone_number='1', location='x')
        self.assertEqual(self.create_receipt(self.delivery_payload()).number, 42)


class StatusMachineTest(ReceiptFixturesMixin, TestCase):

    def setUp(self):
        self.receipt = self.create_receipt(self.dine_in_payload())
        self.line = self.receipt.items.order_by('id').first()

    def put_status(self, status: str, line=None):
        return self.client.put(
            path=f'/receipts/receipt/{self.receipt.pk}/items/{(line or self.line).pk}/status/',
            data={'status': status},
            content_type='application/json',
            HTTP_X_ACTOR_ID='2'
        )

    def test_allowed_transitions(self):
        self.assertEqual(allowed_transitions('pending'), ('preparing',))
        self.assertEqual(allowed_transitions('done'), ())
        validate_transition('ready', 'done')

    def test_full_workflow(self):
        for previous_status, new_status in (('pending', 'preparing'), ('preparing', 'ready'), ('ready', 'done')):
            response = self.put_status(new_status)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()['previous_status'], previous_status)
            self.assertEqual(response.json()['new_status'], new_status)

        self.line.refresh_from_db()
        self.assertEqual(self.line.status, ReceiptItemStatus.done)
        self.assertEqual(self.line.updated_by, 2)

    def test_skip_status(self):
        response = self.put_status('ready')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'],
                         'Invalid status transition from pending to ready. Allowed transitions: preparing')
        self.line.refresh_from_db()
        self.assertEqual(self.line.status, ReceiptItemStatus.pending)

    def test_transition_after_done(self):
        ReceiptItem.objects.filter(pk=self.line.pk).update(status=ReceiptItemStatus.done)
        with self.assertRaises(InvalidTransitionError) as context:
            advance_item_status(self.receipt.pk, self.line.pk, 'pending', actor_id=None)
        self.assertEqual(context.exception.allowed, [])
        self.assertIn('Allowed transitions: none', str(context.exception.detail))

    def test_unknown_status(self):
        response = self.put_status('eaten')
        self.assertEqual(response.status_code, 400)
        with self.assertRaises(ValidationError):
            advance_item_status(self.receipt.pk, self.line.pk, 'eaten', actor_id=None)

    def test_item_of_other_receipt(self):
        other = self.create_receipt(self.delivery_payload())
        with self.assertRaises(NotFound) as context:
            advance_item_status(other.pk, self.line.pk, 'preparing', actor_id=None)
        self.assertEqual(str(context.exception.detail),
                         f'Receipt item with ID {self.line.pk} not found in receipt {other.pk}')

    def test_deleted_item(self):
        self.line.soft_delete(actor_id=None)
        response = self.put_status('preparing')
        self.assertEqual(response.status_code, 404)


class TotalsTest(ReceiptFixturesMixin, TestCase):

    def test_snapshot_survives_price_change(self):
        receipt = self.create_receipt(self.dine_in_payload())
        record_price_change(self.burger, Decimal('15.00'), actor_id=None)
        self.assertEqual(calculate_total(receipt.pk)['subtotal'], Decimal('24.99'))

    def test_deleted_items_excluded(self):
        receipt = self.create_receipt(self.dine_in_payload())
        receipt.items.get(item=self.soda).soft_delete(actor_id=None)
        self.assertEqual(calculate_total(receipt.pk)['subtotal'], Decimal('20.00'))

    def test_catalog_price_fallback(self):
        receipt = self.create_receipt(self.dine_in_payload())
        receipt.items.filter(item=self.soda).update(unit_price=None)
        Item.objects.filter(pk=self.soda.pk).update(price=Decimal('5.50'))
        self.assertEqual(calculate_total(receipt.pk)['subtotal'], Decimal('25.50'))

    def test_missing_receipt(self):
        with self.assertRaises(NotFound):
            calculate_total(87987879889)


class CompleteReceiptTest(ReceiptFixturesMixin, TestCase):

    def complete(self, receipt: Receipt, data: dict = None):
        return self.client.put(
            path=f'/receipts/receipt/{receipt.pk}/complete/',
            data=data or {},
            content_type='application/json'
        )

    def test_complete_releases_table(self):
        receipt = self.create_receipt(self.dine_in_payload())
        response = self.complete(receipt)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['receipt_number'], receipt.number)
        self.assertEqual(response.json()['total'], 24.99)

        receipt.refresh_from_db()
        self.assertIsNotNone(receipt.completed_at)
        self.assertIsNone(receipt.quick_discount)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.AVAILABLE)

    def test_complete_with_quick_discount(self):
        receipt = self.create_receipt(self.dine_in_payload())
        response = self.complete(receipt, {'quick_discount': 4.99})
        self.assertEqual(response.json()['quick_discount'], 4.99)
        self.assertEqual(response.json()['discount_total'], 4.99)
        self.assertEqual(response.json()['total'], 20.0)

    def test_quick_discount_exceeds_subtotal(self):
        receipt = self.create_receipt(self.dine_in_payload())
        response = self.complete(receipt, {'quick_discount': 30})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'Quick discount (30.00) cannot exceed subtotal (24.99)')

        receipt.refresh_from_db()
        self.assertIsNone(receipt.completed_at)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.OCCUPIED)

    def test_negative_quick_discount(self):
        receipt = self.create_receipt(self.dine_in_payload())
        response = self.complete(receipt, {'quick_discount': -1})
        self.assertEqual(response.status_code, 400)

    def test_complete_twice(self):
        receipt = self.create_receipt(self.dine_in_payload())
        self.complete(receipt)
        response = self.complete(receipt)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['detail'], 'Receipt is already completed')

    def test_complete_with_reserved_table(self):
        receipt = self.create_receipt(self.dine_in_payload())
        Table.objects.filter(pk=self.table.pk).update(status=TableStatus.RESERVED)

        with self.assertLogs('receipts.services', level='WARNING'):
            ReceiptLifecycle().complete(receipt.pk, actor_id=None)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.RESERVED)

    def test_complete_missing_receipt(self):
        with self.assertRaises(NotFound):
            ReceiptLifecycle().complete(87987879889, actor_id=None)


class KitchenTest(ReceiptFixturesMixin, TestCase):

    def setUp(self):
        self.dine_in = self.create_receipt(self.dine_in_payload())
        self.delivery = self.create_receipt(self.delivery_payload())
        burger_line = self.dine_in.items.get(item=self.burger)
        burger_line.status = ReceiptItemStatus.ready
        burger_line.save()

    def test_pending_items(self):
        lines = list(pending_items())
        self.assertEqual([line.item_id for line in lines], [self.soda.pk, self.soda.pk])
        self.assertEqual(lines[0].receipt_id, self.dine_in.pk)

    def test_items_by_receipt(self):
        orders = items_by_receipt()
        self.assertEqual([order['receipt_number'] for order in orders], [1, 2])
        self.assertEqual(orders[0]['table_number'], 5)
        self.assertIsNone(orders[1]['table_number'])
        self.assertEqual(orders[1]['delivery_location'], 'Main street 1')
        self.assertEqual(orders[0]['items'][0]['item_name'], 'Soda')
        self.assertEqual(orders[0]['items'][0]['notes'], 'no ice')
        self.assertEqual(orders[1]['items'][0]['quantity'], 3)

    def test_items_by_receipt_empty(self):
        ReceiptItem.objects.update(status=ReceiptItemStatus.done)
        self.assertEqual(items_by_receipt(), [])

    def test_kitchen_endpoints(self):
        response = self.client.get(
            path='/receipts/kitchen/pending/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)
        self.assertEqual(response.json()[0]['table_number'], 5)

        response = self.client.get(
            path='/receipts/kitchen/by-receipt/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), 2)
        self.assertEqual(response.json()[1]['is_delivery'], True)
