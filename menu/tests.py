from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from audit.models import AuditLog
from menu.models import Item, ItemPriceHistory, Section
from menu.pricing import (open_price_history, price_at, record_price_change,
                          snapshot_prices)


class MenuAppTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.section = Section.objects.create(name='Burgers')
        cls.drinks = Section.objects.create(name='Drinks')
        cls.burger = Item.objects.create(name='Cheeseburger', section=cls.section, price=Decimal('12.50'))
        cls.cola = Item.objects.create(name='Cola', section=cls.drinks, price=Decimal('3.00'))
        cls.removed = Item.objects.create(name='Old salad', section=cls.section, price=Decimal('7.00'),
                                          is_deleted=True)

    def test_section(self):
        response = self.client.get(
            path='/menu/section/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 2)

    def test_non_existing_id_section(self):
        response = self.client.get(
            path='/menu/section/87987879889/'
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(bool(response.json().get('detail', None)), True)

    def test_non_existing_section_page(self):
        response = self.client.get(
            path='/menu/section/?page_size=200&page=78364576347856'
        )
        self.assertEqual(response.status_code, 404)

    def test_items_skip_deleted(self):
        response = self.client.get(
            path='/menu/item/?ordering=name'
        )
        self.assertEqual(response.status_code, 200)
        names = [item['name'] for item in response.json()['results']]
        self.assertEqual(names, ['Cheeseburger', 'Cola'])

    def test_items_by_section_and_price(self):
        response = self.client.get(
            path='/menu/item/?section=drink&max_price=5'
        )
        results = response.json()['results']
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['name'], 'Cola')
        self.assertEqual(results[0]['section']['name'], 'Drinks')

    def test_deleted_item_retrieve(self):
        response = self.client.get(
            path=f'/menu/item/{self.removed.pk}/'
        )
        self.assertEqual(response.status_code, 404)

    def test_item_retrieve_with_history(self):
        open_price_history(self.burger)
        response = self.client.get(
            path=f'/menu/item/{self.burger.pk}/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['price'], 12.5)
        self.assertEqual(len(response.json()['price_history']), 1)


class PricingTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.section = Section.objects.create(name='Pizza')
        cls.margherita = Item.objects.create(name='Margherita', section=cls.section, price=Decimal('9.99'))
        cls.pepperoni = Item.objects.create(name='Pepperoni', section=cls.section, price=Decimal('11.49'))
        cls.removed = Item.objects.create(name='Hawaii', section=cls.section, price=Decimal('10.00'),
                                          is_deleted=True)

    def test_snapshot_prices(self):
        prices = snapshot_prices([self.margherita.pk, self.pepperoni.pk, self.margherita.pk])
        self.assertEqual(prices, {self.margherita.pk: Decimal('9.99'), self.pepperoni.pk: Decimal('11.49')})

    def test_snapshot_prices_single_query(self):
        with self.assertNumQueries(1):
            snapshot_prices([self.margherita.pk, self.pepperoni.pk])

    def test_snapshot_prices_missing_and_deleted(self):
        with self.assertRaises(ValidationError) as context:
            snapshot_prices([self.margherita.pk, self.removed.pk, 987654])
        message = str(context.exception.detail['detail'])
        self.assertIn(str(self.removed.pk), message)
        self.assertIn('987654', message)
        self.assertNotIn(f'{self.margherita.pk},', message)

    def test_record_price_change(self):
        open_price_history(self.margherita)
        with self.captureOnCommitCallbacks(execute=True):
            history = record_price_change(self.margherita, Decimal('10.49'), actor_id=5)

        self.margherita.refresh_from_db()
        self.assertEqual(self.margherita.price, Decimal('10.49'))
        self.assertEqual(self.margherita.updated_by, 5)
        self.assertEqual(history.price, Decimal('10.49'))
        self.assertEqual(ItemPriceHistory.objects.filter(item=self.margherita, effective_to__isnull=True).count(), 1)
        self.assertEqual(ItemPriceHistory.objects.filter(item=self.margherita).count(), 2)
        self.assertTrue(AuditLog.objects.filter(entity='menu.Item', entity_id=self.margherita.pk,
                                                action='updated', actor_id=5).exists())

    def test_record_same_price(self):
        self.assertIsNone(record_price_change(self.pepperoni, Decimal('11.49'), actor_id=None))
        self.assertFalse(ItemPriceHistory.objects.filter(item=self.pepperoni).exists())

    def test_price_at(self):
        before = timezone.now() - timedelta(days=2)
        ItemPriceHistory.objects.create(item=self.pepperoni, price=Decimal('10.00'),
                                        effective_from=before - timedelta(days=1))
        record_price_change(self.pepperoni, Decimal('12.00'), actor_id=None)

        self.assertEqual(price_at(self.pepperoni.pk, before), Decimal('10.00'))
        self.assertEqual(price_at(self.pepperoni.pk, timezone.now() + timedelta(seconds=1)), Decimal('12.00'))
        self.assertIsNone(price_at(self.pepperoni.pk, before - timedelta(days=10)))

    def test_record_price_change_without_history(self):
        created_at = timezone.now() - timedelta(days=3)
        Item.objects.filter(pk=self.margherita.pk).update(created_at=created_at)
        self.margherita.refresh_from_db()

        record_price_change(self.margherita, Decimal('10.99'), actor_id=None)

        self.assertEqual(ItemPriceHistory.objects.filter(item=self.margherita).count(), 2)
        self.assertEqual(price_at(self.margherita.pk, created_at + timedelta(days=1)), Decimal('9.99'))
        self.assertEqual(price_at(self.margherita.pk, timezone.now() + timedelta(seconds=1)), Decimal('10.99'))
