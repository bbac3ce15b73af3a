from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from unittest import mock

from django.db.models import QuerySet
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.exceptions import NotFound

from audit.models import AuditedQuerySet
from discounts.constants import WEEKDAYS
from discounts.engine import AllocationStrategyEnum, DiscountEngine
from discounts.models import (ConditionType, Discount, DiscountCondition,
                              DiscountItem, DiscountType, ReceiptDiscount,
                              ReceiptItemDiscount)
from menu.models import Item, Section
from receipts.models import Receipt
from receipts.serializers import CreateReceiptBaseModel
from receipts.services import ReceiptLifecycle
from receipts.totals import calculate_total
from restaurant_project.exceptions import BusinessRuleError
from seating.models import Table, TableStatus


class DiscountFixturesMixin:

    @classmethod
    def setUpTestData(cls):
        cls.section = Section.objects.create(name='Main')
        cls.burger = Item.objects.create(name='Burger', section=cls.section, price=Decimal('10.00'))
        cls.soda = Item.objects.create(name='Soda', section=cls.section, price=Decimal('4.99'))
        cls.fries = Item.objects.create(name='Fries', section=cls.section, price=Decimal('3.50'))
        cls.table = Table.objects.create(number=5, capacity=4)

    def create_receipt(self, lines: list[tuple[Item, int]], table: Table = None) -> Receipt:
        payload = {'items': [{'item_id': item.pk, 'quantity': quantity} for item, quantity in lines]}
        if table is not None:
            payload['table_id'] = table.pk
        else:
            payload.update(is_delivery=True, phone_number='+380501112233', location='Main street 1')
        return ReceiptLifecycle().create(CreateReceiptBaseModel(**payload), actor_id=None)['receipt']

    def create_discount(self, code: str, discount_type: str, **kwargs) -> Discount:
        now = timezone.now()
        kwargs.setdefault('start_date', now - timedelta(days=1))
        kwargs.setdefault('end_date', now + timedelta(days=1))
        return Discount.objects.create(code=code, name=code.title(), type=discount_type, **kwargs)

    def apply(self, code: str, receipt: Receipt, actor_id=None) -> dict:
        return DiscountEngine().apply_discount(code, receipt.pk, actor_id)


class DiscountAppTest(DiscountFixturesMixin, TestCase):

    def test_discount(self):
        self.create_discount('SUMMER', DiscountType.percentage, percentage=Decimal('10'))
        self.create_discount('OLD', DiscountType.amount, amount=Decimal('5'), is_active=False)
        response = self.client.get(
            path='/discounts/discount/?is_active=true'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([discount['code'] for discount in response.json()['results']], ['SUMMER'])

    def test_discount_detail(self):
        discount = self.create_discount('COMBO', DiscountType.combo, amount=Decimal('3'))
        DiscountItem.objects.create(discount=discount, item=self.burger, min_quantity=2)
        DiscountCondition.objects.create(discount=discount, condition_type=ConditionType.min_amount, value='15')
        response = self.client.get(
            path=f'/discounts/discount/{discount.pk}/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['combo_items'][0]['item_name'], 'Burger')
        self.assertEqual(response.json()['conditions'][0]['condition_type'], 'min_amount')

    def test_non_existing_id_discount(self):
        response = self.client.get(
            path='/discounts/discount/87987879889/'
        )
        self.assertEqual(response.status_code, 404)

    def test_apply_invalid_payload(self):
        response = self.client.post(
            path='/discounts/apply/',
            data={'code': '   '},
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual({error['loc'][0] for error in response.json()}, {'code', 'receipt_id'})

    def test_apply_unknown_code(self):
        receipt = self.create_receipt([(self.burger, 1)])
        response = self.client.post(
            path='/discounts/apply/',
            data={'code': 'NOPE', 'receipt_id': receipt.pk},
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['detail'], 'Discount code not found')

    def test_example_scenario(self):
        self.create_discount('TWENTY', DiscountType.percentage, percentage=Decimal('20'))

        response = self.client.post(
            path='/receipts/receipt/',
            data={'table_id': self.table.pk,
                  'items': [{'item_id': self.burger.pk, 'quantity': 2}, {'item_id': self.soda.pk, 'quantity': 1}]},
            content_type='application/json'
        )
        receipt_id = response.json()['id']
        self.assertEqual(response.json()['totals']['subtotal'], 24.99)

        response = self.client.post(
            path='/discounts/apply/',
            data={'code': 'TWENTY', 'receipt_id': receipt_id},
            content_type='application/json',
            HTTP_X_ACTOR_ID='9'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'message': 'Discount applied successfully', 'discount_code': 'TWENTY',
                                           'discount_amount': 5.0, 'receipt_id': receipt_id})

        response = self.client.get(
            path=f'/receipts/receipt/{receipt_id}/total/'
        )
        self.assertEqual(response.json()['discount_total'], 5.0)
        self.assertEqual(response.json()['total'], 19.99)

        response = self.client.put(
            path=f'/receipts/receipt/{receipt_id}/complete/',
            data={},
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['total'], 19.99)
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, TableStatus.AVAILABLE)

        response = self.client.get(
            path=f'/receipts/receipt/{receipt_id}/'
        )
        self.assertEqual(response.json()['discounts'][0]['code'], 'TWENTY')
        self.assertEqual(response.json()['discounts'][0]['applied_by'], 9)


class AllocationTest(DiscountFixturesMixin, TestCase):

    def allocations(self, receipt: Receipt) -> list[Decimal]:
        return list(ReceiptItemDiscount.objects
                    .filter(receipt_item__receipt=receipt)
                    .order_by('receipt_item_id')
                    .values_list('applied_amount', flat=True))

    def test_percentage_last_item_takes_remainder(self):
        self.create_discount('THIRD', DiscountType.percentage, percentage=Decimal('33.33'))
        receipt = self.create_receipt([(self.burger, 1), (self.burger, 1), (self.burger, 1)])

        result = self.apply('THIRD', receipt)
        self.assertEqual(result['discount_amount'], Decimal('10.00'))
        self.assertEqual(self.allocations(receipt), [Decimal('3.33'), Decimal('3.33'), Decimal('3.34')])
        self.assertEqual(sum(self.allocations(receipt)), Decimal('10.00'))

    def test_percentage_sum_matches_rounded_amount(self):
        self.create_discount('ODD', DiscountType.percentage, percentage=Decimal('17.5'))
        receipt = self.create_receipt([(self.burger, 3), (self.soda, 7), (self.fries, 1)])

        result = self.apply('ODD', receipt)
        subtotal = calculate_total(receipt.pk)['subtotal']
        expected = (subtotal * Decimal('17.5') / 100).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        self.assertEqual(result['discount_amount'], expected)
        self.assertEqual(sum(self.allocations(receipt)), expected)
        self.assertEqual(len(self.allocations(receipt)), 3)

    def test_amount_on_first_item(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5.00'))
        receipt = self.create_receipt([(self.soda, 1), (self.burger, 1)])

        result = self.apply('FIVE', receipt, actor_id=4)
        self.assertEqual(result['discount_amount'], Decimal('5.00'))
        allocation = ReceiptItemDiscount.objects.get(receipt_item__receipt=receipt)
        self.assertEqual(allocation.receipt_item.item_id, self.soda.pk)
        self.assertEqual(ReceiptDiscount.objects.get(receipt=receipt).applied_by, 4)
        self.assertEqual(calculate_total(receipt.pk)['total'], Decimal('9.99'))

    def test_combo_fixed_amount(self):
        discount = self.create_discount('MEAL', DiscountType.combo, amount=Decimal('2.50'))
        DiscountItem.objects.create(discount=discount, item=self.burger, min_quantity=1)
        DiscountItem.objects.create(discount=discount, item=self.fries, min_quantity=1)
        receipt = self.create_receipt([(self.soda, 1), (self.burger, 1), (self.fries, 1)])

        result = self.apply('MEAL', receipt)
        self.assertEqual(result['discount_amount'], Decimal('2.50'))
        self.assertEqual(self.allocations(receipt), [Decimal('2.50')])

    def test_combo_percentage_of_eligible_items(self):
        discount = self.create_discount('HALF', DiscountType.combo, percentage=Decimal('50'))
        DiscountItem.objects.create(discount=discount, item=self.burger, min_quantity=2)
        receipt = self.create_receipt([(self.burger, 2), (self.soda, 1)])

        result = self.apply('HALF', receipt)
        self.assertEqual(result['discount_amount'], Decimal('10.00'))

    def test_combo_quantity_summed_over_lines(self):
        discount = self.create_discount('TRIPLE', DiscountType.combo, amount=Decimal('4'))
        DiscountItem.objects.create(discount=discount, item=self.burger, min_quantity=3)
        receipt = self.create_receipt([(self.burger, 2), (self.burger, 1)])

        self.assertEqual(self.apply('TRIPLE', receipt)['discount_amount'], Decimal('4.00'))

    def test_combo_missing_item(self):
        discount = self.create_discount('MEAL', DiscountType.combo, amount=Decimal('2.50'))
        DiscountItem.objects.create(discount=discount, item=self.burger, min_quantity=1)
        DiscountItem.objects.create(discount=discount, item=self.fries, min_quantity=1)
        receipt = self.create_receipt([(self.burger, 1)])

        with self.assertRaises(BusinessRuleError) as context:
            self.apply('MEAL', receipt)
        self.assertEqual(str(context.exception.detail), 'Combo discount requires all items: Fries')
        self.assertFalse(ReceiptDiscount.objects.exists())
        self.assertFalse(ReceiptItemDiscount.objects.exists())

    def test_combo_insufficient_quantity(self):
        discount = self.create_discount('TRIPLE', DiscountType.combo, amount=Decimal('4'))
        DiscountItem.objects.create(discount=discount, item=self.burger, min_quantity=3)
        receipt = self.create_receipt([(self.burger, 2)])

        with self.assertRaises(BusinessRuleError) as context:
            self.apply('TRIPLE', receipt)
        self.assertEqual(str(context.exception.detail), 'Item Burger requires minimum quantity of 3')
        self.assertFalse(ReceiptItemDiscount.objects.exists())

    def test_percentage_shares_never_negative(self):
        penny = Item.objects.create(name='Sauce', section=self.section, price=Decimal('0.05'))
        self.create_discount('TEN', DiscountType.percentage, percentage=Decimal('10'))
        receipt = self.create_receipt([(penny, 1)] * 4)

        result = self.apply('TEN', receipt)
        self.assertEqual(result['discount_amount'], Decimal('0.02'))
        self.assertEqual(self.allocations(receipt), [Decimal('0.00')] * 3 + [Decimal('0.02')])

    def test_percentage_shares_of_many_lines(self):
        bread = Item.objects.create(name='Bread', section=self.section, price=Decimal('1.05'))
        self.create_discount('TEN', DiscountType.percentage, percentage=Decimal('10'))
        receipt = self.create_receipt([(bread, 1)] * 10)

        result = self.apply('TEN', receipt)
        allocations = self.allocations(receipt)
        self.assertEqual(result['discount_amount'], Decimal('1.05'))
        self.assertEqual(sum(allocations), Decimal('1.05'))
        self.assertEqual(allocations[:-1], [Decimal('0.10')] * 9)
        self.assertEqual(allocations[-1], Decimal('0.15'))
        self.assertTrue(all(share >= 0 for share in allocations))

    def test_every_type_has_strategy(self):
        for discount_type in DiscountType.values:
            self.assertTrue(AllocationStrategyEnum.get_strategy_by_type(discount_type))
        with self.assertRaises(ValueError):
            AllocationStrategyEnum.get_strategy_by_type('bogo')


class DiscountGatingTest(DiscountFixturesMixin, TestCase):

    def setUp(self):
        self.receipt = self.create_receipt([(self.burger, 2), (self.soda, 1)])

    def assertRejected(self, code: str, message: str, receipt: Receipt = None):
        with self.assertRaises(BusinessRuleError) as context:
            self.apply(code, receipt or self.receipt)
        self.assertEqual(str(context.exception.detail), message)

    def test_usage_cap(self):
        self.create_discount('ONCE', DiscountType.amount, amount=Decimal('1'), max_receipts=1)
        self.apply('ONCE', self.receipt)

        other = self.create_receipt([(self.soda, 1)])
        self.assertRejected('ONCE', 'Discount code has reached maximum usage limit', other)
        self.assertEqual(ReceiptDiscount.objects.count(), 1)

    def test_inactive(self):
        self.create_discount('OFF', DiscountType.amount, amount=Decimal('1'), is_active=False)
        self.assertRejected('OFF', 'Discount code is not active')

    def test_expired(self):
        now = timezone.now()
        self.create_discount('GONE', DiscountType.amount, amount=Decimal('1'),
                             start_date=now - timedelta(days=10), end_date=now - timedelta(days=1))
        self.assertRejected('GONE', 'Discount code is not valid at this time')

    def test_not_started(self):
        now = timezone.now()
        self.create_discount('SOON', DiscountType.amount, amount=Decimal('1'),
                             start_date=now + timedelta(days=1), end_date=now + timedelta(days=10))
        self.assertRejected('SOON', 'Discount code is not valid at this time')

    def test_deleted_discount(self):
        discount = self.create_discount('DEAD', DiscountType.amount, amount=Decimal('1'))
        discount.soft_delete(actor_id=None)
        with self.assertRaises(NotFound):
            self.apply('DEAD', self.receipt)

    def test_missing_receipt(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        with self.assertRaises(NotFound):
            DiscountEngine().apply_discount('FIVE', 87987879889, actor_id=None)

    def test_completed_receipt(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        ReceiptLifecycle().complete(self.receipt.pk, actor_id=None)
        self.assertRejected('FIVE', 'Discount can not be applied to completed receipt')

    def test_receipt_without_items(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        for receipt_item in self.receipt.items.all():
            receipt_item.soft_delete(actor_id=None)
        self.assertRejected('FIVE', 'Receipt has no items')

    def test_min_amount_not_a_number(self):
        discount = self.create_discount('BIG', DiscountType.amount, amount=Decimal('3'))
        condition = DiscountCondition.objects.create(discount=discount, condition_type=ConditionType.min_amount,
                                                     value='NaN')
        self.assertRejected('BIG', "Discount condition value 'NaN' is not a number")

        for value in ('Infinity', 'ten'):
            condition.value = value
            condition.save()
            self.assertRejected('BIG', f"Discount condition value '{value}' is not a number")
        self.assertFalse(ReceiptDiscount.objects.exists())

    def test_receipt_locked_while_applying(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        with mock.patch.object(AuditedQuerySet, 'select_for_update', autospec=True,
                               side_effect=QuerySet.select_for_update) as select_for_update:
            self.apply('FIVE', self.receipt)

        locked_models = {call.args[0].model for call in select_for_update.call_args_list}
        self.assertEqual(locked_models, {Discount, Receipt})

    def test_min_amount(self):
        discount = self.create_discount('BIG', DiscountType.amount, amount=Decimal('3'))
        DiscountCondition.objects.create(discount=discount, condition_type=ConditionType.min_amount, value='30')
        self.assertRejected('BIG', 'Order subtotal must be at least 30.00')

        DiscountCondition.objects.filter(discount=discount).update(value='24.99')
        self.assertEqual(self.apply('BIG', self.receipt)['discount_amount'], Decimal('3.00'))

    def test_day_of_week(self):
        today = WEEKDAYS[timezone.localtime().weekday()]
        other_days = [day.title() for day in WEEKDAYS if day != today]

        discount = self.create_discount('DAYS', DiscountType.amount, amount=Decimal('1'))
        condition = DiscountCondition.objects.create(discount=discount, condition_type=ConditionType.day_of_week,
                                                     value=','.join(other_days))
        self.assertRejected('DAYS', f'Discount is only valid on: {", ".join(other_days)}')

        condition.value = f'Holiday, {today.upper()} '
        condition.save()
        self.assertEqual(self.apply('DAYS', self.receipt)['discount_amount'], Decimal('1.00'))

    def test_all_conditions_must_pass(self):
        today = WEEKDAYS[timezone.localtime().weekday()]
        discount = self.create_discount('BOTH', DiscountType.amount, amount=Decimal('1'))
        DiscountCondition.objects.create(discount=discount, condition_type=ConditionType.day_of_week, value=today)
        DiscountCondition.objects.create(discount=discount, condition_type=ConditionType.min_amount, value='100')
        self.assertRejected('BOTH', 'Order subtotal must be at least 100.00')

    def test_reapply_allowed_by_default(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        self.apply('FIVE', self.receipt)
        self.apply('FIVE', self.receipt)
        self.assertEqual(calculate_total(self.receipt.pk)['discount_total'], Decimal('10.00'))

    @override_settings(DISCOUNT_ALLOW_REAPPLY=False)
    def test_reapply_forbidden(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        self.apply('FIVE', self.receipt)
        self.assertRejected('FIVE', 'Discount FIVE is already applied to this receipt')
        self.assertEqual(ReceiptDiscount.objects.count(), 1)

    def test_discounts_are_additive(self):
        self.create_discount('FIVE', DiscountType.amount, amount=Decimal('5'))
        self.create_discount('TEN', DiscountType.percentage, percentage=Decimal('10'))
        self.apply('FIVE', self.receipt)
        self.apply('TEN', self.receipt)
        totals = calculate_total(self.receipt.pk)
        self.assertEqual(totals['discount_total'], Decimal('7.50'))
        self.assertEqual(totals['total'], Decimal('17.49'))
