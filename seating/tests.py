from django.test import TestCase

from seating.availability import occupy, release
from seating.models import Table, TableStatus


class SeatingAppTest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.free = Table.objects.create(number=1, capacity=2)
        cls.busy = Table.objects.create(number=2, capacity=4, status=TableStatus.OCCUPIED)
        cls.reserved = Table.objects.create(number=3, capacity=6, status=TableStatus.RESERVED)

    def test_table(self):
        response = self.client.get(
            path='/seating/table/?ordering=-number'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([table['number'] for table in response.json()['results']], [3, 2, 1])

    def test_table_by_status(self):
        response = self.client.get(
            path='/seating/table/?status=RESERVED'
        )
        self.assertEqual(response.json()['count'], 1)

    def test_non_existing_id_table(self):
        response = self.client.get(
            path='/seating/table/87987879889/'
        )
        self.assertEqual(response.status_code, 404)

    def test_available_tables(self):
        response = self.client.get(
            path='/seating/table/available/'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([table['number'] for table in response.json()], [1])

    def test_occupy(self):
        self.assertTrue(occupy(self.free.pk, actor_id=3))
        self.free.refresh_from_db()
        self.assertEqual(self.free.status, TableStatus.OCCUPIED)
        self.assertEqual(self.free.updated_by, 3)

        # second receipt can not take the same table
        self.assertFalse(occupy(self.free.pk))

    def test_occupy_reserved(self):
        self.assertFalse(occupy(self.reserved.pk))
        self.reserved.refresh_from_db()
        self.assertEqual(self.reserved.status, TableStatus.RESERVED)

    def test_release(self):
        self.assertTrue(release(self.busy.pk))
        self.busy.refresh_from_db()
        self.assertEqual(self.busy.status, TableStatus.AVAILABLE)
        self.assertFalse(release(self.reserved.pk))

    def test_deleted_table_is_not_occupied(self):
        self.free.soft_delete(actor_id=None)
        self.assertFalse(occupy(self.free.pk))
