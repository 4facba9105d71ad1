"""Tests for the SQLite record store."""
import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from payledger.config import LOANS_COLLECTION, EMPLOYEES_COLLECTION
from payledger.database import DatabaseManager
from payledger.exceptions import StoreError


def loan_row(tx_id, employee_id="E1", amount="100", date="2025-01-01"):
    return {
        'id': tx_id,
        'employee_id': employee_id,
        'kind': 'Disbursement',
        'amount': amount,
        'transaction_date': date,
        'recorded_at': '2025-01-01 08:00:00.000000',
    }


class TestCollectionOperations(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")

    def tearDown(self):
        self.db.close()

    def test_append_returns_row_index(self):
        first = self.db.append(LOANS_COLLECTION, loan_row("a"))
        second = self.db.append(LOANS_COLLECTION, loan_row("b"))
        self.assertLess(first, second)

    def test_scan_all_in_insertion_order(self):
        for tx_id in ("c", "a", "b"):
            self.db.append(LOANS_COLLECTION, loan_row(tx_id))
        rows = self.db.scan_all(LOANS_COLLECTION)
        self.assertEqual([r['id'] for r in rows], ["c", "a", "b"])
        self.assertIn('row_index', rows[0])
        self.assertIsNone(rows[0]['balance_before'])

    def test_lookup(self):
        self.db.append(LOANS_COLLECTION, loan_row("a", amount="10"))
        self.db.append(LOANS_COLLECTION, loan_row("b", amount="20"))
        self.assertEqual(self.db.lookup(LOANS_COLLECTION, 'id', 'b')['amount'], "20")
        self.assertIsNone(self.db.lookup(LOANS_COLLECTION, 'id', 'zzz'))

    def test_find_filters(self):
        self.db.append(LOANS_COLLECTION, loan_row("a", employee_id="E1"))
        self.db.append(LOANS_COLLECTION, loan_row("b", employee_id="E2"))
        self.db.append(LOANS_COLLECTION, loan_row("c", employee_id="E1"))
        rows = self.db.find(LOANS_COLLECTION, employee_id="E1")
        self.assertEqual([r['id'] for r in rows], ["a", "c"])

    def test_update_cell(self):
        index = self.db.append(LOANS_COLLECTION, loan_row("a"))
        self.db.update_cell(LOANS_COLLECTION, index, 'balance_after', "100")
        self.assertEqual(self.db.lookup(LOANS_COLLECTION, 'id', 'a')['balance_after'], "100")

    def test_update_missing_row_raises(self):
        with self.assertRaises(StoreError):
            self.db.update_cell(LOANS_COLLECTION, 999, 'notes', "x")

    def test_unmapped_field_rejected(self):
        row = loan_row("a")
        row['colour'] = "blue"
        with self.assertRaises(StoreError) as context:
            self.db.append(LOANS_COLLECTION, row)
        self.assertIn("colour", str(context.exception))
        self.assertEqual(self.db.count(LOANS_COLLECTION), 0)

        with self.assertRaises(StoreError):
            self.db.update_cell(LOANS_COLLECTION, 1, 'colour', "red")

    def test_unknown_collection(self):
        with self.assertRaises(StoreError):
            self.db.scan_all("payments")

    def test_scan_frame(self):
        self.db.append(LOANS_COLLECTION, loan_row("a", employee_id="E1"))
        self.db.append(LOANS_COLLECTION, loan_row("b", employee_id="E2"))
        df = self.db.scan_frame(LOANS_COLLECTION, employee_id="E2")
        self.assertEqual(len(df), 1)
        self.assertEqual(df.iloc[0]['id'], "b")
        self.assertIn('row_index', df.columns)

    def test_employees_collection_schema(self):
        self.assertIn('clock_in_ref', self.db.columns(EMPLOYEES_COLLECTION))


class TestTransactions(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")

    def tearDown(self):
        self.db.close()

    def test_commit_on_success(self):
        with self.db.transaction():
            self.db.append(LOANS_COLLECTION, loan_row("a"))
            self.db.append(LOANS_COLLECTION, loan_row("b"))
        self.assertEqual(self.db.count(LOANS_COLLECTION), 2)

    def test_rollback_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.db.transaction():
                self.db.append(LOANS_COLLECTION, loan_row("a"))
                raise RuntimeError("abort")
        self.assertEqual(self.db.count(LOANS_COLLECTION), 0)

    def test_nested_transaction_commits_once(self):
        with self.assertRaises(RuntimeError):
            with self.db.transaction():
                with self.db.transaction():
                    self.db.append(LOANS_COLLECTION, loan_row("a"))
                raise RuntimeError("outer abort")
        self.assertEqual(self.db.count(LOANS_COLLECTION), 0)
        self.assertEqual(self.db._depth, 0)


class TestSettingsAndLifecycle(unittest.TestCase):

    def test_settings_round_trip(self):
        db = DatabaseManager(":memory:")
        self.assertEqual(db.get_setting("record_number_floor", "none"), "none")
        db.set_setting("record_number_floor", 100)
        self.assertEqual(db.get_setting("record_number_floor"), "100")
        db.close()

    def test_context_manager_closes(self):
        with DatabaseManager(":memory:") as db:
            db.append(LOANS_COLLECTION, loan_row("a"))
        self.assertTrue(db._closed)
        with self.assertRaises(StoreError):
            db.scan_all(LOANS_COLLECTION)


if __name__ == '__main__':
    unittest.main()
