"""Tests for leave records and the timesheet approval workflow."""
import os
import sys
import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from payledger.clock import DeterministicClock
from payledger.config import PENDING_TIMESHEETS_COLLECTION, SALARY_COLLECTION
from payledger.data_structures import TimesheetStatus
from payledger.database import DatabaseManager
from payledger.exceptions import (
    EmployeeNotFoundError,
    IntegrityError,
    StoreError,
    TimesheetNotFoundError,
    ValidationError,
)
from payledger.result import ErrorType
from payledger.services import EmployeeService, LeaveService, TimesheetService


def employee_data(**overrides):
    data = {
        'name': "Thabo",
        'surname': "Mokoena",
        'employer': "SA Grinding Wheels",
        'hourly_rate': "100",
        'id_number': "8001015009087",
        'contact_number': "0821234567",
        'address': "12 Main Road, Germiston",
        'employment_status': "Permanent",
        'clock_in_ref': "C001",
    }
    data.update(overrides)
    return data


ANALYZER_CSV = """EMPLOYEE NAME,WEEKENDING,HOURS,OVERTIMEHOURS,LOAN DEDUCTION THIS WEEK
Thabo,2025-01-10,40,5,
Nobody,2025-01-10,40,0,
,2025-01-10,10,0,
Thabo,2025-01-17,-3,0,
Thabo,2025-01-17,38,0,100
"""


class TestLeaveService(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.clock = DeterministicClock()
        self.employees = EmployeeService(self.db, self.clock)
        self.leave = LeaveService(self.db, self.employees, self.clock)
        self.emp_id = self.employees.add_employee(employee_data())

    def tearDown(self):
        self.db.close()

    def test_add_leave_counts_days(self):
        self.leave.add_leave({
            'employee_id': self.emp_id, 'start_date': "2025-03-03",
            'return_date': "2025-03-07", 'reason': "Annual Leave",
        })
        records = self.leave.leave_history(self.emp_id)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].total_days, 5)
        self.assertEqual(records[0].start_date, date(2025, 3, 3))

    def test_add_leave_by_name(self):
        self.leave.add_leave({
            'employee_name': "Thabo", 'start_date': "2025-04-01",
            'return_date': "2025-04-01", 'reason': "Sick Leave",
        })
        self.assertEqual(self.leave.list_leave(reason="Sick Leave")[0].employee_id, self.emp_id)

    def test_history_sorted_by_start(self):
        for start in ("2025-05-10", "2025-02-01"):
            self.leave.add_leave({
                'employee_id': self.emp_id, 'start_date': start, 'return_date': start, 'reason': "AWOL",
            })
        starts = [r.start_date for r in self.leave.leave_history(self.emp_id)]
        self.assertEqual(starts, [date(2025, 2, 1), date(2025, 5, 10)])

    def test_invalid_leave(self):
        with self.assertRaises(ValidationError):
            self.leave.add_leave({
                'employee_id': self.emp_id, 'start_date': "2025-03-07",
                'return_date': "2025-03-03", 'reason': "AWOL",
            })

    def test_unknown_employee(self):
        with self.assertRaises(EmployeeNotFoundError):
            self.leave.add_leave({
                'employee_id': "ghost", 'start_date': "2025-03-03",
                'return_date': "2025-03-03", 'reason': "AWOL",
            })


class TestTimesheetService(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.clock = DeterministicClock()
        self.employees = EmployeeService(self.db, self.clock)
        self.timesheets = TimesheetService(self.db, employee_service=self.employees, clock=self.clock)
        self.emp_id = self.employees.add_employee(employee_data())

    def tearDown(self):
        self.db.close()

    def test_parse_csv_maps_headers(self):
        result = self.timesheets.parse_csv(ANALYZER_CSV)
        self.assertTrue(result.success)
        first = result.value[0]
        self.assertEqual(first['employee_name'], "Thabo")
        self.assertEqual(first['week_ending'], "2025-01-10")
        self.assertEqual(first['overtime_hours'], "5")
        self.assertNotIn('loan_deduction_this_week', first)
        self.assertEqual(result.value[4]['loan_deduction_this_week'], "100")

    def test_parse_empty_csv(self):
        for text in ("", "   ", "EMPLOYEE NAME,WEEKENDING\n"):
            result = self.timesheets.parse_csv(text)
            self.assertFalse(result.success)
            self.assertEqual(result.error_type, ErrorType.PARSE)

    def test_import_skips_bad_records(self):
        result = self.timesheets.import_csv(ANALYZER_CSV)
        self.assertTrue(result.success)
        self.assertEqual(len(result.value), 2)
        self.assertEqual(len(result.warnings), 3)

        pending = self.timesheets.list_pending(TimesheetStatus.PENDING)
        self.assertEqual(len(pending), 2)
        self.assertTrue(all(t.employee_id == self.emp_id for t in pending))
        self.assertEqual(pending[1].inputs.loan_deduction_this_week, Decimal("100"))

    def test_stage_failure_stages_nothing(self):
        records = [
            {'employee_id': self.emp_id, 'week_ending': "2025-01-10", 'hours': "40"},
            {'employee_id': self.emp_id, 'week_ending': "2025-01-17", 'hours': "40"},
        ]
        real_append = self.db.append
        calls = []

        def failing_append(collection, row):
            calls.append(collection)
            if len(calls) == 2:
                raise StoreError("disk full")
            return real_append(collection, row)

        with patch.object(self.db, 'append', side_effect=failing_append):
            with self.assertRaises(StoreError):
                self.timesheets.stage(records)
        self.assertEqual(self.db.count(PENDING_TIMESHEETS_COLLECTION), 0)

    def test_approve_creates_payslip(self):
        record_id = self.timesheets.import_csv(ANALYZER_CSV).value[0]
        record_number = self.timesheets.approve(record_id)

        self.assertEqual(record_number, 7916)
        timesheet = self.timesheets.get_timesheet(record_id)
        self.assertEqual(timesheet.status, TimesheetStatus.APPROVED)
        self.assertEqual(timesheet.payslip_record_number, 7916)

        payslip = self.timesheets.payroll_service.get_payslip(record_number)
        self.assertEqual(payslip.computed.net_salary, Decimal("4702.50"))
        self.assertEqual([t.record_id for t in self.timesheets.approved_for_week("2025-01-10")], [record_id])
        self.assertEqual(self.timesheets.approved_for_week("2025-01-17"), [])

    def test_approve_twice_rejected(self):
        record_id = self.timesheets.import_csv(ANALYZER_CSV).value[0]
        self.timesheets.approve(record_id)
        with self.assertRaises(ValidationError):
            self.timesheets.approve(record_id)
        self.assertEqual(self.db.count(SALARY_COLLECTION), 1)

    def test_reject(self):
        record_id = self.timesheets.import_csv(ANALYZER_CSV).value[0]
        timesheet = self.timesheets.reject(record_id)
        self.assertEqual(timesheet.status, TimesheetStatus.REJECTED)
        with self.assertRaises(ValidationError):
            self.timesheets.approve(record_id)
        self.assertEqual(self.db.count(SALARY_COLLECTION), 0)

    def test_unknown_record(self):
        with self.assertRaises(TimesheetNotFoundError):
            self.timesheets.approve("missing")
        with self.assertRaises(TimesheetNotFoundError):
            self.timesheets.reject("missing")

    def test_integrity_failure_still_marks_approved(self):
        staged = self.timesheets.import_csv(ANALYZER_CSV).value
        ledger = self.timesheets.payroll_service.ledger_service
        with patch.object(ledger, 'record_transaction', side_effect=StoreError("database is locked")):
            with self.assertRaises(IntegrityError) as context:
                self.timesheets.approve(staged[1])

        timesheet = self.timesheets.get_timesheet(staged[1])
        self.assertEqual(timesheet.status, TimesheetStatus.APPROVED)
        self.assertEqual(timesheet.payslip_record_number, context.exception.record_number)


if __name__ == '__main__':
    unittest.main()
