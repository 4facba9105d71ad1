"""Tests for the validation rules."""
import os
import sys
import unittest
from types import SimpleNamespace

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from payledger.services.validation import (
    leave_total_days,
    validate_employee,
    validate_leave,
    validate_loan,
    validate_payslip,
    validate_phone_number,
    validate_sa_id_number,
    validate_timesheet,
)


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


class TestBasicValidators(unittest.TestCase):

    def test_sa_id_number(self):
        self.assertTrue(validate_sa_id_number("8001015009087"))
        self.assertFalse(validate_sa_id_number("800101500908"))
        self.assertFalse(validate_sa_id_number("80010150090A7"))
        self.assertFalse(validate_sa_id_number(""))
        self.assertFalse(validate_sa_id_number(None))

    def test_phone_number(self):
        for number in ("0821234567", "+27821234567", "0612345678", "0799999999"):
            self.assertTrue(validate_phone_number(number), number)
        for number in ("0521234567", "082123456", "+2782123456", "27821234567", ""):
            self.assertFalse(validate_phone_number(number), number)


class TestValidateLoan(unittest.TestCase):

    def test_valid(self):
        result = validate_loan({
            'employee_id': "E1", 'kind': "Disbursement", 'amount': 100, 'transaction_date': "2025-01-01",
        })
        self.assertTrue(result.is_valid)

    def test_collects_every_violation(self):
        result = validate_loan({'amount': 0})
        self.assertFalse(result)
        self.assertEqual(result.errors, [
            "Employee is required.",
            "Loan amount must be a positive number.",
            "Transaction date is required.",
            "Loan type is required.",
        ])

    def test_non_numeric_amount(self):
        result = validate_loan({'employee_id': "E1", 'amount': "lots", 'transaction_date': "2025-01-01"})
        self.assertIn("Loan amount must be a number.", result.errors)

    def test_bad_date(self):
        result = validate_loan({'employee_id': "E1", 'amount': 5, 'transaction_date': "not a date"})
        self.assertIn("Transaction date is not a valid date.", result.errors)


class TestValidatePayslip(unittest.TestCase):

    def base(self, **values):
        data = {'employee_id': "E1", 'week_ending': "2025-01-10", 'hours': 40}
        data.update(values)
        return data

    def test_valid(self):
        self.assertTrue(validate_payslip(self.base()).is_valid)

    def test_week_boundary(self):
        self.assertTrue(validate_payslip(self.base(hours=100, overtime_hours=68)).is_valid)
        result = validate_payslip(self.base(hours=100, overtime_hours=70))
        self.assertEqual(result.errors, ["Total hours exceed maximum possible (168 hours/week)."])

    def test_negative_hours(self):
        result = validate_payslip(self.base(overtime_hours=-2))
        self.assertIn("Hours cannot be negative.", result.errors)

    def test_negative_minutes(self):
        result = validate_payslip(self.base(minutes=-5))
        self.assertIn("Minutes cannot be negative.", result.errors)

    def test_non_numeric_money(self):
        result = validate_payslip(self.base(bonus_pay="ten"))
        self.assertIn("Bonus pay must be a number.", result.errors)

    def test_missing_employee_and_week(self):
        result = validate_payslip({'hours': 10})
        self.assertIn("Employee is required.", result.errors)
        self.assertIn("Week ending date is required.", result.errors)

    def test_timesheet_accepts_employee_name(self):
        result = validate_timesheet({'employee_name': "Thabo", 'week_ending': "2025-01-10", 'hours': "40"})
        self.assertTrue(result.is_valid)


class TestValidateEmployee(unittest.TestCase):

    def test_valid(self):
        self.assertTrue(validate_employee(employee_data()).is_valid)

    def test_required_fields(self):
        result = validate_employee(employee_data(address="", clock_in_ref=None))
        self.assertIn("address is required.", result.errors)
        self.assertIn("clock_in_ref is required.", result.errors)

    def test_rate_id_and_phone(self):
        result = validate_employee(employee_data(hourly_rate="0", id_number="123", contact_number="12345"))
        self.assertIn("Hourly rate must be greater than 0.", result.errors)
        self.assertIn("Invalid South African ID number.", result.errors)
        self.assertIn("Invalid contact number format.", result.errors)
        self.assertFalse(result.only_conflicts)

    def test_employment_status_must_be_known(self):
        result = validate_employee(employee_data(employment_status="permanent"))
        self.assertEqual(result.errors, [
            "Employment status must be one of: Permanent, Temporary, Contract, Terminated.",
        ])
        for status in ("Permanent", "Temporary", "Contract", "Terminated"):
            self.assertTrue(validate_employee(employee_data(employment_status=status)).is_valid, status)

    def test_uniqueness_conflicts(self):
        existing = [SimpleNamespace(id="E1", id_number="8001015009087", clock_in_ref="C001")]
        result = validate_employee(employee_data(), existing)
        self.assertEqual(result.conflicts, ["ID Number must be unique.", "ClockInRef must be unique."])
        self.assertTrue(result.only_conflicts)

        self.assertTrue(validate_employee(employee_data(), existing, exclude_id="E1").is_valid)


class TestValidateLeave(unittest.TestCase):

    def test_valid(self):
        data = {'employee_id': "E1", 'start_date': "2025-03-03", 'return_date': "2025-03-07", 'reason': "Sick Leave"}
        self.assertTrue(validate_leave(data).is_valid)

    def test_return_before_start(self):
        data = {'employee_id': "E1", 'start_date': "2025-03-07", 'return_date': "2025-03-03", 'reason': "AWOL"}
        self.assertIn("Return date cannot be before the start date.", validate_leave(data).errors)

    def test_unknown_reason(self):
        data = {'employee_id': "E1", 'start_date': "2025-03-03", 'return_date': "2025-03-03", 'reason': "Holiday"}
        self.assertEqual(validate_leave(data).errors, [
            "Reason must be one of: AWOL, Sick Leave, Annual Leave, Unpaid Leave.",
        ])

    def test_missing_fields(self):
        result = validate_leave({})
        self.assertEqual(len(result.errors), 4)

    def test_total_days_counts_both_ends(self):
        self.assertEqual(leave_total_days("2025-03-03", "2025-03-07"), 5)
        self.assertEqual(leave_total_days("2025-03-03", "2025-03-03"), 1)


if __name__ == '__main__':
    unittest.main()
