"""Validation rules shared by the ledger, payroll and HR services.

Every validator is a pure function over the caller's input dict. None of
them raise for bad input: they return a ``ValidationResult`` listing every
rule that failed, in rule order.
"""
import math
import re

from payledger.config import (
    MAX_WEEKLY_HOURS,
    PHONE_NUMBER_PATTERN,
    REQUIRED_EMPLOYEE_FIELDS,
    SA_ID_NUMBER_LENGTH,
    LOAN_TYPES,
    LEAVE_REASONS,
)
from payledger.data_structures import EmploymentStatus
from payledger.result import ValidationResult
from payledger.utils import ZERO, to_decimal, parse_date

_PHONE_RE = re.compile(PHONE_NUMBER_PATTERN)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _number(data, key, result, label):
    """Read a numeric field, recording an error if it is not a number."""
    try:
        return to_decimal(data.get(key))
    except ValueError:
        result.add(f"{label} must be a number.")
        return None


def _date(data, key, result, label):
    try:
        return parse_date(data.get(key))
    except ValueError:
        result.add(f"{label} is not a valid date.")
        return None


def _employee_ref(data):
    return data.get('employee_id') or data.get('employee_name')


def validate_sa_id_number(id_number) -> bool:
    """Basic check for length and numeric characters."""
    if _blank(id_number):
        return False
    text = str(id_number).strip()
    return len(text) == SA_ID_NUMBER_LENGTH and text.isdigit()


def validate_phone_number(phone_number) -> bool:
    if _blank(phone_number):
        return False
    return bool(_PHONE_RE.match(str(phone_number).strip()))


def validate_loan(data) -> ValidationResult:
    """Employee and loan type present, amount strictly positive, transaction date present."""
    result = ValidationResult()
    if _blank(_employee_ref(data)):
        result.add("Employee is required.")

    amount = _number(data, 'amount', result, "Loan amount")
    if amount is not None and amount <= ZERO:
        result.add("Loan amount must be a positive number.")

    if _blank(data.get('transaction_date')):
        result.add("Transaction date is required.")
    else:
        _date(data, 'transaction_date', result, "Transaction date")

    kind = getattr(data.get('kind'), 'value', data.get('kind'))
    if _blank(kind):
        result.add("Loan type is required.")
    elif str(kind) not in LOAN_TYPES:
        result.add(f"Loan type must be one of: {', '.join(LOAN_TYPES)}.")
    return result


def validate_payslip(data) -> ValidationResult:
    """Employee and week ending present; hours non-negative and within one week."""
    result = ValidationResult()
    if _blank(_employee_ref(data)):
        result.add("Employee is required.")

    if _blank(data.get('week_ending')):
        result.add("Week ending date is required.")
    else:
        _date(data, 'week_ending', result, "Week ending date")

    hours = _number(data, 'hours', result, "Hours")
    overtime_hours = _number(data, 'overtime_hours', result, "Overtime hours")

    if hours is not None and overtime_hours is not None:
        if hours < ZERO or overtime_hours < ZERO:
            result.add("Hours cannot be negative.")
        if hours + overtime_hours > MAX_WEEKLY_HOURS:
            result.add(f"Total hours exceed maximum possible ({MAX_WEEKLY_HOURS} hours/week).")

    for key, label in (('minutes', "Minutes"), ('overtime_minutes', "Overtime minutes")):
        value = _number(data, key, result, label)
        if value is not None and value < ZERO:
            result.add(f"{label} cannot be negative.")

    for key in ('leave_pay', 'bonus_pay', 'other_income', 'other_deductions'):
        _number(data, key, result, key.replace('_', ' ').capitalize())

    # Loan amounts become ledger entries, whose amounts carry no sign
    for key, label in (('loan_deduction_this_week', "Loan deduction"), ('new_loan_this_week', "New loan")):
        value = _number(data, key, result, label)
        if value is not None and value < ZERO:
            result.add(f"{label} cannot be negative.")
    return result


# Timesheets carry the same period inputs as a payslip
validate_timesheet = validate_payslip


def validate_employee(data, existing=(), exclude_id=None) -> ValidationResult:
    """Check an employee record against the field rules and existing staff.

    Args:
        data: Employee input dict (keys as in REQUIRED_EMPLOYEE_FIELDS).
        existing: Employees already on record (Employee objects).
        exclude_id: Employee being updated, left out of uniqueness checks.
    """
    result = ValidationResult()
    for field_name in REQUIRED_EMPLOYEE_FIELDS:
        if _blank(data.get(field_name)):
            result.add(f"{field_name} is required.")

    if not _blank(data.get('hourly_rate')):
        rate = _number(data, 'hourly_rate', result, "Hourly rate")
        if rate is not None and rate <= ZERO:
            result.add("Hourly rate must be greater than 0.")

    if not validate_sa_id_number(data.get('id_number')):
        result.add("Invalid South African ID number.")

    if not validate_phone_number(data.get('contact_number')):
        result.add("Invalid contact number format.")

    status = data.get('employment_status')
    statuses = [s.value for s in EmploymentStatus]
    if not _blank(status) and str(status).strip() not in statuses:
        result.add(f"Employment status must be one of: {', '.join(statuses)}.")

    if not _blank(data.get('termination_date')):
        _date(data, 'termination_date', result, "Termination date")

    others = [emp for emp in existing if emp.id != exclude_id]
    id_number = str(data.get('id_number') or '').strip()
    clock_in_ref = str(data.get('clock_in_ref') or '').strip()
    if id_number and any(emp.id_number == id_number for emp in others):
        result.add_conflict("ID Number must be unique.")
    if clock_in_ref and any(emp.clock_in_ref == clock_in_ref for emp in others):
        result.add_conflict("ClockInRef must be unique.")
    return result


def validate_leave(data) -> ValidationResult:
    """Employee, dates and reason present; return date not before start."""
    result = ValidationResult()
    if _blank(_employee_ref(data)):
        result.add("Employee is required.")
    if _blank(data.get('start_date')):
        result.add("Start date is required.")
    if _blank(data.get('return_date')):
        result.add("Return date is required.")
    if _blank(data.get('reason')):
        result.add("Reason is required.")
    elif str(data['reason']).strip() not in LEAVE_REASONS:
        result.add(f"Reason must be one of: {', '.join(LEAVE_REASONS)}.")

    start = None if _blank(data.get('start_date')) else _date(data, 'start_date', result, "Start date")
    end = None if _blank(data.get('return_date')) else _date(data, 'return_date', result, "Return date")
    if start and end and end < start:
        result.add("Return date cannot be before the start date.")
    return result


def leave_total_days(start_date, return_date) -> int:
    """Days of leave, counting both the start and the return day."""
    start = parse_date(start_date)
    end = parse_date(return_date)
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / 86400) + 1
