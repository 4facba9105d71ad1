"""Services package for PayLedger business logic.

This package contains focused service classes for the loan ledger, payroll
and the HR records both of them read.
"""

from .employee_service import EmployeeService
from .ledger_service import LedgerService
from .payroll_service import PayrollService, calculate_pay
from .leave_service import LeaveService
from .timesheet_service import TimesheetService
from .validation import (
    validate_employee,
    validate_leave,
    validate_loan,
    validate_payslip,
    validate_timesheet,
    validate_sa_id_number,
    validate_phone_number,
)

__all__ = ['EmployeeService', 'LedgerService', 'PayrollService', 'calculate_pay',
           'LeaveService', 'TimesheetService',
           'validate_employee', 'validate_leave', 'validate_loan', 'validate_payslip',
           'validate_timesheet', 'validate_sa_id_number', 'validate_phone_number']
