"""Business logic engine for PayLedger.

This module provides the PayLedgerEngine class which acts as a facade over
the focused service classes in payledger/services/. Every service shares
one DatabaseManager, clock and actor.

Service Classes:
    - EmployeeService: Employee records
    - LedgerService: Loan ledger and running balances
    - PayrollService: Payslip calculation and creation
    - LeaveService: Leave records
    - TimesheetService: Timesheet import and approval
"""
from payledger.clock import SystemClock
from payledger.data_structures import ActorContext
from payledger.reports import ReportGenerator
from payledger.services import (
    EmployeeService,
    LedgerService,
    PayrollService,
    LeaveService,
    TimesheetService,
)


class PayLedgerEngine:
    """Handles business logic, interfacing with DatabaseManager.

    Exceptions raised by the services pass through unchanged.

    Attributes:
        db: DatabaseManager instance for data persistence.
        clock: Clock shared by every service.
        actor: ActorContext stamped on every record written.
    """

    def __init__(self, db_manager, clock=None, actor=None):
        self.db = db_manager
        self.clock = clock or SystemClock()
        self.actor = actor or ActorContext()
        self._employee_service = None
        self._ledger_service = None
        self._payroll_service = None
        self._leave_service = None
        self._timesheet_service = None
        self._reports = None

    @property
    def employee_service(self):
        """Lazy-load EmployeeService instance."""
        if self._employee_service is None:
            self._employee_service = EmployeeService(self.db, self.clock, self.actor)
        return self._employee_service

    @property
    def ledger_service(self):
        """Lazy-load LedgerService instance."""
        if self._ledger_service is None:
            self._ledger_service = LedgerService(self.db, self.employee_service, self.clock, self.actor)
        return self._ledger_service

    @property
    def payroll_service(self):
        """Lazy-load PayrollService instance."""
        if self._payroll_service is None:
            self._payroll_service = PayrollService(
                self.db, self.ledger_service, self.employee_service, self.clock, self.actor
            )
        return self._payroll_service

    @property
    def leave_service(self):
        if self._leave_service is None:
            self._leave_service = LeaveService(self.db, self.employee_service, self.clock, self.actor)
        return self._leave_service

    @property
    def timesheet_service(self):
        if self._timesheet_service is None:
            self._timesheet_service = TimesheetService(
                self.db, self.payroll_service, self.employee_service, self.clock, self.actor
            )
        return self._timesheet_service

    @property
    def reports(self):
        if self._reports is None:
            self._reports = ReportGenerator(self.db, self.ledger_service, self.employee_service)
        return self._reports

    # Employees
    def add_employee(self, data):
        return self.employee_service.add_employee(data)

    def get_employee(self, employee_id):
        return self.employee_service.get_employee(employee_id)

    def find_employee_by_name(self, name):
        return self.employee_service.find_employee_by_name(name)

    def list_employees(self, employer=None, search_term=None):
        return self.employee_service.list_employees(employer, search_term)

    def update_employee(self, employee_id, changes):
        return self.employee_service.update_employee(employee_id, changes)

    def terminate_employee(self, employee_id, termination_date):
        return self.employee_service.terminate_employee(employee_id, termination_date)

    # Loan ledger
    def record_transaction(self, employee_id, kind, amount, transaction_date, *, notes=None, salary_link=None):
        """Delegates to LedgerService."""
        return self.ledger_service.record_transaction(
            employee_id, kind, amount, transaction_date, notes=notes, salary_link=salary_link
        )

    def current_balance(self, employee_id):
        return self.ledger_service.current_balance(employee_id)

    def history(self, employee_id):
        return self.ledger_service.history(employee_id)

    def recompute(self, employee_id):
        return self.ledger_service.recompute(employee_id)

    def find_inconsistencies(self, employee_id=None):
        return self.ledger_service.find_inconsistencies(employee_id)

    def repair_all(self):
        return self.ledger_service.repair_all()

    # Payroll
    def calculate(self, employee_id, period_inputs):
        """Delegates to PayrollService. Stores nothing."""
        return self.payroll_service.calculate(employee_id, period_inputs)

    def create_payslip(self, employee_id, period_inputs):
        """Delegates to PayrollService."""
        return self.payroll_service.create_payslip(employee_id, period_inputs)

    def get_payslip(self, record_number):
        return self.payroll_service.get_payslip(record_number)

    def list_payslips(self, week_ending=None, employee_id=None):
        return self.payroll_service.list_payslips(week_ending, employee_id)

    # Leave
    def add_leave(self, data):
        return self.leave_service.add_leave(data)

    def leave_history(self, employee_id):
        return self.leave_service.leave_history(employee_id)

    # Timesheets
    def import_timesheets(self, csv_text):
        return self.timesheet_service.import_csv(csv_text)

    def approve_timesheet(self, record_id):
        return self.timesheet_service.approve(record_id)

    def reject_timesheet(self, record_id):
        return self.timesheet_service.reject(record_id)

    def list_timesheets(self, status=None):
        return self.timesheet_service.list_pending(status)

    # Reports
    def weekly_payroll_summary(self, week_ending):
        return self.reports.weekly_payroll_summary(week_ending)

    def monthly_payroll_summary(self, month, year):
        return self.reports.monthly_payroll_summary(month, year)

    def outstanding_loans(self, as_of=None):
        return self.reports.outstanding_loans(as_of)

    def employee_statement(self, employee_id, start=None, end=None):
        return self.reports.employee_statement(employee_id, start, end)
