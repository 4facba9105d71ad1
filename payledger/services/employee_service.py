"""Employee records for PayLedger.

Both engines treat employees as read-only lookups; this service is the only
code that creates or changes them.
"""
import logging

from payledger.clock import SystemClock
from payledger.config import EMPLOYEES_COLLECTION
from payledger.data_structures import ActorContext, Employee, EmploymentStatus
from payledger.exceptions import ConflictError, EmployeeNotFoundError, ValidationError
from payledger.utils import generate_id, format_date
from payledger.services.validation import validate_employee

logger = logging.getLogger(__name__)


class EmployeeService:
    """Handles employee creation, lookup, update and termination."""

    def __init__(self, db_manager, clock=None, actor=None):
        """Initialize EmployeeService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
            clock: Clock used for created_at stamps (default: SystemClock).
            actor: ActorContext stamped on new records.
        """
        self.db = db_manager
        self.clock = clock or SystemClock()
        self.actor = actor or ActorContext()

    def list_employees(self, employer=None, search_term=None):
        """List employees, optionally filtered by employer and name search."""
        employees = [Employee.from_row(row) for row in self.db.scan_all(EMPLOYEES_COLLECTION)]
        if employer:
            employees = [emp for emp in employees if emp.employer == employer]
        if search_term:
            term = search_term.lower()
            employees = [
                emp for emp in employees
                if term in emp.name.lower() or term in (emp.surname or '').lower()
            ]
        return employees

    def get_employee(self, employee_id) -> Employee:
        """Fetch one employee.

        Raises:
            EmployeeNotFoundError: If no employee has this ID.
        """
        if not employee_id:
            raise EmployeeNotFoundError(employee_id)
        row = self.db.lookup(EMPLOYEES_COLLECTION, 'id', str(employee_id))
        if row is None:
            raise EmployeeNotFoundError(employee_id)
        return Employee.from_row(row)

    def find_employee_by_name(self, name) -> Employee:
        """Match on first name or full name ("name surname")."""
        wanted = str(name or '').strip().lower()
        for emp in self.list_employees():
            if wanted in (emp.name.lower(), emp.full_name.lower()):
                return emp
        raise EmployeeNotFoundError(name=name)

    def resolve(self, data) -> Employee:
        """Resolve the employee a request refers to (by id, else by name)."""
        if data.get('employee_id'):
            return self.get_employee(data['employee_id'])
        return self.find_employee_by_name(data.get('employee_name'))

    def _check(self, data, exclude_id=None):
        result = validate_employee(data, self.list_employees(), exclude_id=exclude_id)
        if result.is_valid:
            return
        if result.only_conflicts:
            raise ConflictError(result.conflicts)
        raise ValidationError(result.errors, entity="Employee")

    def add_employee(self, data) -> str:
        """Validate and store a new employee.

        Returns:
            The new employee's ID.

        Raises:
            ValidationError: If any field rule fails.
            ConflictError: If the record is well-formed but its ID number or
                clock-in reference is already taken.
        """
        self._check(data)
        employee = Employee.from_input(generate_id(), data, self.actor.user, self.clock.now())
        self.db.append(EMPLOYEES_COLLECTION, employee.to_row())
        logger.info("Added employee %s (%s)", employee.id, employee.full_name)
        return employee.id

    def update_employee(self, employee_id, changes) -> Employee:
        """Apply field changes to an employee and re-validate the result."""
        current = self.get_employee(employee_id)
        merged = current.to_input()
        merged.update(changes)
        self._check(merged, exclude_id=current.id)

        updated = Employee.from_input(current.id, merged, current.created_by, current.created_at)
        old_row = current.to_row()
        with self.db.transaction():
            for field_name, value in updated.to_row().items():
                if value != old_row.get(field_name):
                    self.db.update_cell(EMPLOYEES_COLLECTION, current.row_index, field_name, value)
        logger.info("Updated employee %s", employee_id)
        return self.get_employee(employee_id)

    def terminate_employee(self, employee_id, termination_date) -> Employee:
        """Mark an employee as terminated from the given date."""
        try:
            effective = format_date(termination_date)
        except ValueError as e:
            raise ValidationError(["Termination date is not a valid date."], entity="Employee") from e
        if effective is None:
            raise ValidationError(["Termination date is required."], entity="Employee")

        current = self.get_employee(employee_id)
        with self.db.transaction():
            self.db.update_cell(EMPLOYEES_COLLECTION, current.row_index, 'termination_date', effective)
            self.db.update_cell(EMPLOYEES_COLLECTION, current.row_index, 'employment_status',
                                EmploymentStatus.TERMINATED.value)
        logger.info("Terminated employee %s effective %s", employee_id, effective)
        return self.get_employee(employee_id)
