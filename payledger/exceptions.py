"""Custom exceptions for PayLedger."""


class PayLedgerError(Exception):
    """Base exception for all PayLedger errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(PayLedgerError):
    """Raised when input fails validation. Carries every violated rule."""

    def __init__(self, errors, entity: str = None):
        self.errors = list(errors)
        details = {'errors': self.errors}
        if entity:
            details['entity'] = entity
        message = "Validation failed"
        if entity:
            message = f"{entity} validation failed"
        super().__init__(message, details)


class NotFoundError(PayLedgerError):
    """Raised when a referenced record does not exist."""
    pass


class EmployeeNotFoundError(NotFoundError):
    """Raised when an employee cannot be found."""

    def __init__(self, employee_id: str = None, name: str = None):
        details = {}
        if employee_id:
            details['employee_id'] = employee_id
        if name:
            details['name'] = name

        message = "Employee not found"
        if name:
            message = f"Employee '{name}' not found"
        elif employee_id:
            message = f"Employee with ID {employee_id} not found"

        super().__init__(message, details)


class PayslipNotFoundError(NotFoundError):
    """Raised when a payslip record number does not exist."""

    def __init__(self, record_number):
        super().__init__(f"Payslip #{record_number} not found", {'record_number': record_number})


class TimesheetNotFoundError(NotFoundError):
    """Raised when a pending timesheet cannot be found."""

    def __init__(self, record_id):
        super().__init__(f"Timesheet record '{record_id}' not found", {'record_id': record_id})


class ConflictError(PayLedgerError):
    """Raised when an ID number or clock-in reference is already taken."""

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        super().__init__("Uniqueness conflict", {'conflicts': self.conflicts})


class StoreError(PayLedgerError):
    """Raised when the record store is unavailable or inconsistent."""
    pass


class LedgerRecomputeError(StoreError):
    """Raised when a transaction was appended but its recompute pass failed.

    The transaction stays persisted; calling ``recompute`` again for the
    employee closes the gap.
    """

    def __init__(self, employee_id: str, transaction_id: str = None, cause: Exception = None):
        self.employee_id = employee_id
        self.transaction_id = transaction_id
        details = {'employee_id': employee_id}
        if transaction_id:
            details['transaction_id'] = transaction_id
        if cause is not None:
            details['cause'] = str(cause)
        super().__init__(f"Balance recompute failed for employee {employee_id}", details)


class IntegrityError(PayLedgerError):
    """Raised when a payslip and its ledger entries could not both be recorded."""

    def __init__(self, record_number, recorded=None, missing=None, cause: Exception = None):
        self.record_number = record_number
        self.recorded = list(recorded or [])
        self.missing = list(missing or [])
        details = {
            'record_number': record_number,
            'recorded': self.recorded,
            'missing': self.missing,
        }
        if cause is not None:
            details['cause'] = str(cause)
        super().__init__(f"Payslip #{record_number} and its loan entries are out of step", details)
