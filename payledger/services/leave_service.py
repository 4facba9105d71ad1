"""Leave tracking service for PayLedger."""
import logging

from payledger.clock import SystemClock
from payledger.config import LEAVE_COLLECTION
from payledger.data_structures import ActorContext, LeaveRecord
from payledger.exceptions import ValidationError
from payledger.utils import generate_id, parse_date
from payledger.services.validation import validate_leave, leave_total_days

logger = logging.getLogger(__name__)


class LeaveService:
    """Handles leave records."""

    def __init__(self, db_manager, employee_service=None, clock=None, actor=None):
        self.db = db_manager
        self._employee_service = employee_service
        self.clock = clock or SystemClock()
        self.actor = actor or ActorContext()

    @property
    def employee_service(self):
        if self._employee_service is None:
            from .employee_service import EmployeeService
            self._employee_service = EmployeeService(self.db, self.clock, self.actor)
        return self._employee_service

    def add_leave(self, data) -> str:
        """Validate and store a leave record.

        Args:
            data: Dict with employee_id (or employee_name), start_date,
                return_date, reason and optional notes.

        Returns:
            The new leave record ID.
        """
        validation = validate_leave(data)
        if not validation.is_valid:
            raise ValidationError(validation.errors, entity="Leave")

        employee = self.employee_service.resolve(data)
        start = parse_date(data['start_date'])
        end = parse_date(data['return_date'])

        record = LeaveRecord(
            id=generate_id(),
            employee_id=employee.id,
            start_date=start,
            return_date=end,
            reason=str(data['reason']).strip(),
            total_days=leave_total_days(start, end),
            notes=data.get('notes'),
            recorded_at=self.clock.now(),
            recorded_by=self.actor.user,
        )
        self.db.append(LEAVE_COLLECTION, record.to_row())
        logger.info("Recorded %d day(s) of %s for employee %s", record.total_days, record.reason, employee.id)
        return record.id

    def list_leave(self, employee_id=None, reason=None):
        records = [LeaveRecord.from_row(row) for row in self.db.scan_all(LEAVE_COLLECTION)]
        if employee_id is not None:
            records = [r for r in records if r.employee_id == str(employee_id)]
        if reason:
            records = [r for r in records if r.reason == reason]
        return records

    def leave_history(self, employee_id):
        """Leave records for one employee, earliest start first."""
        self.employee_service.get_employee(employee_id)
        return sorted(self.list_leave(employee_id=employee_id), key=lambda r: r.start_date)
