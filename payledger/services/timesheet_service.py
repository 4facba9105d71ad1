"""Timesheet import and approval workflow for PayLedger.

Timesheets arrive as CSV from the clock-in analyzer, are staged as Pending,
and become payslips only when approved.
"""
import io
import logging

import pandas as pd

from payledger.clock import SystemClock
from payledger.config import PENDING_TIMESHEETS_COLLECTION, TIMESHEET_CSV_HEADERS
from payledger.data_structures import ActorContext, PendingTimesheet, PeriodInputs, TimesheetStatus
from payledger.exceptions import (
    EmployeeNotFoundError,
    IntegrityError,
    LedgerRecomputeError,
    TimesheetNotFoundError,
    ValidationError,
)
from payledger.result import Result, ErrorType
from payledger.utils import generate_id, format_date
from payledger.services.validation import validate_timesheet

logger = logging.getLogger(__name__)


def _normalize_header(header):
    text = str(header).strip()
    key = text.upper().replace(" ", "").replace("_", "")
    if key in TIMESHEET_CSV_HEADERS:
        return TIMESHEET_CSV_HEADERS[key]
    return text.lower().replace(" ", "_")


class TimesheetService:
    """Stages imported timesheets and turns approved ones into payslips."""

    def __init__(self, db_manager, payroll_service=None, employee_service=None, clock=None, actor=None):
        self.db = db_manager
        self._payroll_service = payroll_service
        self._employee_service = employee_service
        self.clock = clock or SystemClock()
        self.actor = actor or ActorContext()

    @property
    def employee_service(self):
        if self._employee_service is None:
            from .employee_service import EmployeeService
            self._employee_service = EmployeeService(self.db, self.clock, self.actor)
        return self._employee_service

    @property
    def payroll_service(self):
        if self._payroll_service is None:
            from .payroll_service import PayrollService
            self._payroll_service = PayrollService(
                self.db, employee_service=self.employee_service, clock=self.clock, actor=self.actor
            )
        return self._payroll_service

    def parse_csv(self, csv_text) -> Result:
        """Parse analyzer CSV text into a list of input dicts.

        Headers are mapped to period input keys (``WEEKENDING`` becomes
        ``week_ending`` and so on). Empty cells are dropped from each record.
        """
        if not csv_text or not str(csv_text).strip():
            return Result.fail("CSV file is empty or invalid", ErrorType.PARSE)
        try:
            df = pd.read_csv(io.StringIO(str(csv_text).strip()), dtype=str, keep_default_na=False,
                             skipinitialspace=True)
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
            logger.warning("Could not parse timesheet CSV: %s", e)
            return Result.fail(f"Error parsing CSV: {e}", ErrorType.PARSE)

        if df.empty:
            return Result.fail("CSV file is empty or invalid", ErrorType.PARSE)

        df = df.rename(columns=_normalize_header)
        records = []
        for record in df.to_dict(orient='records'):
            records.append({k: v.strip() for k, v in record.items() if str(v).strip()})
        return Result.ok(records)

    def stage(self, records) -> Result:
        """Store valid records as Pending timesheets.

        Invalid records and records naming an unknown employee are skipped;
        each skip is reported in the result's warnings.

        Returns:
            Result whose value is the list of staged record IDs.
        """
        staged = []
        warnings = []
        import_date = self.clock.now()

        with self.db.transaction():
            for position, record in enumerate(records, start=1):
                validation = validate_timesheet(record)
                if not validation.is_valid:
                    message = f"Record {position} skipped: {', '.join(validation.errors)}"
                    logger.warning(message)
                    warnings.append(message)
                    continue
                try:
                    employee = self.employee_service.resolve(record)
                except EmployeeNotFoundError as e:
                    message = f"Record {position} skipped: {e.message}"
                    logger.warning(message)
                    warnings.append(message)
                    continue

                timesheet = PendingTimesheet(
                    record_id=generate_id(),
                    employee_id=employee.id,
                    inputs=PeriodInputs.from_input(record),
                    import_date=import_date,
                )
                self.db.append(PENDING_TIMESHEETS_COLLECTION, timesheet.to_row())
                staged.append(timesheet.record_id)

        logger.info("%d timesheet record(s) staged for approval", len(staged))
        return Result.ok(staged, warnings)

    def import_csv(self, csv_text) -> Result:
        """Parse and stage analyzer CSV in one step."""
        parsed = self.parse_csv(csv_text)
        if not parsed:
            return parsed
        return self.stage(parsed.value)

    def get_timesheet(self, record_id) -> PendingTimesheet:
        row = self.db.lookup(PENDING_TIMESHEETS_COLLECTION, 'record_id', record_id)
        if row is None:
            raise TimesheetNotFoundError(record_id)
        return PendingTimesheet.from_row(row)

    def _require_pending(self, timesheet):
        if timesheet.status is not TimesheetStatus.PENDING:
            raise ValidationError(
                [f"Timesheet is already {timesheet.status.value.lower()}."], entity="Timesheet"
            )

    def _mark_approved(self, timesheet, record_number):
        with self.db.transaction():
            self.db.update_cell(PENDING_TIMESHEETS_COLLECTION, timesheet.row_index,
                                'status', TimesheetStatus.APPROVED.value)
            self.db.update_cell(PENDING_TIMESHEETS_COLLECTION, timesheet.row_index,
                                'payslip_record_number', record_number)

    def approve(self, record_id) -> int:
        """Create the payslip for a pending timesheet and mark it Approved.

        Returns:
            The new payslip's record number.

        Raises:
            TimesheetNotFoundError: If no staged timesheet has this ID.
            ValidationError: If the timesheet is not Pending, or its inputs
                fail payslip validation (status is left unchanged).
            IntegrityError / LedgerRecomputeError: Propagated from payslip
                creation after the timesheet is marked Approved, since the
                payslip itself was stored.
        """
        timesheet = self.get_timesheet(record_id)
        self._require_pending(timesheet)

        try:
            record_number = self.payroll_service.create_payslip(timesheet.employee_id, timesheet.inputs)
        except IntegrityError as e:
            self._mark_approved(timesheet, e.record_number)
            raise
        except LedgerRecomputeError as e:
            linked = self.payroll_service.ledger_service.get_transaction(e.transaction_id)
            self._mark_approved(timesheet, linked.salary_link)
            raise

        self._mark_approved(timesheet, record_number)
        logger.info("Timesheet %s approved as payslip #%s", record_id, record_number)
        return record_number

    def reject(self, record_id) -> PendingTimesheet:
        timesheet = self.get_timesheet(record_id)
        self._require_pending(timesheet)
        self.db.update_cell(PENDING_TIMESHEETS_COLLECTION, timesheet.row_index,
                            'status', TimesheetStatus.REJECTED.value)
        logger.info("Timesheet %s rejected", record_id)
        return self.get_timesheet(record_id)

    def list_pending(self, status=None):
        """Staged timesheets in import order, optionally filtered by status."""
        timesheets = [PendingTimesheet.from_row(row)
                      for row in self.db.scan_all(PENDING_TIMESHEETS_COLLECTION)]
        if status is not None:
            wanted = TimesheetStatus(getattr(status, 'value', status))
            timesheets = [t for t in timesheets if t.status is wanted]
        return timesheets

    def approved_for_week(self, week_ending):
        wanted = format_date(week_ending)
        return [
            t for t in self.list_pending(TimesheetStatus.APPROVED)
            if format_date(t.inputs.week_ending) == wanted
        ]
