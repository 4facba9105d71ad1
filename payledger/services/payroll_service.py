"""Payroll service for PayLedger.

This service handles:
- Payslip calculation (pure, no storage side effects)
- Payslip creation with sequential record numbers
- Posting the payslip's loan deduction / new loan to the ledger
"""
import logging
import threading
from decimal import Decimal

from payledger.clock import SystemClock
from payledger.config import (
    SALARY_COLLECTION,
    UIF_RATE,
    OVERTIME_MULTIPLIER,
    RECORD_NUMBER_FLOOR,
    RECORD_NUMBER_FLOOR_SETTING,
)
from payledger.data_structures import (
    ActorContext,
    LoanKind,
    Payslip,
    PayslipComputed,
    PeriodInputs,
)
from payledger.exceptions import (
    IntegrityError,
    LedgerRecomputeError,
    PayLedgerError,
    PayslipNotFoundError,
    ValidationError,
)
from payledger.utils import ZERO, quantize_money, format_date
from payledger.services.validation import validate_payslip

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal("60")

# Serializes record-number assignment within the process
_RECORD_NUMBER_LOCK = threading.Lock()


def calculate_pay(hourly_rate, is_permanent, inputs: PeriodInputs) -> PayslipComputed:
    """Apply the payroll formula to one period.

    Products and quotients are rounded to the cent as they are produced;
    everything after that is cent-exact addition and subtraction.
    """
    rate = Decimal(hourly_rate)
    per_minute = rate / MINUTES_PER_HOUR
    multiplier = Decimal(OVERTIME_MULTIPLIER)

    standard_time = quantize_money(inputs.hours * rate + per_minute * inputs.minutes)
    overtime = quantize_money(
        inputs.overtime_hours * rate * multiplier
        + per_minute * inputs.overtime_minutes * multiplier
    )
    gross_salary = standard_time + overtime + inputs.leave_pay + inputs.bonus_pay + inputs.other_income
    uif = quantize_money(gross_salary * Decimal(UIF_RATE)) if is_permanent else ZERO
    total_deductions = uif + inputs.other_deductions + inputs.loan_deduction_this_week
    net_salary = gross_salary - total_deductions
    paid_to_account = net_salary - inputs.loan_deduction_this_week + inputs.new_loan_this_week

    return PayslipComputed(
        hourly_rate=rate,
        standard_time=standard_time,
        overtime=overtime,
        gross_salary=quantize_money(gross_salary),
        uif=quantize_money(uif),
        total_deductions=quantize_money(total_deductions),
        net_salary=quantize_money(net_salary),
        paid_to_account=quantize_money(paid_to_account),
    )


class PayrollService:
    """Handles payslip calculation and creation.

    A payslip that deducts a loan repayment or pays out a new loan is posted
    to the ledger right after it is stored, with ``salary_link`` pointing
    back at the payslip's record number.
    """

    def __init__(self, db_manager, ledger_service=None, employee_service=None, clock=None, actor=None):
        """Initialize PayrollService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
            ledger_service: Optional LedgerService for loan postings.
            employee_service: Optional EmployeeService for rate lookups.
            clock: Clock for recorded_at stamps (default: SystemClock).
            actor: ActorContext stamped on payslips.
        """
        self.db = db_manager
        self._ledger_service = ledger_service
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
    def ledger_service(self):
        """Lazy-load ledger service to avoid circular imports."""
        if self._ledger_service is None:
            from .ledger_service import LedgerService
            self._ledger_service = LedgerService(self.db, self.employee_service, self.clock, self.actor)
        return self._ledger_service

    @staticmethod
    def _inputs(employee_id, period_inputs):
        """Validate caller input and convert it to PeriodInputs.

        Raises:
            ValidationError: Listing every broken payslip rule.
        """
        if isinstance(period_inputs, PeriodInputs):
            raw = period_inputs.to_row()
        else:
            raw = dict(period_inputs)
        raw['employee_id'] = employee_id

        validation = validate_payslip(raw)
        if not validation.is_valid:
            raise ValidationError(validation.errors, entity="Payslip")
        if isinstance(period_inputs, PeriodInputs):
            return period_inputs
        return PeriodInputs.from_input(period_inputs)

    def calculate(self, employee_id, period_inputs) -> PayslipComputed:
        """Derive the payslip fields for one employee and period.

        Args:
            employee_id: Employee whose rate and status apply.
            period_inputs: PeriodInputs or an input dict.

        Raises:
            ValidationError: If the inputs break a payslip rule.
            EmployeeNotFoundError: If the employee does not exist.
        """
        inputs = self._inputs(employee_id, period_inputs)
        employee = self.employee_service.get_employee(employee_id)
        return calculate_pay(employee.hourly_rate, employee.is_permanent, inputs)

    def record_number_floor(self):
        floor = self.db.get_setting(RECORD_NUMBER_FLOOR_SETTING)
        return int(floor) if floor is not None else RECORD_NUMBER_FLOOR

    def next_record_number(self):
        """max(existing) + 1, or the configured floor + 1 for the first payslip."""
        numbers = [int(row['record_number']) for row in self.db.scan_all(SALARY_COLLECTION)]
        if not numbers:
            return self.record_number_floor() + 1
        return max(numbers) + 1

    def create_payslip(self, employee_id, period_inputs) -> int:
        """Validate, calculate and store a payslip, then post its loan entries.

        Args:
            employee_id: Employee being paid.
            period_inputs: Input dict (or PeriodInputs) for the period.

        Returns:
            The payslip's record number.

        Raises:
            ValidationError: If the inputs break a payslip rule (nothing stored).
            EmployeeNotFoundError: If the employee does not exist.
            IntegrityError: If the payslip was stored but a loan posting failed.
            LedgerRecomputeError: If every posting was stored but the balance
                recompute failed; the ledger needs a later recompute.
        """
        inputs = self._inputs(employee_id, period_inputs)
        computed = self.calculate(employee_id, inputs)

        if inputs.loan_deduction_this_week > ZERO:
            outstanding = self.ledger_service.current_balance(employee_id)
            if inputs.loan_deduction_this_week > outstanding:
                logger.warning(
                    "Loan deduction %s exceeds outstanding balance %s for employee %s",
                    inputs.loan_deduction_this_week, outstanding, employee_id
                )

        with _RECORD_NUMBER_LOCK:
            payslip = Payslip(
                record_number=self.next_record_number(),
                employee_id=str(employee_id),
                inputs=inputs,
                computed=computed,
                recorded_at=self.clock.now(),
                recorded_by=self.actor.user,
            )
            self.db.append(SALARY_COLLECTION, payslip.to_row())
        logger.info(
            "Created payslip #%s for employee %s, week ending %s (net %s)",
            payslip.record_number, employee_id, format_date(inputs.week_ending), computed.net_salary
        )

        self._post_loan_entries(payslip)
        return payslip.record_number

    def _post_loan_entries(self, payslip: Payslip):
        inputs = payslip.inputs
        postings = []
        if inputs.loan_deduction_this_week > ZERO:
            postings.append((LoanKind.REPAYMENT, inputs.loan_deduction_this_week))
        if inputs.new_loan_this_week > ZERO:
            postings.append((LoanKind.DISBURSEMENT, inputs.new_loan_this_week))

        recorded = []
        stale_balances = None
        for position, (kind, amount) in enumerate(postings):
            try:
                transaction_id = self.ledger_service.record_transaction(
                    payslip.employee_id, kind, amount, inputs.week_ending,
                    notes=f"Payslip #{payslip.record_number}",
                    salary_link=payslip.record_number,
                )
            except LedgerRecomputeError as e:
                # Entry is stored; only its balances lag behind
                recorded.append(e.transaction_id)
                stale_balances = e
                continue
            except PayLedgerError as e:
                missing = [k.value for k, _ in postings[position:]]
                logger.error(
                    "Payslip #%s stored but loan posting failed (missing: %s)",
                    payslip.record_number, ", ".join(missing), exc_info=True
                )
                raise IntegrityError(payslip.record_number, recorded, missing, cause=e) from e
            recorded.append(transaction_id)

        if stale_balances is not None:
            raise stale_balances
        return recorded

    def get_payslip(self, record_number) -> Payslip:
        row = self.db.lookup(SALARY_COLLECTION, 'record_number', int(record_number))
        if row is None:
            raise PayslipNotFoundError(record_number)
        return Payslip.from_row(row)

    def list_payslips(self, week_ending=None, employee_id=None):
        """Payslips, newest record number first, optionally filtered."""
        payslips = [Payslip.from_row(row) for row in self.db.scan_all(SALARY_COLLECTION)]
        if week_ending is not None:
            wanted = format_date(week_ending)
            payslips = [p for p in payslips if format_date(p.inputs.week_ending) == wanted]
        if employee_id is not None:
            payslips = [p for p in payslips if p.employee_id == str(employee_id)]
        return sorted(payslips, key=lambda p: p.record_number, reverse=True)
