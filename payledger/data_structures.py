"""Typed records for PayLedger and their mapping to store rows.

Each entity has exactly one ``to_row`` / ``from_row`` pair. Rows hold only
plain values (str, int, None): money as decimal strings, dates as ISO text.
"""
import logging
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any

from payledger.config import DEFAULT_ACTOR
from payledger.utils import (
    ZERO,
    to_decimal,
    quantize_money,
    parse_date,
    format_date,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class LoanKind(str, Enum):
    DISBURSEMENT = "Disbursement"
    REPAYMENT = "Repayment"

    def signed(self, amount: Decimal) -> Decimal:
        """Apply this kind's sign to a positive amount."""
        amount = abs(amount)
        return -amount if self is LoanKind.REPAYMENT else amount


class EmploymentStatus(str, Enum):
    PERMANENT = "Permanent"
    TEMPORARY = "Temporary"
    CONTRACT = "Contract"
    TERMINATED = "Terminated"


class TimesheetStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


def _money_text(value):
    return None if value is None else str(value)


def _warn_unmapped(entity, data, known):
    extra = sorted(k for k in data if k not in known)
    if extra:
        logger.debug("Ignoring unmapped %s fields: %s", entity, ", ".join(extra))


@dataclass
class ActorContext:
    """Identity of whoever is making the call, passed in explicitly."""
    user: str = DEFAULT_ACTOR


@dataclass
class Employee:
    id: str
    name: str
    surname: str
    employer: str
    hourly_rate: Decimal
    id_number: str
    contact_number: str
    address: str
    employment_status: str
    clock_in_ref: str
    termination_date: Optional[date] = None
    created_by: str = DEFAULT_ACTOR
    created_at: Optional[datetime] = None
    row_index: Optional[int] = None

    INPUT_FIELDS = (
        'name', 'surname', 'employer', 'hourly_rate', 'id_number',
        'contact_number', 'address', 'employment_status', 'clock_in_ref',
        'termination_date',
    )

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip()

    @property
    def is_permanent(self) -> bool:
        return self.employment_status == EmploymentStatus.PERMANENT.value

    @classmethod
    def from_input(cls, employee_id: str, data: Dict[str, Any], created_by: str, created_at: datetime):
        _warn_unmapped('employee', data, cls.INPUT_FIELDS)
        return cls(
            id=employee_id,
            name=str(data.get('name') or '').strip(),
            surname=str(data.get('surname') or '').strip(),
            employer=str(data.get('employer') or '').strip(),
            hourly_rate=to_decimal(data.get('hourly_rate')),
            id_number=str(data.get('id_number') or '').strip(),
            contact_number=str(data.get('contact_number') or '').strip(),
            address=str(data.get('address') or '').strip(),
            employment_status=str(data.get('employment_status') or '').strip(),
            clock_in_ref=str(data.get('clock_in_ref') or '').strip(),
            termination_date=parse_date(data.get('termination_date')),
            created_by=created_by,
            created_at=created_at,
        )

    def to_input(self) -> Dict[str, Any]:
        """The caller-facing field dict, as accepted by ``from_input``."""
        return {
            'name': self.name,
            'surname': self.surname,
            'employer': self.employer,
            'hourly_rate': self.hourly_rate,
            'id_number': self.id_number,
            'contact_number': self.contact_number,
            'address': self.address,
            'employment_status': self.employment_status,
            'clock_in_ref': self.clock_in_ref,
            'termination_date': self.termination_date,
        }

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'surname': self.surname,
            'employer': self.employer,
            'hourly_rate': _money_text(self.hourly_rate),
            'id_number': self.id_number,
            'contact_number': self.contact_number,
            'address': self.address,
            'employment_status': self.employment_status,
            'clock_in_ref': self.clock_in_ref,
            'termination_date': format_date(self.termination_date),
            'created_by': self.created_by,
            'created_at': format_timestamp(self.created_at),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Employee':
        return cls(
            id=row['id'],
            name=row['name'],
            surname=row['surname'],
            employer=row['employer'],
            hourly_rate=to_decimal(row['hourly_rate']),
            id_number=row['id_number'],
            contact_number=row['contact_number'],
            address=row['address'],
            employment_status=row['employment_status'],
            clock_in_ref=row['clock_in_ref'],
            termination_date=parse_date(row.get('termination_date')),
            created_by=row.get('created_by') or DEFAULT_ACTOR,
            created_at=parse_timestamp(row.get('created_at')),
            row_index=row.get('row_index'),
        )


@dataclass
class LoanTransaction:
    """One ledger entry. ``amount`` is signed: repayments are negative.

    ``balance_before`` and ``balance_after`` are a cache owned by the
    ledger's recompute pass.
    """
    id: str
    employee_id: str
    kind: LoanKind
    amount: Decimal
    transaction_date: date
    recorded_at: datetime
    balance_before: Decimal = ZERO
    balance_after: Decimal = ZERO
    salary_link: Optional[int] = None
    notes: Optional[str] = None
    recorded_by: str = DEFAULT_ACTOR
    row_index: Optional[int] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'employee_id': self.employee_id,
            'kind': self.kind.value,
            'amount': _money_text(self.amount),
            'transaction_date': format_date(self.transaction_date),
            'recorded_at': format_timestamp(self.recorded_at),
            'balance_before': _money_text(self.balance_before),
            'balance_after': _money_text(self.balance_after),
            'salary_link': self.salary_link,
            'notes': self.notes,
            'recorded_by': self.recorded_by,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LoanTransaction':
        salary_link = row.get('salary_link')
        return cls(
            id=row['id'],
            employee_id=row['employee_id'],
            kind=LoanKind(row['kind']),
            amount=to_decimal(row['amount']),
            transaction_date=parse_date(row['transaction_date']),
            recorded_at=parse_timestamp(row['recorded_at']),
            balance_before=to_decimal(row.get('balance_before')),
            balance_after=to_decimal(row.get('balance_after')),
            salary_link=int(salary_link) if salary_link not in (None, '') else None,
            notes=row.get('notes'),
            recorded_by=row.get('recorded_by') or DEFAULT_ACTOR,
            row_index=row.get('row_index'),
        )

    def as_dict(self) -> Dict[str, Any]:
        """Plain structured data for callers outside the engine."""
        data = self.to_row()
        data['amount'] = self.amount
        data['balance_before'] = self.balance_before
        data['balance_after'] = self.balance_after
        data['transaction_date'] = self.transaction_date
        data['recorded_at'] = self.recorded_at
        return data


MONEY_INPUTS = (
    'leave_pay', 'bonus_pay', 'other_income', 'other_deductions',
    'loan_deduction_this_week', 'new_loan_this_week',
)

TIME_INPUTS = ('hours', 'minutes', 'overtime_hours', 'overtime_minutes')


@dataclass
class PeriodInputs:
    """Raw inputs for one pay period."""
    week_ending: Optional[date] = None
    hours: Decimal = ZERO
    minutes: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    overtime_minutes: Decimal = ZERO
    leave_pay: Decimal = ZERO
    bonus_pay: Decimal = ZERO
    other_income: Decimal = ZERO
    other_deductions: Decimal = ZERO
    loan_deduction_this_week: Decimal = ZERO
    new_loan_this_week: Decimal = ZERO

    @classmethod
    def from_input(cls, data: Dict[str, Any]) -> 'PeriodInputs':
        """Build from a caller dict. Missing numbers count as zero.

        Raises:
            ValueError: If a value is present but not numeric / not a date.
        """
        known = ('week_ending',) + TIME_INPUTS + MONEY_INPUTS
        _warn_unmapped('period', data, known + ('employee_id', 'employee_name'))
        values = {'week_ending': parse_date(data.get('week_ending'))}
        for name in TIME_INPUTS:
            values[name] = to_decimal(data.get(name))
        for name in MONEY_INPUTS:
            values[name] = quantize_money(data.get(name))
        return cls(**values)

    def to_row(self) -> Dict[str, Any]:
        row = {'week_ending': format_date(self.week_ending)}
        for name in TIME_INPUTS + MONEY_INPUTS:
            row[name] = _money_text(getattr(self, name))
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PeriodInputs':
        values = {'week_ending': parse_date(row.get('week_ending'))}
        for name in TIME_INPUTS + MONEY_INPUTS:
            values[name] = to_decimal(row.get(name))
        return cls(**values)


@dataclass(frozen=True)
class PayslipComputed:
    """Derived payslip fields. Never set by callers."""
    hourly_rate: Decimal
    standard_time: Decimal
    overtime: Decimal
    gross_salary: Decimal
    uif: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    paid_to_account: Decimal

    def to_row(self) -> Dict[str, Any]:
        return {f.name: _money_text(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PayslipComputed':
        return cls(**{f.name: to_decimal(row.get(f.name)) for f in fields(cls)})


@dataclass
class Payslip:
    record_number: int
    employee_id: str
    inputs: PeriodInputs
    computed: PayslipComputed
    recorded_at: Optional[datetime] = None
    recorded_by: str = DEFAULT_ACTOR
    row_index: Optional[int] = None

    def to_row(self) -> Dict[str, Any]:
        row = {
            'record_number': self.record_number,
            'employee_id': self.employee_id,
        }
        row.update(self.inputs.to_row())
        row.update(self.computed.to_row())
        row['recorded_at'] = format_timestamp(self.recorded_at)
        row['recorded_by'] = self.recorded_by
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Payslip':
        return cls(
            record_number=int(row['record_number']),
            employee_id=row['employee_id'],
            inputs=PeriodInputs.from_row(row),
            computed=PayslipComputed.from_row(row),
            recorded_at=parse_timestamp(row.get('recorded_at')),
            recorded_by=row.get('recorded_by') or DEFAULT_ACTOR,
            row_index=row.get('row_index'),
        )


@dataclass
class LeaveRecord:
    id: str
    employee_id: str
    start_date: date
    return_date: date
    reason: str
    total_days: int
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None
    recorded_by: str = DEFAULT_ACTOR
    row_index: Optional[int] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'employee_id': self.employee_id,
            'start_date': format_date(self.start_date),
            'return_date': format_date(self.return_date),
            'reason': self.reason,
            'total_days': self.total_days,
            'notes': self.notes,
            'recorded_at': format_timestamp(self.recorded_at),
            'recorded_by': self.recorded_by,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'LeaveRecord':
        return cls(
            id=row['id'],
            employee_id=row['employee_id'],
            start_date=parse_date(row['start_date']),
            return_date=parse_date(row['return_date']),
            reason=row['reason'],
            total_days=int(row['total_days']),
            notes=row.get('notes'),
            recorded_at=parse_timestamp(row.get('recorded_at')),
            recorded_by=row.get('recorded_by') or DEFAULT_ACTOR,
            row_index=row.get('row_index'),
        )


@dataclass
class PendingTimesheet:
    record_id: str
    employee_id: str
    inputs: PeriodInputs
    status: TimesheetStatus = TimesheetStatus.PENDING
    import_date: Optional[datetime] = None
    payslip_record_number: Optional[int] = None
    row_index: Optional[int] = None

    def to_row(self) -> Dict[str, Any]:
        row = {
            'record_id': self.record_id,
            'employee_id': self.employee_id,
            'status': self.status.value,
            'import_date': format_timestamp(self.import_date),
            'payslip_record_number': self.payslip_record_number,
        }
        row.update(self.inputs.to_row())
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PendingTimesheet':
        record_number = row.get('payslip_record_number')
        return cls(
            record_id=row['record_id'],
            employee_id=row['employee_id'],
            inputs=PeriodInputs.from_row(row),
            status=TimesheetStatus(row['status']),
            import_date=parse_timestamp(row.get('import_date')),
            payslip_record_number=int(record_number) if record_number not in (None, '') else None,
            row_index=row.get('row_index'),
        )
