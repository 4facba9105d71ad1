"""Loan ledger service for PayLedger.

This service owns the employee loan ledger:
- Recording disbursements and repayments
- Chronological history and current balance
- Running balance recomputation (including after backdated inserts)

Each transaction row stores ``balance_before`` / ``balance_after``. Those two
fields are a cache: ``recompute`` is the only code that rewrites them.
"""
import logging
import threading

import pandas as pd

from payledger.clock import SystemClock
from payledger.config import LOANS_COLLECTION
from payledger.data_structures import ActorContext, LoanKind, LoanTransaction
from payledger.exceptions import LedgerRecomputeError, NotFoundError, StoreError, ValidationError
from payledger.utils import ZERO, to_decimal, parse_date, format_date, generate_id
from payledger.services.validation import validate_loan

logger = logging.getLogger(__name__)


class _EmployeeLocks:
    """Process-wide registry of per-employee re-entrant locks."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def get(self, db_name, employee_id):
        key = (db_name, str(employee_id))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock


_LOCKS = _EmployeeLocks()


def _chronological_key(row):
    # ISO dates and zero-padded timestamps sort correctly as text;
    # row_index keeps identical timestamps in insertion order
    return (row['transaction_date'], row['recorded_at'], row['row_index'])


class LedgerService:
    """Handles loan transactions and their running balances.

    Transactions for one employee are ordered by (transaction_date,
    recorded_at): same-day entries apply in the order they were recorded.
    """

    def __init__(self, db_manager, employee_service=None, clock=None, actor=None):
        """Initialize LedgerService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
            employee_service: Optional EmployeeService used to resolve employees.
            clock: Clock for recorded_at stamps (default: SystemClock).
            actor: ActorContext stamped on recorded transactions.
        """
        self.db = db_manager
        self._employee_service = employee_service
        self.clock = clock or SystemClock()
        self.actor = actor or ActorContext()

    @property
    def employee_service(self):
        """Lazy-load employee service to avoid circular imports."""
        if self._employee_service is None:
            from .employee_service import EmployeeService
            self._employee_service = EmployeeService(self.db, self.clock, self.actor)
        return self._employee_service

    def _lock(self, employee_id):
        return _LOCKS.get(self.db.db_name, employee_id)

    def _sorted_rows(self, employee_id):
        rows = self.db.find(LOANS_COLLECTION, employee_id=str(employee_id))
        return sorted(rows, key=_chronological_key)

    def history(self, employee_id):
        """All transactions for an employee in chronological order."""
        return [LoanTransaction.from_row(row) for row in self._sorted_rows(employee_id)]

    def current_balance(self, employee_id):
        """Balance after the chronologically last transaction (0 if none)."""
        history = self.history(employee_id)
        if not history:
            return ZERO
        return history[-1].balance_after

    def record_transaction(self, employee_id, kind, amount, transaction_date, *, notes=None, salary_link=None):
        """Append a disbursement or repayment and bring balances up to date.

        Args:
            employee_id: Employee the transaction belongs to.
            kind: LoanKind (or its string value).
            amount: Strictly positive amount; the sign comes from ``kind``.
            transaction_date: Date the transaction takes effect.
            notes: Optional free text.
            salary_link: Record number of the payslip that produced it.

        Returns:
            The new transaction ID.

        Raises:
            ValidationError: If the input breaks a loan rule (nothing stored).
            EmployeeNotFoundError: If the employee does not exist.
            StoreError: If the append itself failed (nothing stored).
            LedgerRecomputeError: If the transaction was stored but the
                balance recompute failed; call ``recompute`` to finish.
        """
        validation = validate_loan({
            'employee_id': employee_id,
            'kind': kind,
            'amount': amount,
            'transaction_date': transaction_date,
        })
        if not validation.is_valid:
            raise ValidationError(validation.errors, entity="Loan")

        employee = self.employee_service.get_employee(employee_id)
        loan_kind = LoanKind(getattr(kind, 'value', kind))
        signed_amount = loan_kind.signed(to_decimal(amount))

        with self._lock(employee.id):
            balance_before = self.current_balance(employee.id)
            transaction = LoanTransaction(
                id=generate_id(),
                employee_id=employee.id,
                kind=loan_kind,
                amount=signed_amount,
                transaction_date=parse_date(transaction_date),
                recorded_at=self.clock.now(),
                balance_before=balance_before,
                balance_after=balance_before + signed_amount,
                salary_link=salary_link,
                notes=notes,
                recorded_by=self.actor.user,
            )
            self.db.append(LOANS_COLLECTION, transaction.to_row())
            logger.info(
                "Recorded %s of %s for employee %s on %s",
                loan_kind.value, abs(signed_amount), employee.id, format_date(transaction.transaction_date)
            )

            try:
                self.recompute(employee.id)
            except StoreError as e:
                logger.error("Recompute after %s failed; transaction kept", transaction.id, exc_info=True)
                raise LedgerRecomputeError(employee.id, transaction.id, e) from e

        return transaction.id

    def recompute(self, employee_id):
        """Rewrite every balance_before / balance_after for an employee.

        Walks the chronological history from a zero balance. Rows that already
        hold the right values are not touched, so a second call writes nothing.

        Returns:
            Number of rows whose balances were rewritten.
        """
        with self._lock(employee_id):
            rows = self._sorted_rows(employee_id)
            running = ZERO
            rewritten = 0

            with self.db.transaction():
                for row in rows:
                    before = running
                    running = running + to_decimal(row['amount'])
                    before_text, after_text = str(before), str(running)

                    if row['balance_before'] == before_text and row['balance_after'] == after_text:
                        continue
                    self.db.update_cell(LOANS_COLLECTION, row['row_index'], 'balance_before', before_text)
                    self.db.update_cell(LOANS_COLLECTION, row['row_index'], 'balance_after', after_text)
                    rewritten += 1

        if rewritten:
            logger.debug("Recomputed %d ledger row(s) for employee %s", rewritten, employee_id)
        return rewritten

    def find_inconsistencies(self, employee_id=None):
        """Rows whose stored balances differ from a fresh walk.

        Args:
            employee_id: Limit the check to one employee (default: everyone).

        Returns:
            List of dicts describing each stale row.
        """
        if employee_id is None:
            employee_ids = self._employees_with_transactions()
        else:
            employee_ids = [employee_id]

        stale = []
        for emp_id in employee_ids:
            running = ZERO
            for row in self._sorted_rows(emp_id):
                before = running
                running = running + to_decimal(row['amount'])
                if row['balance_before'] != str(before) or row['balance_after'] != str(running):
                    stale.append({
                        'employee_id': emp_id,
                        'transaction_id': row['id'],
                        'stored_before': row['balance_before'],
                        'stored_after': row['balance_after'],
                        'expected_before': before,
                        'expected_after': running,
                    })
        return stale

    def repair_all(self):
        """Recompute every employee that has loan transactions.

        Returns:
            Dict of employee_id -> rows rewritten (only employees with changes).
        """
        repaired = {}
        for employee_id in self._employees_with_transactions():
            count = self.recompute(employee_id)
            if count:
                repaired[employee_id] = count
        if repaired:
            logger.info("Ledger repair rewrote balances for %d employee(s)", len(repaired))
        return repaired

    def _employees_with_transactions(self):
        seen = []
        for row in self.db.scan_all(LOANS_COLLECTION):
            if row['employee_id'] not in seen:
                seen.append(row['employee_id'])
        return seen

    def get_transaction(self, transaction_id) -> LoanTransaction:
        row = self.db.lookup(LOANS_COLLECTION, 'id', transaction_id)
        if row is None:
            raise NotFoundError(f"Loan transaction '{transaction_id}' not found", {'transaction_id': transaction_id})
        return LoanTransaction.from_row(row)

    def find_by_salary_link(self, record_number):
        """Transactions created by a given payslip, in chronological order."""
        rows = self.db.find(LOANS_COLLECTION, salary_link=int(record_number))
        return [LoanTransaction.from_row(row) for row in sorted(rows, key=_chronological_key)]

    def outstanding_balances(self, as_of=None):
        """Loan balance per employee, optionally as at a date.

        Returns:
            DataFrame with employee_id, balance, last_transaction_date and
            transactions columns, one row per employee with any history.
        """
        columns = ['employee_id', 'balance', 'last_transaction_date', 'transactions']
        df = self.db.scan_frame(LOANS_COLLECTION)
        if df.empty:
            return pd.DataFrame(columns=columns)

        if as_of is not None:
            df = df[df['transaction_date'] <= format_date(as_of)]
            if df.empty:
                return pd.DataFrame(columns=columns)

        df = df.sort_values(by=['transaction_date', 'recorded_at', 'row_index'], kind='mergesort')

        summary = []
        for employee_id, group in df.groupby('employee_id', sort=True):
            balance = sum((to_decimal(value) for value in group['amount']), ZERO)
            summary.append({
                'employee_id': employee_id,
                'balance': balance,
                'last_transaction_date': group['transaction_date'].iloc[-1],
                'transactions': len(group),
            })
        return pd.DataFrame(summary, columns=columns)
