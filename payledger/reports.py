"""
Report generation module for PayLedger.
Builds payroll summaries, the outstanding loan book and employee statements
as DataFrames plus a totals dict. Exporting is left to the caller.
"""
from datetime import date

import pandas as pd
from dateutil.relativedelta import relativedelta

from payledger.config import SALARY_COLLECTION
from payledger.exceptions import ValidationError
from payledger.utils import ZERO, to_decimal, format_date, parse_date

PAYSLIP_REPORT_COLUMNS = [
    'record_number', 'employee_id', 'employee_name', 'week_ending',
    'hours', 'overtime_hours', 'gross_salary', 'uif', 'total_deductions',
    'net_salary', 'paid_to_account',
]

MONEY_REPORT_COLUMNS = ['gross_salary', 'uif', 'total_deductions', 'net_salary', 'paid_to_account']


def _decimal_sum(series):
    return sum((to_decimal(value) for value in series), ZERO)


class ReportGenerator:
    def __init__(self, db_manager, ledger_service=None, employee_service=None):
        self.db = db_manager
        self._ledger_service = ledger_service
        self._employee_service = employee_service

    @property
    def employee_service(self):
        if self._employee_service is None:
            from payledger.services.employee_service import EmployeeService
            self._employee_service = EmployeeService(self.db)
        return self._employee_service

    @property
    def ledger_service(self):
        if self._ledger_service is None:
            from payledger.services.ledger_service import LedgerService
            self._ledger_service = LedgerService(self.db, self.employee_service)
        return self._ledger_service

    def _employee_names(self):
        return {emp.id: emp.full_name for emp in self.employee_service.list_employees()}

    def _month_window(self, month, year):
        """First day of the month and first day of the next one."""
        try:
            start = date(int(year), int(month), 1)
        except (TypeError, ValueError):
            raise ValidationError([f"Invalid month/year: {month}/{year}"], entity="Report")
        return start, start + relativedelta(months=1)

    def _payslip_frame(self, df):
        """Shape raw salary rows for reporting, with Decimal money columns."""
        if df.empty:
            return pd.DataFrame(columns=PAYSLIP_REPORT_COLUMNS)

        df = df.copy()
        names = self._employee_names()
        df['employee_name'] = df['employee_id'].map(lambda emp_id: names.get(emp_id, ''))
        for col in MONEY_REPORT_COLUMNS + ['hours', 'overtime_hours']:
            df[col] = df[col].map(to_decimal)
        df = df.sort_values(by=['week_ending', 'record_number'])
        return df[PAYSLIP_REPORT_COLUMNS].reset_index(drop=True)

    def _payslip_totals(self, df):
        return {
            'payslips': len(df),
            'employees': df['employee_id'].nunique() if not df.empty else 0,
            'gross_total': _decimal_sum(df['gross_salary']),
            'uif_total': _decimal_sum(df['uif']),
            'net_total': _decimal_sum(df['net_salary']),
            'paid_total': _decimal_sum(df['paid_to_account']),
        }

    def weekly_payroll_summary(self, week_ending):
        """All payslips for one week ending date.

        Returns:
            tuple: (DataFrame of payslips, totals dict).
        """
        week = format_date(week_ending)
        df = self._payslip_frame(self.db.scan_frame(SALARY_COLLECTION, week_ending=week))
        return df, self._payslip_totals(df)

    def monthly_payroll_summary(self, month, year):
        """Payslips whose week ending falls inside a calendar month.

        Returns:
            tuple: (DataFrame of payslips, totals dict).
        """
        start, next_start = self._month_window(month, year)
        df = self.db.scan_frame(SALARY_COLLECTION)
        if not df.empty:
            mask = (df['week_ending'] >= format_date(start)) & (df['week_ending'] < format_date(next_start))
            df = df[mask]
        df = self._payslip_frame(df)
        return df, self._payslip_totals(df)

    def outstanding_loans(self, as_of=None):
        """Employees with a non-zero loan balance, largest balance first.

        Returns:
            tuple: (DataFrame with employee_id, employee_name, balance,
            last_transaction_date; totals dict).
        """
        columns = ['employee_id', 'employee_name', 'balance', 'last_transaction_date']
        balances = self.ledger_service.outstanding_balances(as_of)
        if not balances.empty:
            balances = balances[balances['balance'].map(lambda b: b != ZERO)]

        if balances.empty:
            df = pd.DataFrame(columns=columns)
        else:
            names = self._employee_names()
            df = balances.copy()
            df['employee_name'] = df['employee_id'].map(lambda emp_id: names.get(emp_id, ''))
            df['sort_key'] = df['balance'].map(float)
            df = df.sort_values(by=['sort_key', 'employee_id'], ascending=[False, True])
            df = df[columns].reset_index(drop=True)

        totals = {
            'employees': len(df),
            'total_outstanding': _decimal_sum(df['balance']),
        }
        return df, totals

    def employee_statement(self, employee_id, start=None, end=None):
        """Loan activity and payslips for one employee over a date range.

        Args:
            employee_id: Employee to report on.
            start: First date included (default: beginning of history).
            end: Last date included (default: no upper bound).

        Returns:
            dict with the employee, opening/closing balances, transactions
            (list of dicts), payslips DataFrame and payslip totals.
        """
        employee = self.employee_service.get_employee(employee_id)
        start_date = parse_date(start)
        end_date = parse_date(end)
        if start_date and end_date and end_date < start_date:
            raise ValidationError(["End date cannot be before the start date."], entity="Report")

        opening = ZERO
        transactions = []
        for tx in self.ledger_service.history(employee.id):
            if start_date and tx.transaction_date < start_date:
                opening = tx.balance_after
                continue
            if end_date and tx.transaction_date > end_date:
                break
            transactions.append(tx.as_dict())
        closing = transactions[-1]['balance_after'] if transactions else opening

        payslips = self.db.scan_frame(SALARY_COLLECTION, employee_id=employee.id)
        if not payslips.empty:
            if start_date:
                payslips = payslips[payslips['week_ending'] >= format_date(start_date)]
            if end_date:
                payslips = payslips[payslips['week_ending'] <= format_date(end_date)]
        payslips = self._payslip_frame(payslips)

        totals = self._payslip_totals(payslips)
        totals['total_hours'] = _decimal_sum(payslips['hours'])
        totals['total_overtime_hours'] = _decimal_sum(payslips['overtime_hours'])

        return {
            'employee': employee,
            'start': start_date,
            'end': end_date,
            'opening_balance': opening,
            'closing_balance': closing,
            'transactions': transactions,
            'payslips': payslips,
            'totals': totals,
        }
