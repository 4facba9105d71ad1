"""Centralized configuration for PayLedger.

This module contains all magic numbers, default values, and business rule
constants used by the ledger and payroll engines.
"""
import logging

# =============================================================================
# STORAGE
# =============================================================================

# Default SQLite database file
DEFAULT_DB_NAME = "payledger.db"

# Collection (table) names
EMPLOYEES_COLLECTION = "employees"
LOANS_COLLECTION = "loans"
SALARY_COLLECTION = "salary"
LEAVE_COLLECTION = "leave"
PENDING_TIMESHEETS_COLLECTION = "pending_timesheets"

# =============================================================================
# REFERENCE LISTS
# =============================================================================

LEAVE_REASONS = ["AWOL", "Sick Leave", "Annual Leave", "Unpaid Leave"]

LOAN_TYPES = ["Disbursement", "Repayment"]

# Employee fields that must be present (keys of Employee.from_input)
REQUIRED_EMPLOYEE_FIELDS = [
    "name",
    "surname",
    "employer",
    "hourly_rate",
    "id_number",
    "contact_number",
    "address",
    "employment_status",
    "clock_in_ref",
]

# =============================================================================
# PAYROLL RULES
# =============================================================================

# Unemployment Insurance Fund contribution (1% of gross, permanent staff only)
UIF_RATE = "0.01"

# Overtime pays time and a half
OVERTIME_MULTIPLIER = "1.5"

# One calendar week in hours
MAX_WEEKLY_HOURS = 168

# First payslip gets RECORD_NUMBER_FLOOR + 1
RECORD_NUMBER_FLOOR = 7915

# Settings key that overrides RECORD_NUMBER_FLOOR
RECORD_NUMBER_FLOOR_SETTING = "record_number_floor"

# =============================================================================
# VALIDATION
# =============================================================================

# South African ID numbers are 13 digits
SA_ID_NUMBER_LENGTH = 13

# South African mobile numbers (+27 or 0 prefix, 6/7/8 network digit)
PHONE_NUMBER_PATTERN = r"^(?:\+27|0)[6-8][0-9]{8}$"

# =============================================================================
# DISPLAY FORMATS
# =============================================================================

# Date format for storage (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Timestamp format for recorded_at (microseconds keep same-day order stable)
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

# Currency prefix (South African Rand)
CURRENCY_SYMBOL = "R"

# Monetary values are kept to the cent
CURRENCY_QUANTUM = "0.01"

# Actor recorded when no identity is supplied
DEFAULT_ACTOR = "system"

# =============================================================================
# LOGGING
# =============================================================================

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": LOG_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": logging.DEBUG,
        },
    },
    "loggers": {
        "payledger": {
            "handlers": ["console"],
            "level": logging.INFO,
            "propagate": False,
        },
    },
}

# Rotating file handler limits (used when setup_logging gets a log_file)
LOG_FILE_MAX_BYTES = 1024 * 1024 * 5
LOG_FILE_BACKUP_COUNT = 5

# =============================================================================
# TIMESHEET IMPORT
# =============================================================================

# Analyzer CSV headers (upper-cased, spaces removed) -> period input keys.
# Headers not listed here are matched after lower-casing and replacing
# spaces with underscores.
TIMESHEET_CSV_HEADERS = {
    "EMPLOYEENAME": "employee_name",
    "EMPLOYEEID": "employee_id",
    "WEEKENDING": "week_ending",
    "HOURS": "hours",
    "MINUTES": "minutes",
    "OVERTIMEHOURS": "overtime_hours",
    "OVERTIMEMINUTES": "overtime_minutes",
    "LEAVEPAY": "leave_pay",
    "BONUSPAY": "bonus_pay",
    "OTHERINCOME": "other_income",
    "OTHERDEDUCTIONS": "other_deductions",
    "LOANDEDUCTIONTHISWEEK": "loan_deduction_this_week",
    "NEWLOANTHISWEEK": "new_loan_this_week",
}
