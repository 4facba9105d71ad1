"""Record store for PayLedger, backed by SQLite.

The engines only use the collection-level contract (append, scan_all,
update_cell, lookup). Rows are addressed by their SQLite ``rowid``, exposed
as ``row_index`` on every row returned.
"""
import logging
import sqlite3
import threading
from contextlib import contextmanager

import pandas as pd

from payledger.config import (
    DEFAULT_DB_NAME,
    EMPLOYEES_COLLECTION,
    LOANS_COLLECTION,
    SALARY_COLLECTION,
    LEAVE_COLLECTION,
    PENDING_TIMESHEETS_COLLECTION,
)
from payledger.exceptions import StoreError

logger = logging.getLogger(__name__)

_PERIOD_COLUMNS = [
    ("week_ending", "TEXT"),
    ("hours", "TEXT"),
    ("minutes", "TEXT"),
    ("overtime_hours", "TEXT"),
    ("overtime_minutes", "TEXT"),
    ("leave_pay", "TEXT"),
    ("bonus_pay", "TEXT"),
    ("other_income", "TEXT"),
    ("other_deductions", "TEXT"),
    ("loan_deduction_this_week", "TEXT"),
    ("new_loan_this_week", "TEXT"),
]

# Column order is the storage layout. Money is stored as decimal text.
COLLECTION_SCHEMAS = {
    EMPLOYEES_COLLECTION: [
        ("id", "TEXT NOT NULL UNIQUE"),
        ("name", "TEXT NOT NULL"),
        ("surname", "TEXT"),
        ("employer", "TEXT"),
        ("hourly_rate", "TEXT"),
        ("id_number", "TEXT"),
        ("contact_number", "TEXT"),
        ("address", "TEXT"),
        ("employment_status", "TEXT"),
        ("clock_in_ref", "TEXT"),
        ("termination_date", "TEXT"),
        ("created_by", "TEXT"),
        ("created_at", "TEXT"),
    ],
    LOANS_COLLECTION: [
        ("id", "TEXT NOT NULL UNIQUE"),
        ("employee_id", "TEXT NOT NULL"),
        ("kind", "TEXT NOT NULL"),
        ("amount", "TEXT NOT NULL"),
        ("transaction_date", "TEXT NOT NULL"),
        ("recorded_at", "TEXT NOT NULL"),
        ("balance_before", "TEXT"),
        ("balance_after", "TEXT"),
        ("salary_link", "INTEGER"),
        ("notes", "TEXT"),
        ("recorded_by", "TEXT"),
    ],
    SALARY_COLLECTION: [
        ("record_number", "INTEGER NOT NULL UNIQUE"),
        ("employee_id", "TEXT NOT NULL"),
    ] + _PERIOD_COLUMNS + [
        ("hourly_rate", "TEXT"),
        ("standard_time", "TEXT"),
        ("overtime", "TEXT"),
        ("gross_salary", "TEXT"),
        ("uif", "TEXT"),
        ("total_deductions", "TEXT"),
        ("net_salary", "TEXT"),
        ("paid_to_account", "TEXT"),
        ("recorded_at", "TEXT"),
        ("recorded_by", "TEXT"),
    ],
    LEAVE_COLLECTION: [
        ("id", "TEXT NOT NULL UNIQUE"),
        ("employee_id", "TEXT NOT NULL"),
        ("start_date", "TEXT"),
        ("return_date", "TEXT"),
        ("reason", "TEXT"),
        ("total_days", "INTEGER"),
        ("notes", "TEXT"),
        ("recorded_at", "TEXT"),
        ("recorded_by", "TEXT"),
    ],
    PENDING_TIMESHEETS_COLLECTION: [
        ("record_id", "TEXT NOT NULL UNIQUE"),
        ("employee_id", "TEXT NOT NULL"),
        ("status", "TEXT NOT NULL"),
        ("import_date", "TEXT"),
        ("payslip_record_number", "INTEGER"),
    ] + _PERIOD_COLUMNS,
}


class DatabaseManager:
    """Handles all SQLite storage operations.

    One connection is shared by every service; calls are serialized by an
    internal lock so services may be used from several threads.
    """

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        try:
            self.conn = sqlite3.connect(db_name, check_same_thread=False)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database: {e}", {'db_name': db_name}) from e
        self._closed = False
        self._lock = threading.RLock()
        self._depth = 0
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if getattr(self, 'conn', None) is not None and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def _guard(self, action):
        """Serialize access and turn sqlite errors into StoreError."""
        with self._lock:
            if self._closed:
                raise StoreError(f"Cannot {action}: database is closed")
            try:
                yield self.conn.cursor()
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error("Store failure during %s: %s", action, e)
                raise StoreError(f"Failed to {action}: {e}") from e

    @contextmanager
    def transaction(self):
        """Context manager for database transactions with automatic rollback on failure.

        Usage:
            with db.transaction():
                db.append(...)
                db.update_cell(...)
        """
        with self._lock:
            self._depth += 1
            try:
                yield
            except sqlite3.Error as e:
                self._depth -= 1
                self.conn.rollback()
                raise StoreError(f"Transaction failed: {str(e)}") from e
            except Exception:
                self._depth -= 1
                self.conn.rollback()
                raise
            self._depth -= 1
            try:
                self._commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StoreError(f"Transaction failed: {str(e)}") from e

    def _commit(self):
        """Commit unless an enclosing transaction() will do it."""
        if self._depth == 0:
            self.conn.commit()

    def create_tables(self):
        with self._guard("create tables") as cursor:
            for collection, columns in COLLECTION_SCHEMAS.items():
                ddl = ", ".join(f"{name} {sql_type}" for name, sql_type in columns)
                cursor.execute(f"CREATE TABLE IF NOT EXISTS {collection} ({ddl})")
                # Migrations for databases created before a column existed
                for name, sql_type in columns:
                    plain_type = sql_type.split()[0]
                    try:
                        cursor.execute(f"ALTER TABLE {collection} ADD COLUMN {name} {plain_type}")
                    except sqlite3.OperationalError:
                        pass

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_employee ON loans (employee_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_salary_employee ON salary (employee_id)")

            # Settings Table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)
            self.conn.commit()

    # Schema checks
    def columns(self, collection):
        """Field names of a collection, in storage order.

        Raises:
            StoreError: If the collection is unknown.
        """
        if collection not in COLLECTION_SCHEMAS:
            raise StoreError(f"Unknown collection '{collection}'", {'collection': collection})
        return [name for name, _ in COLLECTION_SCHEMAS[collection]]

    def _check_fields(self, collection, field_names):
        known = set(self.columns(collection))
        unknown = sorted(f for f in field_names if f not in known)
        if unknown:
            raise StoreError(
                f"Unmapped field(s) for '{collection}': {', '.join(unknown)}",
                {'collection': collection, 'fields': unknown}
            )

    @staticmethod
    def _row_dict(cursor, row):
        cols = [description[0] for description in cursor.description]
        record = dict(zip(cols, row))
        record['row_index'] = record.pop('rowid')
        return record

    # Collection operations
    def append(self, collection, row):
        """Append a row and return its row index.

        Fields missing from ``row`` are stored as NULL; fields the collection
        does not define raise StoreError.
        """
        self._check_fields(collection, row.keys())
        names = list(row.keys())
        placeholders = ", ".join("?" for _ in names)
        with self._guard(f"append to {collection}") as cursor:
            cursor.execute(
                f"INSERT INTO {collection} ({', '.join(names)}) VALUES ({placeholders})",
                tuple(row[name] for name in names)
            )
            self._commit()
            return cursor.lastrowid

    def scan_all(self, collection):
        """All rows of a collection in insertion order."""
        cols = ", ".join(self.columns(collection))
        with self._guard(f"scan {collection}") as cursor:
            cursor.execute(f"SELECT rowid, {cols} FROM {collection} ORDER BY rowid")
            return [self._row_dict(cursor, row) for row in cursor.fetchall()]

    def find(self, collection, **filters):
        """Rows whose fields equal the given values, in insertion order."""
        self._check_fields(collection, filters.keys())
        cols = ", ".join(self.columns(collection))
        query = f"SELECT rowid, {cols} FROM {collection}"
        params = []
        if filters:
            query += " WHERE " + " AND ".join(f"{name}=?" for name in filters)
            params = list(filters.values())
        query += " ORDER BY rowid"
        with self._guard(f"scan {collection}") as cursor:
            cursor.execute(query, tuple(params))
            return [self._row_dict(cursor, row) for row in cursor.fetchall()]

    def lookup(self, collection, key_field, key_value):
        """First row whose ``key_field`` equals ``key_value``, or None."""
        self._check_fields(collection, [key_field])
        cols = ", ".join(self.columns(collection))
        with self._guard(f"look up {collection}") as cursor:
            cursor.execute(
                f"SELECT rowid, {cols} FROM {collection} WHERE {key_field}=? ORDER BY rowid LIMIT 1",
                (key_value,)
            )
            row = cursor.fetchone()
            return self._row_dict(cursor, row) if row else None

    def update_cell(self, collection, row_index, field_name, value):
        """Overwrite one field of one row.

        Raises:
            StoreError: If the field is unknown or the row does not exist.
        """
        self._check_fields(collection, [field_name])
        with self._guard(f"update {collection}") as cursor:
            cursor.execute(
                f"UPDATE {collection} SET {field_name}=? WHERE rowid=?",
                (value, int(row_index))
            )
            if cursor.rowcount == 0:
                raise StoreError(
                    f"Row {row_index} not found in '{collection}'",
                    {'collection': collection, 'row_index': row_index}
                )
            self._commit()

    def scan_frame(self, collection, **filters):
        """Rows as a DataFrame, with a ``row_index`` column."""
        self._check_fields(collection, filters.keys())
        cols = ", ".join(self.columns(collection))
        query = f"SELECT rowid AS row_index, {cols} FROM {collection}"
        params = []
        if filters:
            query += " WHERE " + " AND ".join(f"{name}=?" for name in filters)
            params = list(filters.values())
        query += " ORDER BY rowid"
        with self._lock:
            if self._closed:
                raise StoreError(f"Cannot scan {collection}: database is closed")
            try:
                return pd.read_sql_query(query, self.conn, params=tuple(params))
            except (sqlite3.Error, pd.errors.DatabaseError) as e:
                raise StoreError(f"Failed to scan {collection}: {e}") from e

    def count(self, collection):
        with self._guard(f"count {collection}") as cursor:
            self.columns(collection)
            cursor.execute(f"SELECT COUNT(*) FROM {collection}")
            return cursor.fetchone()[0]

    # Settings
    def get_setting(self, key, default=None):
        """Get a setting value."""
        with self._guard("read setting") as cursor:
            cursor.execute("SELECT value FROM settings WHERE key=?", (key,))
            res = cursor.fetchone()
            return res[0] if res else default

    def set_setting(self, key, value):
        """Set a setting value."""
        with self._guard("write setting") as cursor:
            cursor.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, str(value)))
            self._commit()
