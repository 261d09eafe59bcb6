"""Database management module for LenderPro.

DatabaseManager is the repository for Client and Loan records. It owns an
in-memory index of validated records that is filled lazily on first read and
dropped with invalidate(); there is no process-wide cache. Readers get copies,
so an object changed without save_*() never leaks into the index.
"""
import copy
import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Dict, List

from lenderpro.config import DEFAULT_DB_NAME
from lenderpro.data_structures import Client, Loan
from lenderpro.exceptions import (
    ClientNotFoundError,
    DatabaseError,
    LoanNotFoundError,
    MalformedRecordError,
    TransactionError,
)
from lenderpro.serialization import (
    client_from_dict,
    client_to_dict,
    loan_from_dict,
    loan_to_dict,
)

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Handles all SQLite database operations."""

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        try:
            self.conn = sqlite3.connect(db_name)
        except sqlite3.Error as e:
            raise DatabaseError(f"Could not open database: {e}", {'db_name': db_name})
        self.conn.row_factory = sqlite3.Row
        self._closed = False
        self._clients = None
        self._loans = None
        self.load_errors: List[MalformedRecordError] = []
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if self.conn and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        if hasattr(self, '_closed'):
            self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def transaction(self):
        """Context manager for database transactions with automatic rollback on failure.

        Usage:
            with db.transaction():
                db.save_client(...)
                db.save_loan(...)

        If any exception occurs, the transaction is rolled back and the
        in-memory index is invalidated so it cannot disagree with disk.
        """
        try:
            yield
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            self.invalidate()
            raise TransactionError(f"Transaction failed: {str(e)}")
        except Exception:
            self.conn.rollback()
            self.invalidate()
            raise

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                dni TEXT DEFAULT '',
                phone TEXT DEFAULT '',
                address TEXT DEFAULT '',
                created_at TEXT DEFAULT ''
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loans (
                id TEXT PRIMARY KEY,
                client_id TEXT,
                principal REAL,
                rate_or_amount REAL,
                interest_mode TEXT,
                frequency TEXT,
                duration INTEGER,
                method TEXT,
                start_date TEXT,
                end_date TEXT,
                status TEXT,
                total_payable REAL DEFAULT 0,
                total_paid REAL DEFAULT 0,
                rate_overrides TEXT DEFAULT '{}'
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS installments (
                loan_id TEXT NOT NULL,
                number INTEGER NOT NULL,
                due_date TEXT,
                total_amount REAL,
                capital_portion REAL,
                interest_portion REAL,
                status TEXT,
                payment_date TEXT,
                PRIMARY KEY (loan_id, number),
                FOREIGN KEY(loan_id) REFERENCES loans(id)
            )
        """)
        self.conn.commit()

    # ===== INDEX =====

    def invalidate(self):
        """Drop the in-memory index; the next read reloads from disk."""
        self._clients = None
        self._loans = None

    def reload(self):
        """Re-read every record from disk into the in-memory index."""
        self.invalidate()
        self.load_errors = []
        self._clients = self._load_clients()
        self._loans = self._load_loans()
        if self.load_errors:
            logger.warning("Skipped %d malformed records while loading %s",
                           len(self.load_errors), self.db_name)

    def _ensure_loaded(self):
        if self._clients is None or self._loans is None:
            self.reload()

    def _load_clients(self) -> Dict[str, Client]:
        clients = {}
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM clients")
        for row in cursor.fetchall():
            try:
                client = client_from_dict(dict(row))
            except MalformedRecordError as e:
                self.load_errors.append(e)
                continue
            clients[client.id] = client
        return clients

    def _load_loans(self) -> Dict[str, Loan]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM installments ORDER BY loan_id, number")
        installments_by_loan = {}
        for row in cursor.fetchall():
            data = dict(row)
            loan_id = data.pop('loan_id')
            if data.get('payment_date') is None:
                data.pop('payment_date')
            installments_by_loan.setdefault(loan_id, []).append(data)

        loans = {}
        cursor.execute("SELECT * FROM loans")
        for row in cursor.fetchall():
            data = dict(row)
            try:
                data['rate_overrides'] = json.loads(data.get('rate_overrides') or '{}')
            except ValueError:
                self.load_errors.append(MalformedRecordError('loan', 'rate_overrides', "is not valid JSON", data.get('id')))
                continue
            data['installments'] = installments_by_loan.get(data.get('id'), [])
            try:
                loan = loan_from_dict(data)
            except MalformedRecordError as e:
                self.load_errors.append(e)
                continue
            loans[loan.id] = loan
        return loans

    # ===== CLIENT OPERATIONS =====

    def get_clients(self) -> List[Client]:
        self._ensure_loaded()
        return [copy.copy(c) for c in self._clients.values()]

    def get_client(self, client_id):
        self._ensure_loaded()
        client = self._clients.get(client_id)
        return copy.copy(client) if client is not None else None

    def require_client(self, client_id) -> Client:
        client = self.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    def save_client(self, client: Client):
        """Insert or replace a client; the last write for an id wins."""
        self._ensure_loaded()
        data = client_to_dict(client)
        with self.transaction():
            self.conn.execute(
                "INSERT OR REPLACE INTO clients (id, name, dni, phone, address, created_at) "
                "VALUES (:id, :name, :dni, :phone, :address, :created_at)", data)
        self._clients[client.id] = copy.copy(client)

    def delete_client(self, client_id):
        self._ensure_loaded()
        with self.transaction():
            self.conn.execute("DELETE FROM clients WHERE id=?", (client_id,))
        self._clients.pop(client_id, None)

    # ===== LOAN OPERATIONS =====

    def get_loans(self, client_id=None) -> List[Loan]:
        self._ensure_loaded()
        loans = [copy.deepcopy(l) for l in self._loans.values()]
        if client_id is not None:
            loans = [l for l in loans if l.client_id == client_id]
        return loans

    def get_loan(self, loan_id):
        self._ensure_loaded()
        loan = self._loans.get(loan_id)
        return copy.deepcopy(loan) if loan is not None else None

    def require_loan(self, loan_id) -> Loan:
        loan = self.get_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    def save_loan(self, loan: Loan):
        """Insert or replace a loan together with its whole installment list."""
        self._ensure_loaded()
        with self.transaction():
            self._write_loan(loan)
        self._loans[loan.id] = copy.deepcopy(loan)

    def _write_loan(self, loan: Loan):
        data = loan_to_dict(loan)
        self.conn.execute("""
            INSERT OR REPLACE INTO loans (id, client_id, principal, rate_or_amount, interest_mode,
                frequency, duration, method, start_date, end_date, status, total_payable,
                total_paid, rate_overrides)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (data['id'], data['client_id'], data['principal'], data['rate_or_amount'],
              data['interest_mode'], data['frequency'], data['duration'], data['method'],
              data['start_date'], data['end_date'], data['status'], data['total_payable'],
              data['total_paid'], json.dumps(data['rate_overrides'])))

        # Schedules are replaced wholesale, never patched row by row
        self.conn.execute("DELETE FROM installments WHERE loan_id=?", (loan.id,))
        self.conn.executemany("""
            INSERT INTO installments (loan_id, number, due_date, total_amount, capital_portion,
                interest_portion, status, payment_date)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, [(loan.id, i['number'], i['due_date'], i['total_amount'], i['capital_portion'],
               i['interest_portion'], i['status'], i.get('payment_date'))
              for i in data['installments']])

    def delete_loan(self, loan_id):
        self._ensure_loaded()
        with self.transaction():
            self.conn.execute("DELETE FROM installments WHERE loan_id=?", (loan_id,))
            self.conn.execute("DELETE FROM loans WHERE id=?", (loan_id,))
        self._loans.pop(loan_id, None)

    # ===== BULK OPERATIONS =====

    def replace_all(self, clients: List[Client], loans: List[Loan]):
        """Swap the whole store for the given records in one transaction."""
        with self.transaction():
            self.conn.execute("DELETE FROM installments")
            self.conn.execute("DELETE FROM loans")
            self.conn.execute("DELETE FROM clients")
            for client in clients:
                self.conn.execute(
                    "INSERT OR REPLACE INTO clients (id, name, dni, phone, address, created_at) "
                    "VALUES (:id, :name, :dni, :phone, :address, :created_at)", client_to_dict(client))
            for loan in loans:
                self._write_loan(loan)
        self.reload()

    def clear_data(self):
        """Remove every client and loan."""
        with self.transaction():
            self.conn.execute("DELETE FROM installments")
            self.conn.execute("DELETE FROM loans")
            self.conn.execute("DELETE FROM clients")
        self.invalidate()
        logger.info("Cleared all records from %s", self.db_name)
