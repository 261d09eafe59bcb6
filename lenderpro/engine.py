"""Business logic engine for LenderPro.

This module provides the LoanEngine class which acts as a facade over
the focused service classes in lenderpro/services/.

Service Classes:
    - ScheduleGenerator: Installment schedules (Simple and French)
    - InstallmentLedger: Payments and ledger totals
    - LoanService: Loan lifecycle against the repository
    - BackupService: JSON backup export/import
"""
import logging
import uuid
from datetime import datetime

from lenderpro.data_structures import Client, LoanTerms
from lenderpro.dates import count_periods_between, end_date_for
from lenderpro.reports import ReportGenerator
from lenderpro.services import (
    BackupService,
    InstallmentLedger,
    LoanService,
    ScheduleGenerator,
    effective_status,
)

logger = logging.getLogger(__name__)


class LoanEngine:
    """Handles business logic, interfacing with DatabaseManager.

    Attributes:
        db: DatabaseManager instance for data persistence.
        generator: ScheduleGenerator shared by all services.
        ledger: InstallmentLedger shared by all services.
    """

    def __init__(self, db_manager):
        self.db = db_manager
        self.generator = ScheduleGenerator()
        self.ledger = InstallmentLedger()
        self._loan_service = None
        self._backup_service = None
        self._report_generator = None

    @property
    def loan_service(self):
        """Lazy-load LoanService instance."""
        if self._loan_service is None:
            self._loan_service = LoanService(self.db, self.generator, self.ledger)
        return self._loan_service

    @property
    def backup_service(self):
        """Lazy-load BackupService instance."""
        if self._backup_service is None:
            self._backup_service = BackupService(self.db)
        return self._backup_service

    @property
    def report_generator(self):
        """Lazy-load ReportGenerator instance."""
        if self._report_generator is None:
            self._report_generator = ReportGenerator(self.db)
        return self._report_generator

    # ===== CLIENTS =====

    def add_client(self, name, dni="", phone="", address=""):
        client = Client(
            id=str(uuid.uuid4()),
            name=name,
            dni=dni,
            phone=phone,
            address=address,
            created_at=datetime.now().isoformat(timespec="seconds"),
        )
        self.db.save_client(client)
        logger.info("Added client '%s' (%s)", name, client.id)
        return client

    # ===== SCHEDULES =====

    def generate_schedule(self, terms: LoanTerms):
        """Pure schedule generation. Delegates to ScheduleGenerator."""
        return self.generator.generate_for_terms(terms)

    def preview_schedule(self, terms: LoanTerms):
        """Total, interest and first installment of a would-be loan."""
        return self.generator.preview(terms)

    def preview_end_date(self, start_date, frequency, duration):
        return end_date_for(start_date, frequency, duration)

    def preview_duration(self, start_date, end_date, frequency):
        return count_periods_between(start_date, end_date, frequency)

    # ===== LOANS =====

    def create_loan(self, client_id, terms: LoanTerms, loan_id=None):
        """Delegates to LoanService."""
        return self.loan_service.create_loan(client_id, terms, loan_id)

    def edit_loan(self, loan_id, terms: LoanTerms):
        """Delegates to LoanService."""
        return self.loan_service.edit_loan(loan_id, terms)

    def pay_installment(self, loan_id, installment_number, payment_timestamp=None):
        """Delegates to LoanService."""
        return self.loan_service.pay_installment(loan_id, installment_number, payment_timestamp)

    def apply_payment(self, loan, installment_number, payment_timestamp=None):
        """Pure ledger transform on an in-memory loan; the caller persists it."""
        return self.ledger.apply_payment(loan, installment_number, payment_timestamp)

    def effective_status(self, installment, today=None):
        return effective_status(installment, today)

    def mark_defaulted(self, loan_id):
        return self.loan_service.mark_defaulted(loan_id)

    def delete_loan(self, loan_id):
        self.loan_service.delete_loan(loan_id)

    # ===== REPORTS =====

    def portfolio_metrics(self, today=None):
        return self.report_generator.portfolio_metrics(today)

    def schedule_df(self, loan, today=None):
        return self.report_generator.schedule_df(loan, today)

    # ===== BACKUP =====

    def export_data(self):
        return self.backup_service.export_data()

    def import_data(self, json_input):
        return self.backup_service.import_data(json_input)

    def clear_data(self):
        self.db.clear_data()
