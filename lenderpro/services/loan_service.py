"""Loan lifecycle service for LenderPro.

This service handles all loan-related operations including:
- Loan creation from terms
- Editing loan terms (wholesale schedule regeneration)
- Recording installment payments
- Marking loans as defaulted and deleting them
"""
import logging
import uuid

from lenderpro.data_structures import (
    AmortizationMethod,
    Frequency,
    InterestMode,
    Loan,
    LoanStatus,
    LoanTerms,
)
from lenderpro.result import Result, ErrorType
from lenderpro.services.installment_ledger import InstallmentLedger
from lenderpro.services.schedule_generator import ScheduleGenerator, carry_forward_paid_state
from lenderpro.services.status_resolver import effective_status

logger = logging.getLogger(__name__)


def _normalize_terms(terms: LoanTerms) -> LoanTerms:
    """Coerce raw enum values and override keys once they passed validation."""
    return LoanTerms(
        principal=float(terms.principal),
        rate_or_amount=float(terms.rate_or_amount),
        interest_mode=InterestMode(terms.interest_mode),
        frequency=Frequency(terms.frequency),
        duration=int(float(terms.duration)),
        method=AmortizationMethod(terms.method),
        start_date=terms.start_date,
        rate_overrides={int(k): float(v) for k, v in (terms.rate_overrides or {}).items()},
    )


class LoanService:
    """Handles loan lifecycle operations.

    Every operation computes the whole new loan value first and hands it to
    the repository as one unit.
    """

    def __init__(self, db_manager, generator=None, ledger=None):
        """Initialize LoanService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
            generator: Optional ScheduleGenerator instance.
            ledger: Optional InstallmentLedger instance.
        """
        self.db = db_manager
        self.generator = generator or ScheduleGenerator()
        self.ledger = ledger or InstallmentLedger()

    def create_loan(self, client_id, terms: LoanTerms, loan_id=None) -> Result[Loan]:
        """Issue a new loan for a client.

        Args:
            client_id: Id of an existing client.
            terms: Principal, rate, frequency, duration, method and start date.
            loan_id: Optional id; a UUID is generated when omitted.

        Returns:
            Result holding the saved loan, or a failure (NOT_FOUND for an
            unknown client, INVALID_DURATION / VALIDATION for bad terms).
        """
        if self.db.get_client(client_id) is None:
            return Result.fail(f"Client '{client_id}' not found", ErrorType.NOT_FOUND)

        schedule = self.generator.generate_for_terms(terms)
        if not schedule:
            logger.warning("Rejected loan terms for client '%s': %s", client_id, schedule.error)
            return Result.fail(schedule.error, schedule.error_type)
        terms = _normalize_terms(terms)

        loan = Loan(
            id=loan_id or str(uuid.uuid4()),
            client_id=client_id,
            principal=terms.principal,
            rate_or_amount=terms.rate_or_amount,
            interest_mode=terms.interest_mode,
            frequency=terms.frequency,
            duration=int(terms.duration),
            method=terms.method,
            start_date=terms.start_date,
            end_date=schedule.value[-1].due_date,
            installments=schedule.value,
            status=LoanStatus.ACTIVE,
            rate_overrides=dict(terms.rate_overrides or {}),
        )
        self.ledger.recompute_totals(loan)

        self.db.save_loan(loan)
        logger.info("Created loan '%s' for client '%s': %d installments, total payable %.2f",
                    loan.id, client_id, len(loan.installments), loan.total_payable)
        return Result.ok(loan)

    def edit_loan(self, loan_id, terms: LoanTerms) -> Result[Loan]:
        """Replace a loan's terms and regenerate its schedule.

        Paid installments are carried forward by number: they stay paid with
        their payment date but adopt the amount computed under the new terms.
        """
        loan = self.db.get_loan(loan_id)
        if loan is None:
            return Result.fail(f"Loan '{loan_id}' not found", ErrorType.NOT_FOUND)

        schedule = self.generator.generate_for_terms(terms)
        if not schedule:
            logger.warning("Rejected new terms for loan '%s': %s", loan_id, schedule.error)
            return Result.fail(schedule.error, schedule.error_type)
        terms = _normalize_terms(terms)

        installments = carry_forward_paid_state(schedule.value, loan.installments)

        if all(inst.is_paid for inst in installments):
            status = LoanStatus.COMPLETED
        elif loan.status == LoanStatus.DEFAULTED:
            status = LoanStatus.DEFAULTED
        else:
            status = LoanStatus.ACTIVE

        updated = Loan(
            id=loan.id,
            client_id=loan.client_id,
            principal=terms.principal,
            rate_or_amount=terms.rate_or_amount,
            interest_mode=terms.interest_mode,
            frequency=terms.frequency,
            duration=int(terms.duration),
            method=terms.method,
            start_date=terms.start_date,
            end_date=installments[-1].due_date,
            installments=installments,
            status=status,
            rate_overrides=dict(terms.rate_overrides or {}),
        )
        self.ledger.recompute_totals(updated)

        self.db.save_loan(updated)
        logger.info("Edited loan '%s': %d installments, %d carried as paid",
                    loan_id, len(installments), sum(1 for i in installments if i.is_paid))
        return Result.ok(updated)

    def pay_installment(self, loan_id, installment_number, payment_timestamp=None) -> Result[Loan]:
        """Record a payment and persist the updated loan.

        Returns:
            Result holding the updated loan, or a failure with error type
            NOT_FOUND, INSTALLMENT_NOT_FOUND or ALREADY_PAID.
        """
        loan = self.db.get_loan(loan_id)
        if loan is None:
            return Result.fail(f"Loan '{loan_id}' not found", ErrorType.NOT_FOUND)

        result = self.ledger.apply_payment(loan, installment_number, payment_timestamp)
        if not result:
            logger.warning("Payment rejected: %s", result.error)
            return result

        self.db.save_loan(result.value)
        logger.info("Recorded payment of installment #%d on loan '%s'; total paid %.2f",
                    installment_number, loan_id, result.value.total_paid)
        return result

    def mark_defaulted(self, loan_id) -> Result[Loan]:
        loan = self.db.get_loan(loan_id)
        if loan is None:
            return Result.fail(f"Loan '{loan_id}' not found", ErrorType.NOT_FOUND)
        if loan.status == LoanStatus.COMPLETED:
            return Result.fail(f"Loan '{loan_id}' is already completed", ErrorType.VALIDATION)

        loan.status = LoanStatus.DEFAULTED
        self.db.save_loan(loan)
        logger.info("Loan '%s' marked as defaulted", loan_id)
        return Result.ok(loan)

    def delete_loan(self, loan_id):
        """Delete a loan and its schedule."""
        self.db.delete_loan(loan_id)
        logger.info("Deleted loan '%s'", loan_id)

    def installment_statuses(self, loan_id, today=None) -> Result[list]:
        """Effective (pending / paid / late) status of every installment."""
        loan = self.db.get_loan(loan_id)
        if loan is None:
            return Result.fail(f"Loan '{loan_id}' not found", ErrorType.NOT_FOUND)
        return Result.ok([(inst.number, effective_status(inst, today)) for inst in loan.installments])
