"""Ledger state of a loan's installment list.

Totals are always reductions of the installment list and are recomputed in
full on every change, so any earlier inconsistency is repaired on the next
payment.
"""
import logging
from datetime import datetime

from lenderpro.data_structures import InstallmentStatus, Loan, LoanStatus
from lenderpro.result import Result, ErrorType

logger = logging.getLogger(__name__)


class InstallmentLedger:
    """Records payments against a loan's schedule."""

    def apply_payment(self, loan: Loan, installment_number: int, payment_timestamp=None) -> Result[Loan]:
        """Mark one installment as paid and refresh the loan's ledger.

        Args:
            loan: Loan whose schedule is updated in place.
            installment_number: 1-based number of the installment paid.
            payment_timestamp: When the payment happened (datetime or ISO
                text). Defaults to now.

        Returns:
            Result holding the updated loan, or a failure with error type
            INSTALLMENT_NOT_FOUND or ALREADY_PAID. On failure the loan is
            left untouched.
        """
        installment = loan.get_installment(installment_number)
        if installment is None:
            return Result.fail(f"Installment #{installment_number} not found in loan '{loan.id}'",
                               ErrorType.INSTALLMENT_NOT_FOUND)

        if installment.is_paid:
            return Result.fail(f"Installment #{installment_number} of loan '{loan.id}' "
                               f"was already paid on {installment.payment_date}",
                               ErrorType.ALREADY_PAID)

        if payment_timestamp is None:
            payment_timestamp = datetime.now()
        if isinstance(payment_timestamp, datetime):
            payment_timestamp = payment_timestamp.isoformat(timespec="seconds")

        installment.status = InstallmentStatus.PAID
        installment.payment_date = payment_timestamp

        loan.total_paid = self.total_paid(loan)

        if all(inst.is_paid for inst in loan.installments):
            loan.status = LoanStatus.COMPLETED
            logger.info("Loan '%s' completed with installment #%d", loan.id, installment_number)

        return Result.ok(loan)

    @staticmethod
    def total_paid(loan: Loan) -> float:
        return sum(inst.total_amount for inst in loan.installments if inst.is_paid)

    @staticmethod
    def total_payable(loan: Loan) -> float:
        return sum(inst.total_amount for inst in loan.installments)

    def recompute_totals(self, loan: Loan) -> Loan:
        """Reduce totals and end date from the current installment list."""
        loan.total_payable = self.total_payable(loan)
        loan.total_paid = self.total_paid(loan)
        if loan.installments:
            loan.end_date = loan.installments[-1].due_date
        return loan
