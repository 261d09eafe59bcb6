"""Services package for LenderPro business logic.

This package contains the amortization core (schedule generation, ledger
and status resolution) and the services built on top of it.
"""

from .schedule_generator import ScheduleGenerator, annuity_payment, carry_forward_paid_state
from .installment_ledger import InstallmentLedger
from .status_resolver import effective_status
from .loan_service import LoanService
from .backup_service import BackupService

__all__ = ['ScheduleGenerator', 'annuity_payment', 'carry_forward_paid_state',
           'InstallmentLedger', 'effective_status', 'LoanService', 'BackupService']
