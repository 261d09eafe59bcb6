from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class InterestMode(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class AmortizationMethod(str, Enum):
    SIMPLE = "simple"
    FRENCH = "french"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    # Derived on read, never stored
    LATE = "late"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"


@dataclass
class Installment:
    """One scheduled payment obligation of a loan."""
    number: int
    due_date: str
    total_amount: float
    capital_portion: float
    interest_portion: float
    status: InstallmentStatus = InstallmentStatus.PENDING
    payment_date: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


@dataclass
class LoanTerms:
    """DTO grouping the inputs of schedule generation."""
    principal: float
    rate_or_amount: float
    interest_mode: InterestMode
    frequency: Frequency
    duration: int
    method: AmortizationMethod
    start_date: str
    rate_overrides: Dict[int, float] = field(default_factory=dict)


@dataclass
class Loan:
    id: str
    client_id: str
    principal: float
    rate_or_amount: float
    interest_mode: InterestMode
    frequency: Frequency
    duration: int
    method: AmortizationMethod
    start_date: str
    end_date: str
    installments: List[Installment] = field(default_factory=list)
    status: LoanStatus = LoanStatus.ACTIVE
    total_payable: float = 0.0
    total_paid: float = 0.0
    rate_overrides: Dict[int, float] = field(default_factory=dict)

    @property
    def terms(self) -> LoanTerms:
        return LoanTerms(
            principal=self.principal,
            rate_or_amount=self.rate_or_amount,
            interest_mode=self.interest_mode,
            frequency=self.frequency,
            duration=self.duration,
            method=self.method,
            start_date=self.start_date,
            rate_overrides=dict(self.rate_overrides),
        )

    @property
    def outstanding(self) -> float:
        return self.total_payable - self.total_paid

    def get_installment(self, number: int) -> Optional[Installment]:
        for inst in self.installments:
            if inst.number == number:
                return inst
        return None


@dataclass
class Client:
    id: str
    name: str
    dni: str = ""
    phone: str = ""
    address: str = ""
    created_at: str = ""


@dataclass
class SchedulePreview:
    """Simulation summary shown before a loan is saved."""
    total: float
    interest: float
    first_installment: float
    end_date: Optional[str] = None


@dataclass
class UpcomingInstallment:
    loan_id: str
    client_name: str
    number: int
    amount: float
    due_date: str
    days_until: int


@dataclass
class PortfolioMetrics:
    total_lent: float
    total_collected: float
    estimated_profit: float
    outstanding: float
    active_loans_count: int
    clients_count: int
    upcoming_installments: List[UpcomingInstallment] = field(default_factory=list)


@dataclass
class ImportReport:
    """Outcome of a backup import: what was saved and what was rejected."""
    clients_imported: int = 0
    loans_imported: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
