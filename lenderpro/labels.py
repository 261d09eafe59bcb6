"""Presentation labels for LenderPro enumerations.

Logic compares enum members only; the human-readable text shown to users
lives here so it can change without touching any calculation.
"""
from lenderpro.data_structures import (
    Frequency,
    InterestMode,
    AmortizationMethod,
    InstallmentStatus,
    LoanStatus,
)

DISPLAY_LABELS = {
    Frequency.DAILY: "Diario",
    Frequency.WEEKLY: "Semanal",
    Frequency.BIWEEKLY: "Quincenal",
    Frequency.MONTHLY: "Mensual",
    InterestMode.PERCENTAGE: "Porcentaje (%)",
    InterestMode.FIXED_AMOUNT: "Monto Fijo ($)",
    AmortizationMethod.SIMPLE: "Interés Simple",
    AmortizationMethod.FRENCH: "Sistema Francés",
    InstallmentStatus.PENDING: "Pendiente",
    InstallmentStatus.PAID: "Pagado",
    InstallmentStatus.LATE: "Vencido",
    LoanStatus.ACTIVE: "Activo",
    LoanStatus.COMPLETED: "Pagado",
    LoanStatus.DEFAULTED: "En Mora",
}


def display_label(value) -> str:
    """Return the display text for an enum member, or its raw value."""
    return DISPLAY_LABELS.get(value, getattr(value, "value", str(value)))
