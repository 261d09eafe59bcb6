"""Installment schedule generation for LenderPro.

Two amortization methods are supported:
- Simple: capital is split evenly and interest is a flat slice of the
  principal-based total, independent of the declining balance.
- French: interest accrues on the declining balance and the installment is
  the annuity payment, re-derived from the remaining balance and remaining
  term count whenever the rate changes.

Rate overrides map a 1-based installment number to the rate (or fixed
amount) that applies from that installment onward.
"""
import logging
import math
from typing import Dict, List, Optional

from lenderpro.config import BALANCE_EPSILON, MIN_LOAN_DURATION
from lenderpro.data_structures import (
    AmortizationMethod,
    Frequency,
    Installment,
    InstallmentStatus,
    InterestMode,
    LoanTerms,
    SchedulePreview,
)
from lenderpro.dates import advance, parse_date, to_date_string
from lenderpro.result import Result, ErrorType

logger = logging.getLogger(__name__)


def annuity_payment(balance: float, rate: float, terms: int) -> float:
    """Constant installment that repays ``balance`` over ``terms`` periods.

    Args:
        balance: Capital still owed.
        rate: Per-period rate as a fraction (0.10 for 10%).
        terms: Number of installments left, including the current one.
    """
    if rate == 0:
        return balance / terms
    growth = (1 + rate) ** terms
    return balance * (rate * growth) / (growth - 1)


def _whole_number(value):
    """Return ``value`` as an int when it is a whole number, else None."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number != int(number):
        return None
    return int(number)


class ScheduleGenerator:
    """Builds the ordered installment list for a loan definition."""

    def generate(self, principal, rate_or_amount, interest_mode, frequency, duration,
                 method, start_date, rate_overrides: Optional[Dict[int, float]] = None
                 ) -> Result[List[Installment]]:
        """Generate the full schedule.

        Args:
            principal: Amount lent, must be positive.
            rate_or_amount: Percentage rate or fixed total interest, depending
                on ``interest_mode``. Zero is allowed.
            interest_mode: InterestMode member or its value.
            frequency: Frequency member or its value.
            duration: Number of installments, at least 1.
            method: AmortizationMethod member or its value.
            start_date: Loan start date (``YYYY-MM-DD``).
            rate_overrides: Optional {installment number: new rate}.

        Returns:
            Result holding the installments, or a failure with error type
            INVALID_DURATION or VALIDATION.
        """
        try:
            interest_mode = InterestMode(interest_mode)
            frequency = Frequency(frequency)
            method = AmortizationMethod(method)
        except ValueError as e:
            return Result.fail(str(e), ErrorType.VALIDATION)

        whole = _whole_number(duration)
        if whole is None or whole < MIN_LOAN_DURATION:
            return Result.fail(f"Duration must be a whole number >= {MIN_LOAN_DURATION}, got {duration!r}",
                               ErrorType.INVALID_DURATION)
        duration = whole

        try:
            principal = float(principal)
            rate_or_amount = float(rate_or_amount)
            overrides = {int(k): float(v) for k, v in (rate_overrides or {}).items()}
        except (AttributeError, TypeError, ValueError) as e:
            return Result.fail(f"Loan amounts and rate overrides must be numeric: {e}", ErrorType.VALIDATION)

        if principal <= 0:
            return Result.fail(f"Principal must be positive, got {principal}", ErrorType.VALIDATION)

        try:
            parse_date(start_date)
        except (TypeError, ValueError):
            return Result.fail(f"Start date must be YYYY-MM-DD, got {start_date!r}", ErrorType.VALIDATION)

        out_of_range = sorted(k for k in overrides if k < 1 or k > duration)
        if out_of_range:
            return Result.fail(f"Rate override installments {out_of_range} outside 1..{duration}",
                               ErrorType.VALIDATION)

        if method == AmortizationMethod.FRENCH and interest_mode == InterestMode.PERCENTAGE:
            schedule = self._french_schedule(principal, rate_or_amount, frequency, duration,
                                             start_date, overrides)
        else:
            # A flat fixed interest amount has no annuity formula
            schedule = self._simple_schedule(principal, rate_or_amount, interest_mode, frequency,
                                             duration, start_date, overrides)

        logger.debug("Generated %d installments (%s, %s) from %s",
                     len(schedule), method.value, interest_mode.value, start_date)
        return Result.ok(schedule)

    def generate_for_terms(self, terms: LoanTerms) -> Result[List[Installment]]:
        return self.generate(terms.principal, terms.rate_or_amount, terms.interest_mode,
                             terms.frequency, terms.duration, terms.method, terms.start_date,
                             terms.rate_overrides)

    def _simple_schedule(self, principal, rate_or_amount, interest_mode, frequency, duration,
                         start_date, overrides):
        installments = []
        capital = principal / duration
        current_rate = rate_or_amount

        for number in range(1, duration + 1):
            if number in overrides:
                current_rate = overrides[number]

            # The divisor stays the full duration even after a rate change
            if interest_mode == InterestMode.FIXED_AMOUNT:
                interest = current_rate / duration
            else:
                interest = (principal * current_rate / 100) / duration

            installments.append(Installment(
                number=number,
                due_date=to_date_string(advance(start_date, frequency, number)),
                total_amount=capital + interest,
                capital_portion=capital,
                interest_portion=interest,
                status=InstallmentStatus.PENDING,
            ))
        return installments

    def _french_schedule(self, principal, rate, frequency, duration, start_date, overrides):
        installments = []
        remaining = principal
        current_rate = rate
        payment = 0.0

        for number in range(1, duration + 1):
            reamortize = False
            if number in overrides:
                current_rate = overrides[number]
                reamortize = True

            period_rate = current_rate / 100
            if number == 1 or reamortize:
                remaining_terms = duration - number + 1
                payment = annuity_payment(remaining, period_rate, remaining_terms)
                if number > 1:
                    logger.debug("Re-amortized at installment %d: rate=%s, balance=%.2f, payment=%.2f",
                                 number, current_rate, remaining, payment)

            interest = remaining * period_rate
            capital = payment - interest
            total = payment

            # Last installment absorbs floating-point drift so the balance closes at zero
            if number == duration:
                capital = remaining
                total = capital + interest

            installments.append(Installment(
                number=number,
                due_date=to_date_string(advance(start_date, frequency, number)),
                total_amount=total,
                capital_portion=capital,
                interest_portion=interest,
                status=InstallmentStatus.PENDING,
            ))

            remaining -= capital
            if remaining < BALANCE_EPSILON:
                remaining = 0.0

        return installments

    def preview(self, terms: LoanTerms) -> Result[SchedulePreview]:
        """Summarize a would-be schedule without creating a loan."""
        result = self.generate_for_terms(terms)
        if not result:
            return Result.fail(result.error, result.error_type)

        schedule = result.value
        return Result.ok(SchedulePreview(
            total=sum(inst.total_amount for inst in schedule),
            interest=sum(inst.interest_portion for inst in schedule),
            first_installment=schedule[0].total_amount,
            end_date=schedule[-1].due_date,
        ))


def carry_forward_paid_state(new_schedule: List[Installment],
                             previous_installments: List[Installment]) -> List[Installment]:
    """Copy paid status from an old schedule onto a regenerated one.

    Installments are matched by number. A matched installment keeps the paid
    flag and payment date but takes the newly computed amounts, so the ledger
    follows the new terms and only remembers the fact of payment.
    """
    paid_by_number = {inst.number: inst for inst in previous_installments if inst.is_paid}

    for inst in new_schedule:
        old = paid_by_number.get(inst.number)
        if old is not None:
            inst.status = InstallmentStatus.PAID
            inst.payment_date = old.payment_date

    dropped = sorted(set(paid_by_number) - {inst.number for inst in new_schedule})
    if dropped:
        logger.warning("Paid installments %s have no position in the new schedule", dropped)

    return new_schedule
