"""Tests for Simple and French schedule generation."""
import unittest

from lenderpro.data_structures import (
    AmortizationMethod,
    Frequency,
    Installment,
    InstallmentStatus,
    InterestMode,
    LoanTerms,
)
from lenderpro.result import ErrorType
from lenderpro.services.schedule_generator import (
    ScheduleGenerator,
    annuity_payment,
    carry_forward_paid_state,
)

PCT = InterestMode.PERCENTAGE
FIXED = InterestMode.FIXED_AMOUNT
SIMPLE = AmortizationMethod.SIMPLE
FRENCH = AmortizationMethod.FRENCH
MONTHLY = Frequency.MONTHLY


class TestSimpleSchedule(unittest.TestCase):

    def setUp(self):
        self.gen = ScheduleGenerator()

    def test_fixed_amount_scenario(self):
        """1200 lent with 120 fixed interest over 12 months."""
        result = self.gen.generate(1200, 120, FIXED, MONTHLY, 12, SIMPLE, "2024-01-01")
        self.assertTrue(result.success)
        schedule = result.value

        self.assertEqual(len(schedule), 12)
        for inst in schedule:
            self.assertAlmostEqual(inst.interest_portion, 10.0)
            self.assertAlmostEqual(inst.capital_portion, 100.0)
            self.assertAlmostEqual(inst.total_amount, 110.0)
            self.assertEqual(inst.status, InstallmentStatus.PENDING)
            self.assertIsNone(inst.payment_date)
        self.assertAlmostEqual(sum(i.total_amount for i in schedule), 1320.0)

    def test_due_dates_follow_frequency(self):
        schedule = self.gen.generate(1200, 120, FIXED, MONTHLY, 12, SIMPLE, "2024-01-01").value
        self.assertEqual(schedule[0].due_date, "2024-02-01")
        self.assertEqual(schedule[-1].due_date, "2025-01-01")
        self.assertEqual([i.number for i in schedule], list(range(1, 13)))

    def test_percentage_interest_is_flat_slice(self):
        schedule = self.gen.generate(1000, 12, PCT, MONTHLY, 12, SIMPLE, "2024-01-01").value
        for inst in schedule:
            self.assertAlmostEqual(inst.interest_portion, 10.0)
            self.assertAlmostEqual(inst.capital_portion, 1000 / 12)

    def test_rate_override_applies_from_installment_onward(self):
        schedule = self.gen.generate(1000, 12, PCT, MONTHLY, 12, SIMPLE, "2024-01-01",
                                     rate_overrides={7: 24}).value
        for inst in schedule[:6]:
            self.assertAlmostEqual(inst.interest_portion, 10.0)
        for inst in schedule[6:]:
            self.assertAlmostEqual(inst.interest_portion, 20.0)
        # Capital does not depend on the rate
        for inst in schedule:
            self.assertAlmostEqual(inst.capital_portion, 1000 / 12)

    def test_fixed_amount_override_keeps_full_divisor(self):
        schedule = self.gen.generate(1200, 120, FIXED, MONTHLY, 12, SIMPLE, "2024-01-01",
                                     rate_overrides={10: 240}).value
        self.assertAlmostEqual(schedule[8].interest_portion, 10.0)
        self.assertAlmostEqual(schedule[9].interest_portion, 20.0)

    def test_zero_rate(self):
        schedule = self.gen.generate(900, 0, PCT, Frequency.WEEKLY, 9, SIMPLE, "2024-01-01").value
        for inst in schedule:
            self.assertAlmostEqual(inst.interest_portion, 0.0)
            self.assertAlmostEqual(inst.total_amount, 100.0)


class TestFrenchSchedule(unittest.TestCase):

    def setUp(self):
        self.gen = ScheduleGenerator()

    def test_concrete_scenario(self):
        """1000 at 10% per period, 12 monthly installments."""
        schedule = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-15").value

        self.assertAlmostEqual(schedule[0].interest_portion, 100.0)
        self.assertAlmostEqual(schedule[0].total_amount, 146.76, places=2)
        self.assertAlmostEqual(schedule[0].capital_portion, 46.76, places=2)
        self.assertEqual(schedule[0].due_date, "2024-02-15")

        # Constant payment until the corrected final installment
        for inst in schedule[:-1]:
            self.assertAlmostEqual(inst.total_amount, schedule[0].total_amount, places=9)

        paid_before_last = sum(i.capital_portion for i in schedule[:-1])
        self.assertAlmostEqual(schedule[-1].capital_portion, 1000 - paid_before_last, places=9)

    def test_balance_closes_at_zero(self):
        schedule = self.gen.generate(5000, 3.5, PCT, Frequency.BIWEEKLY, 24, FRENCH, "2024-03-01").value
        remaining = 5000.0
        for inst in schedule:
            remaining -= inst.capital_portion
        self.assertAlmostEqual(remaining, 0.0, places=9)

    def test_interest_follows_declining_balance(self):
        schedule = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-15").value
        remaining = 1000.0
        for inst in schedule:
            self.assertAlmostEqual(inst.interest_portion, remaining * 0.10, places=9)
            remaining -= inst.capital_portion

    def test_zero_rate_splits_evenly(self):
        schedule = self.gen.generate(1200, 0, PCT, MONTHLY, 12, FRENCH, "2024-01-01").value
        for inst in schedule:
            self.assertAlmostEqual(inst.total_amount, 100.0)
            self.assertAlmostEqual(inst.interest_portion, 0.0)

    def test_fixed_amount_degrades_to_simple(self):
        french = self.gen.generate(1200, 120, FIXED, MONTHLY, 12, FRENCH, "2024-01-01").value
        simple = self.gen.generate(1200, 120, FIXED, MONTHLY, 12, SIMPLE, "2024-01-01").value
        self.assertEqual(french, simple)

    def test_rate_override_reamortizes_remaining_balance(self):
        base = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-15").value
        changed = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-15",
                                    rate_overrides={5: 5}).value

        # Nothing before the change moves
        self.assertEqual(changed[:4], base[:4])

        remaining = 1000 - sum(i.capital_portion for i in changed[:4])
        fresh = self.gen.generate(remaining, 5, PCT, MONTHLY, 8, FRENCH, "2024-05-15").value

        self.assertAlmostEqual(changed[4].interest_portion, remaining * 0.05, places=9)
        for tail, new in zip(changed[4:], fresh):
            self.assertAlmostEqual(tail.total_amount, new.total_amount, places=6)
            self.assertAlmostEqual(tail.capital_portion, new.capital_portion, places=6)

    def test_empty_override_map_is_single_rate(self):
        base = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-15").value
        same = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-15", rate_overrides={}).value
        self.assertEqual(base, same)

    def test_single_installment(self):
        schedule = self.gen.generate(500, 4, PCT, Frequency.DAILY, 1, FRENCH, "2024-01-01").value
        self.assertEqual(len(schedule), 1)
        self.assertAlmostEqual(schedule[0].capital_portion, 500.0)
        self.assertAlmostEqual(schedule[0].total_amount, 520.0)


class TestScheduleInvariants(unittest.TestCase):

    def setUp(self):
        self.gen = ScheduleGenerator()

    def test_capital_sums_to_principal(self):
        cases = [
            (1000, 10, PCT, MONTHLY, 12, FRENCH, {}),
            (7500, 2.25, PCT, Frequency.WEEKLY, 52, FRENCH, {10: 3.0, 30: 1.5}),
            (333.33, 0, PCT, Frequency.DAILY, 7, FRENCH, {}),
            (1000, 25, PCT, Frequency.BIWEEKLY, 10, SIMPLE, {4: 30}),
            (2500, 300, FIXED, MONTHLY, 36, SIMPLE, {}),
            (2500, 300, FIXED, MONTHLY, 36, FRENCH, {12: 150}),
        ]
        for principal, rate, mode, freq, duration, method, overrides in cases:
            schedule = self.gen.generate(principal, rate, mode, freq, duration, method,
                                         "2024-01-15", overrides).value
            self.assertEqual(len(schedule), duration)
            self.assertAlmostEqual(sum(i.capital_portion for i in schedule), principal, delta=0.01)
            for inst in schedule:
                self.assertAlmostEqual(inst.total_amount,
                                       inst.capital_portion + inst.interest_portion, places=9)


class TestScheduleValidation(unittest.TestCase):

    def setUp(self):
        self.gen = ScheduleGenerator()

    def test_zero_duration_rejected(self):
        result = self.gen.generate(1000, 10, PCT, MONTHLY, 0, FRENCH, "2024-01-01")
        self.assertFalse(result.success)
        self.assertEqual(result.error_type, ErrorType.INVALID_DURATION)

    def test_fractional_duration_rejected(self):
        result = self.gen.generate(1000, 10, PCT, MONTHLY, 2.5, SIMPLE, "2024-01-01")
        self.assertEqual(result.error_type, ErrorType.INVALID_DURATION)

    def test_non_positive_principal_rejected(self):
        result = self.gen.generate(0, 10, PCT, MONTHLY, 12, SIMPLE, "2024-01-01")
        self.assertEqual(result.error_type, ErrorType.VALIDATION)

    def test_override_outside_schedule_rejected(self):
        result = self.gen.generate(1000, 10, PCT, MONTHLY, 12, SIMPLE, "2024-01-01",
                                   rate_overrides={13: 5})
        self.assertEqual(result.error_type, ErrorType.VALIDATION)
        self.assertIn("13", result.error)

    def test_unknown_frequency_rejected(self):
        result = self.gen.generate(1000, 10, PCT, "yearly", 12, SIMPLE, "2024-01-01")
        self.assertEqual(result.error_type, ErrorType.VALIDATION)

    def test_malformed_start_date_rejected(self):
        result = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "15/01/2024")
        self.assertFalse(result.success)
        self.assertEqual(result.error_type, ErrorType.VALIDATION)
        self.assertIn("15/01/2024", result.error)
        self.assertEqual(self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, None).error_type,
                         ErrorType.VALIDATION)

    def test_non_numeric_duration_rejected(self):
        for duration in ("abc", None, float("nan"), True):
            result = self.gen.generate(1000, 10, PCT, MONTHLY, duration, SIMPLE, "2024-01-01")
            self.assertEqual(result.error_type, ErrorType.INVALID_DURATION, repr(duration))

    def test_numeric_text_duration_accepted(self):
        result = self.gen.generate(1000, 10, PCT, MONTHLY, "6", SIMPLE, "2024-01-01")
        self.assertTrue(result.success)
        self.assertEqual(len(result.value), 6)

    def test_missing_rate_rejected(self):
        result = self.gen.generate(1000, None, PCT, MONTHLY, 12, FRENCH, "2024-01-01")
        self.assertEqual(result.error_type, ErrorType.VALIDATION)
        result = self.gen.generate("lots", 10, PCT, MONTHLY, 12, FRENCH, "2024-01-01")
        self.assertEqual(result.error_type, ErrorType.VALIDATION)

    def test_non_numeric_override_key_rejected(self):
        result = self.gen.generate(1000, 10, PCT, MONTHLY, 12, FRENCH, "2024-01-01",
                                   rate_overrides={"seventh": 5})
        self.assertEqual(result.error_type, ErrorType.VALIDATION)

    def test_bad_terms_rejected_through_preview(self):
        terms = LoanTerms(1000, 10, PCT, MONTHLY, 12, FRENCH, "not a date")
        self.assertEqual(self.gen.preview(terms).error_type, ErrorType.VALIDATION)


class TestPreviewAndCarryForward(unittest.TestCase):

    def setUp(self):
        self.gen = ScheduleGenerator()

    def test_preview(self):
        terms = LoanTerms(1200, 120, FIXED, MONTHLY, 12, SIMPLE, "2024-01-01")
        preview = self.gen.preview(terms).value
        self.assertAlmostEqual(preview.total, 1320.0)
        self.assertAlmostEqual(preview.interest, 120.0)
        self.assertAlmostEqual(preview.first_installment, 110.0)
        self.assertEqual(preview.end_date, "2025-01-01")

    def test_preview_propagates_failure(self):
        terms = LoanTerms(1200, 120, FIXED, MONTHLY, 0, SIMPLE, "2024-01-01")
        result = self.gen.preview(terms)
        self.assertEqual(result.error_type, ErrorType.INVALID_DURATION)

    def test_carry_forward_keeps_paid_flag_with_new_amount(self):
        old = [
            Installment(1, "2024-02-01", 110, 100, 10, InstallmentStatus.PAID, "2024-02-01T10:00:00"),
            Installment(2, "2024-03-01", 110, 100, 10, InstallmentStatus.PENDING),
        ]
        new = self.gen.generate(1200, 240, FIXED, MONTHLY, 12, SIMPLE, "2024-01-01").value

        carried = carry_forward_paid_state(new, old)
        self.assertEqual(carried[0].status, InstallmentStatus.PAID)
        self.assertEqual(carried[0].payment_date, "2024-02-01T10:00:00")
        self.assertAlmostEqual(carried[0].total_amount, 120.0)
        self.assertEqual(carried[1].status, InstallmentStatus.PENDING)
        self.assertIsNone(carried[1].payment_date)

    def test_carry_forward_onto_shorter_schedule(self):
        old = [Installment(n, "2024-02-01", 10, 10, 0, InstallmentStatus.PAID, "2024-02-01")
               for n in range(1, 7)]
        new = self.gen.generate(300, 0, PCT, MONTHLY, 3, SIMPLE, "2024-01-01").value
        carried = carry_forward_paid_state(new, old)
        self.assertEqual(len(carried), 3)
        self.assertTrue(all(i.is_paid for i in carried))


class TestAnnuityPayment(unittest.TestCase):

    def test_matches_textbook_value(self):
        self.assertAlmostEqual(annuity_payment(1000, 0.10, 12), 146.7633, places=4)

    def test_zero_rate(self):
        self.assertAlmostEqual(annuity_payment(1000, 0, 8), 125.0)


if __name__ == '__main__':
    unittest.main()
