"""
Test suite for the installment scheduler

Covers interest/total arithmetic, equal-split schedules, due-date spacing and
input validation. All amounts are Decimal and compared exactly unless noted.
"""

import pytest
from decimal import Decimal
from datetime import date, timedelta

from loanbook.exceptions import ValidationError
from loanbook.schedule import (
    Installment, InstallmentPlan, InstallmentStatus, ScheduleParams, SinglePayment,
    calculate_totals, final_due_date, generate_schedule, plan_from_dict, plan_to_dict,
    quote_loan, split_amount
)


START = date(2024, 3, 1)


class TestCalculateTotals:
    """Test one-time interest arithmetic"""

    @pytest.mark.parametrize("principal,rate", [
        ("1000", "20"),
        ("1", "0"),
        ("333.33", "7.5"),
        ("12500.75", "35"),
        ("0.01", "100"),
    ])
    def test_profit_and_total_formula(self, principal, rate):
        """profit = P*R/100 and total = P + profit"""
        profit, total = calculate_totals(principal, rate)
        p, r = Decimal(principal), Decimal(rate)

        assert abs(profit - p * r / 100) <= Decimal('1e-6')
        assert abs(total - (p + p * r / 100)) <= Decimal('1e-6')
        assert total == p + profit

    def test_accepts_numbers_as_well_as_strings(self):
        """Ints and floats are converted through str, not binary float"""
        assert calculate_totals(1000, 20) == (Decimal('200'), Decimal('1200'))
        assert calculate_totals(100.1, 10)[1] == Decimal('110.11')

    def test_zero_principal_rejected(self):
        with pytest.raises(ValidationError, match="greater than zero"):
            calculate_totals("0", "20")

    def test_negative_principal_rejected(self):
        with pytest.raises(ValidationError):
            calculate_totals("-50", "20")

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            calculate_totals("100", "-1")

    def test_non_numeric_input_rejected(self):
        with pytest.raises(ValidationError, match="must be a number"):
            calculate_totals("lots", "20")

    def test_missing_principal_rejected(self):
        with pytest.raises(ValidationError, match="required"):
            calculate_totals(None, "20")

    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError, match="out of range"):
            calculate_totals("1e999999", "20")


class TestSplitAmount:
    """Test equal split with last-installment remainder"""

    def test_even_split(self):
        assert split_amount(Decimal('1200'), 2) == [Decimal('600.00'), Decimal('600')]

    def test_last_part_absorbs_remainder(self):
        """1000 / 3 -> 333.33, 333.33, 333.34"""
        parts = split_amount(Decimal('1000'), 3)

        assert parts[:2] == [Decimal('333.33'), Decimal('333.33')]
        assert parts[2] == Decimal('333.34')
        assert sum(parts) == Decimal('1000')

    def test_sum_is_exact_for_awkward_totals(self):
        total = Decimal('1249.99975')
        for count in range(1, 13):
            parts = split_amount(total, count)
            assert len(parts) == count
            assert sum(parts) == total

    def test_precision_is_configurable(self):
        parts = split_amount(Decimal('100'), 3, precision=0)
        assert parts == [Decimal('33'), Decimal('33'), Decimal('34')]

    def test_totals_wider_than_default_context(self):
        """30 significant digits once the cents are added"""
        total = Decimal('1234567890123456789012345678')
        parts = split_amount(total, 3)

        assert parts[0] == Decimal('411522630041152263004115226.00')
        assert sum(parts) == total


class TestScheduleParams:
    """Test timing parameter validation"""

    def test_fixed_interval(self):
        params = ScheduleParams(installment_count=4, interval_days=7)
        params.validate()
        assert params.interval() == 7

    def test_total_span_truncates(self):
        """31 days over 4 installments -> 7 days apart, 3 days of drift dropped"""
        params = ScheduleParams(installment_count=4, total_days=31)
        params.validate()
        assert params.interval() == 7

    def test_count_below_one_rejected(self):
        with pytest.raises(ValidationError, match=">= 1"):
            ScheduleParams(installment_count=0, interval_days=30).validate()

    def test_non_integer_count_rejected(self):
        with pytest.raises(ValidationError):
            ScheduleParams(installment_count=2.5, interval_days=30).validate()

    def test_timing_required(self):
        with pytest.raises(ValidationError, match="required"):
            ScheduleParams(installment_count=2).validate()

    def test_both_timings_rejected(self):
        with pytest.raises(ValidationError, match="not both"):
            ScheduleParams(installment_count=2, interval_days=10, total_days=20).validate()

    def test_span_shorter_than_count_rejected(self):
        with pytest.raises(ValidationError, match="at least one day"):
            ScheduleParams(installment_count=5, total_days=3).validate()

    def test_default_term_fills_missing_timing(self):
        params = ScheduleParams(installment_count=3).with_default_term(30)
        assert params.total_days == 30
        assert params.interval() == 10

        zero = ScheduleParams(installment_count=1, interval_days=0).with_default_term(45)
        assert zero.interval() == 45

    def test_default_term_keeps_given_timing(self):
        params = ScheduleParams(installment_count=2, interval_days=7)
        assert params.with_default_term(30) is params

    def test_final_due_date(self):
        params = ScheduleParams(installment_count=3, interval_days=10)
        assert final_due_date(params, START) == START + timedelta(days=30)


class TestGenerateSchedule:
    """Test full schedule generation"""

    def test_single_installment_scenario(self):
        """principal 1000 at 20% in one installment after 30 days"""
        schedule = generate_schedule("1000", "20", ScheduleParams(1, interval_days=30), START)

        assert len(schedule) == 1
        assert schedule[0].number == 1
        assert schedule[0].amount == Decimal('1200')
        assert schedule[0].due_date == START + timedelta(days=30)
        assert schedule[0].status == InstallmentStatus.PENDING

    def test_two_installment_scenario(self):
        """principal 1000 at 20% in two installments 30 days apart"""
        schedule = generate_schedule("1000", "20", ScheduleParams(2, interval_days=30), START)

        assert [i.amount for i in schedule] == [Decimal('600'), Decimal('600')]
        assert [i.due_date for i in schedule] == [
            START + timedelta(days=30),
            START + timedelta(days=60)
        ]

    def test_first_installment_due_after_one_interval(self):
        schedule = generate_schedule("500", "10", ScheduleParams(5, interval_days=7), START)
        assert schedule[0].due_date == START + timedelta(days=7)
        assert all(i.due_date > START for i in schedule)

    def test_numbers_contiguous_and_all_pending(self):
        schedule = generate_schedule("900", "15", ScheduleParams(6, total_days=60), START)

        assert [i.number for i in schedule] == [1, 2, 3, 4, 5, 6]
        assert all(i.status == InstallmentStatus.PENDING for i in schedule)

    @pytest.mark.parametrize("count", [1, 2, 3, 7, 12, 30])
    def test_amounts_sum_to_total_owing(self, count):
        _, total = calculate_totals("777.77", "22.5")
        schedule = generate_schedule("777.77", "22.5", ScheduleParams(count, interval_days=3), START)

        assert sum(i.amount for i in schedule) == total
        assert schedule[-1].due_date == final_due_date(ScheduleParams(count, interval_days=3), START)

    def test_invalid_principal_rejected(self):
        with pytest.raises(ValidationError):
            generate_schedule("0", "20", ScheduleParams(2, interval_days=30), START)


class TestRepaymentPlans:
    """Test the tagged repayment plan variant"""

    def test_installment_plan_lookup_and_totals(self):
        plan = InstallmentPlan(installments=[
            Installment(1, Decimal('600'), date(2024, 4, 1), InstallmentStatus.PAID),
            Installment(2, Decimal('600'), date(2024, 5, 1)),
        ])

        assert plan.get(2).amount == Decimal('600')
        assert plan.get(3) is None
        assert plan.paid_amount == Decimal('600')
        assert not plan.all_paid
        assert plan.last_due_date == date(2024, 5, 1)

    def test_stored_form(self):
        plan = InstallmentPlan(installments=[Installment(1, Decimal('10.50'), date(2024, 4, 1))])

        assert plan_to_dict(plan) == {
            "type": "installments",
            "installments": [
                {"number": 1, "amount": "10.50", "due_date": "2024-04-01", "status": "pending"}
            ]
        }
        assert plan_to_dict(SinglePayment()) == {"type": "single_payment"}
        assert plan_from_dict(plan_to_dict(plan)) == plan

    def test_missing_plan_reads_as_single_payment(self):
        assert plan_from_dict(None) == SinglePayment()

    def test_unknown_plan_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown repayment plan"):
            plan_from_dict({"type": "balloon"})


class TestQuoteLoan:
    """Test the pre-creation loan quote"""

    def test_quote(self):
        quote = quote_loan("1000", "20", 30)

        assert quote.interest_amount == Decimal('200')
        assert quote.total_to_pay == Decimal('1200')
        assert quote.daily_payment == Decimal('40')

    def test_zero_days_quoted_as_one(self):
        quote = quote_loan("100", "10", 0)
        assert quote.days == 1
        assert quote.daily_payment == Decimal('110')

    def test_negative_days_rejected(self):
        with pytest.raises(ValidationError):
            quote_loan("100", "10", -5)
