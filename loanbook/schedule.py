"""
Installment Scheduler Module

Pure functions for the loan arithmetic: one-time interest, totals, and
equal-split installment schedules with fixed day spacing. Nothing in here
touches storage or reads the system clock; the start date is always passed in.
"""

from decimal import Decimal, ROUND_DOWN, localcontext
from datetime import date, timedelta
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
from enum import Enum

from .exceptions import ValidationError


HUNDRED = Decimal('100')


class InstallmentStatus(Enum):
    """Installment payment states"""
    PENDING = "pending"
    PAID = "paid"


@dataclass
class Installment:
    """One scheduled partial payment of a loan's total owing"""
    number: int
    amount: Decimal
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID


@dataclass(frozen=True)
class SinglePayment:
    """Repayment in one go: one implicit payment of total owing on the loan's due date"""
    kind = "single_payment"


@dataclass
class InstallmentPlan:
    """Repayment in numbered installments (1..N, contiguous)"""
    installments: List[Installment] = field(default_factory=list)
    kind = "installments"

    def get(self, number: int) -> Optional[Installment]:
        for installment in self.installments:
            if installment.number == number:
                return installment
        return None

    @property
    def all_paid(self) -> bool:
        return all(i.is_paid for i in self.installments)

    @property
    def paid_amount(self) -> Decimal:
        return sum((i.amount for i in self.installments if i.is_paid), Decimal('0'))

    @property
    def last_due_date(self) -> Optional[date]:
        if not self.installments:
            return None
        return max(i.due_date for i in self.installments)


RepaymentPlan = Union[SinglePayment, InstallmentPlan]


def plan_to_dict(plan: RepaymentPlan) -> Dict[str, Any]:
    """Serialize a repayment plan for storage"""
    if isinstance(plan, InstallmentPlan):
        return {
            "type": plan.kind,
            "installments": [
                {
                    "number": i.number,
                    "amount": str(i.amount),
                    "due_date": i.due_date.isoformat(),
                    "status": i.status.value
                }
                for i in plan.installments
            ]
        }
    if isinstance(plan, SinglePayment):
        return {"type": plan.kind}
    raise TypeError(f"Unknown repayment plan: {plan!r}")


def plan_from_dict(data: Optional[Dict[str, Any]]) -> RepaymentPlan:
    """Rebuild a repayment plan from its stored form"""
    if not data or data.get("type") == SinglePayment.kind:
        return SinglePayment()
    if data["type"] == InstallmentPlan.kind:
        return InstallmentPlan(installments=[
            Installment(
                number=int(item["number"]),
                amount=Decimal(item["amount"]),
                due_date=date.fromisoformat(item["due_date"]),
                status=InstallmentStatus(item["status"])
            )
            for item in data.get("installments", [])
        ])
    raise ValueError(f"Unknown repayment plan type: {data['type']!r}")


@dataclass
class ScheduleParams:
    """
    Timing parameters for a new loan.

    Either ``interval_days`` (days between installments) or ``total_days``
    (span divided evenly across installments, truncating) must be given;
    ``with_default_term`` fills in a missing one.
    """
    installment_count: int = 1
    interval_days: Optional[int] = None
    total_days: Optional[int] = None

    def validate(self) -> None:
        if not isinstance(self.installment_count, int) or self.installment_count < 1:
            raise ValidationError("Installment count must be an integer >= 1")
        if self.interval_days is None and self.total_days is None:
            raise ValidationError("Either interval_days or total_days is required")
        if self.interval_days is not None and self.total_days is not None:
            raise ValidationError("Give interval_days or total_days, not both")
        if self.interval() < 1:
            raise ValidationError(
                f"Schedule spacing must be at least one day "
                f"(total_days={self.total_days}, installments={self.installment_count})"
            )

    def with_default_term(self, days: int) -> "ScheduleParams":
        """
        Same count, with ``days`` as the total span when no term (or a zero
        term) was given
        """
        if self.interval_days or self.total_days:
            return self
        return ScheduleParams(installment_count=self.installment_count, total_days=days)

    def interval(self) -> int:
        """Days between consecutive installments"""
        if self.interval_days is not None:
            return self.interval_days
        # Remainder days are dropped, not redistributed
        return self.total_days // self.installment_count

    @property
    def is_installment_plan(self) -> bool:
        return self.installment_count > 1


@dataclass
class LoanQuote:
    """Preview of a loan's figures before it is registered"""
    principal: Decimal
    interest_rate: Decimal
    days: int
    interest_amount: Decimal
    total_to_pay: Decimal
    daily_payment: Decimal


def to_decimal(value, field_name: str) -> Decimal:
    """Coerce user input to Decimal, raising ValidationError when it is not a number"""
    if isinstance(value, Decimal):
        return value
    if value is None:
        raise ValidationError(f"{field_name} is required")
    try:
        return Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{field_name} must be a number, got {value!r}")


def calculate_totals(principal, interest_rate) -> Tuple[Decimal, Decimal]:
    """
    Compute (profit, total_owing) for a one-time interest charge.

    profit = principal * rate / 100, total_owing = principal + profit.

    Raises:
        ValidationError: principal <= 0 or rate < 0
    """
    principal = to_decimal(principal, "Principal")
    interest_rate = to_decimal(interest_rate, "Interest rate")

    if not principal.is_finite() or principal <= 0:
        raise ValidationError(f"Principal must be greater than zero, got {principal}")
    if not interest_rate.is_finite() or interest_rate < 0:
        raise ValidationError(f"Interest rate cannot be negative, got {interest_rate}")

    try:
        profit = principal * interest_rate / HUNDRED
        return profit, principal + profit
    except ArithmeticError:
        raise ValidationError(f"Principal {principal} at {interest_rate}% is out of range")


def quote_loan(principal, interest_rate, days: int) -> LoanQuote:
    """Interest, total and per-day payment for a prospective single-payment loan"""
    principal = to_decimal(principal, "Principal")
    interest_rate = to_decimal(interest_rate, "Interest rate")
    profit, total = calculate_totals(principal, interest_rate)

    if days is not None and days < 0:
        raise ValidationError(f"Days cannot be negative, got {days}")
    # A zero duration is quoted as a one-day loan
    duration = days or 1

    return LoanQuote(
        principal=principal,
        interest_rate=interest_rate,
        days=duration,
        interest_amount=profit,
        total_to_pay=total,
        daily_payment=total / Decimal(duration)
    )


def split_amount(total: Decimal, count: int, precision: int = 2) -> List[Decimal]:
    """
    Split total into count parts. All parts but the last are truncated to
    ``precision`` decimal places; the last part absorbs the remainder so the
    parts always sum exactly to total.
    """
    if count < 1:
        raise ValidationError("Installment count must be an integer >= 1")

    quantum = Decimal(1).scaleb(-precision)
    # Enough digits for every integer place of total plus the cents
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, total.adjusted() + precision + 2)
        share = (total / Decimal(count)).quantize(quantum, rounding=ROUND_DOWN)
        leading = [share] * (count - 1)
        return leading + [total - share * (count - 1)]


def generate_schedule(
    principal,
    interest_rate,
    params: ScheduleParams,
    start_date: date,
    precision: int = 2
) -> List[Installment]:
    """
    Build an ordered installment schedule.

    Installment i (1-based) is due ``start_date + interval * i``, so the first
    payment falls one full interval after the start. All installments start
    pending.

    Args:
        principal: Amount lent (> 0)
        interest_rate: One-time interest percent (>= 0)
        params: Installment count and spacing
        start_date: Loan start date (the caller's "today")
        precision: Decimal places for the per-installment amount

    Returns:
        Installments numbered 1..count
    """
    params.validate()
    _, total_owing = calculate_totals(principal, interest_rate)

    interval = params.interval()
    amounts = split_amount(total_owing, params.installment_count, precision)

    return [
        Installment(
            number=number,
            amount=amount,
            due_date=start_date + timedelta(days=interval * number),
            status=InstallmentStatus.PENDING
        )
        for number, amount in enumerate(amounts, start=1)
    ]


def final_due_date(params: ScheduleParams, start_date: date) -> date:
    """Due date of the last scheduled payment"""
    params.validate()
    return start_date + timedelta(days=params.interval() * params.installment_count)
