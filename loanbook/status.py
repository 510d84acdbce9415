"""
Status Evaluator Module

Persisted loan state is only active/paid. Whether an unpaid loan is open,
due today or late is derived on every read from its due date and an explicit
"today"; lateness is never stored.
"""

from datetime import date, datetime
from enum import Enum
from typing import Union


class LoanStatus(Enum):
    """Persisted loan states"""
    ACTIVE = "active"
    PAID = "paid"


class DisplayStatus(Enum):
    """Read-time loan states"""
    OPEN = "open"               # Not yet due
    DUE_TODAY = "due_today"     # Due date is today
    LATE = "late"               # Due date has passed
    PAID = "paid"

    @property
    def is_collectable(self) -> bool:
        """Due today or overdue"""
        return self in (DisplayStatus.DUE_TODAY, DisplayStatus.LATE)


def _calendar_date(value: Union[date, datetime]) -> date:
    # datetime is a date subclass; drop the time part to compare whole days
    if isinstance(value, datetime):
        return value.date()
    return value


def evaluate_status(status: LoanStatus, due_date: Union[date, datetime], today: Union[date, datetime]) -> DisplayStatus:
    """
    Derive the display status.

    Args:
        status: Persisted loan status
        due_date: Loan due date (the last installment's due date for plans)
        today: The caller's current date

    Returns:
        PAID for paid loans, otherwise LATE / DUE_TODAY / OPEN by comparing
        calendar days
    """
    if status == LoanStatus.PAID:
        return DisplayStatus.PAID

    due = _calendar_date(due_date)
    current = _calendar_date(today)

    if current > due:
        return DisplayStatus.LATE
    if current == due:
        return DisplayStatus.DUE_TODAY
    return DisplayStatus.OPEN


def display_status(loan, today: Union[date, datetime]) -> DisplayStatus:
    """evaluate_status for anything with ``status`` and ``due_date`` attributes"""
    return evaluate_status(loan.status, loan.due_date, today)
