"""
Pydantic schemas for API requests, and response builders
"""

from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..clients import Client
from ..loans import Loan
from ..reporting import ClientSummary, CollectionsView, HistorySummary, PortfolioSummary
from ..schedule import Installment, LoanQuote, ScheduleParams


# Client schemas
class CreateClientRequest(BaseModel):
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None


class UpdateClientRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


# Loan schemas
class CreateLoanRequest(BaseModel):
    client_id: Optional[str] = None
    amount: str = Field(..., description="Principal as decimal string")
    interest_rate: str = Field(..., description="One-time interest percent as decimal string")
    installment_count: int = 1
    interval_days: Optional[int] = Field(None, description="Days between installments")
    total_days: Optional[int] = Field(None, description="Total span divided evenly across installments")
    notes: Optional[str] = None

    def to_schedule(self) -> ScheduleParams:
        return ScheduleParams(
            installment_count=self.installment_count,
            interval_days=self.interval_days,
            total_days=self.total_days
        )


class InstallmentDueDateModel(BaseModel):
    number: int
    due_date: date


class RescheduleLoanRequest(BaseModel):
    due_date: Optional[date] = None
    installments: Optional[List[InstallmentDueDateModel]] = None

    def installment_due_dates(self) -> Optional[Dict[int, date]]:
        if not self.installments:
            return None
        return {item.number: item.due_date for item in self.installments}


class UpdateLoanNotesRequest(BaseModel):
    notes: Optional[str] = None


# Response builders
def client_to_response(client: Client) -> Dict[str, Any]:
    return {
        "id": client.id,
        "name": client.name,
        "phone": client.phone,
        "notes": client.notes,
        "created_at": client.created_at.isoformat()
    }


def installment_to_response(installment: Installment) -> Dict[str, Any]:
    return {
        "number": installment.number,
        "amount": str(installment.amount),
        "due_date": installment.due_date.isoformat(),
        "status": installment.status.value
    }


def loan_to_response(loan: Loan, today: date) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "client_id": loan.client_id,
        "client_name": loan.client_name,
        "amount": str(loan.amount),
        "interest_rate": str(loan.interest_rate),
        "total_owing": str(loan.total_owing),
        "profit": str(loan.profit),
        "start_date": loan.start_date.isoformat(),
        "due_date": loan.due_date.isoformat(),
        "plan": loan.plan.kind,
        "installments": [installment_to_response(i) for i in loan.scheduled_payments()],
        "status": loan.status.value,
        "display_status": loan.display_status(today).value,
        "remaining_balance": str(loan.remaining_balance),
        "notes": loan.notes,
        "created_at": loan.created_at.isoformat()
    }


def quote_to_response(quote: LoanQuote) -> Dict[str, Any]:
    return {
        "amount": str(quote.principal),
        "interest_rate": str(quote.interest_rate),
        "days": quote.days,
        "interest_amount": str(quote.interest_amount),
        "total_to_pay": str(quote.total_to_pay),
        "daily_payment": str(quote.daily_payment)
    }


def portfolio_to_response(summary: PortfolioSummary) -> Dict[str, Any]:
    return {
        "as_of": summary.as_of.isoformat(),
        "total_lent": str(summary.total_lent),
        "total_receivable": str(summary.total_receivable),
        "gross_receivable": str(summary.gross_receivable),
        "total_profit": str(summary.total_profit),
        "active_loans_count": summary.active_loans_count,
        "loans_due_today_count": summary.loans_due_today_count,
        "late_loans_count": summary.late_loans_count
    }


def client_summary_to_response(summary: ClientSummary, today: date) -> Dict[str, Any]:
    return {
        "client_id": summary.client_id,
        "client": client_to_response(summary.client) if summary.client else None,
        "active_count": summary.active_count,
        "paid_count": summary.paid_count,
        "outstanding_debt": str(summary.outstanding_debt),
        "loans": [loan_to_response(loan, today) for loan in summary.loans]
    }


def collections_to_response(view: CollectionsView) -> Dict[str, Any]:
    return {
        "as_of": view.as_of.isoformat(),
        "due_today_or_late": [loan_to_response(loan, view.as_of) for loan in view.due_today_or_late],
        "upcoming": [loan_to_response(loan, view.as_of) for loan in view.upcoming],
        "total_to_collect_today": str(view.total_to_collect_today)
    }


def history_to_response(summary: HistorySummary, today: date) -> Dict[str, Any]:
    return {
        "paid_loans": [loan_to_response(loan, today) for loan in summary.paid_loans],
        "realized_profit": str(summary.realized_profit),
        "volume_moved": str(summary.volume_moved)
    }
