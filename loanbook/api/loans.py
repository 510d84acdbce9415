"""
Loan endpoints
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, Query, status

from .system import LoanbookSystem, get_system
from .schemas import (
    CreateLoanRequest,
    RescheduleLoanRequest,
    UpdateLoanNotesRequest,
    loan_to_response,
    quote_to_response
)
from ..config import get_config
from ..schedule import quote_loan
from ..status import DisplayStatus


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_loan(
    request: CreateLoanRequest,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Register a new loan"""
    loan = system.loan_ledger.create_loan(
        client_id=request.client_id,
        principal=request.amount,
        interest_rate=request.interest_rate,
        schedule=request.to_schedule(),
        notes=request.notes,
        today=today
    )
    return {
        "loan_id": loan.id,
        "total_owing": str(loan.total_owing),
        "due_date": loan.due_date.isoformat(),
        "message": "Loan created successfully"
    }


@router.get("")
async def list_loans(
    display_status: Optional[List[DisplayStatus]] = Query(None),
    client_id: Optional[str] = Query(None),
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """List loans newest first, optionally filtered by client or derived status"""
    as_of = today or date.today()
    if display_status:
        loans = system.loan_ledger.list_loans_by_display_status(display_status, as_of)
    else:
        loans = system.loan_ledger.list_loans()
    if client_id:
        loans = [loan for loan in loans if loan.client_id == client_id]
    return {"loans": [loan_to_response(loan, as_of) for loan in loans]}


@router.get("/quote")
async def get_quote(
    amount: str,
    interest_rate: Optional[str] = None,
    days: Optional[int] = None,
):
    """Preview interest, total and daily payment without creating a loan"""
    config = get_config()
    quote = quote_loan(
        amount,
        interest_rate if interest_rate is not None else config.default_interest_rate,
        days if days is not None else config.default_term_days
    )
    return quote_to_response(quote)


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Get loan details"""
    loan = system.loan_ledger.get_loan(loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan_to_response(loan, today or date.today())


@router.put("/{loan_id}/schedule")
async def reschedule_loan(
    loan_id: str,
    request: RescheduleLoanRequest,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Move due dates of a loan or of its installments"""
    loan = system.loan_ledger.update_loan_schedule(
        loan_id,
        due_date=request.due_date,
        installment_due_dates=request.installment_due_dates()
    )
    return loan_to_response(loan, today or date.today())


@router.put("/{loan_id}/notes")
async def update_loan_notes(
    loan_id: str,
    request: UpdateLoanNotesRequest,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Replace a loan's notes"""
    loan = system.loan_ledger.update_loan_notes(loan_id, request.notes)
    return loan_to_response(loan, today or date.today())


@router.post("/{loan_id}/installments/{installment_number}/pay")
async def pay_installment(
    loan_id: str,
    installment_number: int,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Mark one installment paid"""
    loan = system.loan_ledger.pay_installment(loan_id, installment_number)
    return loan_to_response(loan, today or date.today())


@router.post("/{loan_id}/settle")
async def settle_loan(
    loan_id: str,
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Mark the loan and all installments paid"""
    loan = system.loan_ledger.settle_loan_fully(loan_id)
    return loan_to_response(loan, today or date.today())


@router.delete("/{loan_id}")
async def delete_loan(
    loan_id: str,
    system: LoanbookSystem = Depends(get_system)
):
    """Permanently delete a loan"""
    system.loan_ledger.delete_loan(loan_id)
    return {"message": "Loan deleted successfully"}
