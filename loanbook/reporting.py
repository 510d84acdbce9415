"""
Reporting Module

Portfolio-level statistics derived from the loan ledger's current records.
Nothing here is stored; every report re-reads the ledger and classifies loans
with the same status evaluation used everywhere else.

Receivables are remaining-balance based throughout: an active loan contributes
its total owing minus the installments already paid, both at portfolio level
and per client.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field
from typing import List, Optional

from .clients import Client, ClientRegistry
from .loans import Loan, LoanLedger
from .status import DisplayStatus, LoanStatus


ZERO = Decimal('0')


@dataclass
class PortfolioSummary:
    """Dashboard figures for the whole portfolio"""
    as_of: date
    total_lent: Decimal                 # Sum of principal, all loans
    total_receivable: Decimal           # Remaining balance of active loans
    gross_receivable: Decimal           # Total owing of active loans, ignoring paid installments
    total_profit: Decimal               # Sum of profit, all loans regardless of status
    active_loans_count: int
    loans_due_today_count: int          # Active loans due today or already late
    late_loans_count: int


@dataclass
class ClientSummary:
    """One client's standing"""
    client_id: str
    client: Optional[Client]
    active_count: int
    paid_count: int
    outstanding_debt: Decimal
    loans: List[Loan] = field(default_factory=list)


@dataclass
class CollectionsView:
    """Active loans split by whether they are collectable today"""
    as_of: date
    due_today_or_late: List[Loan] = field(default_factory=list)
    upcoming: List[Loan] = field(default_factory=list)
    total_to_collect_today: Decimal = ZERO


@dataclass
class HistorySummary:
    """Closed (paid) loans and what they realised"""
    paid_loans: List[Loan] = field(default_factory=list)
    realized_profit: Decimal = ZERO
    volume_moved: Decimal = ZERO


def _sum(values) -> Decimal:
    return sum(values, ZERO)


class ReportingEngine:
    """
    Read-only aggregation over the loan ledger
    """

    def __init__(self, loan_ledger: LoanLedger, client_registry: ClientRegistry):
        self.loan_ledger = loan_ledger
        self.client_registry = client_registry

    def portfolio_summary(self, today: date) -> PortfolioSummary:
        """
        Key portfolio figures as of today.

        loans_due_today_count counts every active loan whose due date is on or
        before today, so late loans are included.
        """
        loans = self.loan_ledger.list_loans()
        active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]
        statuses = [loan.display_status(today) for loan in active]

        return PortfolioSummary(
            as_of=today,
            total_lent=_sum(loan.amount for loan in loans),
            total_receivable=_sum(loan.remaining_balance for loan in active),
            gross_receivable=_sum(loan.total_owing for loan in active),
            total_profit=_sum(loan.profit for loan in loans),
            active_loans_count=len(active),
            loans_due_today_count=sum(1 for s in statuses if s.is_collectable),
            late_loans_count=sum(1 for s in statuses if s == DisplayStatus.LATE)
        )

    def client_summary(self, client_id: str) -> ClientSummary:
        """
        Counts and outstanding debt for one client id. Works for deleted
        clients too; ``client`` is then None.
        """
        loans = self.loan_ledger.list_client_loans(client_id)
        active = [loan for loan in loans if loan.status == LoanStatus.ACTIVE]

        return ClientSummary(
            client_id=client_id,
            client=self.client_registry.get_client(client_id),
            active_count=len(active),
            paid_count=sum(1 for loan in loans if loan.status == LoanStatus.PAID),
            outstanding_debt=_sum(loan.remaining_balance for loan in active),
            loans=loans
        )

    def collections_view(self, today: date) -> CollectionsView:
        """Active loans due today or late, the rest of the active book, and the amount to collect"""
        view = CollectionsView(as_of=today)

        for loan in self.loan_ledger.list_loans():
            if loan.status != LoanStatus.ACTIVE:
                continue
            if loan.display_status(today).is_collectable:
                view.due_today_or_late.append(loan)
            else:
                view.upcoming.append(loan)

        view.total_to_collect_today = _sum(loan.remaining_balance for loan in view.due_today_or_late)
        return view

    def history_summary(self) -> HistorySummary:
        """Paid loans with realised profit and volume moved"""
        paid = [loan for loan in self.loan_ledger.list_loans() if loan.status == LoanStatus.PAID]
        return HistorySummary(
            paid_loans=paid,
            realized_profit=_sum(loan.profit for loan in paid),
            volume_moved=_sum(loan.total_owing for loan in paid)
        )
