"""
Loan Module

Handles loan creation, repayment plan generation, rescheduling, payment
bookkeeping and deletion. A loan and its installments are stored together as
one record and are created, updated and deleted as a unit.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Any
import copy
import logging
import uuid

from .clients import Client, ClientRegistry
from .config import get_config
from .exceptions import NotFoundError, ValidationError
from .logging_config import log_action
from .payments import PaymentProcessor, paid_amount, remaining_balance
from .schedule import (
    Installment, InstallmentPlan, InstallmentStatus, RepaymentPlan, ScheduleParams,
    SinglePayment, calculate_totals, final_due_date, generate_schedule,
    plan_from_dict, plan_to_dict, to_decimal
)
from .status import DisplayStatus, LoanStatus, display_status
from .storage import StorageInterface, StorageRecord


logger = logging.getLogger(__name__)


@dataclass
class Loan(StorageRecord):
    """A cash loan with its repayment plan and persisted status"""
    client_id: Optional[str]            # Weak reference, the client may be gone
    client_name: str                    # Snapshot taken at creation
    amount: Decimal                     # Principal
    interest_rate: Decimal              # Percent, e.g. Decimal('20') for 20%
    total_owing: Decimal
    profit: Decimal
    start_date: date
    due_date: date                      # Last installment's due date for plans
    plan: RepaymentPlan = field(default_factory=SinglePayment)
    status: LoanStatus = LoanStatus.ACTIVE
    notes: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == LoanStatus.PAID

    @property
    def paid_amount(self) -> Decimal:
        return paid_amount(self)

    @property
    def remaining_balance(self) -> Decimal:
        return remaining_balance(self)

    def scheduled_payments(self) -> List[Installment]:
        """
        The payments this loan expects. A single-payment loan yields one
        implicit installment for the full total owing.
        """
        if isinstance(self.plan, InstallmentPlan):
            return list(self.plan.installments)
        return [Installment(
            number=1,
            amount=self.total_owing,
            due_date=self.due_date,
            status=InstallmentStatus.PAID if self.is_paid else InstallmentStatus.PENDING
        )]

    def display_status(self, today: date) -> DisplayStatus:
        return display_status(self, today)


class LoanLedger:
    """
    Manages the loan lifecycle from creation to deletion
    """

    def __init__(
        self,
        storage: StorageInterface,
        client_registry: ClientRegistry,
        precision: Optional[int] = None,
        default_term_days: Optional[int] = None
    ):
        config = get_config()
        self.storage = storage
        self.client_registry = client_registry
        self.precision = precision if precision is not None else config.amount_precision
        self.default_term_days = default_term_days or config.default_term_days

        self.loans_table = "loans"
        self.payments = PaymentProcessor(storage, self.loans_table)

    def create_loan(
        self,
        client_id: Optional[str],
        principal,
        interest_rate,
        schedule: ScheduleParams,
        notes: Optional[str] = None,
        today: Optional[date] = None
    ) -> Loan:
        """
        Register a new loan for a client.

        Args:
            client_id: Borrower client ID
            principal: Amount lent (> 0)
            interest_rate: One-time interest percent (>= 0)
            schedule: Installment count and spacing; one installment means a
                single-payment loan. With no term (or a zero term) the
                default term is spread over the installments.
            notes: Optional free text
            today: Start date, defaults to the current date

        Returns:
            Created Loan object

        Raises:
            ValidationError: invalid amounts, schedule, or no client selected
            NotFoundError: the client does not exist
        """
        try:
            if not client_id:
                raise ValidationError("A client must be selected")

            principal = to_decimal(principal, "Principal")
            interest_rate = to_decimal(interest_rate, "Interest rate")
            profit, total_owing = calculate_totals(principal, interest_rate)
            schedule = schedule.with_default_term(self.default_term_days)
            schedule.validate()
        except ValidationError as e:
            logger.warning("Loan creation rejected: %s", e)
            raise

        client = self.client_registry.require_client(client_id)
        start_date = today or date.today()

        plan: RepaymentPlan
        if schedule.is_installment_plan:
            plan = InstallmentPlan(installments=generate_schedule(
                principal, interest_rate, schedule, start_date, self.precision
            ))
            due_date = plan.last_due_date
        else:
            plan = SinglePayment()
            due_date = final_due_date(schedule, start_date)

        now = datetime.now(timezone.utc)
        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            client_id=client.id,
            client_name=client.name,
            amount=principal,
            interest_rate=interest_rate,
            total_owing=total_owing,
            profit=profit,
            start_date=start_date,
            due_date=due_date,
            plan=plan,
            status=LoanStatus.ACTIVE,
            notes=notes or None
        )

        self._save_loan(loan)

        log_action(
            logger, "info", f"Loan {loan.id} created for client {client.id}",
            action="loan.create", resource=loan.id,
            extra={
                "amount": str(loan.amount),
                "interest_rate": str(loan.interest_rate),
                "total_owing": str(loan.total_owing),
                "installments": schedule.installment_count,
                "due_date": loan.due_date.isoformat()
            }
        )

        return loan

    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID"""
        loan_dict = self.storage.load(self.loans_table, loan_id)
        if loan_dict:
            return self._loan_from_dict(loan_dict)
        return None

    def require_loan(self, loan_id: str) -> Loan:
        """Get loan by ID, raising NotFoundError if absent"""
        loan = self.get_loan(loan_id)
        if not loan:
            raise NotFoundError(f"Loan {loan_id} not found")
        return loan

    def list_loans(self) -> List[Loan]:
        """All loans, newest first. Always re-reads the store."""
        loans = [self._loan_from_dict(data) for data in self.storage.load_all(self.loans_table)]
        return sorted(loans, key=lambda loan: loan.created_at, reverse=True)

    def list_client_loans(self, client_id: str) -> List[Loan]:
        """Loans referencing a client id, whether or not the client still exists"""
        return [loan for loan in self.list_loans() if loan.client_id == client_id]

    def list_loans_by_display_status(
        self,
        statuses: Iterable[DisplayStatus],
        today: date
    ) -> List[Loan]:
        """Loans whose derived status (as of today) is one of statuses"""
        wanted = set(statuses)
        return [loan for loan in self.list_loans() if loan.display_status(today) in wanted]

    def get_loan_client(self, loan: Loan) -> Optional[Client]:
        """The loan's client if it still exists, else None"""
        return self.client_registry.get_client(loan.client_id)

    def update_loan_schedule(
        self,
        loan_id: str,
        due_date: Optional[date] = None,
        installment_due_dates: Optional[Dict[int, date]] = None
    ) -> Loan:
        """
        Move due dates without touching amounts or statuses.

        Single-payment loans take ``due_date``. Installment loans take
        ``installment_due_dates`` (installment number -> new date); the loan's
        due date becomes the latest installment due date.

        Raises:
            ValidationError: wrong argument for the loan's plan
            NotFoundError: unknown loan or installment number
        """
        if (due_date is None) == (not installment_due_dates):
            raise self._rejected("Give either a new due date or new installment due dates")

        loan = self.require_loan(loan_id)
        fields: Dict[str, Any] = {}

        if isinstance(loan.plan, InstallmentPlan):
            if installment_due_dates is None:
                raise self._rejected(f"Loan {loan_id} has installments; reschedule them by number")
            plan = copy.deepcopy(loan.plan)
            for number, new_date in installment_due_dates.items():
                installment = plan.get(number)
                if installment is None:
                    raise NotFoundError(f"Loan {loan_id} has no installment {number}")
                installment.due_date = new_date
            new_due_date = plan.last_due_date
            fields["plan"] = plan_to_dict(plan)
        else:
            if due_date is None:
                raise self._rejected(f"Loan {loan_id} is a single-payment loan; give a new due date")
            plan = loan.plan
            new_due_date = due_date

        now = datetime.now(timezone.utc)
        fields["due_date"] = new_due_date.isoformat()
        fields["updated_at"] = now.isoformat()
        self.storage.update_fields(self.loans_table, loan_id, fields)

        old_due_date = loan.due_date
        loan.plan = plan
        loan.due_date = new_due_date
        loan.updated_at = now

        log_action(
            logger, "info", f"Loan {loan_id} rescheduled",
            action="loan.reschedule", resource=loan_id,
            extra={
                "old_due_date": old_due_date.isoformat(),
                "new_due_date": new_due_date.isoformat()
            }
        )
        return loan

    def update_loan_notes(self, loan_id: str, notes: Optional[str]) -> Loan:
        """Replace the loan's free-text notes"""
        loan = self.require_loan(loan_id)
        now = datetime.now(timezone.utc)
        self.storage.update_fields(self.loans_table, loan_id, {
            "notes": notes or None,
            "updated_at": now.isoformat()
        })
        loan.notes = notes or None
        loan.updated_at = now

        log_action(logger, "info", f"Loan {loan_id} notes updated", action="loan.notes", resource=loan_id)
        return loan

    def pay_installment(self, loan_id: str, installment_number: int) -> Loan:
        """
        Record payment of one installment. Paying an already paid installment
        has no effect.
        """
        loan = self.require_loan(loan_id)
        if self.payments.pay_installment(loan, installment_number):
            log_action(
                logger, "info", f"Loan {loan_id} installment {installment_number} paid",
                action="loan.pay_installment", resource=loan_id,
                extra={"installment": installment_number, "status": loan.status.value}
            )
        return loan

    def settle_loan_fully(self, loan_id: str) -> Loan:
        """Mark the loan and all its installments paid at once"""
        loan = self.require_loan(loan_id)
        self.payments.settle_fully(loan)
        log_action(logger, "info", f"Loan {loan_id} settled", action="loan.settle", resource=loan_id)
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """Permanently remove a loan and its installments. There is no undo."""
        if not self.storage.delete(self.loans_table, loan_id):
            raise NotFoundError(f"Loan {loan_id} not found")
        log_action(logger, "info", f"Loan {loan_id} deleted", action="loan.delete", resource=loan_id)

    def _rejected(self, message: str) -> ValidationError:
        logger.warning("Loan update rejected: %s", message)
        return ValidationError(message)

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, self._loan_to_dict(loan))

    def _loan_to_dict(self, loan: Loan) -> Dict[str, Any]:
        return {
            "id": loan.id,
            "created_at": loan.created_at.isoformat(),
            "updated_at": loan.updated_at.isoformat(),
            "client_id": loan.client_id,
            "client_name": loan.client_name,
            "amount": str(loan.amount),
            "interest_rate": str(loan.interest_rate),
            "total_owing": str(loan.total_owing),
            "profit": str(loan.profit),
            "start_date": loan.start_date.isoformat(),
            "due_date": loan.due_date.isoformat(),
            "plan": plan_to_dict(loan.plan),
            "status": loan.status.value,
            "notes": loan.notes
        }

    def _loan_from_dict(self, data: Dict[str, Any]) -> Loan:
        return Loan(
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            client_id=data.get("client_id"),
            client_name=data["client_name"],
            amount=Decimal(data["amount"]),
            interest_rate=Decimal(data["interest_rate"]),
            total_owing=Decimal(data["total_owing"]),
            profit=Decimal(data["profit"]),
            start_date=date.fromisoformat(data["start_date"]),
            due_date=date.fromisoformat(data["due_date"]),
            plan=plan_from_dict(data.get("plan")),
            status=LoanStatus(data["status"]),
            notes=data.get("notes")
        )
