"""
Payment Processor Module

Applies payment events to a loan (one installment, or a full settlement) and
recomputes the loan's persisted status. Installments only ever move from
pending to paid, and a paid loan never goes back to active.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import copy
import logging

from .exceptions import NotFoundError
from .schedule import InstallmentPlan, InstallmentStatus, SinglePayment, plan_to_dict
from .status import LoanStatus
from .storage import StorageInterface


logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def paid_amount(loan) -> Decimal:
    """Amount already collected on a loan"""
    if loan.status == LoanStatus.PAID:
        return loan.total_owing
    if isinstance(loan.plan, InstallmentPlan):
        return loan.plan.paid_amount
    return ZERO


def remaining_balance(loan) -> Decimal:
    """Total owing minus what has been collected; zero once the loan is paid"""
    if loan.status == LoanStatus.PAID:
        return ZERO
    return loan.total_owing - paid_amount(loan)


class PaymentProcessor:
    """
    Read-modify-write of payment state on stored loans. The caller loads the
    loan; the processor writes the changed fields back and then updates the
    loan object, so a rejected write leaves the object as it was.
    """

    def __init__(self, storage: StorageInterface, table_name: str = "loans"):
        self.storage = storage
        self.table_name = table_name

    def pay_installment(self, loan, installment_number: int) -> bool:
        """
        Mark one installment paid.

        For a single-payment loan, installment 1 is the implicit payment of
        the full total owing and paying it settles the loan.

        Args:
            loan: Loan to update
            installment_number: 1-based installment number

        Returns:
            True if anything changed, False for a repeated payment

        Raises:
            NotFoundError: the number is not part of the loan's plan
        """
        if isinstance(loan.plan, SinglePayment):
            if installment_number != 1:
                raise NotFoundError(
                    f"Loan {loan.id} is a single-payment loan and has no installment {installment_number}"
                )
            if loan.status == LoanStatus.PAID:
                return False
            self._apply(loan, LoanStatus.PAID)
            logger.info("Loan %s single payment received, loan paid", loan.id)
            return True

        if loan.plan.get(installment_number) is None:
            raise NotFoundError(f"Loan {loan.id} has no installment {installment_number}")

        plan = copy.deepcopy(loan.plan)
        installment = plan.get(installment_number)
        if installment.is_paid:
            logger.debug("Loan %s installment %s already paid", loan.id, installment_number)
            return False

        installment.status = InstallmentStatus.PAID
        new_status = LoanStatus.PAID if plan.all_paid else LoanStatus.ACTIVE

        self._apply(loan, new_status, plan)
        logger.info(
            "Loan %s installment %s paid, loan %s",
            loan.id, installment_number, new_status.value
        )
        return True

    def settle_fully(self, loan) -> None:
        """
        Mark the loan paid and every installment paid in a single update.
        Callers are expected to have confirmed the settlement already.
        """
        plan = None
        if isinstance(loan.plan, InstallmentPlan):
            plan = copy.deepcopy(loan.plan)
            for installment in plan.installments:
                installment.status = InstallmentStatus.PAID

        self._apply(loan, LoanStatus.PAID, plan)
        logger.info("Loan %s settled in full", loan.id)

    def _apply(self, loan, status: LoanStatus, plan: Optional[InstallmentPlan] = None) -> None:
        now = datetime.now(timezone.utc)
        fields: Dict[str, Any] = {
            "status": status.value,
            "updated_at": now.isoformat()
        }
        if plan is not None:
            fields["plan"] = plan_to_dict(plan)

        self.storage.update_fields(self.table_name, loan.id, fields)

        loan.status = status
        loan.updated_at = now
        if plan is not None:
            loan.plan = plan
