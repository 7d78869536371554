"""Owner payment commit and settlement service.

Provides methods for:
- Committing a calculated payment while locking the attendance days and
  maintenance entries it consumes (all or nothing)
- Recording transactions against a payment and deriving its status
- Listing payments, outstanding balances and flagging overdue payments

Payments are immutable once created: there is no edit or delete path.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetledger.models import (
    Assignment,
    AttendanceStatus,
    Payment,
    PaymentTransaction,
    SettlementStatus,
    Vehicle,
)
from fleetledger.services.attendance_service import AttendanceLedger
from fleetledger.services.audit_service import AuditService
from fleetledger.services.errors import (
    BillingError,
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from fleetledger.services.maintenance_service import MaintenanceLedger
from fleetledger.services.money import round_cents, round_whole
from fleetledger.services.owner_payment_service import PaymentDraft
from fleetledger.services.parsers import parse_decimal, parse_iso_date
from fleetledger.services.retry import with_retry

logger = logging.getLogger(__name__)

ATTENDANCE_LOCK_MESSAGE = (
    "Some attendance days have already been marked as paid. "
    "Recalculate the payment before creating it."
)

OPEN_STATUSES = (
    SettlementStatus.PENDING.value,
    SettlementStatus.PARTIAL.value,
    SettlementStatus.OVERDUE.value,
)


def settlement_status(total_paid: Decimal, amount: Decimal) -> SettlementStatus:
    """Derive settlement status from the sum received versus the amount due."""
    if total_paid >= amount and total_paid > 0:
        return SettlementStatus.PAID
    if total_paid > 0:
        return SettlementStatus.PARTIAL
    return SettlementStatus.PENDING


class PaymentService:
    """Owner payment operations over one database session."""

    def __init__(self, db: Session):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db
        self.attendance = AttendanceLedger(db)
        self.maintenance = MaintenanceLedger(db)

    def create_payment(
        self,
        draft: PaymentDraft,
        attendance_dates: Iterable[date | str] | None = None,
        maintenance_record_ids: Iterable[int] | None = None,
    ) -> Payment:
        """Persist a payment and lock what it pays for, atomically.

        Steps:
        1. Validate period, assignment and that something is being paid
        2. Check total_days / maintenance_count against the distinct dates / IDs
        3. Insert the payment (amount rounded to a whole unit, owner = the
           vehicle's current owner)
        4. Lock exactly the given attendance dates; any already-paid date aborts
        5. Lock all remaining present attendance inside the period
        6. Lock the maintenance IDs with the same all-or-nothing guard

        Any failure rolls the whole transaction back.

        Args:
            draft: Payment values, usually from PaymentCalculation.to_payment_draft
            attendance_dates: Unpaid dates reported by the calculation
            maintenance_record_ids: Unpaid maintenance IDs reported by the calculation

        Returns:
            Created Payment

        Raises:
            InvalidInputError: Missing period, nothing to pay, count mismatch
            NotFoundError: Assignment does not exist
            ConflictError: Dates or maintenance already locked by another payment
        """
        try:
            payment = self._commit_payment(draft, attendance_dates, maintenance_record_ids)
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning(
                "Payment for assignment %s rejected: %s", draft.assignment_id, e.message
            )
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Error creating payment for assignment %s: %s", draft.assignment_id, e, exc_info=True)
            raise

        self.db.refresh(payment)
        logger.info(
            "Created payment %d for assignment %d: amount=%s days=%d maintenance=%d",
            payment.id,
            payment.assignment_id,
            payment.amount,
            payment.total_days,
            payment.maintenance_count,
        )
        return payment

    def _commit_payment(
        self,
        draft: PaymentDraft,
        attendance_dates: Iterable[date | str] | None,
        maintenance_record_ids: Iterable[int] | None,
    ) -> Payment:
        if not draft.period_start or not draft.period_end:
            raise InvalidInputError("Payment period start and end dates are required.")
        period_start = parse_iso_date(draft.period_start, "period start")
        period_end = parse_iso_date(draft.period_end, "period end")

        unique_dates = sorted({parse_iso_date(d, "attendance date") for d in attendance_dates or []})
        unique_ids = sorted(set(maintenance_record_ids or []))

        assignment = self.db.get(Assignment, draft.assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        vehicle = self.db.get(Vehicle, assignment.vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")

        if not unique_dates and not unique_ids:
            raise InvalidInputError(
                "No attendance or maintenance records were provided for this payment."
            )
        if (draft.total_days or 0) != len(unique_dates):
            raise InvalidInputError(
                "The total days value does not match the number of attendance records "
                "selected for payment."
            )
        if (draft.maintenance_count or 0) != len(unique_ids):
            raise InvalidInputError(
                "The maintenance count does not match the number of maintenance records "
                "selected for payment."
            )

        amount = round_whole(parse_decimal(draft.amount, "payment amount"))
        payment = Payment(
            assignment_id=assignment.id,
            owner_id=vehicle.owner_id,
            amount=amount,
            period_start=period_start,
            period_end=period_end,
            attendance_total=round_cents(parse_decimal(draft.attendance_total, "attendance total")),
            deduction_total=round_cents(parse_decimal(draft.deduction_total, "deduction total")),
            total_days=len(unique_dates),
            maintenance_count=len(unique_ids),
            due_date=parse_iso_date(draft.due_date, "due date"),
            invoice_number=draft.invoice_number,
            notes=draft.notes,
            status=SettlementStatus.PENDING.value,
        )
        self.db.add(payment)
        self.db.flush()

        if unique_dates:
            flipped = self.attendance.lock(
                assignment.vehicle_id,
                assignment.project_id,
                dates=unique_dates,
            )
            if flipped != len(unique_dates):
                raise ConflictError(ATTENDANCE_LOCK_MESSAGE)

        # Close the period for any present day recorded after calculation.
        self.attendance.lock(
            assignment.vehicle_id,
            assignment.project_id,
            start_date=period_start,
            end_date=period_end,
            status=AttendanceStatus.PRESENT,
        )

        if unique_ids:
            self.maintenance.lock(unique_ids, vehicle_id=assignment.vehicle_id)

        AuditService.log(
            self.db,
            entity_type="payment",
            entity_id=payment.id,
            action="create",
            changes={
                "amount": str(amount),
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "total_days": len(unique_dates),
                "maintenance_record_ids": unique_ids,
            },
        )
        return payment

    def create_payment_transaction(
        self,
        payment_id: int,
        amount: Decimal | int | float | str,
        transaction_date: date | str | None = None,
        method: str = "cash",
        reference_number: str | None = None,
        notes: str | None = None,
        recorded_by: str | None = None,
    ) -> PaymentTransaction:
        """Record money paid to the owner and recompute the payment status.

        Returns:
            Created PaymentTransaction

        Raises:
            InvalidInputError: Amount is not positive
            NotFoundError: Payment does not exist
        """
        value = round_cents(parse_decimal(amount, "transaction amount"))
        if value <= 0:
            raise InvalidInputError("Transaction amount must be greater than zero")

        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")

        day = parse_iso_date(transaction_date, "transaction date") if transaction_date else date.today()

        try:
            transaction = PaymentTransaction(
                payment_id=payment.id,
                amount=value,
                method=method,
                reference_number=reference_number,
                notes=notes,
                recorded_by=recorded_by,
                transaction_date=day,
            )
            self.db.add(transaction)
            self.db.flush()

            total_paid = self._total_paid(payment.id)
            status = settlement_status(total_paid, Decimal(payment.amount))
            payment.status = status.value
            payment.paid_date = day if status == SettlementStatus.PAID else None

            AuditService.log(
                self.db,
                entity_type="payment",
                entity_id=payment.id,
                action="transaction",
                changes={"amount": str(transaction.amount), "total_paid": str(total_paid), "status": status.value},
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("Error recording transaction for payment %d: %s", payment_id, e, exc_info=True)
            raise

        self.db.refresh(transaction)
        logger.info(
            "Recorded transaction %d on payment %d: amount=%s status=%s",
            transaction.id,
            payment_id,
            transaction.amount,
            payment.status,
        )
        return transaction

    def update_payment(self, payment_id: int, **changes) -> Payment:
        """Payments are immutable.

        Raises:
            InvalidStateError: Always (HTTP 405)
        """
        raise InvalidStateError("Payments cannot be modified after they are created.", 405)

    def delete_payment(self, payment_id: int) -> None:
        """Payments are never deleted.

        Raises:
            InvalidStateError: Always (HTTP 405)
        """
        raise InvalidStateError("Payments cannot be deleted once created.", 405)

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment

    def get_transactions(self, payment_id: int) -> list[PaymentTransaction]:
        return (
            self.db.query(PaymentTransaction)
            .filter_by(payment_id=payment_id)
            .order_by(PaymentTransaction.transaction_date, PaymentTransaction.id)
            .all()
        )

    def list_payments(self, owner_id: int | None = None) -> list[Payment]:
        """List payments, newest due date first, optionally for one owner."""
        query = self.db.query(Payment)
        if owner_id is not None:
            query = query.filter(Payment.owner_id == owner_id)
        return with_retry(query.order_by(Payment.due_date.desc(), Payment.id.desc()).all)

    def get_payments_by_assignment(self, assignment_id: int) -> list[Payment]:
        query = (
            self.db.query(Payment)
            .filter(Payment.assignment_id == assignment_id)
            .order_by(Payment.period_start)
        )
        return with_retry(query.all)

    def get_outstanding_payments(
        self, as_of: date | None = None, owner_id: int | None = None
    ) -> list[Payment]:
        """Unsettled payments due on or before as_of (default: today)."""
        cutoff = as_of or date.today()
        query = self.db.query(Payment).filter(
            Payment.status.in_(OPEN_STATUSES),
            Payment.due_date <= cutoff,
        )
        if owner_id is not None:
            query = query.filter(Payment.owner_id == owner_id)
        return with_retry(query.order_by(Payment.due_date).all)

    def mark_overdue(self, as_of: date | None = None) -> int:
        """Flag pending/partial payments whose due date has passed.

        Returns:
            Number of payments flagged
        """
        cutoff = as_of or date.today()
        payments = (
            self.db.query(Payment)
            .filter(
                Payment.status.in_((SettlementStatus.PENDING.value, SettlementStatus.PARTIAL.value)),
                Payment.due_date < cutoff,
            )
            .all()
        )
        for payment in payments:
            payment.status = SettlementStatus.OVERDUE.value
        self.db.commit()
        if payments:
            logger.info("Marked %d payments overdue as of %s", len(payments), cutoff)
        return len(payments)

    def _total_paid(self, payment_id: int) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(PaymentTransaction.amount), 0))
            .filter(PaymentTransaction.payment_id == payment_id)
            .scalar()
        )
        return round_cents(Decimal(str(total)))


__all__ = ["ATTENDANCE_LOCK_MESSAGE", "PaymentService", "settlement_status"]
