"""Owner payment ORM models: payments and the transactions that settle them."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class SettlementStatus(str, Enum):
    """Settlement status shared by owner payments and customer invoices."""

    PENDING = "pending"
    """No money received yet."""

    PARTIAL = "partial"
    """Some money received, balance outstanding."""

    PAID = "paid"
    """Fully covered by transactions."""

    OVERDUE = "overdue"
    """Still outstanding after the due date."""


class Payment(Base, BaseModel):
    """Model representing money owed to a vehicle owner for an assignment period.

    The amount is fixed at creation. Only transactions accumulate afterwards and the
    status is derived from their sum.
    """

    __tablename__ = "payments"

    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("owners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Vehicle owner at the time the payment was created",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Net amount rounded to a whole currency unit",
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    attendance_total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Attendance value before maintenance deductions",
    )
    deduction_total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Maintenance deducted from this payment",
    )
    total_days: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of attendance days locked by this payment",
    )
    maintenance_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of maintenance records locked by this payment",
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    invoice_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[SettlementStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SettlementStatus.PENDING,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    assignment: Mapped["Assignment"] = relationship(  # noqa: F821
        "Assignment",
        back_populates="payments",
    )
    owner: Mapped["Owner"] = relationship("Owner")  # noqa: F821
    transactions: Mapped[list["PaymentTransaction"]] = relationship(
        "PaymentTransaction",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentTransaction.transaction_date",
    )

    __table_args__ = (
        Index("idx_payment_owner_due", "owner_id", "due_date"),
        Index("idx_payment_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, assignment_id={self.assignment_id}, "
            f"owner_id={self.owner_id}, amount={self.amount}, status={self.status})>"
        )


class PaymentTransaction(Base, BaseModel):
    """Model representing money actually handed to an owner against a payment."""

    __tablename__ = "payment_transactions"

    payment_id: Mapped[int] = mapped_column(
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="cash",
        comment="cash, bank_transfer, cheque, ...",
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    payment: Mapped["Payment"] = relationship(
        "Payment",
        back_populates="transactions",
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentTransaction(id={self.id}, payment_id={self.payment_id}, "
            f"amount={self.amount}, date={self.transaction_date})>"
        )


__all__ = ["Payment", "PaymentTransaction", "SettlementStatus"]
