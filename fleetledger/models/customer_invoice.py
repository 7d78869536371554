"""Customer invoice ORM models: invoices, their line items and received payments."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel
from fleetledger.models.payment import SettlementStatus


class CustomerInvoice(Base, BaseModel):
    """Model representing an invoice billed to a customer for one project period.

    No two invoices of the same project may cover overlapping periods.
    """

    __tablename__ = "customer_invoices"

    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    adjustment: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Signed manual adjustment applied before tax",
    )
    sales_tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Sales tax percentage",
    )
    sales_tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Invoice total rounded to a whole currency unit",
    )
    status: Mapped[SettlementStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SettlementStatus.PENDING,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    customer: Mapped["Customer"] = relationship("Customer")  # noqa: F821
    project: Mapped["Project"] = relationship("Project")  # noqa: F821
    items: Mapped[list["CustomerInvoiceItem"]] = relationship(
        "CustomerInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )
    payments: Mapped[list["CustomerInvoicePayment"]] = relationship(
        "CustomerInvoicePayment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="CustomerInvoicePayment.transaction_date",
    )

    __table_args__ = (Index("idx_invoice_project_period", "project_id", "period_start", "period_end"),)

    def __repr__(self) -> str:
        return (
            f"<CustomerInvoice(id={self.id}, invoice_number={self.invoice_number}, "
            f"project_id={self.project_id}, total={self.total}, status={self.status})>"
        )


class CustomerInvoiceItem(Base, BaseModel):
    """Model representing one vehicle-month line of a customer invoice."""

    __tablename__ = "customer_invoice_items"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("customer_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month_label: Mapped[str] = mapped_column(String(50), nullable=False)
    present_days: Mapped[int] = mapped_column(Integer, nullable=False)
    project_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Monthly customer rate for the vehicle",
    )
    vehicle_mob: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    vehicle_dimob: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    sales_tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    sales_tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    invoice: Mapped["CustomerInvoice"] = relationship(
        "CustomerInvoice",
        back_populates="items",
    )
    vehicle: Mapped["Vehicle"] = relationship("Vehicle")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<CustomerInvoiceItem(invoice_id={self.invoice_id}, vehicle_id={self.vehicle_id}, "
            f"month_label={self.month_label}, total_amount={self.total_amount})>"
        )


class CustomerInvoicePayment(Base, BaseModel):
    """Model representing money received from a customer against an invoice."""

    __tablename__ = "customer_invoice_payments"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("customer_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(50), nullable=False, default="cash")
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)

    invoice: Mapped["CustomerInvoice"] = relationship(
        "CustomerInvoice",
        back_populates="payments",
    )

    def __repr__(self) -> str:
        return (
            f"<CustomerInvoicePayment(id={self.id}, invoice_id={self.invoice_id}, "
            f"amount={self.amount}, date={self.transaction_date})>"
        )


__all__ = ["CustomerInvoice", "CustomerInvoiceItem", "CustomerInvoicePayment"]
