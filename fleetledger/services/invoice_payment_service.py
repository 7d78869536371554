"""Invoice payment ledger: money received from customers against invoices."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from fleetledger.models import CustomerInvoice, CustomerInvoicePayment, SettlementStatus
from fleetledger.services.audit_service import AuditService
from fleetledger.services.errors import (
    BillingError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from fleetledger.services.money import round_cents
from fleetledger.services.parsers import parse_decimal, parse_iso_date

logger = logging.getLogger(__name__)


class InvoicePaymentService:
    """Records partial and full payments of customer invoices."""

    def __init__(self, db: Session):
        self.db = db

    def total_received(self, invoice_id: int) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(CustomerInvoicePayment.amount), 0))
            .filter(CustomerInvoicePayment.invoice_id == invoice_id)
            .scalar()
        )
        return round_cents(Decimal(str(total)))

    def outstanding_balance(self, invoice: CustomerInvoice) -> Decimal:
        return Decimal(invoice.total) - self.total_received(invoice.id)

    def record_payment(
        self,
        invoice_id: int,
        amount: Decimal | int | float | str,
        transaction_date: date | str | None = None,
        method: str = "cash",
        reference_number: str | None = None,
        notes: str | None = None,
        recorded_by: str | None = None,
    ) -> CustomerInvoice:
        """Record a customer payment and update the invoice status.

        Args:
            invoice_id: Invoice being paid
            amount: Amount received (must not exceed the outstanding balance)
            transaction_date: Date received (default: today)
            method: Payment method label
            reference_number: Bank or cheque reference
            notes: Free text
            recorded_by: Who recorded the payment

        Returns:
            The updated CustomerInvoice

        Raises:
            NotFoundError: Invoice does not exist
            ConflictError: Invoice already settled, or amount above the balance
            InvalidInputError: Amount is not positive
        """
        try:
            invoice = self.db.get(CustomerInvoice, invoice_id)
            if invoice is None:
                raise NotFoundError("Invoice not found")

            already_paid = self.total_received(invoice.id)
            total = Decimal(invoice.total)
            outstanding = total - already_paid
            if outstanding <= 0 or invoice.status == SettlementStatus.PAID.value:
                raise ConflictError("This invoice is already fully paid")

            value = round_cents(parse_decimal(amount, "payment amount"))
            if value <= 0:
                raise InvalidInputError("Payment amount must be greater than zero")
            if value > outstanding:
                raise ConflictError("Payment cannot exceed the outstanding balance")

            day = (
                parse_iso_date(transaction_date, "transaction date")
                if transaction_date
                else date.today()
            )
            payment = CustomerInvoicePayment(
                invoice_id=invoice.id,
                amount=value,
                method=method,
                reference_number=reference_number,
                notes=notes,
                recorded_by=recorded_by,
                transaction_date=day,
            )
            self.db.add(payment)
            self.db.flush()

            total_paid = self.total_received(invoice.id)
            if total_paid >= total:
                invoice.status = SettlementStatus.PAID.value
            else:
                invoice.status = SettlementStatus.PARTIAL.value

            AuditService.log(
                self.db,
                entity_type="customer_invoice",
                entity_id=invoice.id,
                action="payment",
                changes={"amount": str(payment.amount), "total_paid": str(total_paid), "status": invoice.status},
            )
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning("Payment on invoice %d rejected: %s", invoice_id, e.message)
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Error recording payment on invoice %d: %s", invoice_id, e, exc_info=True)
            raise

        self.db.refresh(invoice)
        logger.info(
            "Recorded payment of %s on invoice %s (status=%s)",
            payment.amount,
            invoice.invoice_number,
            invoice.status,
        )
        return invoice


__all__ = ["InvoicePaymentService"]
