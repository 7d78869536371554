"""Customer invoice calculator and invoice persistence.

Provides methods for:
- Maintaining per-(project, vehicle) monthly customer rates
- Calculating an invoice draft from present attendance bucketed by vehicle-month
- Creating invoices with overlap protection and unique invoice numbers
- Listing invoices, outstanding balances and flagging overdue invoices
"""

import logging
import secrets
import string
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from fleetledger.models import (
    AttendanceStatus,
    CustomerInvoice,
    CustomerInvoiceItem,
    Project,
    ProjectVehicleCustomerRate,
    SettlementStatus,
    Vehicle,
    VehicleAttendance,
)
from fleetledger.services.audit_service import AuditService
from fleetledger.services.calendar_utils import days_in_month, month_label
from fleetledger.services.config import settings
from fleetledger.services.errors import (
    BillingError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from fleetledger.services.money import prorate, round_cents, round_whole
from fleetledger.services.parsers import parse_date_range, parse_decimal, parse_iso_date
from fleetledger.services.retry import with_retry

logger = logging.getLogger(__name__)

INVOICE_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
INVOICE_NUMBER_LENGTH = 6
HUNDRED = Decimal("100")


@dataclass
class VehicleMonthOverride:
    """Manual mobilisation/demobilisation surcharges for one vehicle-month."""

    vehicle_id: int
    month: int
    year: int
    vehicle_mob: Decimal | str | int = Decimal("0")
    vehicle_dimob: Decimal | str | int = Decimal("0")


@dataclass
class InvoiceRequest:
    """Input of CustomerInvoiceService.calculate and create_invoice."""

    customer_id: int
    project_id: int
    start_date: date | str
    end_date: date | str
    due_date: date | str | None = None
    adjustment: Decimal | str | int = Decimal("0")
    sales_tax_rate: Decimal | str | int = Decimal("0")
    invoice_number: str | None = None
    notes: str | None = None
    overrides: list[VehicleMonthOverride] = field(default_factory=list)


@dataclass
class InvoiceLine:
    """One vehicle-month line of an invoice draft (unrounded)."""

    vehicle_id: int
    month: int
    year: int
    month_label: str
    present_days: int
    project_rate: Decimal
    vehicle_mob: Decimal
    vehicle_dimob: Decimal
    daily_rate: Decimal
    amount: Decimal
    sales_tax_rate: Decimal
    sales_tax_amount: Decimal
    total_amount: Decimal


@dataclass
class InvoiceDraft:
    """Calculated invoice, ready to be persisted."""

    customer_id: int
    project_id: int
    period_start: date
    period_end: date
    due_date: date
    subtotal: Decimal
    adjustment: Decimal
    sales_tax_rate: Decimal
    sales_tax_amount: Decimal
    total: Decimal
    invoice_number: str | None
    notes: str | None = None
    items: list[InvoiceLine] = field(default_factory=list)


def generate_invoice_number(prefix: str | None = None) -> str:
    """Random invoice number such as "AHT-7K2Q9Z"."""
    chars = "".join(secrets.choice(INVOICE_NUMBER_ALPHABET) for _ in range(INVOICE_NUMBER_LENGTH))
    return f"{prefix if prefix is not None else settings.invoice_number_prefix}{chars}"


class CustomerInvoiceService:
    """Customer invoice operations over one database session."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Customer rates
    # ------------------------------------------------------------------

    def upsert_customer_rates(
        self,
        project_id: int,
        rates: dict[int, Decimal | str | int],
    ) -> list[ProjectVehicleCustomerRate]:
        """Set the monthly customer rate of each given vehicle on a project.

        Args:
            project_id: Project the rates apply to
            rates: Monthly rate keyed by vehicle ID

        Returns:
            All rates of the project after the update

        Raises:
            NotFoundError: Project or a vehicle does not exist
            InvalidInputError: Negative or non-numeric rate
        """
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")

        parsed: dict[int, Decimal] = {}
        for vehicle_id, value in rates.items():
            if self.db.get(Vehicle, vehicle_id) is None:
                raise NotFoundError("Vehicle not found")
            rate = parse_decimal(value, "rate")
            if rate < 0:
                raise InvalidInputError("Customer rate cannot be negative")
            parsed[vehicle_id] = rate

        existing = {
            row.vehicle_id: row
            for row in self.db.query(ProjectVehicleCustomerRate).filter_by(project_id=project_id)
        }
        for vehicle_id, rate in parsed.items():
            row = existing.get(vehicle_id)
            if row is None:
                self.db.add(
                    ProjectVehicleCustomerRate(
                        project_id=project_id,
                        customer_id=project.customer_id,
                        vehicle_id=vehicle_id,
                        rate=rate,
                    )
                )
            else:
                row.rate = rate
        self.db.commit()
        logger.info("Upserted %d customer rates for project %d", len(parsed), project_id)
        return self.get_customer_rates(project_id)

    def get_customer_rates(self, project_id: int) -> list[ProjectVehicleCustomerRate]:
        return (
            self.db.query(ProjectVehicleCustomerRate)
            .filter_by(project_id=project_id)
            .order_by(ProjectVehicleCustomerRate.vehicle_id)
            .all()
        )

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate(self, request: InvoiceRequest) -> InvoiceDraft:
        """Calculate an invoice draft without writing anything.

        Present attendance of the project inside the window is bucketed by
        (vehicle, year, month), whether or not the owner has been paid for it.
        Each bucket bills rate * present_days / days_in_month plus any manual
        MOB/DIMOB surcharge. Adjustment and sales tax apply to the subtotal;
        only the invoice total is rounded to a whole unit. Each line carries its
        proportional share of the adjustment and the matching tax.

        Raises:
            NotFoundError: Project does not belong to the customer
            InvalidInputError: Bad dates, no attendance or a missing rate
        """
        project = (
            self.db.query(Project)
            .filter_by(id=request.project_id, customer_id=request.customer_id)
            .first()
        )
        if project is None:
            raise NotFoundError("Project not found for the provided customer")

        start, end = parse_date_range(request.start_date, request.end_date)
        due = parse_iso_date(request.due_date, "due date") if request.due_date else end
        if due < end:
            raise InvalidInputError("Due date must be on or after the end date")

        adjustment = parse_decimal(request.adjustment, "adjustment")
        tax_rate = parse_decimal(request.sales_tax_rate, "sales tax rate")
        if tax_rate < 0:
            raise InvalidInputError("Sales tax rate cannot be negative")

        rates = {row.vehicle_id: Decimal(row.rate) for row in self.get_customer_rates(project.id)}
        surcharges = self._surcharges(request.overrides)

        attendance = with_retry(
            self.db.query(VehicleAttendance.vehicle_id, VehicleAttendance.attendance_date)
            .filter(
                VehicleAttendance.project_id == project.id,
                VehicleAttendance.status == AttendanceStatus.PRESENT.value,
                VehicleAttendance.attendance_date.between(start, end),
            )
            .all
        )
        if not attendance:
            raise InvalidInputError("No attendance records found for the requested period")

        buckets: dict[tuple[int, int, int], int] = defaultdict(int)
        for vehicle_id, day in attendance:
            if vehicle_id not in rates:
                raise InvalidInputError("Missing customer rate for one or more vehicles in this project")
            buckets[(vehicle_id, day.year, day.month)] += 1

        lines: list[InvoiceLine] = []
        for (vehicle_id, year, month), present_days in sorted(buckets.items()):
            rate = rates[vehicle_id]
            month_days = days_in_month(year, month)
            mob, dimob = surcharges.get((vehicle_id, year, month), (Decimal("0"), Decimal("0")))
            amount = prorate(rate, present_days, month_days) + mob + dimob
            lines.append(
                InvoiceLine(
                    vehicle_id=vehicle_id,
                    month=month,
                    year=year,
                    month_label=month_label(year, month),
                    present_days=present_days,
                    project_rate=rate,
                    vehicle_mob=mob,
                    vehicle_dimob=dimob,
                    daily_rate=rate / Decimal(month_days),
                    amount=amount,
                    sales_tax_rate=tax_rate,
                    sales_tax_amount=Decimal("0"),
                    total_amount=Decimal("0"),
                )
            )

        subtotal = sum((line.amount for line in lines), Decimal("0"))
        taxable_base = subtotal + adjustment
        sales_tax_amount = taxable_base * tax_rate / HUNDRED
        total = round_whole(taxable_base + sales_tax_amount)

        for line in lines:
            share = Decimal("0") if subtotal == 0 else line.amount / subtotal * adjustment
            taxable = line.amount + share
            line.sales_tax_amount = taxable * tax_rate / HUNDRED
            line.total_amount = taxable + line.sales_tax_amount

        return InvoiceDraft(
            customer_id=request.customer_id,
            project_id=project.id,
            period_start=start,
            period_end=end,
            due_date=due,
            subtotal=subtotal,
            adjustment=adjustment,
            sales_tax_rate=tax_rate,
            sales_tax_amount=sales_tax_amount,
            total=total,
            invoice_number=request.invoice_number,
            notes=request.notes,
            items=lines,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def create_invoice(self, request: InvoiceRequest) -> CustomerInvoice:
        """Calculate and persist an invoice with its line items.

        Raises:
            ConflictError: Another invoice of the project overlaps the period, or
                no unused invoice number could be generated
        """
        draft = self.calculate(request)

        try:
            self._ensure_period_available(draft.project_id, draft.period_start, draft.period_end)
            invoice_number = self._resolve_invoice_number(draft.invoice_number)

            invoice = CustomerInvoice(
                customer_id=draft.customer_id,
                project_id=draft.project_id,
                invoice_number=invoice_number,
                period_start=draft.period_start,
                period_end=draft.period_end,
                due_date=draft.due_date,
                subtotal=round_cents(draft.subtotal),
                adjustment=round_cents(draft.adjustment),
                sales_tax_rate=round_cents(draft.sales_tax_rate),
                sales_tax_amount=round_cents(draft.sales_tax_amount),
                total=draft.total,
                status=SettlementStatus.PENDING.value,
                notes=draft.notes,
            )
            invoice.items = [
                CustomerInvoiceItem(
                    vehicle_id=line.vehicle_id,
                    month=line.month,
                    year=line.year,
                    month_label=line.month_label,
                    present_days=line.present_days,
                    project_rate=round_cents(line.project_rate),
                    vehicle_mob=round_cents(line.vehicle_mob),
                    vehicle_dimob=round_cents(line.vehicle_dimob),
                    daily_rate=round_cents(line.daily_rate),
                    amount=round_cents(line.amount),
                    sales_tax_rate=round_cents(line.sales_tax_rate),
                    sales_tax_amount=round_cents(line.sales_tax_amount),
                    total_amount=round_cents(line.total_amount),
                )
                for line in draft.items
            ]
            self.db.add(invoice)
            self.db.flush()

            AuditService.log(
                self.db,
                entity_type="customer_invoice",
                entity_id=invoice.id,
                action="create",
                changes={
                    "invoice_number": invoice_number,
                    "total": str(draft.total),
                    "period_start": draft.period_start.isoformat(),
                    "period_end": draft.period_end.isoformat(),
                },
            )
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning("Invoice for project %d rejected: %s", draft.project_id, e.message)
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Error creating invoice for project %d: %s", draft.project_id, e, exc_info=True)
            raise

        self.db.refresh(invoice)
        logger.info(
            "Created invoice %s for project %d: total=%s items=%d",
            invoice.invoice_number,
            invoice.project_id,
            invoice.total,
            len(draft.items),
        )
        return invoice

    def get_invoice(self, invoice_id: int) -> CustomerInvoice:
        invoice = self.db.get(CustomerInvoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    def list_invoices(self, project_ids: Iterable[int] | None = None) -> list[CustomerInvoice]:
        """List invoices, newest period first, optionally restricted to projects."""
        query = self.db.query(CustomerInvoice)
        if project_ids is not None:
            query = query.filter(CustomerInvoice.project_id.in_(list(project_ids)))
        return with_retry(
            query.order_by(CustomerInvoice.period_start.desc(), CustomerInvoice.id.desc()).all
        )

    def get_outstanding_invoices(self, as_of: date | None = None) -> list[CustomerInvoice]:
        """Unsettled invoices due on or before as_of (default: today)."""
        cutoff = as_of or date.today()
        query = self.db.query(CustomerInvoice).filter(
            CustomerInvoice.status.in_(
                (
                    SettlementStatus.PENDING.value,
                    SettlementStatus.PARTIAL.value,
                    SettlementStatus.OVERDUE.value,
                )
            ),
            CustomerInvoice.due_date <= cutoff,
        )
        return with_retry(query.order_by(CustomerInvoice.due_date).all)

    def mark_overdue(self, as_of: date | None = None) -> int:
        """Flag pending/partial invoices whose due date has passed."""
        cutoff = as_of or date.today()
        invoices = (
            self.db.query(CustomerInvoice)
            .filter(
                CustomerInvoice.status.in_(
                    (SettlementStatus.PENDING.value, SettlementStatus.PARTIAL.value)
                ),
                CustomerInvoice.due_date < cutoff,
            )
            .all()
        )
        for invoice in invoices:
            invoice.status = SettlementStatus.OVERDUE.value
        self.db.commit()
        if invoices:
            logger.info("Marked %d invoices overdue as of %s", len(invoices), cutoff)
        return len(invoices)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _surcharges(
        self, overrides: Iterable[VehicleMonthOverride]
    ) -> dict[tuple[int, int, int], tuple[Decimal, Decimal]]:
        result: dict[tuple[int, int, int], tuple[Decimal, Decimal]] = {}
        for override in overrides:
            if not 1 <= override.month <= 12:
                raise InvalidInputError("Override month must be between 1 and 12")
            result[(override.vehicle_id, override.year, override.month)] = (
                parse_decimal(override.vehicle_mob, "vehicle mob"),
                parse_decimal(override.vehicle_dimob, "vehicle dimob"),
            )
        return result

    def _ensure_period_available(self, project_id: int, start: date, end: date) -> None:
        existing = (
            self.db.query(CustomerInvoice.id)
            .filter(
                CustomerInvoice.project_id == project_id,
                CustomerInvoice.period_start <= end,
                CustomerInvoice.period_end >= start,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("An invoice already exists for this project during the selected period")

    def _invoice_number_taken(self, number: str) -> bool:
        return (
            self.db.query(CustomerInvoice.id).filter_by(invoice_number=number).first()
            is not None
        )

    def _resolve_invoice_number(self, preferred: str | None) -> str:
        """Use the caller's number when free, otherwise generate an unused one."""
        if preferred:
            preferred = preferred.strip()
            if preferred and not self._invoice_number_taken(preferred):
                return preferred

        for _ in range(settings.invoice_number_attempts):
            candidate = generate_invoice_number()
            if not self._invoice_number_taken(candidate):
                return candidate

        raise ConflictError("Unable to generate a unique invoice number")


__all__ = [
    "CustomerInvoiceService",
    "InvoiceDraft",
    "InvoiceLine",
    "InvoiceRequest",
    "VehicleMonthOverride",
    "generate_invoice_number",
]
