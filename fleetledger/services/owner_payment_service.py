"""Owner payment calculator.

Values an assignment's unpaid present attendance month by month and nets off the
unpaid maintenance recorded in the same window. The calculator only reads ledger
state; PaymentService commits the result and locks what it consumed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from fleetledger.models import (
    Assignment,
    AttendanceStatus,
    MaintenanceRecord,
    VehicleAttendance,
)
from fleetledger.services.calendar_utils import iter_month_windows, month_label
from fleetledger.services.errors import NotFoundError
from fleetledger.services.money import prorate, round_cents, round_whole
from fleetledger.services.parsers import parse_date_range, parse_iso_date
from fleetledger.services.retry import with_retry

logger = logging.getLogger(__name__)


@dataclass
class MonthBreakdown:
    """Attendance valuation of one calendar month (display values rounded)."""

    year: int
    month: int
    month_label: str
    period_start: date
    period_end: date
    total_days_in_month: int
    present_days: int
    daily_rate: Decimal
    amount: Decimal


@dataclass
class MaintenanceLine:
    """Maintenance entry found in the payment window."""

    id: int
    year: int
    month: int
    month_label: str
    service_date: date
    type: str
    description: str
    performed_by: str | None
    cost: Decimal
    is_paid: bool


@dataclass
class PaymentDraft:
    """Commit payload for PaymentService.create_payment."""

    assignment_id: int
    amount: Decimal
    period_start: date | str | None
    period_end: date | str | None
    due_date: date | str
    total_days: int
    maintenance_count: int = 0
    attendance_total: Decimal = Decimal("0")
    deduction_total: Decimal = Decimal("0")
    invoice_number: str | None = None
    notes: str | None = None


@dataclass
class PaymentCalculation:
    """Full breakdown of a proposed owner payment."""

    assignment_id: int
    vehicle_id: int
    project_id: int | None
    period_start: date
    period_end: date
    monthly_rate: Decimal
    monthly_breakdown: list[MonthBreakdown] = field(default_factory=list)
    maintenance_breakdown: list[MaintenanceLine] = field(default_factory=list)
    already_paid_maintenance: list[MaintenanceLine] = field(default_factory=list)
    total_present_days: int = 0
    total_amount_before_maintenance: Decimal = Decimal("0")
    maintenance_cost: Decimal = Decimal("0")
    net_amount: Decimal = Decimal("0")
    attendance_dates: list[date] = field(default_factory=list)
    maintenance_record_ids: list[int] = field(default_factory=list)
    already_paid_dates: list[date] = field(default_factory=list)

    def to_payment_draft(
        self,
        due_date: date | str,
        invoice_number: str | None = None,
        notes: str | None = None,
    ) -> PaymentDraft:
        """Build the commit payload with counts matching the dates and IDs to lock."""
        return PaymentDraft(
            assignment_id=self.assignment_id,
            amount=self.net_amount,
            period_start=self.period_start,
            period_end=self.period_end,
            due_date=parse_iso_date(due_date, "due date"),
            total_days=len(self.attendance_dates),
            maintenance_count=len(self.maintenance_record_ids),
            attendance_total=round_cents(self.total_amount_before_maintenance),
            deduction_total=round_cents(self.maintenance_cost),
            invoice_number=invoice_number,
            notes=notes,
        )


class OwnerPaymentCalculator:
    """Computes owner payments from attendance and maintenance ledgers."""

    def __init__(self, db: Session):
        self.db = db

    def calculate(
        self,
        assignment_id: int,
        start_date: date | str,
        end_date: date | str,
    ) -> PaymentCalculation:
        """Calculate the payment owed for an assignment over [start_date, end_date].

        Each calendar month overlapped by the window contributes
        monthly_rate * present_days / days_in_month, where present_days counts
        unpaid present dates inside that month's part of the window. Unpaid
        maintenance in the window is deducted once from the total, and only the
        net amount is rounded (whole currency unit, halves towards positive infinity).

        Args:
            assignment_id: Assignment to value
            start_date: Window start (date or ISO string)
            end_date: Window end, inclusive

        Returns:
            PaymentCalculation with breakdown plus exact dates and maintenance IDs
            to lock at commit

        Raises:
            InvalidInputError: Unparseable dates or end before start
            NotFoundError: Assignment does not exist
        """
        start, end = parse_date_range(start_date, end_date)

        assignment = self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")

        monthly_rate = Decimal(assignment.monthly_rate)
        unpaid_dates, paid_dates = self._partition_attendance(assignment, start, end)

        calculation = PaymentCalculation(
            assignment_id=assignment.id,
            vehicle_id=assignment.vehicle_id,
            project_id=assignment.project_id,
            period_start=start,
            period_end=end,
            monthly_rate=monthly_rate,
            attendance_dates=unpaid_dates,
            already_paid_dates=paid_dates,
        )

        for record in self._maintenance_in_window(assignment.vehicle_id, start, end):
            line = MaintenanceLine(
                id=record.id,
                year=record.service_date.year,
                month=record.service_date.month,
                month_label=month_label(record.service_date.year, record.service_date.month),
                service_date=record.service_date,
                type=record.type,
                description=record.description,
                performed_by=record.performed_by,
                cost=Decimal(record.cost),
                is_paid=record.is_paid,
            )
            if record.is_paid:
                calculation.already_paid_maintenance.append(line)
            else:
                calculation.maintenance_breakdown.append(line)
                calculation.maintenance_record_ids.append(record.id)

        total_amount = Decimal("0")
        for window in iter_month_windows(start, end):
            month_days = window.days_in_month
            present_days = sum(1 for day in unpaid_dates if window.contains(day))
            amount = prorate(monthly_rate, present_days, month_days)
            total_amount += amount
            calculation.total_present_days += present_days
            calculation.monthly_breakdown.append(
                MonthBreakdown(
                    year=window.year,
                    month=window.month,
                    month_label=window.label,
                    period_start=window.start,
                    period_end=window.end,
                    total_days_in_month=month_days,
                    present_days=present_days,
                    daily_rate=round_cents(monthly_rate / Decimal(month_days)),
                    amount=round_cents(amount),
                )
            )

        maintenance_cost = sum(
            (line.cost for line in calculation.maintenance_breakdown),
            Decimal("0"),
        )
        calculation.total_amount_before_maintenance = total_amount
        calculation.maintenance_cost = maintenance_cost
        calculation.net_amount = round_whole(total_amount - maintenance_cost)

        logger.debug(
            "Calculated payment for assignment %d (%s..%s): days=%d gross=%s maintenance=%s net=%s",
            assignment.id,
            start,
            end,
            calculation.total_present_days,
            round_cents(total_amount),
            maintenance_cost,
            calculation.net_amount,
        )
        return calculation

    def _partition_attendance(
        self,
        assignment: Assignment,
        start: date,
        end: date,
    ) -> tuple[list[date], list[date]]:
        """Split present attendance dates into (unpaid, paid-only), both sorted.

        A date seen both as unpaid and paid counts as unpaid.
        """
        query = self.db.query(VehicleAttendance.attendance_date, VehicleAttendance.is_paid).filter(
            VehicleAttendance.vehicle_id == assignment.vehicle_id,
            VehicleAttendance.status == AttendanceStatus.PRESENT.value,
            VehicleAttendance.attendance_date.between(start, end),
        )
        if assignment.project_id is None:
            query = query.filter(VehicleAttendance.project_id.is_(None))
        else:
            query = query.filter(VehicleAttendance.project_id == assignment.project_id)

        unpaid: set[date] = set()
        paid: set[date] = set()
        for day, is_paid in with_retry(query.all):
            if is_paid:
                paid.add(day)
            else:
                unpaid.add(day)

        return sorted(unpaid), sorted(paid - unpaid)

    def _maintenance_in_window(
        self, vehicle_id: int, start: date, end: date
    ) -> list[MaintenanceRecord]:
        query = (
            self.db.query(MaintenanceRecord)
            .filter(
                MaintenanceRecord.vehicle_id == vehicle_id,
                MaintenanceRecord.service_date.between(start, end),
            )
            .order_by(MaintenanceRecord.service_date, MaintenanceRecord.id)
        )
        return with_retry(query.all)


__all__ = [
    "MaintenanceLine",
    "MonthBreakdown",
    "OwnerPaymentCalculator",
    "PaymentCalculation",
    "PaymentDraft",
]
