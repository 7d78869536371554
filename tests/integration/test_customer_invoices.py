"""Integration tests for customer invoice calculation and creation."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import days_between
from fleetledger.models import CustomerInvoice, SettlementStatus
from fleetledger.services.customer_invoice_service import (
    CustomerInvoiceService,
    InvoiceRequest,
    VehicleMonthOverride,
    generate_invoice_number,
)
from fleetledger.services.errors import ConflictError, InvalidInputError, NotFoundError


def _request(customer, project, start="2023-02-01", end="2023-02-28", **kwargs) -> InvoiceRequest:
    return InvoiceRequest(
        customer_id=customer.id,
        project_id=project.id,
        start_date=start,
        end_date=end,
        **kwargs,
    )


@pytest.fixture
def february_attendance(vehicle, project, make_attendance, make_customer_rate):
    """Vehicle present every day of February 2023 at a 1000/month customer rate."""
    make_customer_rate(project, vehicle.id, "1000")
    return make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 28)))


class TestCalculate:
    """Vehicle-month bucketing, adjustment and sales tax."""

    def test_adjustment_and_tax(self, db_session, customer, project, february_attendance):
        draft = CustomerInvoiceService(db_session).calculate(
            _request(customer, project, adjustment="-50", sales_tax_rate="10")
        )

        assert draft.subtotal == Decimal("1000")
        assert draft.sales_tax_amount == Decimal("95")
        assert draft.total == Decimal("1045")
        assert draft.due_date == date(2023, 2, 28)
        [line] = draft.items
        assert line.present_days == 28
        assert line.month_label == "February 2023"
        assert line.sales_tax_amount == Decimal("95")
        assert line.total_amount == Decimal("1045")

    def test_paid_attendance_is_still_billed(
        self, db_session, customer, vehicle, project, make_attendance, make_customer_rate
    ):
        make_customer_rate(project, vehicle.id, "2800")
        make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 10)), is_paid=True)

        draft = CustomerInvoiceService(db_session).calculate(_request(customer, project))

        assert draft.total == Decimal("1000")

    def test_buckets_per_vehicle_month(
        self,
        db_session,
        customer,
        vehicle,
        project,
        make_vehicle,
        make_attendance,
        make_customer_rate,
    ):
        second = make_vehicle()
        make_customer_rate(project, vehicle.id, "3100")
        make_customer_rate(project, second.id, "2000")
        make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 10)))
        make_attendance(second.id, project.id, days_between(date(2023, 1, 15), date(2023, 2, 5)))

        draft = CustomerInvoiceService(db_session).calculate(
            _request(customer, project, start="2023-01-01", sales_tax_rate="5")
        )

        assert [(i.vehicle_id, i.month, i.present_days) for i in draft.items] == [
            (vehicle.id, 2, 10),
            (second.id, 1, 17),
            (second.id, 2, 5),
        ]
        items_total = sum(i.total_amount for i in draft.items)
        assert abs(items_total - draft.total) <= Decimal("0.5")
        assert draft.total == Decimal("2689")

    def test_mob_and_dimob_surcharges(self, db_session, customer, vehicle, project, february_attendance):
        overrides = [VehicleMonthOverride(vehicle.id, 2, 2023, vehicle_mob="200", vehicle_dimob="150")]

        draft = CustomerInvoiceService(db_session).calculate(
            _request(customer, project, overrides=overrides)
        )

        assert draft.items[0].vehicle_mob == Decimal("200")
        assert draft.items[0].amount == Decimal("1350")
        assert draft.total == Decimal("1350")

    def test_project_of_other_customer(self, db_session, customer, project, february_attendance):
        request = InvoiceRequest(customer.id + 1, project.id, "2023-02-01", "2023-02-28")

        with pytest.raises(NotFoundError, match="Project not found"):
            CustomerInvoiceService(db_session).calculate(request)

    def test_due_date_before_end(self, db_session, customer, project, february_attendance):
        with pytest.raises(InvalidInputError, match="Due date must be on or after"):
            CustomerInvoiceService(db_session).calculate(
                _request(customer, project, due_date="2023-02-27")
            )

    def test_no_attendance(self, db_session, customer, project, february_attendance):
        with pytest.raises(InvalidInputError, match="No attendance records found"):
            CustomerInvoiceService(db_session).calculate(
                _request(customer, project, start="2023-03-01", end="2023-03-31")
            )

    def test_missing_customer_rate(self, db_session, customer, vehicle, project, make_attendance):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1)])

        with pytest.raises(InvalidInputError, match="Missing customer rate"):
            CustomerInvoiceService(db_session).calculate(_request(customer, project))

    def test_negative_tax_rate(self, db_session, customer, project, february_attendance):
        with pytest.raises(InvalidInputError, match="Sales tax rate cannot be negative"):
            CustomerInvoiceService(db_session).calculate(
                _request(customer, project, sales_tax_rate="-1")
            )


class TestCreateInvoice:
    def test_persists_invoice_and_items(self, db_session, customer, project, february_attendance):
        invoice = CustomerInvoiceService(db_session).create_invoice(
            _request(customer, project, adjustment="-50", sales_tax_rate="10", invoice_number="INV-001")
        )

        assert invoice.invoice_number == "INV-001"
        assert invoice.total == Decimal("1045")
        assert invoice.status == SettlementStatus.PENDING.value
        assert len(invoice.items) == 1
        assert invoice.items[0].total_amount == Decimal("1045.00")

    def test_overlapping_period_conflict(
        self, db_session, customer, vehicle, project, february_attendance, make_attendance
    ):
        make_attendance(vehicle.id, project.id, days_between(date(2023, 3, 1), date(2023, 3, 10)))
        service = CustomerInvoiceService(db_session)
        service.create_invoice(_request(customer, project))

        with pytest.raises(ConflictError, match="already exists for this project"):
            service.create_invoice(_request(customer, project, start="2023-02-15", end="2023-03-10"))

        assert db_session.query(CustomerInvoice).count() == 1

    def test_taken_invoice_number_is_replaced(
        self, db_session, customer, vehicle, project, february_attendance, make_attendance
    ):
        make_attendance(vehicle.id, project.id, days_between(date(2023, 3, 1), date(2023, 3, 10)))
        service = CustomerInvoiceService(db_session)
        service.create_invoice(_request(customer, project, invoice_number="INV-001"))

        second = service.create_invoice(
            _request(customer, project, start="2023-03-01", end="2023-03-31", invoice_number="INV-001")
        )

        assert second.invoice_number != "INV-001"
        assert second.invoice_number.startswith("AHT-")

    def test_generated_number_format(self):
        number = generate_invoice_number("AHT-")

        assert len(number) == 10
        assert number[4:].isalnum() and number[4:].upper() == number[4:]

    def test_customer_rates_upsert(self, db_session, project, vehicle):
        service = CustomerInvoiceService(db_session)

        service.upsert_customer_rates(project.id, {vehicle.id: "1000"})
        rates = service.upsert_customer_rates(project.id, {vehicle.id: "1200"})

        assert [(r.vehicle_id, r.rate) for r in rates] == [(vehicle.id, Decimal("1200"))]

    def test_outstanding_and_overdue(self, db_session, customer, project, february_attendance):
        service = CustomerInvoiceService(db_session)
        invoice = service.create_invoice(_request(customer, project, due_date="2023-03-15"))

        assert service.get_outstanding_invoices(as_of=date(2023, 3, 14)) == []
        assert service.mark_overdue(as_of=date(2023, 3, 16)) == 1
        assert [i.id for i in service.get_outstanding_invoices(as_of=date(2023, 3, 16))] == [invoice.id]
        assert service.get_invoice(invoice.id).status == SettlementStatus.OVERDUE.value
        assert [i.id for i in service.list_invoices(project_ids=[project.id])] == [invoice.id]

    def test_missing_invoice(self, db_session):
        with pytest.raises(NotFoundError, match="Invoice not found"):
            CustomerInvoiceService(db_session).get_invoice(999)
