"""Integration tests for committing owner payments and recording transactions."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import days_between
from fleetledger.models import (
    AttendanceStatus,
    AuditLog,
    MaintenanceRecord,
    Payment,
    SettlementStatus,
    VehicleAttendance,
)
from fleetledger.services.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from fleetledger.services.owner_payment_service import OwnerPaymentCalculator, PaymentDraft
from fleetledger.services.payment_service import PaymentService, settlement_status


def _calculate(db_session, assignment, start="2023-02-01", end="2023-02-28"):
    return OwnerPaymentCalculator(db_session).calculate(assignment.id, start, end)


def _commit(db_session, calculation, due_date="2023-03-05"):
    return PaymentService(db_session).create_payment(
        calculation.to_payment_draft(due_date=due_date),
        attendance_dates=calculation.attendance_dates,
        maintenance_record_ids=calculation.maintenance_record_ids,
    )


def _paid_flags(db_session):
    return {
        row.attendance_date: row.is_paid
        for row in db_session.query(VehicleAttendance).order_by(VehicleAttendance.attendance_date)
    }


class TestCreatePayment:
    """Payment commit locks exactly what it pays for."""

    def test_commit_locks_attendance_and_maintenance(
        self, db_session, owner, vehicle, project, assignment, make_attendance, make_maintenance
    ):
        make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 10)))
        record = make_maintenance(vehicle.id, "71.43", date(2023, 2, 4))
        calculation = _calculate(db_session, assignment)

        payment = _commit(db_session, calculation)

        assert payment.amount == Decimal("1000")
        assert payment.owner_id == owner.id
        assert payment.status == SettlementStatus.PENDING.value
        assert payment.total_days == 10
        assert payment.maintenance_count == 1
        assert payment.attendance_total == Decimal("1071.43")
        assert payment.deduction_total == Decimal("71.43")
        assert all(_paid_flags(db_session).values())
        db_session.refresh(record)
        assert record.is_paid is True

    def test_commit_writes_audit_entry(self, db_session, vehicle, project, assignment, make_attendance):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1)])

        payment = _commit(db_session, _calculate(db_session, assignment))

        entry = db_session.query(AuditLog).filter_by(entity_type="payment", entity_id=payment.id).one()
        assert entry.action == "create"
        assert entry.changes["total_days"] == 1

    def test_recalculation_after_commit_finds_nothing(
        self, db_session, vehicle, project, assignment, make_attendance
    ):
        make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 10)))
        _commit(db_session, _calculate(db_session, assignment))

        again = _calculate(db_session, assignment)

        assert again.attendance_dates == []
        assert again.net_amount == Decimal("0")
        assert len(again.already_paid_dates) == 10

    def test_stale_draft_is_rejected_without_writes(
        self, db_session, vehicle, project, assignment, make_attendance, make_maintenance
    ):
        """Two drafts over the same days: only the first commit succeeds."""
        make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 10)))
        make_maintenance(vehicle.id, "50", date(2023, 2, 3))
        first = _calculate(db_session, assignment)
        second = _calculate(db_session, assignment)

        _commit(db_session, first)
        with pytest.raises(ConflictError, match="Recalculate the payment"):
            _commit(db_session, second)

        assert db_session.query(Payment).count() == 1

    def test_locked_maintenance_rejects_payment(
        self, db_session, vehicle, project, assignment, make_attendance, make_maintenance
    ):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1)])
        record = make_maintenance(vehicle.id, "50", date(2023, 2, 3))
        calculation = _calculate(db_session, assignment)
        record.is_paid = True
        db_session.commit()

        with pytest.raises(ConflictError):
            _commit(db_session, calculation)

        assert db_session.query(Payment).count() == 0
        assert _paid_flags(db_session) == {date(2023, 2, 1): False}

    def test_period_closure_locks_late_present_days(
        self, db_session, vehicle, project, assignment, make_attendance
    ):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1), date(2023, 2, 2)])
        calculation = _calculate(db_session, assignment)
        make_attendance(vehicle.id, project.id, [date(2023, 2, 20)])
        make_attendance(vehicle.id, project.id, [date(2023, 2, 21)], status=AttendanceStatus.OFF)
        make_attendance(vehicle.id, project.id, [date(2023, 3, 1)])

        payment = _commit(db_session, calculation)

        assert payment.total_days == 2
        assert _paid_flags(db_session) == {
            date(2023, 2, 1): True,
            date(2023, 2, 2): True,
            date(2023, 2, 20): True,
            date(2023, 2, 21): False,
            date(2023, 3, 1): False,
        }

    def test_count_mismatch(self, db_session, vehicle, project, assignment, make_attendance):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1), date(2023, 2, 2)])
        calculation = _calculate(db_session, assignment)
        draft = calculation.to_payment_draft(due_date="2023-03-05")
        draft.total_days = 3

        with pytest.raises(InvalidInputError, match="total days value does not match"):
            PaymentService(db_session).create_payment(draft, calculation.attendance_dates, [])

        assert db_session.query(Payment).count() == 0
        assert not any(_paid_flags(db_session).values())

    def test_maintenance_count_mismatch(self, db_session, vehicle, assignment, make_maintenance):
        record = make_maintenance(vehicle.id, "50", date(2023, 2, 3))
        draft = PaymentDraft(
            assignment_id=assignment.id,
            amount=Decimal("-50"),
            period_start="2023-02-01",
            period_end="2023-02-28",
            due_date="2023-03-05",
            total_days=0,
            maintenance_count=2,
        )

        with pytest.raises(InvalidInputError, match="maintenance count does not match"):
            PaymentService(db_session).create_payment(draft, [], [record.id])

    def test_nothing_to_pay(self, db_session, assignment):
        draft = PaymentDraft(
            assignment_id=assignment.id,
            amount=Decimal("0"),
            period_start="2023-02-01",
            period_end="2023-02-28",
            due_date="2023-03-05",
            total_days=0,
        )

        with pytest.raises(InvalidInputError, match="No attendance or maintenance records"):
            PaymentService(db_session).create_payment(draft, [], [])

    def test_missing_period(self, db_session, assignment):
        draft = PaymentDraft(
            assignment_id=assignment.id,
            amount=Decimal("100"),
            period_start=None,
            period_end="2023-02-28",
            due_date="2023-03-05",
            total_days=1,
        )

        with pytest.raises(InvalidInputError, match="period start and end dates are required"):
            PaymentService(db_session).create_payment(draft, ["2023-02-01"], [])

    def test_unknown_assignment(self, db_session):
        draft = PaymentDraft(
            assignment_id=999,
            amount=Decimal("100"),
            period_start="2023-02-01",
            period_end="2023-02-28",
            due_date="2023-03-05",
            total_days=1,
        )

        with pytest.raises(NotFoundError, match="Assignment not found"):
            PaymentService(db_session).create_payment(draft, ["2023-02-01"], [])

    def test_amount_rounded_to_whole_unit(self, db_session, vehicle, project, assignment, make_attendance):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1)])
        draft = PaymentDraft(
            assignment_id=assignment.id,
            amount=Decimal("107.50"),
            period_start="2023-02-01",
            period_end="2023-02-28",
            due_date="2023-03-05",
            total_days=1,
        )

        payment = PaymentService(db_session).create_payment(draft, ["2023-02-01"], [])

        assert payment.amount == Decimal("108")

    def test_payments_are_immutable(self, db_session, vehicle, project, assignment, make_attendance):
        make_attendance(vehicle.id, project.id, [date(2023, 2, 1)])
        payment = _commit(db_session, _calculate(db_session, assignment))
        service = PaymentService(db_session)

        with pytest.raises(InvalidStateError) as update_error:
            service.update_payment(payment.id, amount=1)
        with pytest.raises(InvalidStateError) as delete_error:
            service.delete_payment(payment.id)

        assert update_error.value.http_status == 405
        assert delete_error.value.http_status == 405
        assert db_session.query(Payment).count() == 1


class TestTransactions:
    """Settlement status follows the sum of transactions."""

    @pytest.fixture
    def payment(self, db_session, vehicle, project, assignment, make_attendance):
        make_attendance(vehicle.id, project.id, days_between(date(2023, 2, 1), date(2023, 2, 10)))
        return _commit(db_session, _calculate(db_session, assignment))

    def test_partial_then_paid(self, db_session, payment):
        service = PaymentService(db_session)

        service.create_payment_transaction(payment.id, "500", transaction_date="2023-03-01")
        assert service.get_payment(payment.id).status == SettlementStatus.PARTIAL.value
        assert service.get_payment(payment.id).paid_date is None

        service.create_payment_transaction(payment.id, "571", transaction_date="2023-03-04", method="bank")
        settled = service.get_payment(payment.id)

        assert settled.status == SettlementStatus.PAID.value
        assert settled.paid_date == date(2023, 3, 4)
        assert [t.amount for t in service.get_transactions(payment.id)] == [Decimal("500"), Decimal("571")]

    def test_overpayment_still_paid(self, db_session, payment):
        PaymentService(db_session).create_payment_transaction(payment.id, "2000")

        assert PaymentService(db_session).get_payment(payment.id).status == SettlementStatus.PAID.value

    def test_non_positive_amount(self, db_session, payment):
        with pytest.raises(InvalidInputError, match="greater than zero"):
            PaymentService(db_session).create_payment_transaction(payment.id, "0")

    def test_amount_rounding_to_zero_is_rejected(self, db_session, payment):
        service = PaymentService(db_session)

        with pytest.raises(InvalidInputError, match="greater than zero"):
            service.create_payment_transaction(payment.id, "0.004")

        assert service.get_transactions(payment.id) == []
        assert service.get_payment(payment.id).status == SettlementStatus.PENDING.value

    def test_unknown_payment(self, db_session):
        with pytest.raises(NotFoundError, match="Payment not found"):
            PaymentService(db_session).create_payment_transaction(999, "10")

    def test_overdue_payment_recovers_on_transaction(self, db_session, payment):
        service = PaymentService(db_session)
        assert service.mark_overdue(as_of=date(2023, 3, 6)) == 1
        assert service.get_payment(payment.id).status == SettlementStatus.OVERDUE.value

        service.create_payment_transaction(payment.id, "100", transaction_date="2023-03-07")

        assert service.get_payment(payment.id).status == SettlementStatus.PARTIAL.value

    def test_outstanding_and_overdue(self, db_session, owner, payment):
        service = PaymentService(db_session)

        assert service.get_outstanding_payments(as_of=date(2023, 3, 4)) == []
        assert [p.id for p in service.get_outstanding_payments(as_of=date(2023, 3, 5))] == [payment.id]
        assert service.mark_overdue(as_of=date(2023, 3, 5)) == 0
        assert [p.id for p in service.list_payments(owner_id=owner.id)] == [payment.id]
        assert [p.id for p in service.get_payments_by_assignment(payment.assignment_id)] == [payment.id]


class TestSettlementStatus:
    @pytest.mark.parametrize(
        "paid,amount,expected",
        [
            ("0", "100", SettlementStatus.PENDING),
            ("40", "100", SettlementStatus.PARTIAL),
            ("100", "100", SettlementStatus.PAID),
            ("150", "100", SettlementStatus.PAID),
            ("0", "0", SettlementStatus.PENDING),
        ],
    )
    def test_status_from_total(self, paid, amount, expected):
        assert settlement_status(Decimal(paid), Decimal(amount)) == expected
