"""Integration tests for the maintenance ledger."""

from datetime import date
from decimal import Decimal

import pytest

from fleetledger.models import MaintenanceRecord, MaintenanceStatus
from fleetledger.services.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from fleetledger.services.maintenance_service import MaintenanceLedger


class TestCreate:
    def test_create_starts_unpaid(self, db_session, vehicle):
        record = MaintenanceLedger(db_session).create(
            vehicle_id=vehicle.id,
            type="tyres",
            description="Replace front tyres",
            cost="450.50",
            service_date="2023-02-10",
            performed_by="Al Quoz Garage",
        )

        assert record.is_paid is False
        assert record.status == MaintenanceStatus.COMPLETED.value
        assert record.cost == Decimal("450.50")
        assert record.service_date == date(2023, 2, 10)

    def test_negative_cost_rejected(self, db_session, vehicle):
        with pytest.raises(InvalidInputError, match="cannot be negative"):
            MaintenanceLedger(db_session).create(
                vehicle.id, "service", "Oil", "-1", "2023-02-10"
            )

    def test_unknown_vehicle(self, db_session):
        with pytest.raises(NotFoundError):
            MaintenanceLedger(db_session).create(999, "service", "Oil", "10", "2023-02-10")

    def test_unknown_status(self, db_session, vehicle):
        with pytest.raises(InvalidInputError, match="Invalid maintenance status"):
            MaintenanceLedger(db_session).create(
                vehicle.id, "service", "Oil", "10", "2023-02-10", status="done"
            )


class TestUpdateAndDelete:
    """Completed records accept only description edits and are never deleted."""

    def test_completed_record_description_update(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(vehicle.id, "200", date(2023, 2, 10))

        updated = MaintenanceLedger(db_session).update(record.id, description="Oil and filter")

        assert updated.description == "Oil and filter"

    def test_completed_record_cost_update_rejected(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(vehicle.id, "200", date(2023, 2, 10))

        with pytest.raises(InvalidStateError, match="Only the description"):
            MaintenanceLedger(db_session).update(record.id, cost="150")

        db_session.refresh(record)
        assert record.cost == Decimal("200")

    def test_none_values_are_ignored(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(vehicle.id, "200", date(2023, 2, 10))

        updated = MaintenanceLedger(db_session).update(record.id, cost=None, description="Brakes")

        assert updated.description == "Brakes"

    def test_scheduled_record_is_fully_editable(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(
            vehicle.id, "200", date(2023, 2, 10), status=MaintenanceStatus.SCHEDULED
        )

        updated = MaintenanceLedger(db_session).update(
            record.id, cost="250", service_date="2023-02-12", status="completed"
        )

        assert updated.cost == Decimal("250")
        assert updated.service_date == date(2023, 2, 12)
        assert updated.status == MaintenanceStatus.COMPLETED.value

    def test_is_paid_is_not_editable(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(
            vehicle.id, "200", date(2023, 2, 10), status=MaintenanceStatus.SCHEDULED
        )

        with pytest.raises(InvalidInputError, match="is_paid"):
            MaintenanceLedger(db_session).update(record.id, is_paid=True)

    def test_completed_record_cannot_be_deleted(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(vehicle.id, "200", date(2023, 2, 10))

        with pytest.raises(InvalidStateError, match="cannot be deleted"):
            MaintenanceLedger(db_session).delete(record.id)

    def test_scheduled_record_can_be_deleted(self, db_session, vehicle, make_maintenance):
        record = make_maintenance(
            vehicle.id, "200", date(2023, 2, 10), status=MaintenanceStatus.CANCELLED
        )

        MaintenanceLedger(db_session).delete(record.id)

        assert db_session.query(MaintenanceRecord).count() == 0

    def test_missing_record(self, db_session):
        with pytest.raises(NotFoundError, match="Maintenance record not found"):
            MaintenanceLedger(db_session).delete(999)


class TestLock:
    def test_lock_all_requested(self, db_session, vehicle, make_maintenance):
        first = make_maintenance(vehicle.id, "100", date(2023, 2, 1))
        second = make_maintenance(vehicle.id, "50", date(2023, 2, 2))

        flipped = MaintenanceLedger(db_session).lock([first.id, second.id, first.id])
        db_session.commit()

        assert flipped == 2

    def test_lock_conflict_when_already_paid(self, db_session, vehicle, make_maintenance):
        first = make_maintenance(vehicle.id, "100", date(2023, 2, 1))
        paid = make_maintenance(vehicle.id, "50", date(2023, 2, 2), is_paid=True)

        with pytest.raises(ConflictError, match="already been marked as paid"):
            MaintenanceLedger(db_session).lock([first.id, paid.id])

    def test_lock_guarded_by_vehicle(self, db_session, vehicle, make_vehicle, make_maintenance):
        other_vehicle = make_vehicle()
        record = make_maintenance(other_vehicle.id, "100", date(2023, 2, 1))

        with pytest.raises(ConflictError):
            MaintenanceLedger(db_session).lock([record.id], vehicle_id=vehicle.id)

    def test_list_records_by_window(self, db_session, vehicle, make_maintenance):
        make_maintenance(vehicle.id, "100", date(2023, 1, 15))
        make_maintenance(vehicle.id, "50", date(2023, 2, 2))

        records = MaintenanceLedger(db_session).list_records(
            vehicle_id=vehicle.id, start_date=date(2023, 2, 1), end_date=date(2023, 2, 28)
        )

        assert [r.cost for r in records] == [Decimal("50")]
