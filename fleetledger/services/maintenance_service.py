"""Maintenance ledger: per-vehicle cost entries deducted from owner payments."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session

from fleetledger.models import MaintenanceRecord, MaintenanceStatus, Vehicle
from fleetledger.services.errors import (
    ConflictError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from fleetledger.services.parsers import parse_decimal, parse_iso_date
from fleetledger.services.retry import with_retry

logger = logging.getLogger(__name__)

MAINTENANCE_LOCK_MESSAGE = (
    "Some maintenance entries have already been marked as paid. "
    "Recalculate the payment before creating it."
)

# Fields a caller may change through update(); is_paid is never editable.
EDITABLE_FIELDS = frozenset(
    {
        "type",
        "description",
        "cost",
        "performed_by",
        "service_date",
        "next_service_date",
        "mileage",
        "status",
        "notes",
    }
)


def parse_maintenance_status(value: MaintenanceStatus | str) -> str:
    try:
        return MaintenanceStatus(value).value
    except ValueError as e:
        raise InvalidInputError(f"Invalid maintenance status: {value}") from e


def _parse_cost(value: Decimal | int | float | str) -> Decimal:
    cost = parse_decimal(value, "cost")
    if cost < 0:
        raise InvalidInputError("Maintenance cost cannot be negative")
    return cost


class MaintenanceLedger:
    """Maintenance ledger operations over one database session."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        vehicle_id: int,
        type: str,
        description: str,
        cost: Decimal | int | float | str,
        service_date: date | str,
        performed_by: str | None = None,
        next_service_date: date | str | None = None,
        mileage: int | None = None,
        status: MaintenanceStatus | str = MaintenanceStatus.COMPLETED,
        notes: str | None = None,
    ) -> MaintenanceRecord:
        """Record a maintenance cost for a vehicle.

        New records always start unpaid.

        Raises:
            NotFoundError: Vehicle does not exist
            InvalidInputError: Negative cost, unknown status or bad dates
        """
        if self.db.get(Vehicle, vehicle_id) is None:
            raise NotFoundError("Vehicle not found")

        record = MaintenanceRecord(
            vehicle_id=vehicle_id,
            type=type,
            description=description,
            cost=_parse_cost(cost),
            service_date=parse_iso_date(service_date, "service date"),
            performed_by=performed_by,
            next_service_date=(
                parse_iso_date(next_service_date, "next service date")
                if next_service_date is not None
                else None
            ),
            mileage=mileage,
            status=parse_maintenance_status(status),
            notes=notes,
            is_paid=False,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(
            "Created maintenance record %d for vehicle %d (cost=%s)",
            record.id,
            vehicle_id,
            record.cost,
        )
        return record

    def get(self, record_id: int) -> MaintenanceRecord:
        """Get a maintenance record by ID.

        Raises:
            NotFoundError: Record does not exist
        """
        record = self.db.get(MaintenanceRecord, record_id)
        if record is None:
            raise NotFoundError("Maintenance record not found")
        return record

    def list_records(
        self,
        vehicle_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[MaintenanceRecord]:
        """List maintenance records, most recent service date first."""
        query = self.db.query(MaintenanceRecord)
        if vehicle_id is not None:
            query = query.filter(MaintenanceRecord.vehicle_id == vehicle_id)
        if start_date is not None:
            query = query.filter(MaintenanceRecord.service_date >= start_date)
        if end_date is not None:
            query = query.filter(MaintenanceRecord.service_date <= end_date)
        return with_retry(query.order_by(MaintenanceRecord.service_date.desc()).all)

    def update(self, record_id: int, **changes: Any) -> MaintenanceRecord:
        """Update editable fields of a maintenance record.

        Changes whose value is None are ignored. A completed record accepts only
        a description change.

        Args:
            record_id: Record to update
            **changes: Field values keyed by field name

        Returns:
            Updated MaintenanceRecord

        Raises:
            NotFoundError: Record does not exist
            InvalidInputError: Unknown or non-editable field, bad value
            InvalidStateError: Non-description change on a completed record
        """
        record = self.get(record_id)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidInputError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        updates = {name: value for name, value in changes.items() if value is not None}

        if record.status == MaintenanceStatus.COMPLETED.value:
            if set(updates) - {"description"}:
                raise InvalidStateError(
                    "Only the description can be updated for completed maintenance records."
                )

        if not updates:
            return record

        if "cost" in updates:
            updates["cost"] = _parse_cost(updates["cost"])
        if "status" in updates:
            updates["status"] = parse_maintenance_status(updates["status"])
        if "service_date" in updates:
            updates["service_date"] = parse_iso_date(updates["service_date"], "service date")
        if "next_service_date" in updates:
            updates["next_service_date"] = parse_iso_date(
                updates["next_service_date"], "next service date"
            )

        for name, value in updates.items():
            setattr(record, name, value)

        self.db.commit()
        self.db.refresh(record)
        logger.info("Updated maintenance record %d: %s", record_id, ", ".join(sorted(updates)))
        return record

    def delete(self, record_id: int) -> None:
        """Delete a maintenance record.

        Raises:
            NotFoundError: Record does not exist
            InvalidStateError: Record is completed
        """
        record = self.get(record_id)
        if record.status == MaintenanceStatus.COMPLETED.value:
            raise InvalidStateError("Completed maintenance records cannot be deleted.")

        self.db.delete(record)
        self.db.commit()
        logger.info("Deleted maintenance record %d", record_id)

    def lock(self, record_ids: Iterable[int], vehicle_id: int | None = None) -> int:
        """Flip is_paid on the given unpaid records. Does not commit.

        Args:
            record_ids: Maintenance record IDs consumed by a payment
            vehicle_id: Optional guard restricting the lock to one vehicle

        Returns:
            Number of records flipped (equals the number of distinct IDs)

        Raises:
            ConflictError: Fewer records flipped than requested
        """
        ids = sorted(set(record_ids))
        if not ids:
            return 0

        conditions = [
            MaintenanceRecord.id.in_(ids),
            MaintenanceRecord.is_paid.is_(False),
        ]
        if vehicle_id is not None:
            conditions.append(MaintenanceRecord.vehicle_id == vehicle_id)

        result = self.db.execute(
            update(MaintenanceRecord)
            .where(*conditions)
            .values(is_paid=True)
            .execution_options(synchronize_session=False)
        )
        flipped = result.rowcount or 0
        if flipped != len(ids):
            raise ConflictError(MAINTENANCE_LOCK_MESSAGE)
        return flipped


__all__ = [
    "EDITABLE_FIELDS",
    "MAINTENANCE_LOCK_MESSAGE",
    "MaintenanceLedger",
    "parse_maintenance_status",
]
