"""Ownership transfer service.

A vehicle may change owner only once every present day before the transfer
date has been paid to the current owner.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from fleetledger.models import (
    Assignment,
    AttendanceStatus,
    OwnershipHistory,
    Owner,
    Payment,
    Vehicle,
    VehicleAttendance,
)
from fleetledger.services.audit_service import AuditService
from fleetledger.services.errors import (
    BillingError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from fleetledger.services.parsers import parse_decimal, parse_iso_date

logger = logging.getLogger(__name__)

PENDING_PAYMENT_MESSAGE = (
    "Vehicle has unpaid attendance before the transfer date. "
    "Create the pending owner payments before transferring ownership."
)


class OwnershipService:
    """Vehicle ownership transfers and history."""

    def __init__(self, db: Session):
        self.db = db

    def transfer_vehicle_ownership(
        self,
        vehicle_id: int,
        new_owner_id: int,
        transfer_date: date | str,
        transfer_reason: str | None = None,
        transfer_price: Decimal | str | int | None = None,
        notes: str | None = None,
    ) -> OwnershipHistory:
        """Transfer a vehicle to a new owner from transfer_date onwards.

        Closes the current ownership row the day before the transfer, opens a new
        one, re-points the vehicle and moves payments whose period starts on or
        after the transfer date to the new owner.

        Returns:
            The new OwnershipHistory row

        Raises:
            NotFoundError: Vehicle or new owner does not exist
            InvalidInputError: Same owner, bad date, transfer not after the
                current ownership start
            ConflictError: Unpaid present attendance before the transfer date
        """
        day = parse_iso_date(transfer_date, "transfer date")

        try:
            vehicle = self.db.get(Vehicle, vehicle_id)
            if vehicle is None:
                raise NotFoundError("Vehicle not found")
            if self.db.get(Owner, new_owner_id) is None:
                raise NotFoundError("Owner not found")
            if vehicle.owner_id == new_owner_id:
                raise InvalidInputError("Vehicle is already assigned to the specified owner")

            unpaid = (
                self.db.query(VehicleAttendance.id)
                .filter(
                    VehicleAttendance.vehicle_id == vehicle_id,
                    VehicleAttendance.is_paid.is_(False),
                    VehicleAttendance.status == AttendanceStatus.PRESENT.value,
                    VehicleAttendance.attendance_date < day,
                )
                .first()
            )
            if unpaid is not None:
                raise ConflictError(PENDING_PAYMENT_MESSAGE)

            current = self.current_ownership(vehicle_id)
            if current is not None:
                if day <= current.start_date:
                    raise InvalidInputError("Transfer date must be after the current ownership start date")
                current.end_date = day - timedelta(days=1)

            previous_owner_id = vehicle.owner_id
            history = OwnershipHistory(
                vehicle_id=vehicle_id,
                owner_id=new_owner_id,
                start_date=day,
                transfer_reason=transfer_reason or "transfer",
                transfer_price=(
                    parse_decimal(transfer_price, "transfer price")
                    if transfer_price is not None
                    else None
                ),
                notes=notes,
            )
            self.db.add(history)
            vehicle.owner_id = new_owner_id

            assignment_ids = [
                row.id for row in self.db.query(Assignment.id).filter_by(vehicle_id=vehicle_id)
            ]
            moved = 0
            if assignment_ids:
                result = self.db.execute(
                    update(Payment)
                    .where(
                        Payment.assignment_id.in_(assignment_ids),
                        Payment.period_start >= day,
                    )
                    .values(owner_id=new_owner_id)
                    .execution_options(synchronize_session=False)
                )
                moved = result.rowcount or 0

            self.db.flush()
            AuditService.log(
                self.db,
                entity_type="vehicle",
                entity_id=vehicle_id,
                action="transfer",
                changes={
                    "from_owner_id": previous_owner_id,
                    "to_owner_id": new_owner_id,
                    "transfer_date": day.isoformat(),
                    "payments_moved": moved,
                },
            )
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning("Ownership transfer of vehicle %d rejected: %s", vehicle_id, e.message)
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Error transferring vehicle %d: %s", vehicle_id, e, exc_info=True)
            raise

        self.db.refresh(history)
        logger.info(
            "Transferred vehicle %d from owner %d to owner %d on %s",
            vehicle_id,
            previous_owner_id,
            new_owner_id,
            day,
        )
        return history

    def current_ownership(self, vehicle_id: int) -> OwnershipHistory | None:
        return (
            self.db.query(OwnershipHistory)
            .filter(
                OwnershipHistory.vehicle_id == vehicle_id,
                OwnershipHistory.end_date.is_(None),
            )
            .order_by(OwnershipHistory.start_date.desc())
            .first()
        )

    def get_history(self, vehicle_id: int) -> list[OwnershipHistory]:
        return (
            self.db.query(OwnershipHistory)
            .filter_by(vehicle_id=vehicle_id)
            .order_by(OwnershipHistory.start_date)
            .all()
        )


__all__ = ["OwnershipService", "PENDING_PAYMENT_MESSAGE"]
