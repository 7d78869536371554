"""Maintenance record ORM model: per-vehicle costs deducted from owner payments."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class MaintenanceStatus(str, Enum):
    """Workflow status of a maintenance entry."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    """Final: only the description may change and the record cannot be deleted."""

    CANCELLED = "cancelled"


class MaintenanceRecord(Base, BaseModel):
    """Model representing a maintenance cost incurred for a vehicle.

    Unpaid records inside a payment window reduce the owner's payment. Once a
    payment consumes a record, is_paid is set and the cost is never deducted again.
    """

    __tablename__ = "maintenance_records"

    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="repair, inspection, service, fuel, advance, driver_salary, ...",
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    performed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_service_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    mileage: Mapped[int | None] = mapped_column(nullable=True)
    status: Mapped[MaintenanceStatus] = mapped_column(
        String(20),
        nullable=False,
        default=MaintenanceStatus.COMPLETED,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_paid: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Deducted by an owner payment",
    )

    # Relationships
    vehicle: Mapped["Vehicle"] = relationship(  # noqa: F821
        "Vehicle",
        back_populates="maintenance_records",
    )

    __table_args__ = (Index("idx_maintenance_vehicle_date", "vehicle_id", "service_date"),)

    def __repr__(self) -> str:
        return (
            f"<MaintenanceRecord(id={self.id}, vehicle_id={self.vehicle_id}, "
            f"cost={self.cost}, status={self.status}, is_paid={self.is_paid})>"
        )


__all__ = ["MaintenanceRecord", "MaintenanceStatus"]
