"""Vehicle ORM model for leased fleet vehicles."""

from enum import Enum

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class VehicleStatus(str, Enum):
    """Operational status of a vehicle."""

    AVAILABLE = "available"
    """Not assigned to any active project."""

    ASSIGNED = "assigned"
    """Holds an active assignment."""

    MAINTENANCE = "maintenance"
    """Temporarily in the workshop."""

    OUT_OF_SERVICE = "out_of_service"
    """Retired or otherwise unavailable."""


class Vehicle(Base, BaseModel):
    """Model representing a fleet vehicle.

    The vehicle aggregate owns its attendance and maintenance ledgers: deleting a
    vehicle cascades to both.
    """

    __tablename__ = "vehicles"

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("owners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Current owner (payments are issued to this owner)",
    )
    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int] = mapped_column(nullable=False)
    license_plate: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Registration plate",
    )
    status: Mapped[VehicleStatus] = mapped_column(
        String(50),
        nullable=False,
        default=VehicleStatus.AVAILABLE,
        comment="Vehicle status: available, assigned, maintenance, out_of_service",
    )

    # Relationships
    owner: Mapped["Owner"] = relationship(  # noqa: F821
        "Owner",
        back_populates="vehicles",
    )
    assignments: Mapped[list["Assignment"]] = relationship(  # noqa: F821
        "Assignment",
        back_populates="vehicle",
        cascade="all, delete-orphan",
    )
    attendance: Mapped[list["VehicleAttendance"]] = relationship(  # noqa: F821
        "VehicleAttendance",
        back_populates="vehicle",
        cascade="all, delete-orphan",
    )
    maintenance_records: Mapped[list["MaintenanceRecord"]] = relationship(  # noqa: F821
        "MaintenanceRecord",
        back_populates="vehicle",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<Vehicle(id={self.id}, license_plate={self.license_plate}, "
            f"owner_id={self.owner_id}, status={self.status})>"
        )


__all__ = ["Vehicle", "VehicleStatus"]
