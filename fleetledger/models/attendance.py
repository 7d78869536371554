"""Vehicle attendance ORM model: one presence record per vehicle per day."""

from datetime import date
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class AttendanceStatus(str, Enum):
    """Daily status of a vehicle."""

    PRESENT = "present"
    """Worked on the project; the only billable status."""

    OFF = "off"
    """Day off."""

    STANDBY = "standby"
    """Available on site but not working."""

    MAINTENANCE = "maintenance"
    """In the workshop."""


class VehicleAttendance(Base, BaseModel):
    """Model representing a vehicle's status on a calendar day.

    Invariants:
    - At most one record per (vehicle_id, attendance_date), so a vehicle can never
      be on two projects on the same day.
    - is_paid flips from False to True only when an owner payment is committed and
      never flips back through ledger writes.
    """

    __tablename__ = "vehicle_attendance"

    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Project the vehicle worked on (NULL when not tied to a project)",
    )
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(
        String(20),
        nullable=False,
        default=AttendanceStatus.PRESENT,
        comment="present, off, standby or maintenance",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_paid: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Locked by an owner payment",
    )

    # Relationships
    vehicle: Mapped["Vehicle"] = relationship(  # noqa: F821
        "Vehicle",
        back_populates="attendance",
    )
    project: Mapped["Project | None"] = relationship("Project")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("vehicle_id", "attendance_date", name="uq_attendance_vehicle_date"),
        Index("idx_attendance_project_date", "project_id", "attendance_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<VehicleAttendance(id={self.id}, vehicle_id={self.vehicle_id}, "
            f"project_id={self.project_id}, date={self.attendance_date}, "
            f"status={self.status}, is_paid={self.is_paid})>"
        )


__all__ = ["VehicleAttendance", "AttendanceStatus"]
