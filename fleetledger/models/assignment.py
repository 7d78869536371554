"""Assignment ORM model: a vehicle leased to a project at a monthly rate."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class AssignmentStatus(str, Enum):
    """Status of a vehicle assignment."""

    ACTIVE = "active"
    """Vehicle currently works on the project (at most one per vehicle)."""

    COMPLETED = "completed"
    """Lease ended."""

    CANCELLED = "cancelled"
    """Lease never took effect."""


class Assignment(Base, BaseModel):
    """Model representing a vehicle's lease to a project.

    The monthly rate is what the vehicle owner earns for a full month of presence;
    partial months are pro-rated by the number of days in that calendar month.
    """

    __tablename__ = "assignments"

    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    monthly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Monthly owner rate",
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[AssignmentStatus] = mapped_column(
        String(50),
        nullable=False,
        default=AssignmentStatus.ACTIVE,
    )

    # Relationships
    vehicle: Mapped["Vehicle"] = relationship(  # noqa: F821
        "Vehicle",
        back_populates="assignments",
    )
    project: Mapped["Project"] = relationship(  # noqa: F821
        "Project",
        back_populates="assignments",
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="assignment",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_assignment_vehicle_status", "vehicle_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<Assignment(id={self.id}, vehicle_id={self.vehicle_id}, "
            f"project_id={self.project_id}, monthly_rate={self.monthly_rate}, "
            f"status={self.status})>"
        )


__all__ = ["Assignment", "AssignmentStatus"]
