"""Project ORM models: customer projects and their per-vehicle customer rates."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class ProjectStatus(str, Enum):
    """Lifecycle status of a customer project."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class Project(Base, BaseModel):
    """Model representing a customer project that vehicles are assigned to."""

    __tablename__ = "projects"

    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="No attendance or assignment may start before this date",
    )
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(
        String(50),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )

    # Relationships
    customer: Mapped["Customer"] = relationship(  # noqa: F821
        "Customer",
        back_populates="projects",
    )
    assignments: Mapped[list["Assignment"]] = relationship(  # noqa: F821
        "Assignment",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, customer_id={self.customer_id})>"


class ProjectVehicleCustomerRate(Base, BaseModel):
    """Monthly rate charged to the customer for one vehicle on one project.

    Independent of the assignment's monthly rate, which is what the owner is paid.
    """

    __tablename__ = "project_vehicle_customer_rates"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
    )
    rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Monthly customer rate",
    )

    vehicle: Mapped["Vehicle"] = relationship("Vehicle")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("project_id", "vehicle_id", name="uq_customer_rate_project_vehicle"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectVehicleCustomerRate(project_id={self.project_id}, "
            f"vehicle_id={self.vehicle_id}, rate={self.rate})>"
        )


__all__ = ["Project", "ProjectStatus", "ProjectVehicleCustomerRate"]
