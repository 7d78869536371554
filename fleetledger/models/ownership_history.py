"""Ownership history ORM model: who owned a vehicle and when."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class OwnershipHistory(Base, BaseModel):
    """Model representing one ownership interval of a vehicle.

    The row with end_date NULL is the current ownership.
    """

    __tablename__ = "ownership_history"

    vehicle_id: Mapped[int] = mapped_column(
        ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("owners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    transfer_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    transfer_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    vehicle: Mapped["Vehicle"] = relationship("Vehicle")  # noqa: F821
    owner: Mapped["Owner"] = relationship("Owner")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<OwnershipHistory(vehicle_id={self.vehicle_id}, owner_id={self.owner_id}, "
            f"start_date={self.start_date}, end_date={self.end_date})>"
        )


__all__ = ["OwnershipHistory"]
