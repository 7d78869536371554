"""Owner ORM model for vehicle owners who receive lease payments."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class Owner(Base, BaseModel):
    """Model representing a vehicle owner.

    Owners are paid by the fleet operator for the days their vehicles work on
    customer projects, net of maintenance deductions.
    """

    __tablename__ = "owners"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Owner name (individual or company display name)",
    )
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Relationships
    vehicles: Mapped[list["Vehicle"]] = relationship(  # noqa: F821
        "Vehicle",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Owner(id={self.id}, name={self.name})>"


__all__ = ["Owner"]
