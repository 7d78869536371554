"""Customer ORM model for companies that lease vehicles for their projects."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetledger.models import Base, BaseModel


class Customer(Base, BaseModel):
    """Model representing a billed customer."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tax_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Customer tax registration number printed on invoices",
    )

    # Relationships
    projects: Mapped[list["Project"]] = relationship(  # noqa: F821
        "Project",
        back_populates="customer",
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, name={self.name})>"


__all__ = ["Customer"]
