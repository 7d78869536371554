"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from fleetledger.models.owner import Owner  # noqa: E402
from fleetledger.models.customer import Customer  # noqa: E402
from fleetledger.models.vehicle import Vehicle, VehicleStatus  # noqa: E402
from fleetledger.models.project import (  # noqa: E402
    Project,
    ProjectStatus,
    ProjectVehicleCustomerRate,
)
from fleetledger.models.assignment import Assignment, AssignmentStatus  # noqa: E402
from fleetledger.models.attendance import AttendanceStatus, VehicleAttendance  # noqa: E402
from fleetledger.models.maintenance import MaintenanceRecord, MaintenanceStatus  # noqa: E402
from fleetledger.models.payment import (  # noqa: E402
    Payment,
    PaymentTransaction,
    SettlementStatus,
)
from fleetledger.models.customer_invoice import (  # noqa: E402
    CustomerInvoice,
    CustomerInvoiceItem,
    CustomerInvoicePayment,
)
from fleetledger.models.ownership_history import OwnershipHistory  # noqa: E402
from fleetledger.models.audit_log import AuditLog  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "Owner",
    "Customer",
    "Vehicle",
    "VehicleStatus",
    "Project",
    "ProjectStatus",
    "ProjectVehicleCustomerRate",
    "Assignment",
    "AssignmentStatus",
    "VehicleAttendance",
    "AttendanceStatus",
    "MaintenanceRecord",
    "MaintenanceStatus",
    "Payment",
    "PaymentTransaction",
    "SettlementStatus",
    "CustomerInvoice",
    "CustomerInvoiceItem",
    "CustomerInvoicePayment",
    "OwnershipHistory",
    "AuditLog",
]
