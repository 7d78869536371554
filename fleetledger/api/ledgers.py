"""Attendance and maintenance ledger API endpoints."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from fleetledger.services import get_db
from fleetledger.services.attendance_service import (
    ANY_PROJECT,
    AttendanceEntry,
    AttendanceKey,
    AttendanceLedger,
)
from fleetledger.services.maintenance_service import MaintenanceLedger

attendance_router = APIRouter(prefix="/api/attendance", tags=["attendance"])
maintenance_router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


# ---------------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------------


class AttendancePayload(BaseModel):
    """Request payload for POST /api/attendance."""

    vehicle_id: int
    attendance_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    status: str = Field("present", description="present, off, standby or maintenance")
    project_id: int | None = None
    notes: str | None = None

    def to_entry(self) -> AttendanceEntry:
        return AttendanceEntry(
            vehicle_id=self.vehicle_id,
            attendance_date=self.attendance_date,
            status=self.status,
            project_id=self.project_id,
            notes=self.notes,
        )


class AttendanceBatchPayload(BaseModel):
    """Request payload for POST /api/attendance/batch."""

    records: list[AttendancePayload]


class AttendanceKeyPayload(BaseModel):
    """Delete selector; omit project_id to match any project, send null for none."""

    vehicle_id: int
    attendance_date: str
    project_id: int | None = None


class AttendanceDeletePayload(BaseModel):
    """Request payload for POST /api/attendance/delete."""

    records: list[AttendanceKeyPayload]


class AttendanceResponse(BaseModel):
    """Attendance record."""

    id: int
    vehicle_id: int
    project_id: int | None = None
    attendance_date: date
    status: str
    notes: str | None = None
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


class AttendanceDeleteResponse(BaseModel):
    deleted: int


class AttendanceSummaryResponse(BaseModel):
    """Per-project attendance statistics for one vehicle."""

    project_id: int | None = None
    project_name: str | None = None
    total_days: int
    status_counts: dict[str, int]
    first_date: date | None = None
    last_date: date | None = None

    model_config = ConfigDict(from_attributes=True)


@attendance_router.post("", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def upsert_attendance(
    payload: AttendancePayload, db: Session = Depends(get_db)  # noqa: B008
) -> AttendanceResponse:
    """Create or overwrite a vehicle's attendance for one day.

    Returns:
        201: AttendanceResponse
        400: Invalid status, date or project binding
        404: Vehicle or project not found
        409: Record on another project or already paid
    """
    entry = payload.to_entry()
    record = AttendanceLedger(db).upsert(
        vehicle_id=entry.vehicle_id,
        attendance_date=entry.attendance_date,
        status=entry.status,
        project_id=entry.project_id,
        notes=entry.notes,
    )
    return AttendanceResponse.model_validate(record)


@attendance_router.post(
    "/batch", response_model=list[AttendanceResponse], status_code=status.HTTP_201_CREATED
)
async def batch_upsert_attendance(
    payload: AttendanceBatchPayload, db: Session = Depends(get_db)  # noqa: B008
) -> list[AttendanceResponse]:
    """Upsert many attendance records at once (all or nothing)."""
    records = AttendanceLedger(db).batch_upsert(record.to_entry() for record in payload.records)
    return [AttendanceResponse.model_validate(record) for record in records]


@attendance_router.post("/delete", response_model=AttendanceDeleteResponse)
async def batch_delete_attendance(
    payload: AttendanceDeletePayload, db: Session = Depends(get_db)  # noqa: B008
) -> AttendanceDeleteResponse:
    """Delete attendance records (all or nothing); paid records block the batch."""
    keys = [
        AttendanceKey(
            vehicle_id=record.vehicle_id,
            attendance_date=record.attendance_date,
            project_id=(
                record.project_id if "project_id" in record.model_fields_set else ANY_PROJECT
            ),
        )
        for record in payload.records
    ]
    deleted = AttendanceLedger(db).batch_delete(keys)
    return AttendanceDeleteResponse(deleted=deleted)


@attendance_router.get("/summary", response_model=list[AttendanceSummaryResponse])
async def attendance_summary(
    vehicle_id: int,
    project_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    unassigned: bool = Query(False, description="Only records without a project"),
    db: Session = Depends(get_db),  # noqa: B008
) -> list[AttendanceSummaryResponse]:
    """Summarize a vehicle's attendance per project."""
    if unassigned:
        project_filter = None
    elif project_id is not None:
        project_filter = project_id
    else:
        project_filter = ANY_PROJECT

    summaries = AttendanceLedger(db).summarize(
        vehicle_id,
        project_id=project_filter,
        start_date=start_date,
        end_date=end_date,
    )
    return [AttendanceSummaryResponse.model_validate(summary) for summary in summaries]


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


class MaintenancePayload(BaseModel):
    """Request payload for POST /api/maintenance."""

    vehicle_id: int
    type: str
    description: str
    cost: Decimal
    service_date: str
    performed_by: str | None = None
    next_service_date: str | None = None
    mileage: int | None = None
    status: str = "completed"
    notes: str | None = None


class MaintenanceUpdatePayload(BaseModel):
    """Request payload for PATCH /api/maintenance/{id}; only sent fields change."""

    type: str | None = None
    description: str | None = None
    cost: Decimal | None = None
    performed_by: str | None = None
    service_date: str | None = None
    next_service_date: str | None = None
    mileage: int | None = None
    status: str | None = None
    notes: str | None = None

    model_config = ConfigDict(extra="forbid")


class MaintenanceResponse(BaseModel):
    """Maintenance record."""

    id: int
    vehicle_id: int
    type: str
    description: str
    cost: Decimal
    performed_by: str | None = None
    service_date: date
    next_service_date: date | None = None
    mileage: int | None = None
    status: str
    notes: str | None = None
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


@maintenance_router.post("", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def create_maintenance(
    payload: MaintenancePayload, db: Session = Depends(get_db)  # noqa: B008
) -> MaintenanceResponse:
    record = MaintenanceLedger(db).create(**payload.model_dump())
    return MaintenanceResponse.model_validate(record)


@maintenance_router.patch("/{record_id}", response_model=MaintenanceResponse)
async def update_maintenance(
    record_id: int,
    payload: MaintenanceUpdatePayload,
    db: Session = Depends(get_db),  # noqa: B008
) -> MaintenanceResponse:
    """Update a maintenance record.

    Returns:
        200: MaintenanceResponse
        400: Non-description change on a completed record
        404: Record not found
    """
    record = MaintenanceLedger(db).update(record_id, **payload.model_dump(exclude_unset=True))
    return MaintenanceResponse.model_validate(record)


@maintenance_router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_maintenance(record_id: int, db: Session = Depends(get_db)) -> Response:  # noqa: B008
    MaintenanceLedger(db).delete(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
