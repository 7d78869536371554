"""Attendance ledger: idempotent per-vehicle, per-day presence records.

Provides methods for:
- Upserting single records and all-or-nothing batches
- Deleting batches of records matched by vehicle, date and optional project
- Locking records as paid (used only by payment commit)
- Listing and summarizing a vehicle's attendance per project
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session

from fleetledger.models import (
    Assignment,
    AttendanceStatus,
    Project,
    Vehicle,
    VehicleAttendance,
)
from fleetledger.services.errors import (
    BillingError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
)
from fleetledger.services.parsers import parse_iso_date
from fleetledger.services.retry import with_retry

logger = logging.getLogger(__name__)

OTHER_PROJECT_MESSAGE = "Vehicle already has attendance for this date on another project."
PAID_MODIFY_MESSAGE = "Cannot modify attendance that has already been marked as paid."
PAID_DELETE_MESSAGE = "Cannot delete attendance that has already been marked as paid."


class _AnyProject:
    """Marker for delete keys that match a record regardless of its project."""

    def __repr__(self) -> str:
        return "ANY_PROJECT"


ANY_PROJECT = _AnyProject()


@dataclass
class AttendanceEntry:
    """One attendance write request."""

    vehicle_id: int
    attendance_date: date | str
    status: AttendanceStatus | str = AttendanceStatus.PRESENT
    project_id: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AttendanceKey:
    """Delete selector.

    project_id=ANY_PROJECT matches any project; project_id=None matches only
    records with no project.
    """

    vehicle_id: int
    attendance_date: date | str
    project_id: int | None | _AnyProject = ANY_PROJECT


@dataclass
class ProjectAttendanceSummary:
    """Attendance statistics of one vehicle on one project (or unassigned)."""

    project_id: int | None
    project_name: str | None
    total_days: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    first_date: date | None = None
    last_date: date | None = None


def parse_status(value: AttendanceStatus | str) -> AttendanceStatus:
    """Parse attendance status, raising InvalidInputError on unknown values."""
    try:
        return AttendanceStatus(value)
    except ValueError as e:
        raise InvalidInputError(f"Invalid attendance status: {value}") from e


def _status_value(value: AttendanceStatus | str) -> str:
    return value.value if isinstance(value, AttendanceStatus) else str(value)


class AttendanceLedger:
    """Attendance ledger operations over one database session."""

    def __init__(self, db: Session):
        """Initialize attendance ledger.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(
        self,
        vehicle_id: int,
        attendance_date: date | str,
        status: AttendanceStatus | str = AttendanceStatus.PRESENT,
        project_id: int | None = None,
        notes: str | None = None,
    ) -> VehicleAttendance:
        """Create or overwrite the record for (vehicle, date).

        Args:
            vehicle_id: Vehicle the record belongs to
            attendance_date: Calendar day (date or ISO string)
            status: present, off, standby or maintenance
            project_id: Project the vehicle worked on (None for no project)
            notes: Optional free text

        Returns:
            The inserted or updated VehicleAttendance

        Raises:
            InvalidInputError: Bad status/date or project binding rules violated
            NotFoundError: Vehicle or project does not exist
            ConflictError: Record exists on another project or is already paid
        """
        entry = self._normalize(
            AttendanceEntry(
                vehicle_id=vehicle_id,
                attendance_date=attendance_date,
                status=status,
                project_id=project_id,
                notes=notes,
            )
        )
        self._validate_binding(entry)

        try:
            record = self._apply(entry)
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning(
                "Attendance upsert rejected for vehicle %d on %s: %s",
                entry.vehicle_id,
                entry.attendance_date,
                e.message,
            )
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Attendance upsert failed: %s", e, exc_info=True)
            raise

        self.db.refresh(record)
        return record

    def batch_upsert(self, entries: Iterable[AttendanceEntry]) -> list[VehicleAttendance]:
        """Upsert many records in one transaction (all or nothing).

        Two entries for the same (vehicle, date) with different projects reject the
        whole batch before anything is written. Every entry is validated before the
        first write.

        Returns:
            Written records, in input order
        """
        normalized = [self._normalize(entry) for entry in entries]
        if not normalized:
            return []

        per_vehicle_date: dict[tuple[int, date], int | None] = {}
        for entry in normalized:
            key = (entry.vehicle_id, entry.attendance_date)
            if key in per_vehicle_date and per_vehicle_date[key] != entry.project_id:
                raise ConflictError(OTHER_PROJECT_MESSAGE)
            per_vehicle_date[key] = entry.project_id

        for entry in normalized:
            self._validate_binding(entry)

        records: list[VehicleAttendance] = []
        try:
            for entry in normalized:
                records.append(self._apply(entry))
                self.db.flush()
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning("Attendance batch of %d rejected: %s", len(normalized), e.message)
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Attendance batch upsert failed: %s", e, exc_info=True)
            raise

        for record in records:
            self.db.refresh(record)
        logger.info("Upserted %d attendance records", len(records))
        return records

    def batch_delete(self, keys: Iterable[AttendanceKey]) -> int:
        """Delete records matched by the given keys (all or nothing).

        Keys matching nothing are skipped. Any matched paid record aborts the whole
        batch.

        Returns:
            Number of records deleted

        Raises:
            ConflictError: A matched record is already paid
        """
        deleted = 0
        try:
            for key in keys:
                matched = self._match_key(key)
                if not matched:
                    continue
                if any(record.is_paid for record in matched):
                    raise ConflictError(PAID_DELETE_MESSAGE)
                for record in matched:
                    self.db.delete(record)
                    deleted += 1
                # Later keys must not match rows already deleted here.
                self.db.flush()
            self.db.commit()
        except BillingError as e:
            self.db.rollback()
            logger.warning("Attendance batch delete rejected: %s", e.message)
            raise
        except Exception as e:
            self.db.rollback()
            logger.error("Attendance batch delete failed: %s", e, exc_info=True)
            raise

        logger.info("Deleted %d attendance records", deleted)
        return deleted

    def lock(
        self,
        vehicle_id: int,
        project_id: int | None,
        dates: Iterable[date] | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        status: AttendanceStatus | None = None,
    ) -> int:
        """Flip is_paid on unpaid matching rows. Does not commit.

        Rows are selected by explicit dates or by the inclusive start/end range.
        Only rows with is_paid = False are touched, so the returned count tells the
        caller how many rows were still available.

        Args:
            vehicle_id: Vehicle whose records are locked
            project_id: Project filter (None matches records without a project)
            dates: Exact dates to lock
            start_date: Range start (used when dates is None)
            end_date: Range end (used when dates is None)
            status: Optional status filter

        Returns:
            Number of rows flipped from unpaid to paid
        """
        conditions = [
            VehicleAttendance.vehicle_id == vehicle_id,
            VehicleAttendance.is_paid.is_(False),
        ]
        if project_id is None:
            conditions.append(VehicleAttendance.project_id.is_(None))
        else:
            conditions.append(VehicleAttendance.project_id == project_id)

        if dates is not None:
            date_list = sorted(set(dates))
            if not date_list:
                return 0
            conditions.append(VehicleAttendance.attendance_date.in_(date_list))
        else:
            if start_date is None or end_date is None:
                raise InvalidInputError("Either dates or a start and end date are required")
            conditions.append(VehicleAttendance.attendance_date.between(start_date, end_date))

        if status is not None:
            conditions.append(VehicleAttendance.status == _status_value(status))

        result = self.db.execute(
            update(VehicleAttendance)
            .where(*conditions)
            .values(is_paid=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_record(self, vehicle_id: int, attendance_date: date | str) -> VehicleAttendance | None:
        """Get the record for (vehicle, date), if any."""
        day = parse_iso_date(attendance_date, "attendance date")
        return (
            self.db.query(VehicleAttendance)
            .filter_by(vehicle_id=vehicle_id, attendance_date=day)
            .first()
        )

    def list_records(
        self,
        vehicle_id: int | None = None,
        project_id: int | None = None,
        attendance_date: date | str | None = None,
    ) -> list[VehicleAttendance]:
        """List attendance records, newest date first.

        Args:
            vehicle_id: Optional vehicle filter
            project_id: Optional project filter
            attendance_date: Optional exact date filter

        Returns:
            Matching VehicleAttendance rows
        """
        query = self.db.query(VehicleAttendance)
        if vehicle_id is not None:
            query = query.filter(VehicleAttendance.vehicle_id == vehicle_id)
        if project_id is not None:
            query = query.filter(VehicleAttendance.project_id == project_id)
        if attendance_date is not None:
            day = parse_iso_date(attendance_date, "attendance date")
            query = query.filter(VehicleAttendance.attendance_date == day)

        query = query.order_by(
            VehicleAttendance.attendance_date.desc(),
            VehicleAttendance.vehicle_id,
        )
        return with_retry(query.all)

    def summarize(
        self,
        vehicle_id: int,
        project_id: int | None | _AnyProject = ANY_PROJECT,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> list[ProjectAttendanceSummary]:
        """Summarize a vehicle's attendance per project.

        Returns:
            One summary per project (None project reported as unassigned), sorted
            case-insensitively by project name with "Unassigned" for no project
        """
        query = (
            self.db.query(
                VehicleAttendance.project_id,
                Project.name,
                VehicleAttendance.attendance_date,
                VehicleAttendance.status,
            )
            .outerjoin(Project, VehicleAttendance.project_id == Project.id)
            .filter(VehicleAttendance.vehicle_id == vehicle_id)
        )
        if project_id is None:
            query = query.filter(VehicleAttendance.project_id.is_(None))
        elif not isinstance(project_id, _AnyProject):
            query = query.filter(VehicleAttendance.project_id == project_id)
        if start_date is not None:
            query = query.filter(
                VehicleAttendance.attendance_date >= parse_iso_date(start_date, "start date")
            )
        if end_date is not None:
            query = query.filter(
                VehicleAttendance.attendance_date <= parse_iso_date(end_date, "end date")
            )

        summaries: dict[int | None, ProjectAttendanceSummary] = {}
        counters: dict[int | None, Counter] = {}
        for row_project_id, project_name, day, status in with_retry(query.all):
            summary = summaries.get(row_project_id)
            if summary is None:
                summary = ProjectAttendanceSummary(
                    project_id=row_project_id,
                    project_name=project_name,
                )
                summaries[row_project_id] = summary
                counters[row_project_id] = Counter()

            summary.total_days += 1
            counters[row_project_id][_status_value(status)] += 1
            if summary.first_date is None or day < summary.first_date:
                summary.first_date = day
            if summary.last_date is None or day > summary.last_date:
                summary.last_date = day

        for key, summary in summaries.items():
            summary.status_counts = dict(counters[key])

        return sorted(
            summaries.values(),
            key=lambda s: (s.project_name or "Unassigned").lower(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _normalize(self, entry: AttendanceEntry) -> AttendanceEntry:
        return AttendanceEntry(
            vehicle_id=entry.vehicle_id,
            attendance_date=parse_iso_date(entry.attendance_date, "attendance date"),
            status=parse_status(entry.status),
            project_id=entry.project_id,
            notes=entry.notes,
        )

    def _validate_binding(self, entry: AttendanceEntry) -> None:
        """Check vehicle existence and project/assignment start dates."""
        vehicle = self.db.get(Vehicle, entry.vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")

        if entry.project_id is None:
            return

        project = self.db.get(Project, entry.project_id)
        if project is None:
            raise NotFoundError("Project not found")

        if entry.attendance_date < project.start_date:
            raise InvalidInputError("Attendance date cannot be before the project's start date")

        assignments = (
            self.db.query(Assignment)
            .filter_by(vehicle_id=entry.vehicle_id, project_id=entry.project_id)
            .order_by(Assignment.start_date)
            .all()
        )
        if not assignments:
            raise InvalidInputError("Vehicle is not assigned to this project")

        if entry.attendance_date < assignments[0].start_date:
            raise InvalidInputError(
                "Attendance date cannot be before the vehicle's assignment start date"
            )

    def _apply(self, entry: AttendanceEntry) -> VehicleAttendance:
        """Insert or overwrite one record inside the current transaction."""
        existing = (
            self.db.query(VehicleAttendance)
            .filter_by(vehicle_id=entry.vehicle_id, attendance_date=entry.attendance_date)
            .all()
        )

        if any(record.project_id != entry.project_id for record in existing):
            raise ConflictError(OTHER_PROJECT_MESSAGE)
        if any(record.is_paid for record in existing):
            raise ConflictError(PAID_MODIFY_MESSAGE)

        if existing:
            record = existing[0]
            record.status = _status_value(entry.status)
            record.notes = entry.notes
            record.project_id = entry.project_id
            return record

        record = VehicleAttendance(
            vehicle_id=entry.vehicle_id,
            project_id=entry.project_id,
            attendance_date=entry.attendance_date,
            status=_status_value(entry.status),
            notes=entry.notes,
            is_paid=False,
        )
        self.db.add(record)
        return record

    def _match_key(self, key: AttendanceKey) -> list[VehicleAttendance]:
        day = parse_iso_date(key.attendance_date, "attendance date")
        query = self.db.query(VehicleAttendance).filter(
            VehicleAttendance.vehicle_id == key.vehicle_id,
            VehicleAttendance.attendance_date == day,
        )
        if key.project_id is None:
            query = query.filter(VehicleAttendance.project_id.is_(None))
        elif not isinstance(key.project_id, _AnyProject):
            query = query.filter(VehicleAttendance.project_id == key.project_id)
        return query.all()


__all__ = [
    "ANY_PROJECT",
    "AttendanceEntry",
    "AttendanceKey",
    "AttendanceLedger",
    "ProjectAttendanceSummary",
    "parse_status",
]
