"""Assignment service: leasing vehicles to projects."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from fleetledger.models import Assignment, AssignmentStatus, Project, Vehicle, VehicleStatus
from fleetledger.services.errors import ConflictError, InvalidInputError, NotFoundError
from fleetledger.services.parsers import parse_decimal, parse_iso_date

logger = logging.getLogger(__name__)


class AssignmentService:
    """Creates and completes vehicle assignments.

    A vehicle holds at most one active assignment at a time.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_assignment(
        self,
        vehicle_id: int,
        project_id: int,
        monthly_rate: Decimal | int | float | str,
        start_date: date | str,
        end_date: date | str | None = None,
        status: AssignmentStatus | str = AssignmentStatus.ACTIVE,
    ) -> Assignment:
        """Assign a vehicle to a project at a monthly owner rate.

        Raises:
            NotFoundError: Vehicle or project does not exist
            InvalidInputError: Non-positive rate, bad dates, start before the project
            ConflictError: Vehicle already has an active assignment
        """
        try:
            target_status = AssignmentStatus(status)
        except ValueError as e:
            raise InvalidInputError(f"Invalid assignment status: {status}") from e

        vehicle = self.db.get(Vehicle, vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle not found")
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")

        rate = parse_decimal(monthly_rate, "monthly rate")
        if rate <= 0:
            raise InvalidInputError("Monthly rate must be greater than zero")

        start = parse_iso_date(start_date, "start date")
        end = parse_iso_date(end_date, "end date") if end_date is not None else None
        if start < project.start_date:
            raise InvalidInputError("Assignment start date cannot be before the project start date.")
        if end is not None and end < start:
            raise InvalidInputError("End date must be on or after the start date")

        if target_status == AssignmentStatus.ACTIVE and self._active_assignment(vehicle_id):
            raise ConflictError("Vehicle is already assigned to another active project.")

        assignment = Assignment(
            vehicle_id=vehicle_id,
            project_id=project_id,
            monthly_rate=rate,
            start_date=start,
            end_date=end,
            status=target_status.value,
        )
        self.db.add(assignment)
        if target_status == AssignmentStatus.ACTIVE:
            vehicle.status = VehicleStatus.ASSIGNED.value
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(
            "Assigned vehicle %d to project %d at %s/month from %s",
            vehicle_id,
            project_id,
            rate,
            start,
        )
        return assignment

    def complete_assignment(self, assignment_id: int, end_date: date | str | None = None) -> Assignment:
        """Mark an assignment completed and release the vehicle.

        Raises:
            NotFoundError: Assignment does not exist
            InvalidInputError: End date in the future or before the start date
        """
        assignment = self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")

        end = parse_iso_date(end_date, "end date") if end_date is not None else date.today()
        if end > date.today():
            raise InvalidInputError("Assignment end date cannot be in the future when marking as completed.")
        if end < assignment.start_date:
            raise InvalidInputError("End date must be on or after the start date")

        assignment.status = AssignmentStatus.COMPLETED.value
        assignment.end_date = end
        vehicle = self.db.get(Vehicle, assignment.vehicle_id)
        if vehicle is not None:
            vehicle.status = VehicleStatus.AVAILABLE.value
        self.db.commit()
        self.db.refresh(assignment)
        logger.info("Completed assignment %d on %s", assignment_id, end)
        return assignment

    def get_assignment(self, assignment_id: int) -> Assignment:
        assignment = self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    def _active_assignment(self, vehicle_id: int) -> Assignment | None:
        return (
            self.db.query(Assignment)
            .filter_by(vehicle_id=vehicle_id, status=AssignmentStatus.ACTIVE.value)
            .first()
        )


__all__ = ["AssignmentService"]
