"""Shared pytest fixtures: in-memory database and a small leasing fleet."""

import os

# Point the application engine at an in-memory database before fleetledger imports
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from fleetledger.models import (  # noqa: E402
    Assignment,
    AssignmentStatus,
    AttendanceStatus,
    Base,
    Customer,
    MaintenanceRecord,
    MaintenanceStatus,
    OwnershipHistory,
    Owner,
    Project,
    ProjectVehicleCustomerRate,
    Vehicle,
    VehicleAttendance,
    VehicleStatus,
)


@pytest.fixture
def db_session():
    """Create test database session."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def owner(db_session):
    owner = Owner(name="Khalid Transport", phone="+971500000001")
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture
def second_owner(db_session):
    owner = Owner(name="Noor Leasing")
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture
def customer(db_session):
    customer = Customer(name="Gulf Construction", company_name="Gulf Construction LLC")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def vehicle(db_session, owner):
    vehicle = Vehicle(
        owner_id=owner.id,
        make="Toyota",
        model="Hilux",
        year=2021,
        license_plate="DXB-1001",
        status=VehicleStatus.ASSIGNED.value,
    )
    db_session.add(vehicle)
    db_session.flush()
    db_session.add(
        OwnershipHistory(vehicle_id=vehicle.id, owner_id=owner.id, start_date=date(2022, 1, 1))
    )
    db_session.commit()
    return vehicle


@pytest.fixture
def project(db_session, customer):
    project = Project(
        customer_id=customer.id,
        name="Marina Tower",
        location="Dubai Marina",
        start_date=date(2023, 1, 1),
    )
    db_session.add(project)
    db_session.commit()
    return project


@pytest.fixture
def assignment(db_session, vehicle, project):
    """Vehicle leased to the project at 3000 per month from 2023-01-01."""
    assignment = Assignment(
        vehicle_id=vehicle.id,
        project_id=project.id,
        monthly_rate=Decimal("3000"),
        start_date=date(2023, 1, 1),
        status=AssignmentStatus.ACTIVE.value,
    )
    db_session.add(assignment)
    db_session.commit()
    return assignment


@pytest.fixture
def make_vehicle(db_session, owner):
    """Factory for extra vehicles owned by the default owner."""
    counter = {"n": 0}

    def _make(owner_id: int | None = None) -> Vehicle:
        counter["n"] += 1
        vehicle = Vehicle(
            owner_id=owner_id or owner.id,
            make="Nissan",
            model="Urvan",
            year=2020,
            license_plate=f"SHJ-{2000 + counter['n']}",
        )
        db_session.add(vehicle)
        db_session.commit()
        return vehicle

    return _make


@pytest.fixture
def make_project(db_session, customer):
    """Factory for extra projects of the default customer."""

    def _make(name: str, start_date: date = date(2023, 1, 1)) -> Project:
        project = Project(customer_id=customer.id, name=name, start_date=start_date)
        db_session.add(project)
        db_session.commit()
        return project

    return _make


@pytest.fixture
def make_assignment(db_session):
    """Factory inserting assignments directly (no active-assignment guard)."""

    def _make(
        vehicle_id: int,
        project_id: int,
        monthly_rate: str = "3000",
        start_date: date = date(2023, 1, 1),
        status: AssignmentStatus = AssignmentStatus.ACTIVE,
    ) -> Assignment:
        assignment = Assignment(
            vehicle_id=vehicle_id,
            project_id=project_id,
            monthly_rate=Decimal(monthly_rate),
            start_date=start_date,
            status=status.value,
        )
        db_session.add(assignment)
        db_session.commit()
        return assignment

    return _make


@pytest.fixture
def make_attendance(db_session):
    """Factory inserting attendance rows directly, bypassing the ledger."""

    def _make(
        vehicle_id: int,
        project_id: int | None,
        days: list[date],
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        is_paid: bool = False,
    ) -> list[VehicleAttendance]:
        records = [
            VehicleAttendance(
                vehicle_id=vehicle_id,
                project_id=project_id,
                attendance_date=day,
                status=status.value,
                is_paid=is_paid,
            )
            for day in days
        ]
        db_session.add_all(records)
        db_session.commit()
        return records

    return _make


@pytest.fixture
def make_maintenance(db_session):
    """Factory inserting maintenance rows directly."""

    def _make(
        vehicle_id: int,
        cost: str,
        service_date: date,
        status: MaintenanceStatus = MaintenanceStatus.COMPLETED,
        is_paid: bool = False,
        description: str = "Oil change",
    ) -> MaintenanceRecord:
        record = MaintenanceRecord(
            vehicle_id=vehicle_id,
            type="service",
            description=description,
            cost=Decimal(cost),
            service_date=service_date,
            status=status.value,
            is_paid=is_paid,
        )
        db_session.add(record)
        db_session.commit()
        return record

    return _make


@pytest.fixture
def make_customer_rate(db_session):
    def _make(project: Project, vehicle_id: int, rate: str) -> ProjectVehicleCustomerRate:
        row = ProjectVehicleCustomerRate(
            project_id=project.id,
            customer_id=project.customer_id,
            vehicle_id=vehicle_id,
            rate=Decimal(rate),
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _make


def days_between(start: date, end: date) -> list[date]:
    """Every calendar day from start to end inclusive."""
    return [date.fromordinal(n) for n in range(start.toordinal(), end.toordinal() + 1)]
