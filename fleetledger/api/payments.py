"""Owner payment API endpoints: calculate, commit and settle payments."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from fleetledger.services import get_db
from fleetledger.services.owner_payment_service import OwnerPaymentCalculator, PaymentDraft
from fleetledger.services.parsers import parse_iso_date
from fleetledger.services.payment_service import PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])


class PaymentCalculatePayload(BaseModel):
    """Request payload for POST /api/payments/calculate."""

    assignment_id: int
    start_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    end_date: str = Field(..., description="ISO date (YYYY-MM-DD), inclusive")


class MonthBreakdownResponse(BaseModel):
    year: int
    month: int
    month_label: str
    period_start: date
    period_end: date
    total_days_in_month: int
    present_days: int
    daily_rate: Decimal
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class MaintenanceLineResponse(BaseModel):
    id: int
    year: int
    month: int
    month_label: str
    service_date: date
    type: str
    description: str
    performed_by: str | None = None
    cost: Decimal
    is_paid: bool

    model_config = ConfigDict(from_attributes=True)


class PaymentCalculationResponse(BaseModel):
    """Owner payment calculation with full breakdown."""

    assignment_id: int
    vehicle_id: int
    project_id: int | None = None
    period_start: date
    period_end: date
    monthly_rate: Decimal
    monthly_breakdown: list[MonthBreakdownResponse]
    maintenance_breakdown: list[MaintenanceLineResponse]
    already_paid_maintenance: list[MaintenanceLineResponse]
    total_present_days: int
    total_amount_before_maintenance: Decimal
    maintenance_cost: Decimal
    net_amount: Decimal
    attendance_dates: list[date]
    maintenance_record_ids: list[int]
    already_paid_dates: list[date]

    model_config = ConfigDict(from_attributes=True)


class PaymentCreatePayload(BaseModel):
    """Request payload for POST /api/payments."""

    assignment_id: int
    amount: Decimal
    period_start: str | None = None
    period_end: str | None = None
    due_date: str
    total_days: int = 0
    maintenance_count: int = 0
    attendance_total: Decimal = Decimal("0")
    deduction_total: Decimal = Decimal("0")
    invoice_number: str | None = None
    notes: str | None = None
    attendance_dates: list[str] = Field(default_factory=list)
    maintenance_record_ids: list[int] = Field(default_factory=list)


class TransactionPayload(BaseModel):
    """Request payload for POST /api/payments/{id}/transactions."""

    amount: Decimal
    transaction_date: str | None = None
    method: str = "cash"
    reference_number: str | None = None
    notes: str | None = None
    recorded_by: str | None = None


class TransactionResponse(BaseModel):
    id: int
    payment_id: int
    amount: Decimal
    method: str
    reference_number: str | None = None
    notes: str | None = None
    recorded_by: str | None = None
    transaction_date: date

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    """Committed owner payment."""

    id: int
    assignment_id: int
    owner_id: int
    amount: Decimal
    period_start: date
    period_end: date
    attendance_total: Decimal
    deduction_total: Decimal
    total_days: int
    maintenance_count: int
    due_date: date
    paid_date: date | None = None
    invoice_number: str | None = None
    status: str
    transactions: list[TransactionResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


@router.post("/calculate", response_model=PaymentCalculationResponse)
async def calculate_payment(
    payload: PaymentCalculatePayload, db: Session = Depends(get_db)  # noqa: B008
) -> PaymentCalculationResponse:
    """Calculate what an owner is owed for an assignment period (no writes)."""
    calculation = OwnerPaymentCalculator(db).calculate(
        payload.assignment_id, payload.start_date, payload.end_date
    )
    return PaymentCalculationResponse.model_validate(calculation)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payload: PaymentCreatePayload, db: Session = Depends(get_db)  # noqa: B008
) -> PaymentResponse:
    """Commit a payment and lock the attendance and maintenance it pays for.

    Returns:
        201: PaymentResponse
        400: Missing period, nothing to pay or count mismatch
        404: Assignment not found
        409: Records already paid by another payment (recalculate)
    """
    draft = PaymentDraft(
        assignment_id=payload.assignment_id,
        amount=payload.amount,
        period_start=payload.period_start,
        period_end=payload.period_end,
        due_date=payload.due_date,
        total_days=payload.total_days,
        maintenance_count=payload.maintenance_count,
        attendance_total=payload.attendance_total,
        deduction_total=payload.deduction_total,
        invoice_number=payload.invoice_number,
        notes=payload.notes,
    )
    payment = PaymentService(db).create_payment(
        draft,
        attendance_dates=payload.attendance_dates,
        maintenance_record_ids=payload.maintenance_record_ids,
    )
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/transactions",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_transaction(
    payment_id: int,
    payload: TransactionPayload,
    db: Session = Depends(get_db),  # noqa: B008
) -> PaymentResponse:
    """Record money paid to the owner; returns the payment with its new status."""
    service = PaymentService(db)
    service.create_payment_transaction(payment_id, **payload.model_dump())
    payment = service.get_payment(payment_id)
    db.refresh(payment)
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    owner_id: int | None = None, db: Session = Depends(get_db)  # noqa: B008
) -> list[PaymentResponse]:
    return [PaymentResponse.model_validate(p) for p in PaymentService(db).list_payments(owner_id)]


@router.get("/outstanding", response_model=list[PaymentResponse])
async def list_outstanding_payments(
    as_of: str | None = None,
    owner_id: int | None = None,
    db: Session = Depends(get_db),  # noqa: B008
) -> list[PaymentResponse]:
    """Unsettled payments due on or before as_of (default: today)."""
    cutoff = parse_iso_date(as_of, "as of date") if as_of else None
    payments = PaymentService(db).get_outstanding_payments(as_of=cutoff, owner_id=owner_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/assignment/{assignment_id}", response_model=list[PaymentResponse])
async def list_assignment_payments(
    assignment_id: int, db: Session = Depends(get_db)  # noqa: B008
) -> list[PaymentResponse]:
    payments = PaymentService(db).get_payments_by_assignment(assignment_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: int, db: Session = Depends(get_db)) -> PaymentResponse:  # noqa: B008
    return PaymentResponse.model_validate(PaymentService(db).get_payment(payment_id))


@router.put("/{payment_id}", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
async def update_payment(payment_id: int, db: Session = Depends(get_db)) -> None:  # noqa: B008
    PaymentService(db).update_payment(payment_id)


@router.delete("/{payment_id}", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)
async def delete_payment(payment_id: int, db: Session = Depends(get_db)) -> None:  # noqa: B008
    PaymentService(db).delete_payment(payment_id)
