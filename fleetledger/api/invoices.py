"""Customer invoice API endpoints: customer rates, calculate, create and record payments."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from fleetledger.services import get_db
from fleetledger.services.customer_invoice_service import (
    CustomerInvoiceService,
    InvoiceRequest,
    VehicleMonthOverride,
)
from fleetledger.services.invoice_payment_service import InvoicePaymentService

router = APIRouter(prefix="/api/customer-invoices", tags=["customer-invoices"])


class VehicleOverridePayload(BaseModel):
    vehicle_id: int
    month: int
    year: int
    vehicle_mob: Decimal = Decimal("0")
    vehicle_dimob: Decimal = Decimal("0")


class InvoicePayload(BaseModel):
    """Request payload for POST /api/customer-invoices[/calculate]."""

    customer_id: int
    project_id: int
    start_date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    end_date: str = Field(..., description="ISO date (YYYY-MM-DD), inclusive")
    due_date: str | None = None
    adjustment: Decimal = Decimal("0")
    sales_tax_rate: Decimal = Field(Decimal("0"), description="Percentage, e.g. 10 for 10%")
    invoice_number: str | None = None
    notes: str | None = None
    vehicles: list[VehicleOverridePayload] = Field(default_factory=list)

    def to_request(self) -> InvoiceRequest:
        return InvoiceRequest(
            customer_id=self.customer_id,
            project_id=self.project_id,
            start_date=self.start_date,
            end_date=self.end_date,
            due_date=self.due_date,
            adjustment=self.adjustment,
            sales_tax_rate=self.sales_tax_rate,
            invoice_number=self.invoice_number,
            notes=self.notes,
            overrides=[VehicleMonthOverride(**vehicle.model_dump()) for vehicle in self.vehicles],
        )


class InvoiceItemResponse(BaseModel):
    vehicle_id: int
    month: int
    year: int
    month_label: str
    present_days: int
    project_rate: Decimal
    vehicle_mob: Decimal
    vehicle_dimob: Decimal
    daily_rate: Decimal
    amount: Decimal
    sales_tax_rate: Decimal
    sales_tax_amount: Decimal
    total_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoiceDraftResponse(BaseModel):
    """Calculated invoice (nothing persisted)."""

    customer_id: int
    project_id: int
    period_start: date
    period_end: date
    due_date: date
    subtotal: Decimal
    adjustment: Decimal
    sales_tax_rate: Decimal
    sales_tax_amount: Decimal
    total: Decimal
    invoice_number: str | None = None
    items: list[InvoiceItemResponse]

    model_config = ConfigDict(from_attributes=True)


class InvoicePaymentResponse(BaseModel):
    id: int
    amount: Decimal
    method: str
    reference_number: str | None = None
    notes: str | None = None
    recorded_by: str | None = None
    transaction_date: date

    model_config = ConfigDict(from_attributes=True)


class InvoiceResponse(InvoiceDraftResponse):
    """Persisted customer invoice."""

    id: int
    invoice_number: str
    status: str
    payments: list[InvoicePaymentResponse] = Field(default_factory=list)


class InvoicePaymentPayload(BaseModel):
    """Request payload for POST /api/customer-invoices/{id}/payments."""

    amount: Decimal
    transaction_date: str | None = None
    method: str = "cash"
    reference_number: str | None = None
    notes: str | None = None
    recorded_by: str | None = None


@router.post("/calculate", response_model=InvoiceDraftResponse)
async def calculate_invoice(
    payload: InvoicePayload, db: Session = Depends(get_db)  # noqa: B008
) -> InvoiceDraftResponse:
    draft = CustomerInvoiceService(db).calculate(payload.to_request())
    return InvoiceDraftResponse.model_validate(draft)


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoicePayload, db: Session = Depends(get_db)  # noqa: B008
) -> InvoiceResponse:
    """Create an invoice for a project period.

    Returns:
        201: InvoiceResponse
        400: Bad dates, no attendance or missing customer rate
        404: Project not found for the customer
        409: Overlapping invoice or no free invoice number
    """
    invoice = CustomerInvoiceService(db).create_invoice(payload.to_request())
    return InvoiceResponse.model_validate(invoice)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: int, db: Session = Depends(get_db)) -> InvoiceResponse:  # noqa: B008
    return InvoiceResponse.model_validate(CustomerInvoiceService(db).get_invoice(invoice_id))


@router.post(
    "/{invoice_id}/payments",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_invoice_payment(
    invoice_id: int,
    payload: InvoicePaymentPayload,
    db: Session = Depends(get_db),  # noqa: B008
) -> InvoiceResponse:
    invoice = InvoicePaymentService(db).record_payment(invoice_id, **payload.model_dump())
    return InvoiceResponse.model_validate(invoice)


projects_router = APIRouter(prefix="/api/projects", tags=["projects"])


class CustomerRatePayload(BaseModel):
    vehicle_id: int
    rate: Decimal


class CustomerRatesPayload(BaseModel):
    """Request payload for POST /api/projects/{id}/customer-rates."""

    rates: list[CustomerRatePayload]


class CustomerRateResponse(BaseModel):
    id: int
    project_id: int
    customer_id: int
    vehicle_id: int
    rate: Decimal

    model_config = ConfigDict(from_attributes=True)


@projects_router.get("/{project_id}/customer-rates", response_model=list[CustomerRateResponse])
async def get_customer_rates(
    project_id: int, db: Session = Depends(get_db)  # noqa: B008
) -> list[CustomerRateResponse]:
    rates = CustomerInvoiceService(db).get_customer_rates(project_id)
    return [CustomerRateResponse.model_validate(rate) for rate in rates]


@projects_router.post(
    "/{project_id}/customer-rates",
    response_model=list[CustomerRateResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upsert_customer_rates(
    project_id: int,
    payload: CustomerRatesPayload,
    db: Session = Depends(get_db),  # noqa: B008
) -> list[CustomerRateResponse]:
    """Set the customer rate of each listed vehicle on the project.

    Returns:
        201: All rates of the project
        400: Negative rate
        404: Project or vehicle not found
    """
    rates = CustomerInvoiceService(db).upsert_customer_rates(
        project_id, {item.vehicle_id: item.rate for item in payload.rates}
    )
    return [CustomerRateResponse.model_validate(rate) for rate in rates]
