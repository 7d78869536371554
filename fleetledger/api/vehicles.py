"""Vehicle API endpoints: ownership transfer."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from fleetledger.services import get_db
from fleetledger.services.ownership_service import OwnershipService

router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])


class TransferOwnershipPayload(BaseModel):
    """Request payload for POST /api/vehicles/{id}/transfer-ownership."""

    new_owner_id: int
    transfer_date: str = Field(..., description="ISO date (YYYY-MM-DD) the new owner takes over")
    transfer_reason: str | None = None
    transfer_price: Decimal | None = None
    notes: str | None = None


class OwnershipResponse(BaseModel):
    id: int
    vehicle_id: int
    owner_id: int
    start_date: date
    end_date: date | None = None
    transfer_reason: str | None = None
    transfer_price: Decimal | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TransferOwnershipResponse(BaseModel):
    message: str
    ownership: OwnershipResponse


@router.post("/{vehicle_id}/transfer-ownership", response_model=TransferOwnershipResponse)
async def transfer_ownership(
    vehicle_id: int,
    payload: TransferOwnershipPayload,
    db: Session = Depends(get_db),  # noqa: B008
) -> TransferOwnershipResponse:
    """Hand a vehicle over to a new owner.

    Returns:
        200: The new ownership period
        400: Bad date, same owner or date not after the current ownership start
        404: Vehicle or owner not found
        409: Unpaid present attendance before the transfer date
    """
    history = OwnershipService(db).transfer_vehicle_ownership(vehicle_id, **payload.model_dump())
    return TransferOwnershipResponse(
        message="Vehicle ownership transferred successfully",
        ownership=OwnershipResponse.model_validate(history),
    )
