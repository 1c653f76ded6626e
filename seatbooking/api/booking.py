"""Public booking API: code validation, seat maps and redemption.

These endpoints need no login; the invitation code is the credential.
Rejections are raised as DomainError and rendered by the handler in main.py.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from seatbooking.config import settings
from seatbooking.database.session import get_db
from seatbooking.domain.models import ParticipantDetails, SeatRequest
from seatbooking.services import queries, redemption, validator


router = APIRouter(tags=["booking"])


# ============================================================================
# Pydantic Models
# ============================================================================

class ValidateCodeRequest(BaseModel):
    """Code validation request."""
    code: str
    participant_name: Optional[str] = None


class ValidateCodeResponse(BaseModel):
    """Code validation result. Always returned with 200."""
    valid: bool
    code: str
    reason: Optional[str] = None
    detail: Optional[str] = None
    allowed_levels: List[str] = []
    remaining_usage: Optional[int] = None
    participant_name_required: bool = False


class LevelsResponse(BaseModel):
    levels: List[str]


class SeatResponse(BaseModel):
    """Seat with availability for one level."""
    seat_id: str
    row: str
    number: int
    available: bool

    model_config = {"from_attributes": True}


class ParticipantModel(BaseModel):
    """Participant details; blank fields are rejected by the redemption service."""
    name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None


class SeatRequestModel(BaseModel):
    seat_id: str
    level: str


class RedeemRequest(BaseModel):
    """Redeem a code for one or more (seat, level) selections."""
    code: str
    participant: ParticipantModel = Field(default_factory=ParticipantModel)
    requests: List[SeatRequestModel] = []


class BookingResponse(BaseModel):
    """A created booking."""
    id: UUID
    seat_id: str
    level: str
    customer_name: str
    mobile_number: str
    email: str
    code_used: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RedeemResponse(BaseModel):
    success: bool = True
    bookings: List[BookingResponse]


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/codes/validate", response_model=ValidateCodeResponse)
def validate_code(request: ValidateCodeRequest, db: Session = Depends(get_db)):
    """
    Check a code before the participant picks seats.

    Business-rule failures come back as ``valid: false`` with a reason, never
    as an error status.
    """
    result = validator.validate_code(db, request.code, request.participant_name)
    return ValidateCodeResponse(
        valid=result.valid,
        code=result.code,
        reason=result.reason.value if result.reason else None,
        detail=result.message,
        allowed_levels=list(result.allowed_levels),
        remaining_usage=result.remaining_usage,
        participant_name_required=result.participant_name_required,
    )


@router.get("/levels", response_model=LevelsResponse)
def list_levels():
    """Configured session levels."""
    return LevelsResponse(levels=list(settings.session_levels))


@router.get("/levels/{level}/seats", response_model=List[SeatResponse])
def get_seat_map(level: str, db: Session = Depends(get_db)):
    """Every seat with its availability for one level."""
    return queries.seats_for_level(db, level)


@router.post("/bookings/redeem", response_model=RedeemResponse, status_code=status.HTTP_201_CREATED)
def redeem_code(request: RedeemRequest, db: Session = Depends(get_db)):
    """
    Book every requested (seat, level) pair with one code, all or nothing.

    Returns 201 with the created bookings; any rejection leaves no booking
    behind and no usage consumed.
    """
    participant = ParticipantDetails(
        name=request.participant.name or "",
        mobile=request.participant.mobile or "",
        email=request.participant.email or "",
    )
    bookings = redemption.redeem(
        db,
        request.code,
        participant,
        [SeatRequest(seat_id=r.seat_id, level=r.level) for r in request.requests],
    )
    return RedeemResponse(bookings=[BookingResponse.model_validate(b) for b in bookings])
