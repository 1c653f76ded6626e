"""Admin API endpoints for managing invitation codes, seats and bookings.

This module provides admin-only endpoints for running the event.
All endpoints require an admin bearer token.
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime
from uuid import UUID
from sqlalchemy.orm import Session

from seatbooking.config import settings
from seatbooking.database.session import get_db
from seatbooking.database import crud
from seatbooking.database.models import AdminUser
from seatbooking.domain.errors import CodeNotFoundError
from seatbooking.domain.models import BookingFilter
from seatbooking.services import code_admin, queries
from seatbooking.api.auth import get_admin_user
from seatbooking.api.booking import BookingResponse


router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================================================
# Pydantic Models
# ============================================================================

class InvitationCodeResponse(BaseModel):
    """Invitation code response."""
    id: UUID
    code: str
    status: str
    current_usage: int
    max_usage: Optional[int] = None
    remaining_usage: Optional[int] = None
    expires_at: Optional[datetime] = None
    participant_name: Optional[str] = None
    allowed_levels: List[str]
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CreateInvitationCodeRequest(BaseModel):
    """Request to create an invitation code. Omit max_usage for one use; null means unlimited."""
    code: str = Field(min_length=1)
    max_usage: Optional[int] = Field(1, ge=1)
    expires_at: Optional[datetime] = None
    participant_name: Optional[str] = None
    allowed_levels: Optional[List[str]] = None


class UpdateInvitationCodeRequest(BaseModel):
    """Request to update an invitation code. Only the fields sent are changed."""
    status: Optional[Literal["active", "disabled"]] = None
    max_usage: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    participant_name: Optional[str] = None
    allowed_levels: Optional[List[str]] = None


class BulkImportRow(BaseModel):
    code: Optional[str] = None
    participant_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    max_usage: Optional[int] = None
    allowed_levels: Optional[List[str]] = None


class BulkImportRequest(BaseModel):
    rows: List[BulkImportRow] = Field(min_length=1)


class BulkImportRowResult(BaseModel):
    row: int
    code: str
    imported: bool
    error: Optional[str] = None


class BulkImportResponse(BaseModel):
    """Per-row import report."""
    imported: int
    skipped: int
    results: List[BulkImportRowResult]


class AdminBookingResponse(BookingResponse):
    """Booking as listed in the admin panel."""


class LevelOccupancyResponse(BaseModel):
    level: str
    total_seats: int
    booked_seats: int
    available_seats: int
    percentage_filled: float
    status: str


class OccupancyResponse(BaseModel):
    """Level analytics for the admin dashboard."""
    total_bookings: int
    unique_participants: int
    multi_level_participants: int
    levels: List[LevelOccupancyResponse]


class SeatResponse(BaseModel):
    id: str
    row: str
    number: int

    model_config = {"from_attributes": True}


class SeedSeatsResponse(BaseModel):
    created: int
    total: int


# ============================================================================
# Invitation Code Management Endpoints
# ============================================================================

@router.get("/codes", response_model=List[InvitationCodeResponse])
async def list_invitation_codes(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    code_status: Optional[Literal["active", "disabled", "expired"]] = Query(None, alias="status"),
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Get invitation codes, newest first (admin only).

    Optionally filtered by status.
    """
    return crud.get_all_invitation_codes(db, limit=limit, offset=offset, status=code_status)


@router.post("/codes", response_model=InvitationCodeResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation_code(
    request: CreateInvitationCodeRequest,
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Create a new invitation code (admin only).

    - Code must be unique (compared trimmed and uppercased)
    - Allowed levels default to the configured default levels
    """
    return code_admin.create_code(
        db,
        code=request.code,
        allowed_levels=request.allowed_levels,
        max_usage=request.max_usage,
        expires_at=request.expires_at,
        participant_name=request.participant_name,
        created_by=admin_user.email
    )


@router.post("/codes/bulk", response_model=BulkImportResponse)
async def bulk_import_invitation_codes(
    request: BulkImportRequest,
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Import many invitation codes at once (admin only).

    Invalid rows are reported and skipped; valid rows are created together.
    """
    results = code_admin.bulk_import(
        db,
        [row.model_dump() for row in request.rows],
        created_by=admin_user.email
    )
    imported = sum(1 for r in results if r.imported)
    return BulkImportResponse(
        imported=imported,
        skipped=len(results) - imported,
        results=[
            BulkImportRowResult(row=r.row, code=r.code, imported=r.imported, error=r.error)
            for r in results
        ]
    )


@router.get("/codes/{code_id}", response_model=InvitationCodeResponse)
async def get_invitation_code(
    code_id: UUID,
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Get details about a specific invitation code (admin only)."""
    invitation = crud.get_invitation_code_by_id(db, code_id)
    if not invitation:
        raise CodeNotFoundError()
    return invitation


@router.patch("/codes/{code_id}", response_model=InvitationCodeResponse)
async def update_invitation_code(
    code_id: UUID,
    request: UpdateInvitationCodeRequest,
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Update an invitation code (admin only).

    - Expired codes cannot be reactivated
    - max_usage cannot go below the usage already consumed
    - Sending null for max_usage, expires_at or participant_name clears it
    """
    return code_admin.update_code(db, code_id, request.model_dump(exclude_unset=True))


@router.delete("/codes/{code_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invitation_code(
    code_id: UUID,
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Delete an invitation code (admin only).

    Bookings made with the code are kept.
    """
    code_admin.delete_code(db, code_id)


# ============================================================================
# Bookings and Analytics
# ============================================================================

@router.get("/bookings", response_model=List[AdminBookingResponse])
async def list_bookings(
    search: Optional[str] = None,
    level: Optional[str] = None,
    code: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Get bookings, newest first (admin only).

    ``search`` matches customer name, seat, e-mail or code used.
    """
    return queries.bookings_for_admin(
        db,
        BookingFilter(search=search, level=level, code=code, limit=limit, offset=offset)
    )


@router.get("/analytics/levels", response_model=OccupancyResponse)
async def get_level_analytics(
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Per-level occupancy and participant counts (admin only)."""
    return queries.level_occupancy(db)


# ============================================================================
# Seat Inventory
# ============================================================================

@router.get("/seats", response_model=List[SeatResponse])
async def list_seats(
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Get the seat inventory (admin only)."""
    return crud.get_all_seats(db)


@router.post("/seats/seed", response_model=SeedSeatsResponse)
async def seed_seats(
    admin_user: AdminUser = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    Create the configured seat layout (admin only).

    Seats that already exist are left alone, so this is safe to repeat.
    """
    created = crud.seed_seats(db, settings.seat_rows, settings.seats_per_row)
    return SeedSeatsResponse(created=created, total=crud.count_seats(db))
