"""Read-only projections for the booking UI and the admin panel.

Seat availability is always derived from bookings for the requested level;
seats carry no status of their own.
"""

from typing import List

from sqlalchemy.orm import Session

from seatbooking.config import settings
from seatbooking.database import crud
from seatbooking.database.models import Booking
from seatbooking.database.session import storage_errors
from seatbooking.domain.errors import LevelNotFoundError
from seatbooking.domain.models import (
    BookingFilter,
    LevelOccupancy,
    OccupancyReport,
    SeatAvailability,
)


def resolve_level(level: str) -> str:
    """Map a level name onto its configured spelling (case-insensitive)."""
    wanted = (level or "").strip().lower()
    for configured in settings.session_levels:
        if configured.lower() == wanted:
            return configured
    raise LevelNotFoundError(level)


def seats_for_level(db: Session, level: str) -> List[SeatAvailability]:
    """Every seat with its availability for one level."""
    level = resolve_level(level)
    with storage_errors(db, f"Seat map for level={level}"):
        booked = crud.get_booked_seat_ids_for_level(db, level)
        seats = crud.get_all_seats(db)
    return [
        SeatAvailability(
            seat_id=seat.id,
            row=seat.row,
            number=seat.number,
            available=seat.id not in booked,
        )
        for seat in seats
    ]


def bookings_for_admin(db: Session, booking_filter: BookingFilter) -> List[Booking]:
    """Bookings matching the admin filter, newest first."""
    level = resolve_level(booking_filter.level) if booking_filter.level else None
    return crud.get_bookings(
        db,
        search=booking_filter.search,
        level=level,
        code=booking_filter.code,
        limit=booking_filter.limit,
        offset=booking_filter.offset,
    )


def occupancy_status(percentage: float) -> str:
    if percentage >= settings.occupancy_critical_percent:
        return "red"
    if percentage >= settings.occupancy_warning_percent:
        return "yellow"
    return "green"


def level_occupancy(db: Session) -> OccupancyReport:
    """Per-level fill rates plus participant counts, computed on demand."""
    total_seats = crud.count_seats(db)
    booked_by_level = crud.count_bookings_by_level(db)
    stats = crud.get_participant_stats(db)

    levels = []
    for level in settings.session_levels:
        booked = booked_by_level.get(level, 0)
        percentage = round(booked * 100.0 / total_seats, 1) if total_seats else 0.0
        levels.append(
            LevelOccupancy(
                level=level,
                total_seats=total_seats,
                booked_seats=booked,
                available_seats=max(total_seats - booked, 0),
                percentage_filled=percentage,
                status=occupancy_status(percentage),
            )
        )

    return OccupancyReport(
        total_bookings=stats["total_bookings"],
        unique_participants=stats["unique_participants"],
        multi_level_participants=stats["multi_level_participants"],
        levels=levels,
    )
