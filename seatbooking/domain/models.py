"""Value objects passed between the API layer and the services.

These are pure domain objects with no HTTP or ORM concerns.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from seatbooking.domain.errors import ErrorCode


def normalize_code(code: str) -> str:
    """Codes are compared trimmed and uppercased."""
    return code.strip().upper()


def normalize_name(name: str) -> str:
    """Names are compared case-insensitively with whitespace collapsed."""
    return " ".join(name.split()).casefold()


def normalize_seat_id(seat_id: str) -> str:
    return seat_id.strip().upper()


@dataclass(frozen=True)
class ParticipantDetails:
    name: str
    mobile: str
    email: str


@dataclass(frozen=True)
class SeatRequest:
    """One (seat, level) pair in a redemption."""

    seat_id: str
    level: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a code, safe to show to the caller."""

    code: str
    valid: bool
    reason: Optional[ErrorCode] = None
    message: Optional[str] = None
    allowed_levels: Tuple[str, ...] = ()
    remaining_usage: Optional[int] = None  # None = unlimited
    participant_name_required: bool = False


@dataclass(frozen=True)
class SeatAvailability:
    seat_id: str
    row: str
    number: int
    available: bool


@dataclass(frozen=True)
class BookingFilter:
    """Admin booking list filter."""

    search: Optional[str] = None
    level: Optional[str] = None
    code: Optional[str] = None
    limit: int = 100
    offset: int = 0


@dataclass(frozen=True)
class LevelOccupancy:
    level: str
    total_seats: int
    booked_seats: int
    available_seats: int
    percentage_filled: float
    status: str  # green / yellow / red


@dataclass(frozen=True)
class OccupancyReport:
    total_bookings: int
    unique_participants: int
    multi_level_participants: int
    levels: List[LevelOccupancy] = field(default_factory=list)
