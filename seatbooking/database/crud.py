"""CRUD (Create, Read, Update, Delete) operations for database models.

This module provides reusable database operations for each model. Functions
that are part of a larger transaction (booking inserts, usage increments) only
flush; the caller owns the commit.
"""

from typing import List, Optional, Dict, Any, Iterable, Set, Tuple
from datetime import datetime
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import select, update, and_, or_, case, func

from .models import AdminUser, InvitationCode, Seat, Booking, CodeStatus, BookingStatus, utcnow
from ..domain.models import normalize_code


# ============================================================================
# Admin User CRUD Operations
# ============================================================================

def create_admin_user(
    db: Session,
    email: str,
    password_hash: str,
    full_name: Optional[str] = None
) -> AdminUser:
    """Create a new admin account."""
    admin = AdminUser(
        email=email.strip().lower(),
        password_hash=password_hash,
        full_name=full_name
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def get_admin_user_by_id(db: Session, admin_id: UUID) -> Optional[AdminUser]:
    """Get admin by ID."""
    return db.get(AdminUser, admin_id)


def get_admin_user_by_email(db: Session, email: str) -> Optional[AdminUser]:
    """Get admin by email."""
    stmt = select(AdminUser).where(AdminUser.email == email.strip().lower())
    return db.scalar(stmt)


def update_admin_last_login(db: Session, admin_id: UUID) -> None:
    """Update admin's last login timestamp."""
    admin = db.get(AdminUser, admin_id)
    if admin:
        admin.last_login = utcnow()
        db.commit()


# ============================================================================
# Invitation Code CRUD Operations
# ============================================================================

def create_invitation_code(
    db: Session,
    code: str,
    allowed_levels: List[str],
    max_usage: Optional[int] = 1,
    expires_at: Optional[datetime] = None,
    participant_name: Optional[str] = None,
    created_by: Optional[str] = None
) -> InvitationCode:
    """Create a new invitation code. The code string is stored normalized."""
    invitation = InvitationCode(
        code=normalize_code(code),
        status=CodeStatus.ACTIVE.value,
        current_usage=0,
        max_usage=max_usage,
        expires_at=expires_at,
        participant_name=participant_name,
        allowed_levels=list(allowed_levels),
        created_by=created_by
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)
    return invitation


def create_invitation_codes_batch(
    db: Session,
    rows: List[Dict[str, Any]],
    created_by: Optional[str] = None
) -> List[InvitationCode]:
    """
    Create multiple invitation codes in one transaction.

    Args:
        db: Database session
        rows: Column dictionaries (code, allowed_levels, max_usage, ...)
        created_by: Admin identity recorded on every row

    Returns:
        The created codes
    """
    codes = [
        InvitationCode(
            **{**row, "code": normalize_code(row["code"])},
            status=CodeStatus.ACTIVE.value,
            current_usage=0,
            created_by=created_by
        )
        for row in rows
    ]
    db.add_all(codes)
    db.commit()
    return codes


def get_invitation_code_by_id(db: Session, code_id: UUID) -> Optional[InvitationCode]:
    """Get an invitation code by ID."""
    return db.get(InvitationCode, code_id)


def get_invitation_code_by_code(
    db: Session,
    code: str,
    for_update: bool = False
) -> Optional[InvitationCode]:
    """
    Get an invitation code by its code string (case-insensitive).

    With for_update the row is locked until the transaction ends
    (PostgreSQL; SQLite ignores the clause).
    """
    stmt = select(InvitationCode).where(InvitationCode.code == normalize_code(code))
    if for_update:
        stmt = stmt.with_for_update()
    return db.scalar(stmt)


def get_existing_codes(db: Session, codes: Iterable[str]) -> Set[str]:
    """Return which of the given (normalized) codes already exist."""
    normalized = {normalize_code(c) for c in codes}
    if not normalized:
        return set()
    stmt = select(InvitationCode.code).where(InvitationCode.code.in_(normalized))
    return set(db.scalars(stmt))


def get_all_invitation_codes(
    db: Session,
    limit: int = 100,
    offset: int = 0,
    status: Optional[str] = None
) -> List[InvitationCode]:
    """Get invitation codes, newest first (admin only)."""
    stmt = select(InvitationCode)
    if status:
        stmt = stmt.where(InvitationCode.status == status)
    stmt = stmt.order_by(InvitationCode.created_at.desc()).offset(offset).limit(limit)
    return list(db.scalars(stmt))


def delete_invitation_code(db: Session, code_id: UUID) -> bool:
    """Delete an invitation code. Bookings keep the code string they were made with."""
    invitation = db.get(InvitationCode, code_id)
    if invitation:
        db.delete(invitation)
        db.commit()
        return True
    return False


def expire_invitation_code(db: Session, code_id: UUID) -> bool:
    """
    Move an active code to expired and commit.

    Idempotent: returns False when the code was no longer active.
    """
    stmt = (
        update(InvitationCode)
        .where(
            and_(
                InvitationCode.id == code_id,
                InvitationCode.status == CodeStatus.ACTIVE.value
            )
        )
        .values(status=CodeStatus.EXPIRED.value, updated_at=utcnow())
    )
    result = db.execute(stmt, execution_options={"synchronize_session": False})
    db.commit()
    return result.rowcount == 1


def consume_code_usage(db: Session, code_id: UUID, count: int) -> bool:
    """
    Atomically add ``count`` to a code's usage (compare-and-increment).

    The UPDATE only matches while the code is active and the new usage stays
    within max_usage; when the new usage reaches the limit the status flips to
    expired in the same statement. Does not commit.

    Returns:
        True if the increment was applied, False if another redemption or an
        admin edit got there first.
    """
    new_usage = InvitationCode.current_usage + count
    stmt = (
        update(InvitationCode)
        .where(
            and_(
                InvitationCode.id == code_id,
                InvitationCode.status == CodeStatus.ACTIVE.value,
                or_(
                    InvitationCode.max_usage == None,
                    new_usage <= InvitationCode.max_usage
                )
            )
        )
        .values(
            current_usage=new_usage,
            status=case(
                (
                    and_(InvitationCode.max_usage != None, new_usage >= InvitationCode.max_usage),
                    CodeStatus.EXPIRED.value
                ),
                else_=InvitationCode.status
            ),
            updated_at=utcnow()
        )
    )
    result = db.execute(stmt, execution_options={"synchronize_session": False})
    return result.rowcount == 1


# ============================================================================
# Seat CRUD Operations
# ============================================================================

def seed_seats(db: Session, rows: str, seats_per_row: int) -> int:
    """
    Create the seat layout (rows x 1..seats_per_row). Existing seats are kept.

    Returns:
        Number of seats created
    """
    existing = set(db.scalars(select(Seat.id)))
    created = 0
    for row in rows:
        for number in range(1, seats_per_row + 1):
            seat_id = f"{row}{number}"
            if seat_id in existing:
                continue
            db.add(Seat(id=seat_id, row=row, number=number))
            created += 1

    if created > 0:
        db.commit()

    return created


def get_all_seats(db: Session) -> List[Seat]:
    """Get the full seat inventory ordered by row and number."""
    stmt = select(Seat).order_by(Seat.row, Seat.number)
    return list(db.scalars(stmt))


def get_seats_by_ids(db: Session, seat_ids: Iterable[str]) -> Dict[str, Seat]:
    """Get seats keyed by id; missing ids are absent from the result."""
    ids = set(seat_ids)
    if not ids:
        return {}
    stmt = select(Seat).where(Seat.id.in_(ids))
    return {seat.id: seat for seat in db.scalars(stmt)}


def count_seats(db: Session) -> int:
    """Total seats in the inventory."""
    return db.scalar(select(func.count(Seat.id))) or 0


# ============================================================================
# Booking CRUD Operations
# ============================================================================

def add_bookings(db: Session, records: List[Dict[str, Any]]) -> List[Booking]:
    """
    Stage booking rows and flush them so unique-index conflicts surface now.

    Does not commit; raises IntegrityError on a (seat, level) conflict.
    """
    bookings = [Booking(status=BookingStatus.BOOKED.value, **record) for record in records]
    db.add_all(bookings)
    db.flush()
    return bookings


def count_active_bookings(db: Session, seat_id: str, level: str) -> int:
    """Number of booked rows for one (seat, level) pair. Anything above 1 is corruption."""
    stmt = select(func.count(Booking.id)).where(
        and_(
            Booking.seat_id == seat_id,
            Booking.level == level,
            Booking.status == BookingStatus.BOOKED.value
        )
    )
    return db.scalar(stmt) or 0


def find_booked_pairs(db: Session, pairs: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Return the (seat_id, level) pairs from ``pairs`` that already have a booking."""
    pairs = list(pairs)
    if not pairs:
        return []
    stmt = select(Booking.seat_id, Booking.level).where(
        and_(
            Booking.status == BookingStatus.BOOKED.value,
            or_(*[and_(Booking.seat_id == s, Booking.level == l) for s, l in pairs])
        )
    )
    booked = {(row.seat_id, row.level) for row in db.execute(stmt)}
    return [pair for pair in pairs if pair in booked]


def get_booked_seat_ids_for_level(db: Session, level: str) -> Set[str]:
    """Seat ids that are booked for the given level."""
    stmt = select(Booking.seat_id).where(
        and_(
            Booking.level == level,
            Booking.status == BookingStatus.BOOKED.value
        )
    )
    return set(db.scalars(stmt))


def get_bookings(
    db: Session,
    search: Optional[str] = None,
    level: Optional[str] = None,
    code: Optional[str] = None,
    limit: int = 100,
    offset: int = 0
) -> List[Booking]:
    """
    Get bookings, newest first (admin only).

    ``search`` matches customer name, seat, email or code used, case-insensitively.
    """
    stmt = select(Booking)

    if search:
        # % and _ in the search text match literally.
        term = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                Booking.customer_name.ilike(pattern, escape="\\"),
                Booking.seat_id.ilike(pattern, escape="\\"),
                Booking.email.ilike(pattern, escape="\\"),
                Booking.code_used.ilike(pattern, escape="\\")
            )
        )
    if level:
        stmt = stmt.where(Booking.level == level)
    if code:
        stmt = stmt.where(Booking.code_used == normalize_code(code))

    stmt = stmt.order_by(Booking.created_at.desc()).offset(offset).limit(limit)
    return list(db.scalars(stmt))


def count_bookings_by_level(db: Session) -> Dict[str, int]:
    """Booked seat count per level."""
    stmt = select(Booking.level, func.count(Booking.id)).where(
        Booking.status == BookingStatus.BOOKED.value
    ).group_by(Booking.level)
    return {level: count for level, count in db.execute(stmt)}


def get_participant_stats(db: Session) -> Dict[str, int]:
    """
    Participant counts across all booked rows.

    Participants are identified by e-mail, case-insensitively.
    """
    participant = func.lower(Booking.email)
    per_participant = (
        select(
            participant.label("participant"),
            func.count(func.distinct(Booking.level)).label("levels")
        )
        .where(Booking.status == BookingStatus.BOOKED.value)
        .group_by(participant)
        .subquery()
    )

    total = db.scalar(
        select(func.count(Booking.id)).where(Booking.status == BookingStatus.BOOKED.value)
    ) or 0
    unique = db.scalar(select(func.count()).select_from(per_participant)) or 0
    multi_level = db.scalar(
        select(func.count()).select_from(per_participant).where(per_participant.c.levels > 1)
    ) or 0

    return {
        "total_bookings": total,
        "unique_participants": unique,
        "multi_level_participants": multi_level
    }
