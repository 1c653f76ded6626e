"""Redemption coordinator.

Turns a code plus one or more (seat, level) selections into bookings. Either
every booking is inserted and the code's usage goes up by the number of
bookings, or nothing is written.

Two storage guarantees carry the concurrency story:

- the partial unique index on bookings(seat_id, level) for booked rows, so a
  concurrent insert for the same pair fails with IntegrityError;
- ``crud.consume_code_usage``, a conditional UPDATE that only applies while the
  new usage fits under max_usage.

The read checks that run first only pick the rejection reason.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from seatbooking.config import settings
from seatbooking.database import crud
from seatbooking.database.models import Booking, InvitationCode, CodeStatus
from seatbooking.domain.errors import (
    DomainError,
    CodeExpiredError,
    CodeInvalidError,
    InsufficientUsageError,
    InternalError,
    InvalidRequestError,
    LevelNotAllowedError,
    SeatAlreadyBookedError,
    SeatNotFoundError,
    StorageFailureError,
)
from seatbooking.domain.models import ParticipantDetails, SeatRequest, normalize_code, normalize_seat_id
from seatbooking.services.validator import check_invitation


logger = logging.getLogger(__name__)


def _set_statement_timeout(db: Session) -> None:
    """Bound every statement of the redemption transaction on PostgreSQL."""
    if db.get_bind().dialect.name == "postgresql":
        timeout_ms = int(settings.redemption_statement_timeout_ms)
        db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


def _validate_participant(participant: ParticipantDetails) -> None:
    missing = [
        name for name, value in (
            ("name", participant.name),
            ("mobile", participant.mobile),
            ("email", participant.email),
        )
        if not (value or "").strip()
    ]
    if missing:
        raise InvalidRequestError("Missing required fields", fields=missing)


def _resolve_requests(
    requests: Sequence[SeatRequest],
    allowed_levels: Sequence[str]
) -> List[Tuple[str, str]]:
    """
    Normalize seat ids, map levels onto the code's spelling and reject duplicates.

    Levels are matched case-insensitively against the code's allowed levels.
    """
    allowed = {level.lower(): level for level in allowed_levels}

    pairs: List[Tuple[str, str]] = []
    for request in requests:
        seat_id = normalize_seat_id(request.seat_id or "")
        level_key = (request.level or "").strip()
        if not seat_id or not level_key:
            raise InvalidRequestError("Each booking must have a seat and a level")

        level = allowed.get(level_key.lower())
        if level is None:
            raise LevelNotAllowedError(level_key)
        pairs.append((seat_id, level))

    seen = set()
    for pair in pairs:
        if pair in seen:
            raise InvalidRequestError(
                f"Seat {pair[0]} is requested more than once for {pair[1]}.",
                seat_id=pair[0],
                level=pair[1],
            )
        seen.add(pair)

    return pairs


def _check_seats(db: Session, pairs: List[Tuple[str, str]]) -> None:
    seats = crud.get_seats_by_ids(db, {seat_id for seat_id, _ in pairs})
    for seat_id, level in pairs:
        if seat_id not in seats:
            raise SeatNotFoundError(seat_id)

        booked = crud.count_active_bookings(db, seat_id, level)
        if booked > 1:
            logger.error(
                "Invariant violated: %d bookings for seat=%s level=%s", booked, seat_id, level
            )
            raise InternalError()
        if booked == 1:
            raise SeatAlreadyBookedError(seat_id, level)


def _commit_bookings(
    db: Session,
    invitation: InvitationCode,
    participant: ParticipantDetails,
    pairs: List[Tuple[str, str]]
) -> List[Booking]:
    bookings = crud.add_bookings(
        db,
        [
            {
                "seat_id": seat_id,
                "level": level,
                "customer_name": participant.name.strip(),
                "mobile_number": participant.mobile.strip(),
                "email": participant.email.strip(),
                "code_used": invitation.code,
            }
            for seat_id, level in pairs
        ]
    )

    if not crud.consume_code_usage(db, invitation.id, len(pairs)):
        # Lost the race for the code's last units of usage.
        db.rollback()
        db.refresh(invitation)
        if invitation.status == CodeStatus.DISABLED.value:
            raise CodeInvalidError()
        raise InsufficientUsageError(requested=len(pairs), remaining=invitation.remaining_usage or 0)

    db.commit()
    for booking in bookings:
        db.refresh(booking)
    return bookings


def _redeem(
    db: Session,
    code: str,
    participant: ParticipantDetails,
    requests: Sequence[SeatRequest],
    now: Optional[datetime]
) -> List[Booking]:
    _set_statement_timeout(db)

    invitation = crud.get_invitation_code_by_code(db, code, for_update=True)
    try:
        check_invitation(db, invitation, participant.name, now)
    except CodeExpiredError as e:
        if e.usage_exhausted:
            raise InsufficientUsageError(requested=len(requests), remaining=0) from e
        raise

    remaining = invitation.remaining_usage
    if remaining is not None and len(requests) > remaining:
        raise InsufficientUsageError(requested=len(requests), remaining=remaining)

    pairs = _resolve_requests(requests, invitation.allowed_levels or [])
    _check_seats(db, pairs)

    try:
        return _commit_bookings(db, invitation, participant, pairs)
    except IntegrityError:
        db.rollback()
        conflicts = crud.find_booked_pairs(db, pairs)
        seat_id, level = conflicts[0] if conflicts else pairs[0]
        raise SeatAlreadyBookedError(seat_id, level)


def redeem(
    db: Session,
    code: str,
    participant: ParticipantDetails,
    requests: Sequence[SeatRequest],
    now: Optional[datetime] = None
) -> List[Booking]:
    """
    Redeem ``code`` for every (seat, level) pair in ``requests``, atomically.

    Args:
        db: Database session; the redemption runs in its own transaction
        code: Invitation code as typed by the participant
        participant: Name, mobile number and e-mail for the bookings
        requests: Seat selections, at most one per (seat, level)
        now: Clock override for expiry checks

    Returns:
        The created bookings, with ids and timestamps assigned

    Raises:
        DomainError: a subclass naming the rejection reason; nothing was written
            except, possibly, the code's transition to expired
    """
    if not requests:
        raise InvalidRequestError("No bookings provided")
    if len(requests) > settings.redemption_seat_limit:
        raise InvalidRequestError(
            f"At most {settings.redemption_seat_limit} seats can be booked at once",
            limit=settings.redemption_seat_limit,
        )
    if not (code or "").strip():
        raise InvalidRequestError("Missing required fields", fields=["code"])
    _validate_participant(participant)

    normalized = normalize_code(code)
    try:
        bookings = _redeem(db, normalized, participant, requests, now or datetime.now(timezone.utc))
    except DomainError as e:
        db.rollback()
        logger.info("Redemption rejected code=%s reason=%s", normalized, e.code.value)
        raise
    except (OperationalError, PoolTimeoutError):
        db.rollback()
        logger.warning("Redemption for code=%s hit a storage failure", normalized, exc_info=True)
        raise StorageFailureError()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Redemption for code=%s failed", normalized)
        raise InternalError()

    logger.info(
        "Redeemed code=%s for %s",
        normalized,
        ", ".join(f"{b.seat_id}/{b.level}" for b in bookings),
    )
    return bookings
