"""Invitation code validation.

The same checks back the speculative ``validate_code`` call made by the booking
UI and the authoritative re-check the redemption coordinator performs before
committing. The only write either path makes is the active -> expired
transition, which is idempotent.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from seatbooking.database import crud
from seatbooking.database.session import storage_errors
from seatbooking.database.models import InvitationCode, CodeStatus
from seatbooking.domain.errors import (
    DomainError,
    CodeInvalidError,
    CodeExpiredError,
    NameMismatchError,
    InternalError,
    StorageFailureError,
)
from seatbooking.domain.models import ValidationResult, normalize_code, normalize_name


logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_usage_exhausted(invitation: InvitationCode) -> bool:
    return invitation.max_usage is not None and invitation.current_usage >= invitation.max_usage


def advance_expiry(invitation: InvitationCode, now: datetime) -> Optional[CodeStatus]:
    """
    Decide whether an active code has to expire.

    Returns CodeStatus.EXPIRED when the expiry date has passed or the usage
    allowance is used up, otherwise None. Pure; persisting is up to the caller.
    """
    if invitation.status != CodeStatus.ACTIVE.value:
        return None
    if invitation.expires_at is not None and _as_utc(invitation.expires_at) < _as_utc(now):
        return CodeStatus.EXPIRED
    if is_usage_exhausted(invitation):
        return CodeStatus.EXPIRED
    return None


def check_invitation(
    db: Session,
    invitation: Optional[InvitationCode],
    participant_name: Optional[str] = None,
    now: Optional[datetime] = None
) -> InvitationCode:
    """
    Run the validation steps against a loaded code, raising on the first failure.

    Raises:
        CodeInvalidError: unknown or disabled code
        CodeExpiredError: expired by status, date or usage (``usage_exhausted`` set for the latter)
        NameMismatchError: a bound participant name does not match ``participant_name``
    """
    now = now or datetime.now(timezone.utc)

    if invitation is None:
        raise CodeInvalidError()

    if invitation.status == CodeStatus.DISABLED.value:
        raise CodeInvalidError()
    if invitation.status == CodeStatus.EXPIRED.value:
        raise CodeExpiredError(usage_exhausted=is_usage_exhausted(invitation))

    if advance_expiry(invitation, now) is CodeStatus.EXPIRED:
        exhausted = is_usage_exhausted(invitation)
        if crud.expire_invitation_code(db, invitation.id):
            logger.info(
                "Invitation code=%s expired (%s)",
                invitation.code,
                "usage exhausted" if exhausted else "past expiry date",
            )
        raise CodeExpiredError(usage_exhausted=exhausted)

    bound_name = (invitation.participant_name or "").strip()
    if bound_name and (participant_name or "").strip():
        if normalize_name(participant_name) != normalize_name(bound_name):
            raise NameMismatchError()

    return invitation


def validate_code(
    db: Session,
    code: str,
    participant_name: Optional[str] = None,
    now: Optional[datetime] = None
) -> ValidationResult:
    """
    Validate a code for display purposes.

    Never raises for business-rule failures; the reason is reported in the result.
    Storage failures still raise StorageFailureError or InternalError.
    """
    normalized = normalize_code(code)
    try:
        with storage_errors(db, f"Validation of code={normalized}"):
            invitation = crud.get_invitation_code_by_code(db, normalized)
            check_invitation(db, invitation, participant_name, now)
    except (StorageFailureError, InternalError):
        raise
    except DomainError as e:
        logger.info("Code validation rejected code=%s reason=%s", normalized, e.code.value)
        return ValidationResult(
            code=normalized,
            valid=False,
            reason=e.code,
            message=e.message,
            remaining_usage=0,
            participant_name_required=bool(invitation and (invitation.participant_name or "").strip()),
        )

    return ValidationResult(
        code=normalized,
        valid=True,
        allowed_levels=tuple(invitation.allowed_levels or ()),
        remaining_usage=invitation.remaining_usage,
        participant_name_required=bool((invitation.participant_name or "").strip()),
    )
