"""Administrator operations on invitation codes: create, edit, bulk import."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seatbooking.config import settings
from seatbooking.database import crud
from seatbooking.database.models import InvitationCode, CodeStatus
from seatbooking.domain.errors import (
    CodeConflictError,
    CodeNotFoundError,
    InvalidRequestError,
    LevelNotFoundError,
)
from seatbooking.domain.models import normalize_code
from seatbooking.services.queries import resolve_level
from seatbooking.services.validator import advance_expiry


logger = logging.getLogger(__name__)

EDITABLE_STATUSES = {CodeStatus.ACTIVE.value, CodeStatus.DISABLED.value}


@dataclass(frozen=True)
class ImportRowResult:
    row: int
    code: str
    imported: bool
    error: Optional[str] = None


def _clean_levels(levels: Optional[Sequence[str]]) -> List[str]:
    if levels is None:
        return list(settings.default_allowed_levels)

    cleaned: List[str] = []
    for level in levels:
        try:
            resolved = resolve_level(level)
        except LevelNotFoundError:
            raise InvalidRequestError(f'Level "{level}" does not exist.', level=level)
        if resolved not in cleaned:
            cleaned.append(resolved)

    if not cleaned:
        raise InvalidRequestError("At least one level must be selected")
    return cleaned


def _clean_max_usage(max_usage: Optional[int]) -> Optional[int]:
    if max_usage is not None and max_usage < 1:
        raise InvalidRequestError("Max usage must be at least 1", max_usage=max_usage)
    return max_usage


def _clean_name(name: Optional[str]) -> Optional[str]:
    name = (name or "").strip()
    return name or None


def create_code(
    db: Session,
    code: str,
    allowed_levels: Optional[Sequence[str]] = None,
    max_usage: Optional[int] = 1,
    expires_at: Optional[datetime] = None,
    participant_name: Optional[str] = None,
    created_by: Optional[str] = None
) -> InvitationCode:
    """
    Create a single invitation code.

    Raises:
        InvalidRequestError: empty code, bad usage limit or unknown level
        CodeConflictError: the code already exists
    """
    normalized = normalize_code(code or "")
    if not normalized:
        raise InvalidRequestError("Code is required")

    levels = _clean_levels(allowed_levels)
    max_usage = _clean_max_usage(max_usage)

    if crud.get_invitation_code_by_code(db, normalized):
        raise CodeConflictError("Invitation code already exists")

    try:
        invitation = crud.create_invitation_code(
            db,
            code=normalized,
            allowed_levels=levels,
            max_usage=max_usage,
            expires_at=expires_at,
            participant_name=_clean_name(participant_name),
            created_by=created_by
        )
    except IntegrityError:
        db.rollback()
        raise CodeConflictError("Invitation code already exists")

    logger.info("Invitation code=%s created by %s", normalized, created_by or "unknown")
    return invitation


def update_code(db: Session, code_id: UUID, changes: Dict[str, Any]) -> InvitationCode:
    """
    Apply an admin edit.

    Expired is terminal, max_usage may not drop below the usage already
    consumed, and an edit that leaves the code used up or past its expiry
    expires it right away.
    """
    invitation = crud.get_invitation_code_by_id(db, code_id)
    if not invitation:
        raise CodeNotFoundError()

    update_data: Dict[str, Any] = {}

    if "status" in changes and changes["status"] is not None:
        status = changes["status"]
        if status not in EDITABLE_STATUSES:
            raise InvalidRequestError("Status must be active or disabled", status=status)
        if invitation.status == CodeStatus.EXPIRED.value and status != CodeStatus.EXPIRED.value:
            raise CodeConflictError("Expired codes cannot be reactivated")
        update_data["status"] = status

    if "max_usage" in changes:
        max_usage = _clean_max_usage(changes["max_usage"])
        if max_usage is not None and max_usage < invitation.current_usage:
            raise CodeConflictError(
                f"Max usage cannot be lower than the current usage ({invitation.current_usage})"
            )
        update_data["max_usage"] = max_usage

    if "expires_at" in changes:
        update_data["expires_at"] = changes["expires_at"]

    if "participant_name" in changes:
        update_data["participant_name"] = _clean_name(changes["participant_name"])

    if "allowed_levels" in changes and changes["allowed_levels"] is not None:
        update_data["allowed_levels"] = _clean_levels(changes["allowed_levels"])

    # Check the edited state before writing so the expiry lands in the same commit.
    for key, value in update_data.items():
        setattr(invitation, key, value)
    if advance_expiry(invitation, datetime.now(timezone.utc)) is CodeStatus.EXPIRED:
        invitation.status = CodeStatus.EXPIRED.value

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise CodeConflictError("The code changed while it was being edited; reload and try again")

    db.refresh(invitation)
    logger.info("Invitation code=%s updated (%s)", invitation.code, ", ".join(sorted(update_data)) or "no changes")
    return invitation


def delete_code(db: Session, code_id: UUID) -> None:
    if not crud.delete_invitation_code(db, code_id):
        raise CodeNotFoundError()


def bulk_import(
    db: Session,
    rows: Sequence[Dict[str, Any]],
    created_by: Optional[str] = None
) -> List[ImportRowResult]:
    """
    Import many codes at once.

    Each row may carry code, participant_name, expires_at, max_usage and
    allowed_levels. Rows with an empty code, a code repeated in the batch or a
    code that already exists are reported and skipped; the rest are inserted
    in one transaction.
    """
    existing = crud.get_existing_codes(db, [r.get("code") or "" for r in rows])
    seen = set()
    results: List[ImportRowResult] = []
    to_create: List[Dict[str, Any]] = []

    for index, row in enumerate(rows, start=1):
        code = normalize_code(row.get("code") or "")
        if not code:
            results.append(ImportRowResult(row=index, code="", imported=False, error="Code is required"))
            continue
        if code in existing:
            results.append(ImportRowResult(row=index, code=code, imported=False, error="Code already exists in database"))
            continue
        if code in seen:
            results.append(ImportRowResult(row=index, code=code, imported=False, error="Duplicate code in file"))
            continue

        try:
            levels = _clean_levels(row.get("allowed_levels"))
            max_usage = _clean_max_usage(1 if row.get("max_usage") is None else row["max_usage"])
        except InvalidRequestError as e:
            results.append(ImportRowResult(row=index, code=code, imported=False, error=e.message))
            continue

        seen.add(code)
        to_create.append({
            "code": code,
            "participant_name": _clean_name(row.get("participant_name")),
            "expires_at": row.get("expires_at"),
            "max_usage": max_usage,
            "allowed_levels": levels,
        })
        results.append(ImportRowResult(row=index, code=code, imported=True))

    if to_create:
        try:
            crud.create_invitation_codes_batch(db, to_create, created_by=created_by)
        except IntegrityError:
            db.rollback()
            raise CodeConflictError("Some codes were created concurrently; nothing was imported")

    logger.info(
        "Bulk import by %s: %d imported, %d skipped",
        created_by or "unknown",
        len(to_create),
        len(results) - len(to_create),
    )
    return results
