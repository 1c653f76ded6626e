"""Domain error codes for invitation validation and seat redemption."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_REQUEST = "INVALID_REQUEST"
    CODE_INVALID = "CODE_INVALID"
    CODE_EXPIRED = "CODE_EXPIRED"
    NAME_MISMATCH = "NAME_MISMATCH"
    INSUFFICIENT_USAGE = "INSUFFICIENT_USAGE"
    LEVEL_NOT_ALLOWED = "LEVEL_NOT_ALLOWED"
    LEVEL_NOT_FOUND = "LEVEL_NOT_FOUND"
    SEAT_NOT_FOUND = "SEAT_NOT_FOUND"
    SEAT_ALREADY_BOOKED = "SEAT_ALREADY_BOOKED"
    CODE_NOT_FOUND = "CODE_NOT_FOUND"
    CODE_CONFLICT = "CODE_CONFLICT"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    retryable = False

    def __init__(self, code: ErrorCode, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail or {}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidRequestError(DomainError):
    """Raised for malformed client input; nothing is written."""

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(code=ErrorCode.INVALID_REQUEST, message=message, detail=detail)


class CodeInvalidError(DomainError):
    """Raised when a code does not exist or has been disabled."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CODE_INVALID,
            message="This invitation code is not valid.",
        )


class CodeExpiredError(DomainError):
    """Raised when a code is past its expiry date or has used up its allowance."""

    def __init__(self, usage_exhausted: bool = False) -> None:
        super().__init__(
            code=ErrorCode.CODE_EXPIRED,
            message="This invitation code has expired.",
        )
        self.usage_exhausted = usage_exhausted


class NameMismatchError(DomainError):
    """Raised when the supplied name does not match the name bound to the code."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NAME_MISMATCH,
            message="Your name does not match the invitation.",
        )


class InsufficientUsageError(DomainError):
    """Raised when more seats are requested than the code has left."""

    def __init__(self, requested: int, remaining: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_USAGE,
            message=(
                f"Insufficient usage remaining. You can book up to {remaining} "
                f"level(s) with this code."
            ),
            detail={"requested": requested, "remaining": remaining},
        )


class LevelNotAllowedError(DomainError):
    """Raised when a requested level is not among the code's allowed levels."""

    def __init__(self, level: str) -> None:
        super().__init__(
            code=ErrorCode.LEVEL_NOT_ALLOWED,
            message=f'Level "{level}" is not allowed for this code.',
            detail={"level": level},
        )


class LevelNotFoundError(DomainError):
    """Raised when a level is not part of the event."""

    def __init__(self, level: str) -> None:
        super().__init__(
            code=ErrorCode.LEVEL_NOT_FOUND,
            message=f'Level "{level}" does not exist.',
            detail={"level": level},
        )


class SeatNotFoundError(DomainError):
    """Raised when a requested seat is not in the inventory."""

    def __init__(self, seat_id: str) -> None:
        super().__init__(
            code=ErrorCode.SEAT_NOT_FOUND,
            message=f"Seat {seat_id} not found.",
            detail={"seat_id": seat_id},
        )


class SeatAlreadyBookedError(DomainError):
    """Raised when a (seat, level) pair already has a booking."""

    def __init__(self, seat_id: str, level: str) -> None:
        super().__init__(
            code=ErrorCode.SEAT_ALREADY_BOOKED,
            message=f"Seat {seat_id} is already booked for {level}.",
            detail={"seat_id": seat_id, "level": level},
        )


class CodeNotFoundError(DomainError):
    """Raised by admin operations on a code id that does not exist."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.CODE_NOT_FOUND,
            message="Invitation code not found",
        )


class CodeConflictError(DomainError):
    """Raised when an admin edit would break a code invariant."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.CODE_CONFLICT, message=message)


class StorageFailureError(DomainError):
    """Transient storage problem; nothing was committed and the request may be resent."""

    retryable = True

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_FAILURE,
            message="The booking could not be completed right now. Please try again.",
        )


class InternalError(DomainError):
    """Invariant violation or unexpected failure. Not retried."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(code=ErrorCode.INTERNAL_ERROR, message=message)
