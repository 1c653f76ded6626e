"""SQLAlchemy database models.

This module defines the database schema using SQLAlchemy ORM:
invitation codes, the static seat inventory, bookings and admin accounts.
"""

from sqlalchemy import (
    Column, String, DateTime, Integer, ForeignKey, Index, JSON, CheckConstraint, text
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship, DeclarativeBase
from sqlalchemy.sql import func
from datetime import datetime, timezone
import enum
import uuid

# Use JSONB for PostgreSQL, JSON for other databases (like SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CodeStatus(str, enum.Enum):
    """Lifecycle of an invitation code. EXPIRED is terminal."""
    ACTIVE = "active"
    DISABLED = "disabled"
    EXPIRED = "expired"


class BookingStatus(str, enum.Enum):
    BOOKED = "booked"


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class AdminUser(Base):
    """Administrator account used for the admin API."""
    __tablename__ = "admin_users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<AdminUser(id={self.id}, email={self.email})>"


class InvitationCode(Base):
    """
    Invitation code that can be redeemed for seats.

    The code is stored normalized (trimmed, uppercase). Usage is only ever
    incremented through a conditional UPDATE, never read-modify-write.
    """
    __tablename__ = "invitation_codes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(100), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=CodeStatus.ACTIVE.value)
    current_usage = Column(Integer, nullable=False, default=0)
    max_usage = Column(Integer, nullable=True)  # NULL = unlimited
    expires_at = Column(DateTime(timezone=True), nullable=True)
    participant_name = Column(String(255), nullable=True)
    allowed_levels = Column(JSONType, nullable=False)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("current_usage >= 0", name="ck_invitation_codes_usage_non_negative"),
        CheckConstraint(
            "max_usage IS NULL OR current_usage <= max_usage",
            name="ck_invitation_codes_usage_within_max",
        ),
        CheckConstraint("max_usage IS NULL OR max_usage > 0", name="ck_invitation_codes_max_usage_positive"),
        Index("ix_invitation_codes_status", "status", "code"),
    )

    @property
    def remaining_usage(self):
        """Remaining redemptions, or None when unlimited."""
        if self.max_usage is None:
            return None
        return max(self.max_usage - self.current_usage, 0)

    def __repr__(self):
        return f"<InvitationCode(code={self.code}, status={self.status}, usage={self.current_usage}/{self.max_usage})>"


class Seat(Base):
    """Static seat inventory, seeded once."""
    __tablename__ = "seats"

    id = Column(String(10), primary_key=True)  # e.g. "A1"
    row = Column(String(5), nullable=False)
    number = Column(Integer, nullable=False)

    bookings = relationship("Booking", back_populates="seat")

    __table_args__ = (
        Index("ix_seats_row_number", "row", "number", unique=True),
    )

    def __repr__(self):
        return f"<Seat(id={self.id})>"


class Booking(Base):
    """
    A seat booked for one level.

    At most one booked row may exist per (seat_id, level); the partial unique
    index below is the arbiter for concurrent redemptions.
    """
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    seat_id = Column(String(10), ForeignKey("seats.id"), nullable=False)
    level = Column(String(50), nullable=False)
    customer_name = Column(String(255), nullable=False)
    mobile_number = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    code_used = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.BOOKED.value)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    seat = relationship("Seat", back_populates="bookings")

    __table_args__ = (
        Index(
            "uq_bookings_seat_level_booked",
            "seat_id",
            "level",
            unique=True,
            postgresql_where=text("status = 'booked'"),
            sqlite_where=text("status = 'booked'"),
        ),
        Index("ix_bookings_level_status", "level", "status"),
        Index("ix_bookings_code_used", "code_used"),
        Index("ix_bookings_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Booking(id={self.id}, seat={self.seat_id}, level={self.level})>"
