"""Tests for the code, seat and booking stores.

This module tests:
- Compare-and-increment of code usage
- The idempotent expiry write
- Storage constraints backing the booking invariants
"""

import pytest
from sqlalchemy.exc import IntegrityError

from seatbooking.config import settings
from seatbooking.database import crud
from seatbooking.database.models import CodeStatus


def booking_row(seat_id="A1", level="Level 1", code="GURU2025"):
    return {
        "seat_id": seat_id,
        "level": level,
        "customer_name": "Asha Rao",
        "mobile_number": "9876543210",
        "email": "asha@example.com",
        "code_used": code,
    }


class TestInvitationCodeStore:
    """Test invitation code persistence."""

    def test_code_is_stored_normalized(self, test_db):
        code = crud.create_invitation_code(test_db, code="  summer25 ", allowed_levels=["Level 1"])

        assert code.code == "SUMMER25"
        assert code.status == CodeStatus.ACTIVE.value
        assert code.current_usage == 0
        assert code.max_usage == 1
        assert crud.get_invitation_code_by_code(test_db, "Summer25").id == code.id

    def test_existing_codes_lookup(self, test_db, guru_code, single_use_code):
        assert crud.get_existing_codes(test_db, ["guru2025", "new-one", "ONCE"]) == {"GURU2025", "ONCE"}

    def test_list_filters_by_status(self, test_db, guru_code, disabled_code):
        codes = crud.get_all_invitation_codes(test_db, status=CodeStatus.DISABLED.value)

        assert [c.code for c in codes] == ["OFF2025"]

    def test_usage_cannot_exceed_max_in_storage(self, test_db, single_use_code):
        single_use_code.current_usage = 2
        with pytest.raises(IntegrityError):
            test_db.commit()
        test_db.rollback()


class TestConsumeCodeUsage:
    """Test the conditional usage increment."""

    def test_increment_within_limit(self, test_db, guru_code):
        assert crud.consume_code_usage(test_db, guru_code.id, 1) is True
        test_db.commit()

        assert guru_code.current_usage == 1
        assert guru_code.status == CodeStatus.ACTIVE.value

    def test_reaching_the_limit_expires_the_code(self, test_db, guru_code):
        assert crud.consume_code_usage(test_db, guru_code.id, 2) is True
        test_db.commit()

        assert guru_code.current_usage == 2
        assert guru_code.status == CodeStatus.EXPIRED.value

    def test_increment_past_limit_is_refused(self, test_db, guru_code):
        assert crud.consume_code_usage(test_db, guru_code.id, 3) is False
        test_db.commit()

        assert guru_code.current_usage == 0

    def test_unlimited_code_always_increments(self, test_db, unlimited_code):
        for _ in range(5):
            assert crud.consume_code_usage(test_db, unlimited_code.id, 3) is True
        test_db.commit()

        assert unlimited_code.current_usage == 15
        assert unlimited_code.status == CodeStatus.ACTIVE.value

    def test_disabled_code_is_refused(self, test_db, disabled_code):
        assert crud.consume_code_usage(test_db, disabled_code.id, 1) is False


class TestExpireInvitationCode:
    """Test the active -> expired write."""

    def test_expire_is_idempotent(self, test_db, guru_code):
        assert crud.expire_invitation_code(test_db, guru_code.id) is True
        assert crud.expire_invitation_code(test_db, guru_code.id) is False

        assert guru_code.status == CodeStatus.EXPIRED.value

    def test_disabled_code_is_not_expired(self, test_db, disabled_code):
        assert crud.expire_invitation_code(test_db, disabled_code.id) is False

        assert disabled_code.status == CodeStatus.DISABLED.value


class TestSeatAndBookingStore:
    """Test seats and bookings."""

    def test_seed_is_idempotent(self, test_db):
        created = crud.seed_seats(test_db, settings.seat_rows, settings.seats_per_row)
        again = crud.seed_seats(test_db, settings.seat_rows, settings.seats_per_row)

        assert created == len(settings.seat_rows) * settings.seats_per_row
        assert again == 0
        assert crud.count_seats(test_db) == created

    def test_seats_are_ordered_by_row_and_number(self, test_db, seeded_seats):
        assert [s.id for s in seeded_seats[:3]] == ["A1", "A2", "A3"]
        assert seeded_seats[9].id == "A10"
        assert seeded_seats[-1].id == "R10"

    def test_seats_by_ids_skips_unknown(self, test_db, seeded_seats):
        seats = crud.get_seats_by_ids(test_db, ["A1", "Z9"])

        assert set(seats) == {"A1"}

    def test_second_booking_for_same_seat_and_level_is_rejected(self, test_db, seeded_seats):
        crud.add_bookings(test_db, [booking_row()])
        test_db.commit()

        with pytest.raises(IntegrityError):
            crud.add_bookings(test_db, [booking_row(code="OTHER")])
        test_db.rollback()

        assert crud.count_active_bookings(test_db, "A1", "Level 1") == 1

    def test_same_seat_other_level_is_allowed(self, test_db, seeded_seats):
        crud.add_bookings(test_db, [booking_row(level="Level 1"), booking_row(level="Level 2")])
        test_db.commit()

        assert crud.get_booked_seat_ids_for_level(test_db, "Level 2") == {"A1"}

    def test_find_booked_pairs(self, test_db, seeded_seats):
        crud.add_bookings(test_db, [booking_row("B2", "Level 3")])
        test_db.commit()

        pairs = [("A1", "Level 3"), ("B2", "Level 3"), ("B2", "Level 1")]
        assert crud.find_booked_pairs(test_db, pairs) == [("B2", "Level 3")]
