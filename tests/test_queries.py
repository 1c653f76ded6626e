"""Tests for the read-side queries: seat maps, admin booking list and analytics."""

import pytest

from seatbooking.domain.errors import LevelNotFoundError
from seatbooking.domain.models import BookingFilter, ParticipantDetails, SeatRequest
from seatbooking.services import queries
from seatbooking.services.redemption import redeem


class TestSeatMap:
    """Test per-level seat availability."""

    def test_all_seats_available_initially(self, test_db, seeded_seats):
        seats = queries.seats_for_level(test_db, "Level 1")

        assert len(seats) == 180
        assert all(s.available for s in seats)
        assert (seats[0].seat_id, seats[0].row, seats[0].number) == ("A1", "A", 1)

    def test_booking_only_affects_its_level(self, test_db, seeded_seats, guru_code, participant):
        redeem(test_db, "GURU2025", participant, [SeatRequest("B3", "Level 1")])

        level_1 = {s.seat_id: s.available for s in queries.seats_for_level(test_db, "Level 1")}
        level_2 = {s.seat_id: s.available for s in queries.seats_for_level(test_db, "Level 2")}

        assert level_1["B3"] is False
        assert level_2["B3"] is True

    def test_level_name_is_case_insensitive(self, test_db, seeded_seats):
        assert len(queries.seats_for_level(test_db, "LEVEL 3")) == 180

    def test_unknown_level(self, test_db, seeded_seats):
        with pytest.raises(LevelNotFoundError):
            queries.seats_for_level(test_db, "Level 9")


class TestAdminBookings:
    """Test the admin booking filter."""

    @pytest.fixture
    def bookings(self, test_db, seeded_seats, unlimited_code):
        ravi = ParticipantDetails(name="Ravi Kumar", mobile="9000000001", email="ravi@example.com")
        meera = ParticipantDetails(name="Meera Iyer", mobile="9000000002", email="meera@example.com")
        redeem(test_db, "OPEN", ravi, [SeatRequest("A1", "Level 1"), SeatRequest("A1", "Level 2")])
        redeem(test_db, "OPEN", meera, [SeatRequest("H7", "Level 3")])

    def test_search_by_name(self, test_db, bookings):
        results = queries.bookings_for_admin(test_db, BookingFilter(search="ravi"))

        assert {b.level for b in results} == {"Level 1", "Level 2"}

    def test_search_by_seat(self, test_db, bookings):
        results = queries.bookings_for_admin(test_db, BookingFilter(search="h7"))

        assert [b.customer_name for b in results] == ["Meera Iyer"]

    def test_search_wildcards_match_literally(self, test_db, bookings):
        assert queries.bookings_for_admin(test_db, BookingFilter(search="%")) == []
        assert queries.bookings_for_admin(test_db, BookingFilter(search="_")) == []
        assert queries.bookings_for_admin(test_db, BookingFilter(search="r%i")) == []

    def test_filter_by_level(self, test_db, bookings):
        results = queries.bookings_for_admin(test_db, BookingFilter(level="level 3"))

        assert [b.seat_id for b in results] == ["H7"]

    def test_filter_by_code(self, test_db, bookings):
        assert len(queries.bookings_for_admin(test_db, BookingFilter(code="open"))) == 3
        assert queries.bookings_for_admin(test_db, BookingFilter(code="GURU2025")) == []

    def test_paging(self, test_db, bookings):
        first = queries.bookings_for_admin(test_db, BookingFilter(limit=2))
        rest = queries.bookings_for_admin(test_db, BookingFilter(limit=2, offset=2))

        assert len(first) == 2
        assert len(rest) == 1


class TestLevelOccupancy:
    """Test level analytics."""

    def test_status_thresholds(self):
        assert queries.occupancy_status(0) == "green"
        assert queries.occupancy_status(49.9) == "green"
        assert queries.occupancy_status(50) == "yellow"
        assert queries.occupancy_status(79.9) == "yellow"
        assert queries.occupancy_status(80) == "red"

    def test_empty_event(self, test_db, seeded_seats):
        report = queries.level_occupancy(test_db)

        assert report.total_bookings == 0
        assert report.unique_participants == 0
        assert [l.level for l in report.levels] == ["Level 1", "Level 2", "Level 3"]
        assert all(l.available_seats == 180 and l.status == "green" for l in report.levels)

    def test_counts_and_participants(self, test_db, seeded_seats, unlimited_code):
        asha = ParticipantDetails(name="Asha Rao", mobile="9876543210", email="asha@example.com")
        asha_again = ParticipantDetails(name="Asha Rao", mobile="9876543210", email="ASHA@example.com")
        ravi = ParticipantDetails(name="Ravi Kumar", mobile="9000000001", email="ravi@example.com")
        redeem(test_db, "OPEN", asha, [SeatRequest("A1", "Level 1")])
        redeem(test_db, "OPEN", asha_again, [SeatRequest("A1", "Level 2")])
        redeem(test_db, "OPEN", ravi, [SeatRequest("A2", "Level 1")])

        report = queries.level_occupancy(test_db)
        by_level = {l.level: l for l in report.levels}

        assert report.total_bookings == 3
        assert report.unique_participants == 2
        assert report.multi_level_participants == 1
        assert by_level["Level 1"].booked_seats == 2
        assert by_level["Level 1"].available_seats == 178
        assert by_level["Level 1"].percentage_filled == 1.1
        assert by_level["Level 3"].booked_seats == 0
