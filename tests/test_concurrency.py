"""Concurrent redemption tests.

These run against a file-backed SQLite database so that every thread has its
own connection and transactions really contend for the write lock.
"""

import threading

import pytest
from sqlalchemy.orm import sessionmaker

from seatbooking.config import settings
from seatbooking.database import crud
from seatbooking.database.models import Base
from seatbooking.database.session import create_db_engine
from seatbooking.domain.errors import DomainError, InsufficientUsageError, SeatAlreadyBookedError
from seatbooking.domain.models import ParticipantDetails, SeatRequest
from seatbooking.services.redemption import redeem


THREADS = 8
PARTICIPANT = ParticipantDetails(name="Asha Rao", mobile="9876543210", email="asha@example.com")


@pytest.fixture
def file_sessionmaker(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with factory() as db:
        crud.seed_seats(db, settings.seat_rows, settings.seats_per_row)

    yield factory
    engine.dispose()


def run_concurrently(factory, calls):
    """Run each (code, requests) pair in its own thread and session, all released at once."""
    barrier = threading.Barrier(len(calls))
    outcomes = [None] * len(calls)

    def worker(index, code, requests):
        with factory() as db:
            barrier.wait()
            try:
                outcomes[index] = redeem(db, code, PARTICIPANT, requests)
            except DomainError as e:
                outcomes[index] = e

    threads = [
        threading.Thread(target=worker, args=(i, code, requests))
        for i, (code, requests) in enumerate(calls)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    return outcomes


class TestConcurrentRedemption:
    """Test races between redemptions."""

    def test_same_seat_from_many_codes_books_once(self, file_sessionmaker):
        with file_sessionmaker() as db:
            for n in range(THREADS):
                crud.create_invitation_code(db, code=f"RACE{n}", allowed_levels=["Level 1"], max_usage=1)

        outcomes = run_concurrently(
            file_sessionmaker,
            [(f"RACE{n}", [SeatRequest("E5", "Level 1")]) for n in range(THREADS)]
        )

        winners = [o for o in outcomes if isinstance(o, list)]
        losers = [o for o in outcomes if not isinstance(o, list)]
        assert len(winners) == 1
        assert all(isinstance(o, SeatAlreadyBookedError) for o in losers)

        with file_sessionmaker() as db:
            assert crud.count_active_bookings(db, "E5", "Level 1") == 1
            used = [crud.get_invitation_code_by_code(db, f"RACE{n}").current_usage for n in range(THREADS)]
            assert sorted(used) == [0] * (THREADS - 1) + [1]

    def test_single_use_code_from_many_threads_redeems_once(self, file_sessionmaker):
        with file_sessionmaker() as db:
            crud.create_invitation_code(db, code="SHARED", allowed_levels=["Level 1"], max_usage=1)

        outcomes = run_concurrently(
            file_sessionmaker,
            [("SHARED", [SeatRequest(f"F{n + 1}", "Level 1")]) for n in range(THREADS)]
        )

        winners = [o for o in outcomes if isinstance(o, list)]
        losers = [o for o in outcomes if not isinstance(o, list)]
        assert len(winners) == 1
        assert all(isinstance(o, InsufficientUsageError) for o in losers)

        with file_sessionmaker() as db:
            code = crud.get_invitation_code_by_code(db, "SHARED")
            assert code.current_usage == 1
            assert len(crud.get_bookings(db, code="SHARED")) == 1

    def test_usage_never_exceeds_the_limit(self, file_sessionmaker):
        with file_sessionmaker() as db:
            crud.create_invitation_code(db, code="TRIPLE", allowed_levels=["Level 2"], max_usage=3)

        outcomes = run_concurrently(
            file_sessionmaker,
            [("TRIPLE", [SeatRequest(f"G{n + 1}", "Level 2")]) for n in range(THREADS)]
        )

        assert sum(1 for o in outcomes if isinstance(o, list)) == 3

        with file_sessionmaker() as db:
            code = crud.get_invitation_code_by_code(db, "TRIPLE")
            assert code.current_usage == 3
            assert code.status == "expired"
