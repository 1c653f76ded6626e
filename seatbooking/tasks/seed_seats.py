#!/usr/bin/env python3
"""
Create the configured seat layout.

Safe to run repeatedly; seats that already exist are kept:
    python -m seatbooking.tasks.seed_seats
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database.session import get_db_context
from ..database import crud
from ..logging_config import configure_logging


logger = logging.getLogger(__name__)


def main():
    """Seed seats rows x 1..seats_per_row."""
    configure_logging(settings.log_level)
    logger.info(
        "Seeding seats: rows %s-%s, %d per row",
        settings.seat_rows[0],
        settings.seat_rows[-1],
        settings.seats_per_row,
    )

    try:
        with get_db_context() as db:
            created = crud.seed_seats(db, settings.seat_rows, settings.seats_per_row)
            logger.info("Created %d seats (%d total)", created, crud.count_seats(db))
        return 0

    except SQLAlchemyError:
        logger.exception("Failed to seed seats")
        return 1


if __name__ == "__main__":
    sys.exit(main())
