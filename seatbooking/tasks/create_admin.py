#!/usr/bin/env python3
"""
Create an admin account.

    python -m seatbooking.tasks.create_admin admin@example.com --name "Event Desk"

The password is prompted for unless --password is given.
"""

import argparse
import getpass
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database.session import SessionLocal
from ..database import crud
from ..logging_config import configure_logging
from .. import auth_utils


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("email")
    parser.add_argument("--name", default=None, help="Full name")
    parser.add_argument("--password", default=None)
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)

    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        logger.error("Password must be at least %d characters", MIN_PASSWORD_LENGTH)
        return 1

    db = SessionLocal()
    try:
        if crud.get_admin_user_by_email(db, args.email):
            logger.error("Admin %s already exists", args.email)
            return 1

        admin = crud.create_admin_user(
            db,
            email=args.email,
            password_hash=auth_utils.hash_password(password),
            full_name=args.name
        )
        logger.info("Created admin %s (%s)", admin.email, admin.id)
        return 0

    except SQLAlchemyError:
        logger.exception("Failed to create admin %s", args.email)
        return 1

    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
