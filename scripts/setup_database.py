#!/usr/bin/env python3
"""
ClinicFlow Database Setup Script
================================

Checks and creates the database schema before starting the server.
PostgreSQL databases are migrated with Alembic so the booking exclusion
constraint is installed; SQLite databases get ``Base.metadata.create_all``.

Usage:
    python scripts/setup_database.py [--check-only] [--demo-data]
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, text

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from clinicflow import crud, models  # noqa: E402,F401
from clinicflow.core.config import settings  # noqa: E402
from clinicflow.core.errors import ConflictError  # noqa: E402
from clinicflow.db.base import Base  # noqa: E402
from clinicflow.db.session import database, get_db_session  # noqa: E402
from clinicflow.schemas.user import RegisterRequest  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

DEMO_USERS = [
    RegisterRequest(
        email="patient@example.com",
        password="patient123",
        first_name="Demo",
        last_name="Patient",
        role="patient",
        date_of_birth=date(1990, 1, 1),
        gender="other",
    ),
    RegisterRequest(
        email="doctor@example.com",
        password="doctor123",
        first_name="Demo",
        last_name="Doctor",
        role="doctor",
        specialization="General Practice",
        license_number="DEMO-0001",
    ),
]


def test_connection() -> bool:
    logger.info("Testing database connection...")
    try:
        with database.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


def missing_tables() -> list:
    existing = set(inspect(database.engine).get_table_names())
    return sorted(set(Base.metadata.tables) - existing)


def create_tables() -> None:
    if settings.is_sqlite:
        logger.info("Creating tables with metadata.create_all...")
        Base.metadata.create_all(bind=database.engine)
    else:
        logger.info("Running Alembic migrations to head...")
        command.upgrade(Config(str(ROOT / "alembic.ini")), "head")


def create_demo_data() -> None:
    with get_db_session() as db:
        for user_in in DEMO_USERS:
            try:
                crud.user.create_with_profile(db, obj_in=user_in)
                logger.info(f"Created demo {user_in.role}: {user_in.email} / {user_in.password}")
            except ConflictError:
                logger.info(f"Demo {user_in.role} {user_in.email} already exists")


def main():
    parser = argparse.ArgumentParser(description="ClinicFlow Database Setup")
    parser.add_argument("--check-only", action="store_true", help="Only check if tables exist, do not create")
    parser.add_argument("--demo-data", action="store_true", help="Create a demo patient and doctor")
    args = parser.parse_args()

    logger.info("ClinicFlow Database Setup")
    logger.info("=" * 40)

    database.init()
    try:
        if not test_connection():
            sys.exit(1)

        missing = missing_tables()
        if args.check_only:
            if missing:
                logger.error(f"Database check failed - missing tables: {missing}")
                sys.exit(1)
            logger.info("Database check passed - all tables exist")
            return

        if missing:
            create_tables()
            missing = missing_tables()
            if missing:
                logger.error(f"Setup verification failed - still missing: {missing}")
                sys.exit(1)
        logger.info(f"All {len(Base.metadata.tables)} tables present")

        if args.demo_data:
            create_demo_data()

        logger.info("Database setup completed. Start the server with:")
        logger.info("  uvicorn clinicflow.main:app --host 0.0.0.0 --port 8000")
    finally:
        database.dispose()


if __name__ == "__main__":
    main()
