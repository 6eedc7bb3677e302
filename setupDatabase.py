"""
Create the doctors/schedules tables and seed the sample doctors.

Safe to run repeatedly: tables are created only when absent and a sample
doctor is inserted only if no doctor with the same name and specialty exists.
"""

import json
import logging
from datetime import time

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from models import db, Doctor
from appUtils import StorageError, storage_context

logger = logging.getLogger(__name__)

DOCTORS = Doctor.__table__

SAMPLE_DOCTORS = [
    {
        "name": "Dr. Smith",
        "specialty": "Emergency Medicine",
        "work_days": [1, 2, 3, 4, 5],
        "shift_start": time(8, 0),
        "shift_end": time(17, 0),
    },
    {
        "name": "Dr. Johnson",
        "specialty": "Internal Medicine",
        "work_days": [1, 2, 3, 4, 5],
        "shift_start": time(8, 0),
        "shift_end": time(17, 0),
    },
    {
        "name": "Dr. Williams",
        "specialty": "Surgery",
        "work_days": [2, 3, 4, 5, 6],
        "shift_start": time(7, 0),
        "shift_end": time(18, 0),
    },
]


def create_tables():
    try:
        db.create_all()
    except SQLAlchemyError as e:
        raise StorageError("Database setup failed", detail=str(e)) from e


def seed_doctors(gateway, doctors=SAMPLE_DOCTORS):
    """Insert the sample doctors that are not there yet; returns how many were added."""
    inserted = 0
    with storage_context("Database setup failed"):
        with gateway.transaction():
            for doctor in doctors:
                existing = gateway.fetch_one(
                    select(DOCTORS.c.id).where(
                        DOCTORS.c.name == doctor["name"],
                        DOCTORS.c.specialty == doctor["specialty"],
                    )
                )
                if existing is not None:
                    continue
                gateway.insert(
                    insert(DOCTORS).values(
                        name=doctor["name"],
                        specialty=doctor["specialty"],
                        work_days=json.dumps(doctor["work_days"]),
                        shift_start=doctor["shift_start"],
                        shift_end=doctor["shift_end"],
                        leave_days="[]",
                        off_days="[]",
                    )
                )
                inserted += 1
    return inserted


def setup_database(gateway):
    create_tables()
    inserted = seed_doctors(gateway)
    logger.info(f"[setup] Database setup completed, {inserted} sample doctor(s) inserted")
    return inserted
