from datetime import date, time

import pytest
from sqlalchemy import func, insert, select, text

from models import db, Doctor, Schedule
from appUtils import IntegrityViolation, StorageError
from storageGateway import StorageGateway
from setupDatabase import seed_doctors

DOCTORS = Doctor.__table__
SCHEDULES = Schedule.__table__


def count_doctors(gateway):
    return gateway.fetch_one(select(func.count().label("total")).select_from(DOCTORS))["total"]


def test_execute_returns_rows_and_rowcount(app):
    with app.app_context():
        gateway = StorageGateway(db.session)
        seed_doctors(gateway)

        rows = gateway.execute(
            text("SELECT name FROM doctors WHERE specialty = :specialty"),
            {"specialty": "Surgery"},
        )
        assert rows == [{"name": "Dr. Williams"}]

        affected = gateway.execute(text("UPDATE doctors SET is_on_mandatory_rest = 1"))
        assert affected == 3


def test_bound_parameters_are_not_interpolated(app):
    with app.app_context():
        gateway = StorageGateway(db.session)
        seed_doctors(gateway)

        rows = gateway.execute(
            text("SELECT id FROM doctors WHERE name = :name"),
            {"name": "x' OR '1'='1"},
        )
        assert rows == []


def test_transaction_rolls_back_on_error(app):
    with app.app_context():
        gateway = StorageGateway(db.session)

        with pytest.raises(RuntimeError):
            with gateway.transaction():
                seed_doctors(gateway)
                raise RuntimeError("boom")

        assert count_doctors(gateway) == 0


def test_transaction_commits_on_success(app):
    with app.app_context():
        gateway = StorageGateway(db.session)

        with gateway.transaction():
            seed_doctors(gateway)

    with app.app_context():
        assert count_doctors(StorageGateway(db.session)) == 3


def test_driver_errors_become_storage_errors(app):
    with app.app_context():
        gateway = StorageGateway(db.session)

        with pytest.raises(StorageError) as excinfo:
            gateway.execute(text("SELECT * FROM no_such_table"))
        assert "no_such_table" in excinfo.value.detail
        assert excinfo.value.status_code == 500

        # session is usable again after the failure
        assert count_doctors(gateway) == 0


def test_unique_schedule_constraint_raises_integrity_violation(app):
    with app.app_context():
        gateway = StorageGateway(db.session)
        seed_doctors(gateway)
        doctor_id = gateway.fetch_one(select(DOCTORS.c.id).limit(1))["id"]
        values = {
            "doctor_id": doctor_id,
            "schedule_date": date(2024, 6, 10),
            "start_time": time(9, 0),
            "end_time": time(15, 0),
        }

        gateway.insert(insert(SCHEDULES).values(**values))
        with pytest.raises(IntegrityViolation):
            gateway.insert(insert(SCHEDULES).values(**values))


def test_foreign_key_is_enforced(app):
    with app.app_context():
        gateway = StorageGateway(db.session)

        with pytest.raises(IntegrityViolation):
            gateway.execute(text(
                "INSERT INTO schedules (doctor_id, schedule_date, start_time, end_time) "
                "VALUES (999, '2024-06-10', '09:00:00', '15:00:00')"
            ))
