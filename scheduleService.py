import logging

from sqlalchemy import delete, insert, select, update

from models import Doctor, Schedule
from appUtils import (
    ConflictError, IntegrityViolation, NotFoundError, ValidationError, parse_date, parse_id,
    parse_time, require_fields, send_response, serialize_row, storage_context,
)
from doctorService import DoctorService

logger = logging.getLogger(__name__)

DOCTORS = Doctor.__table__
SCHEDULES = Schedule.__table__

REQUIRED_FIELDS = ["doctor_id", "schedule_date", "start_time", "end_time"]

UPDATABLE_FIELDS = (
    ("doctor_id", lambda v: parse_id(v, "doctor_id")),
    ("schedule_date", lambda v: parse_date(v, "schedule_date")),
    ("start_time", lambda v: parse_time(v, "start_time")),
    ("end_time", lambda v: parse_time(v, "end_time")),
)

DUPLICATE_MESSAGE = "Schedule already exists for this doctor on this date"


class ScheduleService:
    def __init__(self, gateway, doctors=None):
        self.gateway = gateway
        self.doctors = doctors or DoctorService(gateway)

    def list_schedules(self, date=None, doctor_id=None):
        """Schedules joined with the doctor's name and specialty, by date then start time."""
        statement = (
            select(SCHEDULES, DOCTORS.c.name.label("doctor_name"), DOCTORS.c.specialty)
            .select_from(SCHEDULES.join(DOCTORS, SCHEDULES.c.doctor_id == DOCTORS.c.id))
        )
        if date:
            statement = statement.where(SCHEDULES.c.schedule_date == parse_date(date, "date"))
        if doctor_id:
            statement = statement.where(SCHEDULES.c.doctor_id == parse_id(doctor_id, "doctor_id"))
        statement = statement.order_by(SCHEDULES.c.schedule_date, SCHEDULES.c.start_time)

        with storage_context("Error fetching schedules"):
            rows = self.gateway.execute(statement)
        return send_response([serialize_row(row) for row in rows])

    def create_schedule(self, payload):
        require_fields(payload, REQUIRED_FIELDS)
        doctor_id = parse_id(payload["doctor_id"], "doctor_id")
        schedule_date = parse_date(payload["schedule_date"], "schedule_date")
        start_time = parse_time(payload["start_time"], "start_time")
        end_time = parse_time(payload["end_time"], "end_time")

        # the schedule and the doctor's rest flag land together or not at all
        with storage_context("Error creating schedule"):
            with self.gateway.transaction():
                if not self.doctors.doctor_exists(doctor_id):
                    raise NotFoundError("Doctor not found")

                existing = self.gateway.fetch_one(
                    select(SCHEDULES.c.id).where(
                        SCHEDULES.c.doctor_id == doctor_id,
                        SCHEDULES.c.schedule_date == schedule_date,
                    )
                )
                if existing is not None:
                    raise ConflictError(DUPLICATE_MESSAGE)

                try:
                    schedule_id = self.gateway.insert(
                        insert(SCHEDULES).values(
                            doctor_id=doctor_id,
                            schedule_date=schedule_date,
                            start_time=start_time,
                            end_time=end_time,
                        )
                    )
                except IntegrityViolation as e:
                    logger.warning(f"[schedules] Lost insert race for doctor {doctor_id} on {schedule_date}: {e.detail}")
                    raise ConflictError(DUPLICATE_MESSAGE) from e

                self.gateway.execute(
                    update(DOCTORS)
                    .where(DOCTORS.c.id == doctor_id)
                    .values(last_on_call_date=schedule_date, is_on_mandatory_rest=True)
                )

        logger.info(f"[schedules] Created schedule {schedule_id} for doctor {doctor_id} on {schedule_date}")
        return send_response({"id": schedule_id}, 201, "Schedule created successfully")

    def update_schedule(self, payload):
        if payload.get("id") is None:
            raise ValidationError("Schedule ID is required")
        schedule_id = parse_id(payload["id"])

        values = {
            field: encode(payload[field])
            for field, encode in UPDATABLE_FIELDS
            if payload.get(field) is not None
        }
        if not values:
            raise ValidationError("No fields to update")

        with storage_context("Error updating schedule"):
            if "doctor_id" in values and not self.doctors.doctor_exists(values["doctor_id"]):
                raise NotFoundError("Doctor not found")
            try:
                affected = self.gateway.execute(
                    update(SCHEDULES).where(SCHEDULES.c.id == schedule_id).values(**values)
                )
            except IntegrityViolation as e:
                raise ConflictError(DUPLICATE_MESSAGE) from e

        if affected == 0:
            raise NotFoundError("Schedule not found or no changes made")
        logger.info(f"[schedules] Updated schedule {schedule_id}: {', '.join(values)}")
        return send_response(None, 200, "Schedule updated successfully")

    def delete_schedule(self, payload):
        if payload.get("id") is None:
            raise ValidationError("Schedule ID is required")
        schedule_id = parse_id(payload["id"])

        with storage_context("Error deleting schedule"):
            affected = self.gateway.execute(delete(SCHEDULES).where(SCHEDULES.c.id == schedule_id))

        if affected == 0:
            raise NotFoundError("Schedule not found")
        logger.info(f"[schedules] Deleted schedule {schedule_id}")
        return send_response(None, 200, "Schedule deleted successfully")
