import logging

from sqlalchemy import delete, insert, select, update

from models import Doctor
from appUtils import (
    NotFoundError, ValidationError, decode_list, encode_date_list, encode_work_days,
    parse_bool, parse_date, parse_id, parse_time, require_fields, sanitize_required_text,
    send_response, serialize_row, storage_context,
)

logger = logging.getLogger(__name__)

DOCTORS = Doctor.__table__

REQUIRED_FIELDS = ["name", "specialty", "work_days", "shift_start", "shift_end"]

# allow-list for PUT, applied in this order
UPDATABLE_FIELDS = (
    ("name", lambda v: sanitize_required_text(v, "name")),
    ("specialty", lambda v: sanitize_required_text(v, "specialty")),
    ("work_days", lambda v: encode_work_days(v)),
    ("shift_start", lambda v: parse_time(v, "shift_start")),
    ("shift_end", lambda v: parse_time(v, "shift_end")),
    ("leave_days", lambda v: encode_date_list(v, "leave_days")),
    ("off_days", lambda v: encode_date_list(v, "off_days")),
    ("last_on_call_date", lambda v: parse_date(v, "last_on_call_date")),
    ("is_on_mandatory_rest", lambda v: parse_bool(v, "is_on_mandatory_rest")),
)


def decode_doctor(row):
    doctor = serialize_row(row)
    doctor["work_days"] = decode_list(row["work_days"])
    doctor["leave_days"] = decode_list(row["leave_days"])
    doctor["off_days"] = decode_list(row["off_days"])
    return doctor


class DoctorService:
    def __init__(self, gateway):
        self.gateway = gateway

    def doctor_exists(self, doctor_id):
        row = self.gateway.fetch_one(select(DOCTORS.c.id).where(DOCTORS.c.id == doctor_id))
        return row is not None

    def get_doctors(self, doctor_id=None):
        """One doctor when an id is given, otherwise every doctor ordered by name."""
        if doctor_id:
            return self.get_doctor(parse_id(doctor_id))
        return self.list_doctors()

    def get_doctor(self, doctor_id):
        with storage_context("Error fetching doctors"):
            row = self.gateway.fetch_one(select(DOCTORS).where(DOCTORS.c.id == doctor_id))
        if row is None:
            raise NotFoundError("Doctor not found")
        return send_response(decode_doctor(row))

    def list_doctors(self):
        with storage_context("Error fetching doctors"):
            rows = self.gateway.execute(select(DOCTORS).order_by(DOCTORS.c.name))
        return send_response([decode_doctor(row) for row in rows])

    def create_doctor(self, payload):
        require_fields(payload, REQUIRED_FIELDS)

        values = {
            "name": sanitize_required_text(payload["name"], "name"),
            "specialty": sanitize_required_text(payload["specialty"], "specialty"),
            "work_days": encode_work_days(payload["work_days"]),
            "shift_start": parse_time(payload["shift_start"], "shift_start"),
            "shift_end": parse_time(payload["shift_end"], "shift_end"),
            "leave_days": encode_date_list(payload.get("leave_days") or [], "leave_days"),
            "off_days": encode_date_list(payload.get("off_days") or [], "off_days"),
        }

        with storage_context("Error creating doctor"):
            doctor_id = self.gateway.insert(insert(DOCTORS).values(**values))

        logger.info(f"[doctors] Created doctor {doctor_id} ({values['name']})")
        return send_response({"id": doctor_id}, 201, "Doctor created successfully")

    def update_doctor(self, payload):
        if payload.get("id") is None:
            raise ValidationError("Doctor ID is required")
        doctor_id = parse_id(payload["id"])

        values = {
            field: encode(payload[field])
            for field, encode in UPDATABLE_FIELDS
            if payload.get(field) is not None
        }
        if not values:
            raise ValidationError("No fields to update")

        with storage_context("Error updating doctor"):
            affected = self.gateway.execute(
                update(DOCTORS).where(DOCTORS.c.id == doctor_id).values(**values)
            )

        if affected == 0:
            raise NotFoundError("Doctor not found or no changes made")
        logger.info(f"[doctors] Updated doctor {doctor_id}: {', '.join(values)}")
        return send_response(None, 200, "Doctor updated successfully")

    def delete_doctor(self, payload):
        if payload.get("id") is None:
            raise ValidationError("Doctor ID is required")
        doctor_id = parse_id(payload["id"])

        with storage_context("Error deleting doctor"):
            affected = self.gateway.execute(delete(DOCTORS).where(DOCTORS.c.id == doctor_id))

        if affected == 0:
            raise NotFoundError("Doctor not found")
        logger.info(f"[doctors] Deleted doctor {doctor_id}")
        return send_response(None, 200, "Doctor deleted successfully")
