import html
import json
from contextlib import contextmanager
from datetime import date, datetime, time

import bleach
from flask import jsonify


class ApiError(Exception):
    """Base error for anything that ends a request with an error envelope."""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class MethodNotAllowedError(ApiError):
    status_code = 405


class ConflictError(ApiError):
    status_code = 409


class StorageError(ApiError):
    """Database failure. `detail` keeps the driver text for the logs only."""

    status_code = 500

    def __init__(self, message="Database error", detail=None):
        super().__init__(message)
        self.detail = detail


class IntegrityViolation(StorageError):
    pass


# Response envelope: {status, message, data}
def send_response(data=None, status_code=200, message="Success"):
    response = jsonify({
        "status": "success" if status_code < 400 else "error",
        "message": message,
        "data": data,
    })
    response.status_code = status_code
    return response

def send_error(message, status_code=400):
    return send_response(None, status_code, message)


def is_missing(value):
    return value is None or value == "" or value == [] or value == {}

def validate_required(data, required_fields):
    """Return the required field names that are absent or empty, in order."""
    return [field for field in required_fields if is_missing(data.get(field))]

def require_fields(data, required_fields):
    missing = validate_required(data, required_fields)
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))

def sanitize_input(value):
    # trim, strip tags, then escape everything including quotes
    stripped = html.unescape(bleach.clean(value.strip(), tags=set(), strip=True))
    return html.escape(stripped.strip(), quote=True).replace("&#x27;", "&#039;")

def sanitize_required_text(value, field, max_length=255):
    if not isinstance(value, str):
        raise ValidationError(f"Invalid {field}: expected text")
    cleaned = sanitize_input(value)
    if not cleaned:
        raise ValidationError(f"Invalid {field}: must not be empty")
    if len(cleaned) > max_length:
        raise ValidationError(f"Invalid {field}: at most {max_length} characters allowed")
    return cleaned


def validate_date(date_str):
    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        return None

def validate_time(time_str):
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(time_str.strip(), fmt).time()
        except ValueError:
            continue
        except AttributeError:
            return None
    return None

def parse_date(value, field):
    parsed = validate_date(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field}: use YYYY-MM-DD")
    return parsed

def parse_time(value, field):
    parsed = validate_time(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field}: use HH:MM:SS")
    return parsed

def parse_id(value, field="id"):
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")

def parse_bool(value, field):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("", "0", "false", "no", "off"):
            return False
    raise ValidationError(f"Invalid {field}: expected a boolean")


def encode_work_days(value, field="work_days"):
    if not isinstance(value, list) or not all(
        isinstance(day, int) and not isinstance(day, bool) and 1 <= day <= 7 for day in value
    ):
        raise ValidationError(f"Invalid {field}: expected a list of weekdays 1-7")
    return json.dumps(value)

def encode_date_list(value, field):
    if not isinstance(value, list):
        raise ValidationError(f"Invalid {field}: expected a list of dates")
    return json.dumps([parse_date(day, field).isoformat() for day in value])

def decode_list(raw):
    """Decode a stored JSON array; NULL or empty text becomes []."""
    if raw is None or raw == "":
        return []
    decoded = json.loads(raw)
    return decoded if decoded is not None else []


def serialize_row(row):
    """Make a row dict JSON friendly: dates, times and timestamps to ISO strings."""
    serialized = {}
    for key, value in row.items():
        if isinstance(value, (date, time, datetime)):
            serialized[key] = value.isoformat()
        else:
            serialized[key] = value
    return serialized


@contextmanager
def storage_context(message):
    """Re-raise storage failures under a message that is safe to show the client."""
    try:
        yield
    except StorageError as e:
        raise StorageError(message, detail=e.detail or e.message) from e
