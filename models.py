# models.py
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import false, func

db = SQLAlchemy()

# database model for DOCTORS table
class Doctor(db.Model):
    __tablename__ = "doctors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    specialty = db.Column(db.String(255), nullable=False)
    # JSON arrays kept as text: weekdays 1-7 and ISO dates
    work_days = db.Column(db.Text, nullable=False)
    shift_start = db.Column(db.Time, nullable=False)
    shift_end = db.Column(db.Time, nullable=False)
    leave_days = db.Column(db.Text, nullable=True)
    off_days = db.Column(db.Text, nullable=True)
    last_on_call_date = db.Column(db.Date, nullable=True)
    is_on_mandatory_rest = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    created_at = db.Column(db.DateTime, nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

# database model for SCHEDULES table
class Schedule(db.Model):
    __tablename__ = "schedules"

    id = db.Column(db.Integer, primary_key=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    schedule_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        db.UniqueConstraint("doctor_id", "schedule_date", name="unique_schedule"),
    )
