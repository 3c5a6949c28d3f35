from datetime import datetime
from models.db import db

class SlotEntry(db.Model):
    __tablename__ = "slots"

    # "<date>_<start_time>", e.g. "2025-06-10_10:00".
    # The primary key is the double-booking guard: a second insert for the same
    # start instant fails with IntegrityError.
    id = db.Column(db.String(32), primary_key=True)

    date = db.Column(db.String(10), nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)
    reservation_id = db.Column(db.Integer, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ReservationDay(db.Model):
    __tablename__ = "reservation_days"

    # Per-date lock row. Every create/move/cancel bumps the row of each date it
    # touches before reading, so writers of the same day are serialized.
    date = db.Column(db.String(10), primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
