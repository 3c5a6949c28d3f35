from datetime import datetime
from models.db import db
from scheduling.types import (
    KIND_BREAK,
    KIND_GUEST,
    KIND_USER,
    BreakBlock,
    GuestBooking,
    UserBooking,
)

class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    kind = db.Column(db.String(10), nullable=False, default=KIND_USER)  # user, guest, break
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    guest_name = db.Column(db.String(120), nullable=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id", ondelete="SET NULL"), nullable=True)

    date = db.Column(db.String(10), nullable=False, index=True)   # YYYY-MM-DD
    start_time = db.Column(db.String(5), nullable=False)          # HH:MM
    end_time = db.Column(db.String(5), nullable=False)            # derived from start + duration
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)

    card_color = db.Column(db.String(16), nullable=True)  # calendar display only

    # only used by the retention cleanup
    expire_at = db.Column(db.DateTime, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", lazy="joined")
    service = db.relationship("Service", lazy="joined")

    @property
    def subject(self):
        if self.kind == KIND_USER:
            return UserBooking(user_id=self.user_id, service_id=self.service_id)
        if self.kind == KIND_GUEST:
            return GuestBooking(name=self.guest_name or "", service_id=self.service_id)
        return BreakBlock()

    def apply_subject(self, subject):
        self.kind = subject.kind
        self.user_id = subject.user_id if subject.kind == KIND_USER else None
        self.guest_name = subject.name if subject.kind == KIND_GUEST else None
        self.service_id = None if subject.kind == KIND_BREAK else subject.service_id

    def to_dict(self):
        return {
            "id": self.id,
            "kind": self.kind,
            "user_id": self.user_id,
            "guest_name": self.guest_name,
            "service_id": self.service_id,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
            "card_color": self.card_color,
            "expire_at": self.expire_at.isoformat() if self.expire_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
