"""
Value types shared by the booking core.

A reservation is one of three kinds, each with its own payload:

* ``UserBooking``  - a registered customer booking a service
* ``GuestBooking`` - a walk-in/phone customer entered by the admin by name
* ``BreakBlock``   - time the admin blocks off; no customer, no service
"""
from dataclasses import dataclass
from typing import Optional, Union


KIND_USER = "user"
KIND_GUEST = "guest"
KIND_BREAK = "break"

KINDS = (KIND_USER, KIND_GUEST, KIND_BREAK)


@dataclass(frozen=True)
class UserBooking:
    user_id: int
    service_id: Optional[int] = None

    kind = KIND_USER


@dataclass(frozen=True)
class GuestBooking:
    name: str
    service_id: Optional[int] = None

    kind = KIND_GUEST


@dataclass(frozen=True)
class BreakBlock:
    kind = KIND_BREAK


Subject = Union[UserBooking, GuestBooking, BreakBlock]


@dataclass(frozen=True)
class ReservationRequest:
    date: str                 # "YYYY-MM-DD"
    start_time: str           # "HH:MM"
    duration_minutes: int
    subject: Subject
    card_color: Optional[str] = None


@dataclass(frozen=True)
class BookedInterval:
    """An already booked [start_time, end_time) range on some day."""
    start_time: str
    end_time: str
    reservation_id: Optional[int] = None


USER_CARD_COLORS = ("#3b82f6", "#10b981", "#f97316", "#a855f7")
GUEST_CARD_COLORS = ("#93c5fd", "#10b981", "#f97316", "#a855f7")
BREAK_CARD_COLOR = "#6b7280"

DEFAULT_COLOR_BY_KIND = {
    KIND_USER: USER_CARD_COLORS[0],
    KIND_GUEST: GUEST_CARD_COLORS[0],
    KIND_BREAK: BREAK_CARD_COLOR,
}
