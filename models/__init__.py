from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .service import Service
from .setting import Setting
from .reservation import Reservation
from .slot import SlotEntry, ReservationDay
