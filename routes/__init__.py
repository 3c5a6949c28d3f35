from .health import health_bp
from .auth import auth_bp
from .admin import admin_bp
from .booking import booking_bp
from .services import services_bp
from .settings import settings_bp
from .calendar import calendar_bp
