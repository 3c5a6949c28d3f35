import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as barbershop.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "barbershop.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Booking transactions rely on serializable writes; SQLite is serializable by default
    SQLALCHEMY_ENGINE_OPTIONS = {
        "isolation_level": os.getenv("DATABASE_ISOLATION_LEVEL", "SERIALIZABLE"),
    }

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "barbershop_session"

    # 30 days session lifetime, 7 days idle timeout
    SESSION_LIFETIME_SECONDS = 30 * 24 * 60 * 60
    IDLE_TIMEOUT_SECONDS = 7 * 24 * 60 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Password policy
    PASSWORD_MIN_LEN = int(os.getenv("PASSWORD_MIN_LEN", "8"))
    PASSWORD_REQUIRE_DIGIT = True
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Shop-local time zone; reservation dates and times are wall-clock in this zone
    TIMEZONE = os.getenv("TIMEZONE", "Europe/Belgrade")

    # Booking grid and booking window
    SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "30"))
    BOOKING_DAYS_AHEAD = int(os.getenv("BOOKING_DAYS_AHEAD", "14"))
    SERVICE_DURATIONS = (30, 60)

    # Reservation transactions: attempts on conflict and linear backoff between them
    TRANSACTION_MAX_ATTEMPTS = int(os.getenv("TRANSACTION_MAX_ATTEMPTS", "5"))
    TRANSACTION_RETRY_BACKOFF_SECONDS = float(os.getenv("TRANSACTION_RETRY_BACKOFF_SECONDS", "0.05"))

    # Retention: expire_at = reservation day + RETENTION_DAYS
    RETENTION_DAYS = int(os.getenv("RETENTION_DAYS", "90"))
    CLEANUP_BATCH_SIZE = int(os.getenv("CLEANUP_BATCH_SIZE", "450"))

    # Basic app settings
    DEBUG = False
