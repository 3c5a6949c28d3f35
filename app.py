from flask import Flask, jsonify, request
from config import Config
from routes import health_bp, auth_bp, admin_bp, booking_bp, services_bp, settings_bp, calendar_bp

from models import db
from flask_migrate import Migrate
from scheduling.errors import BookingError, NotFound, OutOfPolicy, SlotTaken, TransientStoreFailure
from utils.seed import seed_roles
from utils.auth_context import load_current_user

STATUS_BY_ERROR = {
    SlotTaken: 409,
    OutOfPolicy: 422,
    NotFound: 404,
    TransientStoreFailure: 503,
}


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(services_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(calendar_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed default roles at startup (safe & idempotent)
    with app.app_context():
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        status = STATUS_BY_ERROR.get(type(exc), 400)
        if isinstance(exc, (SlotTaken, OutOfPolicy)):
            # expected outcomes, shown to the user as-is
            return jsonify(error=exc.message, code=type(exc).__name__), status

        app.logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.path, exc.message)
        return jsonify(error=BookingError.default_message, code=type(exc).__name__), status

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
import click
from models.user import User, Role
from security.rbac import ROLE_ADMIN
from scheduling.retention import cleanup_reservations, retention_days
from utils.audit import log_event
from utils.clock import local_now

def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables without migrations (local development)."""
        db.create_all()
        seed_roles()
        click.echo("Database initialised")

    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found", err=True)
            raise SystemExit(1)

        admin_role = Role.query.filter_by(name=ROLE_ADMIN).first()
        if not admin_role:
            admin_role = Role(name=ROLE_ADMIN)
            db.session.add(admin_role)

        if admin_role not in user.roles:
            user.roles.append(admin_role)
        user.verified = True
        db.session.commit()

        log_event("MAKE_ADMIN", entity="user", entity_id=user.id)
        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("cleanup-reservations")
    @click.option("--dry-run", is_flag=True, envvar="DRY_RUN", help="Report what would be deleted without deleting.")
    @click.option("--all", "delete_all", is_flag=True, envvar="DELETE_ALL", help="Delete every reservation regardless of age.")
    @click.option("--limit", type=int, envvar="LIMIT", default=None, help="Process at most this many reservations.")
    def cleanup(dry_run, delete_all, limit):
        """Delete expired reservations together with their slot entries."""
        try:
            result = cleanup_reservations(local_now(), dry_run=dry_run, delete_all=delete_all, limit=limit)
        except Exception as exc:
            db.session.rollback()
            app.logger.exception("Reservation cleanup failed")
            click.echo(f"Cleanup failed: {exc}", err=True)
            raise SystemExit(1)

        if result.count == 0:
            click.echo("No reservations to clean.")
            return

        mode = "Dry run" if result.dry_run else "Deleted"
        scope = "all reservations" if result.delete_all else f"reservations older than {retention_days()} days"
        if not result.dry_run:
            log_event("RESERVATIONS_CLEANUP", metadata={"count": result.count, "delete_all": result.delete_all})
        click.echo(f"{mode} {result.count} {scope}.")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
