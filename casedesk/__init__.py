"""
casedesk — immigration case management API.
Flask Application Factory.

Usage:
    from casedesk import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from casedesk.config import config
from casedesk.models import db
from casedesk.middleware.logging_config import configure_logging
from casedesk.middleware.timing import init_request_timing
from casedesk.middleware.security_headers import init_security_headers
from casedesk.middleware.rate_limiter import init_rate_limits
from casedesk.middleware.jwt_auth import init_jwt_middleware

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # pysqlite's own BEGIN handling breaks SAVEPOINT; emit BEGIN ourselves
        dbapi_conn.isolation_level = None


@_sa_event.listens_for(_sa_engine.Engine, "begin")
def _sqlite_begin(conn):
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN")


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    cfg = config[config_name]
    app.config.from_object(cfg() if config_name == "production" else cfg)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Middleware ───────────────────────────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_jwt_middleware(app)

    @app.before_request
    def _guard_request():
        from flask import abort, request as _req
        if _req.method in ("POST", "PUT", "PATCH") and _req.path.startswith("/api/"):
            ct = _req.content_type or ""
            if _req.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so metadata is complete ────────────────────────
    from casedesk.models import user as _user_models              # noqa: F401
    from casedesk.models import company as _company_models        # noqa: F401
    from casedesk.models import passport as _passport_models      # noqa: F401
    from casedesk.models import catalog as _catalog_models        # noqa: F401
    from casedesk.models import process as _process_models        # noqa: F401
    from casedesk.models import document as _document_models      # noqa: F401
    from casedesk.models import task as _task_models              # noqa: F401
    from casedesk.models import note as _note_models              # noqa: F401
    from casedesk.models import notification as _notification_models  # noqa: F401
    from casedesk.models import activity as _activity_models      # noqa: F401

    if app.config.get("AUTO_CREATE_TABLES", True):
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from casedesk.blueprints.health_bp import health_bp
    from casedesk.blueprints.auth_bp import auth_bp
    from casedesk.blueprints.companies_bp import companies_bp
    from casedesk.blueprints.passports_bp import passports_bp
    from casedesk.blueprints.catalog_bp import catalog_bp
    from casedesk.blueprints.processes_bp import processes_bp
    from casedesk.blueprints.documents_bp import documents_bp
    from casedesk.blueprints.tasks_bp import tasks_bp
    from casedesk.blueprints.notes_bp import notes_bp
    from casedesk.blueprints.notifications_bp import notifications_bp
    from casedesk.blueprints.activity_bp import activity_bp
    from casedesk.blueprints.process_requests_bp import process_requests_bp
    from casedesk.blueprints.dashboard_bp import dashboard_bp
    from casedesk.blueprints.exports_bp import exports_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(companies_bp)
    app.register_blueprint(passports_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(processes_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(activity_bp)
    app.register_blueprint(process_requests_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(exports_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("send-appointment-reminders")
    @click.option("--window-hours", type=int, default=None, help="Look-ahead window (default from config).")
    def send_appointment_reminders_cmd(window_hours):
        """Notify admins and company users about appointments in the next window."""
        from casedesk.services.appointment_reminders import send_appointment_reminders
        result = send_appointment_reminders(window_hours=window_hours)
        click.echo(
            f"Checked {result['appointments_checked']} appointments, "
            f"created {result['notifications_created']} notifications."
        )

    @app.cli.command("seed-case-statuses")
    def seed_case_statuses_cmd():
        """Seed the default case statuses (skips existing codes)."""
        from casedesk.services.catalog_service import seed_default_case_statuses
        count = seed_default_case_statuses()
        db.session.commit()
        click.echo(f"Seeded {count} new case statuses.")

    @app.cli.command("create-admin")
    @click.option("--email", required=True)
    @click.option("--password", required=True, prompt=True, hide_input=True)
    @click.option("--full-name", default="Administrator")
    def create_admin_cmd(email, password, full_name):
        """Create the initial admin profile (no-op when the email exists)."""
        from casedesk.services.user_service import ensure_admin
        profile, created = ensure_admin(email, password, full_name)
        click.echo(f"{'Created' if created else 'Already exists:'} admin {profile.email} (id={profile.id}).")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": e.description}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
