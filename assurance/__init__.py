"""
Service Assurance Tracker
Flask Application Factory.

Usage:
    from assurance import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from assurance.config import config
from assurance.middleware.basic_auth import init_basic_auth
from assurance.middleware.logging_config import configure_logging
from assurance.middleware.rate_limiter import init_rate_limits
from assurance.middleware.timing import init_request_timing
from assurance.models import db
from assurance.utils.errors import E, error_body

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)

# GOV.UK Service Standard, used by ``flask seed-definitions``
DEFAULT_STANDARDS = [
    (1, "Understand users and their needs"),
    (2, "Solve a whole problem for users"),
    (3, "Provide a joined up experience across all channels"),
    (4, "Make the service simple to use"),
    (5, "Make sure everyone can use the service"),
    (6, "Have a multidisciplinary team"),
    (7, "Use agile ways of working"),
    (8, "Iterate and improve frequently"),
    (9, "Create a secure service which protects users' privacy"),
    (10, "Define what success looks like and publish performance data"),
    (11, "Choose the right tools and technology"),
    (12, "Make new source code open"),
    (13, "Use and contribute to open standards, common components and patterns"),
    (14, "Operate a reliable service"),
]
DEFAULT_PROFESSIONS = [
    "Delivery",
    "Product Management",
    "User Centred Design",
    "Architecture",
    "Software Development",
    "Business Analysis",
]


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
    app.config.from_object(config[config_name]())

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

    init_basic_auth(app)
    init_request_timing(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from assurance.models import assessment as _assessment_models    # noqa: F401
    from assurance.models import definitions as _definition_models   # noqa: F401
    from assurance.models import project as _project_models          # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and not app.testing:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except SQLAlchemyError as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from assurance.blueprints.assessments_bp import assessments_bp
    from assurance.blueprints.definitions_bp import definitions_bp
    from assurance.blueprints.health_bp import health_bp
    from assurance.blueprints.insights_bp import insights_bp
    from assurance.blueprints.projects_bp import projects_bp

    app.register_blueprint(projects_bp)
    app.register_blueprint(assessments_bp)
    app.register_blueprint(definitions_bp)
    app.register_blueprint(insights_bp)
    app.register_blueprint(health_bp)

    _register_cli(app)
    _register_error_handlers(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app


def _register_cli(app):
    @app.cli.command("seed-definitions")
    def seed_definitions_cmd():
        """Upsert the 14 service standards and the default professions."""
        from assurance.services import definitions_service

        standards = definitions_service.seed_standards(
            [{"number": number, "name": name} for number, name in DEFAULT_STANDARDS]
        )
        professions = definitions_service.seed_professions([{"name": name} for name in DEFAULT_PROFESSIONS])
        db.session.commit()
        logger.info("Seeded %d standards and %d professions.", len(standards), len(professions))


def _register_error_handlers(app):
    """JSON bodies for errors raised outside the blueprint handlers."""

    @app.errorhandler(404)
    def not_found(e):
        return error_body(E.NOT_FOUND, "Not found", {"path": request.path}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_body(E.VALIDATION_INVALID, f"Method {request.method} not allowed"), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return error_body(E.RATE_LIMITED, "Too many requests", {"limit": e.description}), 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return error_body(E.INTERNAL, "Internal server error"), 500
