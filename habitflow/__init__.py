"""habitflow application factory and bootstrap."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from flask import Flask

from habitflow.config import config_by_name
from habitflow.core.auth.csrf import generate_csrf_token
from habitflow.core.errors import DomainError
from habitflow.core.events.event_bus import event_bus
from habitflow.extensions import init_extensions


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the habitflow Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///"):
        db_path = Path(db_uri.replace("sqlite:///", "", 1))
        if not db_path.is_absolute():
            db_path = project_root / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{db_path}"

    _configure_logging(app)
    init_extensions(app)
    _import_models()
    _register_blueprints(app)
    _register_error_handlers(app)

    app.extensions["event_bus"] = event_bus

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    @app.get("/api/csrf")
    def csrf_token():
        """Hand the session's CSRF token to API clients for mutating requests."""
        return {"ok": True, "csrf_token": generate_csrf_token()}, 200

    # Register CLI commands
    from habitflow.scripts.maintenance import register_commands

    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("habitflow").setLevel(level)


def _import_models() -> None:
    """Load every model module so metadata and migrations see all tables."""
    from habitflow.core.events import event_models  # noqa: F401
    from habitflow.core.users import models as user_models  # noqa: F401
    from habitflow.domains.days import models as day_models  # noqa: F401
    from habitflow.domains.habits import models as habit_models  # noqa: F401
    from habitflow.platform.outbox import models as outbox_models  # noqa: F401


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from habitflow.domains.days.controllers.day_api import day_api_bp
    from habitflow.domains.habits.controllers.habit_api import habit_api_bp

    app.register_blueprint(habit_api_bp, url_prefix="/api/habits")
    app.register_blueprint(day_api_bp, url_prefix="/api/days")


def _register_error_handlers(app: Flask) -> None:
    """Basic JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(DomainError)
    def _domain_error(exc: DomainError):
        return exc.to_dict(), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        return {"ok": False, "error": exc.description}, exc.code

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error"}, 500
