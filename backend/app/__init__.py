"""Flask application factory."""

import os
from flask import Flask
from flask_cors import CORS

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def load_jira_config(app):
    """Load Jira connection settings from the environment.

    Missing values are kept as empty strings; routes refuse to run until all
    three are present.
    """
    app.config["JIRA"] = {
        "base_url": os.environ.get("BASE_URL", ""),
        "email": os.environ.get("EMAIL", ""),
        "token": os.environ.get("JIRA_API_TOKEN", ""),
    }

    missing = [name for name, value in app.config["JIRA"].items() if not value]
    if missing:
        app.logger.warning(f"Jira configuration incomplete, missing: {', '.join(missing)}")


def load_max_workers(app):
    """Read the optional per-project fan-out cap from OVERVIEW_MAX_WORKERS.

    Unset means no cap: every project gets its own worker.
    """
    raw = os.environ.get("OVERVIEW_MAX_WORKERS")
    max_workers = None

    if raw:
        try:
            max_workers = int(raw)
        except ValueError:
            max_workers = 0
        if max_workers < 1:
            app.logger.warning(f"Invalid OVERVIEW_MAX_WORKERS={raw!r}, ignoring cap")
            max_workers = None

    app.config["OVERVIEW_MAX_WORKERS"] = max_workers


def get_cors_origins():
    origins = os.environ.get("CORS_ORIGINS", "")
    parsed = [o.strip() for o in origins.split(",") if o.strip()]
    return parsed or DEFAULT_CORS_ORIGINS


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)

    load_jira_config(app)
    load_max_workers(app)

    if test_config:
        app.config.update(test_config)

    # Enable CORS for the dashboard frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": get_cors_origins(),
            "methods": ["GET", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })

    # Register blueprints
    from app.api import projects
    app.register_blueprint(projects.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
