"""Space quota observer: Flask application factory for the read-only API."""

import json
import os

from flask import Flask

from quota_observer.models import AppConfig
from quota_observer.routes import api as api_routes
from quota_observer.utils import get_logger

logger = get_logger(__name__)


def load_config(path: str | None = None) -> AppConfig:
    """Load and validate app config from JSON file."""
    config_path = path or "config.json"
    logger.info(f"Loading config from {config_path}")
    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)
    return AppConfig.model_validate(data)


def create_app(config_path: str | None = None) -> Flask:
    """Create and configure the Flask application."""
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config.json")

    config = load_config(config_path)
    app = Flask(__name__)

    # Flask config from Pydantic model
    app.config["API_KEY"] = config.API_KEY
    if config.PORT is not None:
        app.config["PORT"] = config.PORT
    if config.CELERY_BROKER_URL is not None:
        app.config["CELERY_BROKER_URL"] = config.CELERY_BROKER_URL
    app.config["QUOTA_OBSERVER_REPORT_PERCENT"] = config.QUOTA_OBSERVER_REPORT_PERCENT

    @app.route("/")
    def index() -> tuple[str, dict[str, str]]:
        return "quota observer", {"Content-Type": "text/plain"}

    api_routes.register_api_routes(app)

    return app
