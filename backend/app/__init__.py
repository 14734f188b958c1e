"""Application factory and app-wide configuration."""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from backend.app.api.routes import api_bp
from backend.config import Settings, load_settings
from backend.core.cache import ProjectionCache


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Build the Flask app instance."""
    settings = settings or load_settings()

    app = Flask(__name__)
    app.config.from_mapping(
        CORS_ORIGINS=settings.cors_origins,
        LOG_LEVEL=settings.log_level,
        PROJECTION_CACHE_SIZE=settings.cache_size,
    )

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(settings.log_level)

    CORS(
        app,
        resources={r"/api/*": {"origins": settings.cors_origins}},
        supports_credentials=True,
    )

    app.extensions["projection_cache"] = ProjectionCache(maxsize=settings.cache_size)
    app.register_blueprint(api_bp, url_prefix="/api")
    app.logger.debug("projection API ready (cache size %s)", settings.cache_size)
    return app
