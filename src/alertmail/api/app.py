"""Flask application factory for the alertmail API."""

import logging
import time

from flask import Flask, g, request

from alertmail.config import Settings
from alertmail.database import Database
from alertmail.scheduler import DigestJob

logger = logging.getLogger(__name__)


def create_app(settings: Settings, db: Database, digest_job: DigestJob) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Application settings
        db: Alert store shared with the scheduler
        digest_job: Digest pipeline, used by the on-demand run endpoint

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    app.settings = settings
    app.alert_db = db
    app.digest_job = digest_job

    from alertmail.api.routes import alerts_bp, ops_bp

    app.register_blueprint(ops_bp)
    app.register_blueprint(alerts_bp, url_prefix="/api/v1")

    @app.before_request
    def start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def log_request(response):
        elapsed_ms = (time.monotonic() - g.get("request_started", time.monotonic())) * 1000
        logger.info(
            f"{request.method} {request.path} {response.status_code} "
            f"{elapsed_ms:.1f}ms {request.remote_addr} {request.user_agent.string}"
        )
        return response

    return app
