"""
API gateway: builds the collaborators and combines every blueprint.
This is the local entrypoint for development.
"""

import logging
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from eventhorizon.admin_service.routes import admin_bp
from eventhorizon.ai_service.routes import ai_blueprint
from eventhorizon.auth_service.routes import auth_bp
from eventhorizon.auth_service.utils import IdentityProvider
from eventhorizon.config import ConfigurationError, Settings, require
from eventhorizon.database.store import DocumentStore
from eventhorizon.events_service.routes import events_bp
from eventhorizon.extensions import Clients, init_clients
from eventhorizon.notifications.email import EmailClient
from eventhorizon.registrations_service.routes import registrations_bp
from eventhorizon.users_service.routes import users_bp

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store=None,
    identity: Optional[IdentityProvider] = None,
    mailer: Optional[EmailClient] = None,
) -> Flask:
    """
    Application factory for creating the Flask app.

    Collaborators not passed in are built from the settings. A missing
    PROJECT_ID, DATABASE_URL, JWT_SECRET or SESSION_SECRET raises
    ConfigurationError here, before the app serves any request.

    Returns:
        Flask: The configured Flask application.
    """
    settings = settings or Settings()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = require("SESSION_SECRET", settings.session_secret)
    app.config["SESSION_COOKIE_NAME"] = settings.session_cookie_name
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"

    CORS(app, resources={
        r"/*": {
            "origins": [
                "http://localhost:3000",  # Local frontend dev server
                "http://localhost:5050",  # Local development gateway
                "null"  # For local file testing
            ],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "expose_headers": ["Content-Type", "Authorization"],
            "supports_credentials": True
        }
    })

    if store is None:
        store = DocumentStore(settings.database_url, settings.project_id)
    if identity is None:
        identity = IdentityProvider(
            settings.jwt_secret,
            settings.project_id,
            settings.token_expiration_minutes,
        )
    if mailer is None:
        mailer = EmailClient(settings.email_api_key, settings.email_from, settings.email_api_url)

    init_clients(app, Clients(store=store, identity=identity, mailer=mailer))

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(events_bp, url_prefix="/events")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(users_bp, url_prefix="/admin/users")
    app.register_blueprint(registrations_bp, url_prefix="/admin")
    app.register_blueprint(ai_blueprint, url_prefix="/ai")

    logger.info("All blueprints registered successfully.")

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/")
    def ping():
        """
        Root URL for simple 'online' check.
        """
        return jsonify({"status": "gateway_ok"}), 200

    @app.route("/health")
    def health():
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


if __name__ == "__main__":
    settings = Settings()
    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.error(f"Startup failed: {e}")
        raise SystemExit(1)
    app.run(host="0.0.0.0", port=settings.gateway_port, debug=True)
