"""
API gateway: combines the auth and events blueprints.
This is the local entrypoint for development.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from flask import Flask, Response, jsonify
from flask_cors import CORS

from event_manager.auth_service.routes import auth_bp
from event_manager.auth_service.session import SessionStore
from event_manager.config import ParseConfig, load_config
from event_manager.database.parse_client import ParseClient
from event_manager.errors import EventManagerError
from event_manager.events_service.controllers import ActionGuard
from event_manager.events_service.routes import events_bp

# Basic console logging during API requests
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")


@dataclass
class Services:
    """Process-wide objects shared by every request."""

    config: ParseConfig
    client: ParseClient
    session: SessionStore
    guard: ActionGuard


def create_app(config: Optional[ParseConfig] = None, client: Optional[ParseClient] = None) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        config (ParseConfig, optional): Defaults to the environment. Ignored when
            `client` is given; the client's own config is used instead.
        client (ParseClient, optional): Defaults to a client built from `config`.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)

    if client is not None:
        config = client.config
    else:
        config = config or load_config()
        client = ParseClient(config)

    if not config.is_configured:
        logging.error(
            "Parse environment variables are missing: "
            f"{', '.join(config.missing())}. Authentication and data operations will fail."
        )

    CORS(app, resources={
        r"/*": {
            "origins": config.cors_origins,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"],
            "supports_credentials": True
        }
    })

    session = SessionStore(client)
    session.restore()

    app.extensions["event_manager"] = Services(
        config=config,
        client=client,
        session=session,
        guard=ActionGuard(),
    )

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(events_bp, url_prefix="/events")
    logging.info("All blueprints registered successfully.")

    # --- ERROR HANDLING ---
    @app.errorhandler(EventManagerError)
    def handle_error(error: EventManagerError) -> Tuple[Response, int]:
        logging.warning(f"[Gateway] {error.kind} error: {error.message}")
        return jsonify(error.to_dict()), error.status_code

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
        Health check endpoint. Reports missing configuration without
        contacting the Parse Server.
        """
        services = app.extensions["event_manager"]
        return jsonify({
            "status": "ok",
            "configured": services.config.is_configured,
            "missing": services.config.missing(),
            "signed_in": services.session.identity is not None,
            "session_loading": services.session.is_loading,
        }), 200

    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("GATEWAY_PORT", 5050))
    app.run(host="0.0.0.0", port=port, debug=True)
