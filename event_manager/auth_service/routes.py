"""
Authentication route handlers.

Provides routes for:
- User signup (createUser cloud function, then login)
- User login
- Logout
- Current identity (/me)

Sessions are held by the shared SessionStore; the Parse Server does the
actual authentication.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, current_app, jsonify, request

from event_manager.auth_service.session import SessionStore
from event_manager.auth_service.validation import validate_login, validate_signup

auth_bp = Blueprint("auth", __name__)


def get_session() -> SessionStore:
    return current_app.extensions["event_manager"].session


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request to the authentication service.
    Bodies are never logged: they carry passwords.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Auth] Response {response.status}")
    return response


# --- SIGNUP ---
@auth_bp.route("/signup", methods=["POST"])
def signup() -> Tuple[Response, int]:
    """
    Create an account and sign in.

    Expects a JSON body with:
    - username (str)
    - email (str)
    - password (str): Minimum 6 characters.
    - confirmPassword (str)
    - role (str): "Attendee" or "Organizer".

    Returns:
        201: The new identity.
        400: Validation error.
        502: The Parse Server rejected the signup (message passed through).
        503: Parse configuration missing.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    signup_data = validate_signup(data)

    identity = get_session().signup(signup_data)
    return jsonify({"user": identity.to_dict(), "redirect": "/"}), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate with username and password.

    Returns:
        200: The identity.
        400: Missing credentials.
        502: Invalid credentials or server failure (Parse message passed through).
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    credentials = validate_login(data)

    identity = get_session().login(credentials["username"], credentials["password"])
    return jsonify({"user": identity.to_dict(), "redirect": "/"}), 200


# --- LOGOUT ---
@auth_bp.route("/logout", methods=["POST"])
def logout() -> Tuple[Response, int]:
    remote_ok = get_session().logout()
    return jsonify({"status": "logged_out", "remote": remote_ok}), 200


# --- GET CURRENT USER ---
@auth_bp.route("/me", methods=["GET"])
def get_current_user() -> Tuple[Response, int]:
    """
    Return the signed-in identity.

    Returns:
        200: Identity object.
        401: Nobody is signed in.
    """
    identity = get_session().identity
    if identity is None:
        return jsonify({"error": "Not signed in"}), 401
    return jsonify(identity.to_dict()), 200
