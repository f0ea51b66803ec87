"""
Authentication route handlers.

Provides routes for:
- The login entry point (/login)
- Password login (/api/login)
- ID token login (/api/auth/login)
- Logout (/api/logout)
- Session state for client polling (/api/session)

Sessions hold only the principal (user id and email). The user record is
looked up again on every gated request, so role changes apply immediately.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify, redirect, request, session

from eventhorizon.auth_service.gate import ADMIN_LANDING_ROUTE, LOGIN_ROUTE
from eventhorizon.auth_service.utils import (
    Principal,
    current_auth_state,
    current_principal,
    start_session,
    verify_password,
)
from eventhorizon.config import IDENTITY_COOKIE_NAME
from eventhorizon.events_service.forms import is_valid_email
from eventhorizon.extensions import get_clients
from eventhorizon.payloads import NOT_AN_OBJECT, json_object

auth_bp = Blueprint("auth", __name__)

logger = logging.getLogger(__name__)


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request method and path to the authentication service.
    """
    logger.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.
    """
    logger.info(f"[Auth] Response {response.status}")
    return response


# --- LOGIN ENTRY POINT ---
@auth_bp.route(LOGIN_ROUTE, methods=["GET"])
def login_page():
    """
    Login entry point. Signed-in visitors are sent on to the admin landing.
    """
    if current_principal() is not None:
        return redirect(ADMIN_LANDING_ROUTE)
    return jsonify({
        "page": "login",
        "password_login": "/api/login",
        "token_login": "/api/auth/login",
    }), 200


# --- PASSWORD LOGIN ---
@auth_bp.route("/api/login", methods=["POST"])
def password_login() -> Tuple[Response, int]:
    """
    Authenticate with email and password and open a session.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: {"ok": true, "token": ...}
        400: Malformed email or empty password.
        401: Invalid credentials.
        500: Store error.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    email: str = (data.get("email") or "").strip()
    password: str = data.get("password") or ""

    if not is_valid_email(email) or not password:
        return jsonify({"error": "Invalid email or password."}), 400

    try:
        user = get_clients().store.get_user_by_email(email, include_password=True)
    except Exception as e:
        logger.error(f"Login lookup failed: {e}")
        return jsonify({"error": "A server error occurred. Please try again."}), 500

    if not user or not verify_password(user.get("passwordHash"), password):
        return jsonify({"error": "Invalid email or password."}), 401

    principal = Principal(user["id"], user["email"])
    start_session(principal)
    token = get_clients().identity.create_token(principal.uid, principal.email)

    return jsonify({"ok": True, "token": token}), 200


# --- ID TOKEN LOGIN ---
@auth_bp.route("/api/auth/login", methods=["POST"])
def token_login() -> Tuple[Response, int]:
    """
    Exchange an ID token for a server-side session.

    The token's email links the identity to a user record.

    Returns:
        200: {"ok": true}
        400: Token missing, or the token carries no email.
        401: Token invalid or expired.
        404: No user record for the token's email.
        500: Store error.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    token = data.get("token")

    if not token:
        return jsonify({"error": "ID token is required."}), 400

    principal = get_clients().identity.verify_token(token)
    if principal is None:
        return jsonify({"error": "Authentication failed."}), 401

    if not principal.email:
        return jsonify({"error": "No email found in token."}), 400

    try:
        user = get_clients().store.get_user_by_email(principal.email)
    except Exception as e:
        logger.error(f"/api/auth/login error: {e}")
        return jsonify({"error": "Authentication failed."}), 500

    if not user:
        return jsonify({"error": "User not found in application database."}), 404

    start_session(principal)
    return jsonify({"ok": True}), 200


# --- LOGOUT ---
@auth_bp.route("/api/logout", methods=["GET"])
def logout():
    """
    Destroy the session, clear the identity cookie, and go to the login page.
    Always redirects.
    """
    session.clear()
    response = redirect(LOGIN_ROUTE)
    response.delete_cookie(IDENTITY_COOKIE_NAME)
    return response


# --- SESSION STATE ---
@auth_bp.route("/api/session", methods=["GET"])
def session_state() -> Tuple[Response, int]:
    """
    Report the current principal and matching user record (if any).
    """
    state = current_auth_state()
    principal = state.principal
    user = None
    if principal and principal.email:
        try:
            user = get_clients().store.get_user_by_email(principal.email)
        except Exception as e:
            logger.error(f"Session lookup failed: {e}")
            return jsonify({"error": "Could not retrieve user"}), 500

    return jsonify({
        "loading": state.loading,
        "principal": principal.to_dict() if principal else None,
        "user": user,
    }), 200
