"""
Admin area: landing page, event management and the signed-in user's account.

Every route requires a signed-in principal. Organizers only reach the events
assigned to them.
"""

import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import psycopg2.errors
from flask import Blueprint, Response, g, jsonify

from eventhorizon.auth_service.gate import login_required, visible_events
from eventhorizon.auth_service.utils import PASSWORD_MIN_LENGTH, hash_password, verify_password
from eventhorizon.database.store import ADMINISTRATOR, ORGANIZER, slugify
from eventhorizon.events_service.forms import FormSchemaError, parse_form_fields
from eventhorizon.extensions import get_clients
from eventhorizon.payloads import NOT_AN_OBJECT, json_object

admin_bp = Blueprint("admin", __name__)

logger = logging.getLogger(__name__)

# --- CONSTANTS FOR VALIDATION ---
NAME_MIN_LENGTH = 3
VALID_LOCATION_TYPES = ["Virtual", "On-site"]

NAV_ITEMS = [
    {"href": "/admin", "icon": "CalendarDays", "label": "Events"},
    {"href": "/admin/registrations", "icon": "Users", "label": "Registrations"},
    {"href": "/admin/users", "icon": "UserCog", "label": "Users", "adminOnly": True},
    {"href": "/admin/account", "icon": "Settings", "label": "Account settings", "organizerOnly": True},
]


def nav_items_for(user: Optional[Dict[str, Any]]) -> list:
    role = user.get("role") if user else None
    items = []
    for item in NAV_ITEMS:
        if item.get("adminOnly") and role != ADMINISTRATOR:
            continue
        if item.get("organizerOnly") and role != ORGANIZER:
            continue
        items.append(item)
    return items


def _normalize_location(value: Any):
    if isinstance(value, str):
        value = {"types": ["On-site"], "address": value}
    if not isinstance(value, dict):
        return None, "location must be an object with types and an optional address"

    types = value.get("types") or []
    if not isinstance(types, list) or not types or any(t not in VALID_LOCATION_TYPES for t in types):
        return None, f"location.types must be a non-empty list of: {', '.join(VALID_LOCATION_TYPES)}"

    location = {"types": types}
    if value.get("address"):
        location["address"] = value["address"]
    return location, None


def _valid_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_event_payload(data: Dict[str, Any], partial: bool = False):
    """
    Check an event create/update payload.

    Args:
        data (dict): Request body using the API's camelCase keys.
        partial (bool): Only validate the keys that are present (updates).

    Returns:
        tuple: (clean_data, error_message). error_message is None when valid.
    """
    clean: Dict[str, Any] = {}

    def present(key: str) -> bool:
        return key in data or not partial

    if present("name"):
        name = data.get("name")
        name = name.strip() if isinstance(name, str) else ""
        if len(name) < NAME_MIN_LENGTH:
            return None, f"Name must be at least {NAME_MIN_LENGTH} characters."
        if not slugify(name):
            return None, "Name must contain at least one letter or digit usable in a URL."
        clean["name"] = name

    for key, label in (("date", "Date"), ("description", "Description"), ("rodo", "RODO/Privacy policy")):
        if present(key):
            value = data.get(key)
            if not value or not isinstance(value, str):
                return None, f"{label} is required."
            clean[key] = value

    if present("location"):
        location, error = _normalize_location(data.get("location"))
        if error:
            return None, error
        clean["location"] = location

    if present("heroImage"):
        hero = data.get("heroImage") or {}
        if not isinstance(hero, dict) or not _valid_url(hero.get("src")):
            return None, "Hero image source must be a valid URL."
        clean["heroImage"] = {"src": hero["src"], "hint": hero.get("hint") or ""}

    if "formFields" in data or not partial:
        try:
            fields = parse_form_fields(data.get("formFields") or [])
        except FormSchemaError as e:
            return None, str(e)
        clean["formFields"] = [f.to_dict() for f in fields]

    if "themeColor" in data:
        clean["themeColor"] = data.get("themeColor")

    if "isActive" in data:
        if not isinstance(data["isActive"], bool):
            return None, "isActive must be true or false"
        clean["isActive"] = data["isActive"]

    return clean, None


def _event_for_user(event_id: str):
    """Fetch an event the current user may manage. Returns (event, error, code)."""
    event = get_clients().store.get_event(event_id)
    if not event or not visible_events(g.current_user, [event]):
        return None, jsonify({"error": "Event not found"}), 404
    return event, None, None


# --- LANDING ---
@admin_bp.route("", methods=["GET"])
@login_required
def landing() -> Tuple[Response, int]:
    """
    Admin landing: the signed-in user, their navigation and their events.
    """
    try:
        events = visible_events(g.current_user, get_clients().store.list_events())
    except Exception as e:
        logger.error(f"Database error listing events: {e}")
        return jsonify({"error": "Failed to retrieve events"}), 500

    return jsonify({
        "user": g.current_user,
        "nav": nav_items_for(g.current_user),
        "events": events,
    }), 200


# --- EVENTS ---
@admin_bp.route("/events/<event_id>", methods=["GET"])
@login_required
def get_event(event_id: str) -> Tuple[Response, int]:
    try:
        event, err, code = _event_for_user(event_id)
    except Exception as e:
        logger.error(f"Database error getting event {event_id}: {e}")
        return jsonify({"error": "Failed to retrieve event"}), 500
    if err:
        return err, code
    return jsonify(event), 200


@admin_bp.route("/events", methods=["POST"])
@login_required
def create_event() -> Tuple[Response, int]:
    """
    Create an event. The slug is derived from the name.

    Returns:
        201: The created event.
        400: Validation error or duplicate slug.
        500: Store error.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    clean, error = validate_event_payload(data)
    if error:
        return jsonify({"error": error}), 400

    try:
        event = get_clients().store.create_event(clean)
    except psycopg2.errors.UniqueViolation:
        return jsonify({"error": "An event with this name already exists"}), 400
    except Exception as e:
        logger.error(f"Database error creating event: {e}")
        return jsonify({"error": "Failed to create event"}), 500

    logger.info(f"Event {event['id']} created by {g.principal!r}")
    return jsonify(event), 201


@admin_bp.route("/events/<event_id>", methods=["PUT"])
@login_required
def update_event(event_id: str) -> Tuple[Response, int]:
    """
    Update an event. Renaming it re-derives the slug.

    Returns:
        200: The updated event.
        400: Validation error or duplicate slug.
        404: Event not found (or not assigned to the user).
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    if not data:
        return jsonify({"error": "No update data provided"}), 400

    clean, error = validate_event_payload(data, partial=True)
    if error:
        return jsonify({"error": error}), 400

    try:
        _, err, code = _event_for_user(event_id)
        if err:
            return err, code
        event = get_clients().store.update_event(event_id, clean)
    except psycopg2.errors.UniqueViolation:
        return jsonify({"error": "An event with this name already exists"}), 400
    except Exception as e:
        logger.error(f"Database error updating event {event_id}: {e}")
        return jsonify({"error": "Failed to update event"}), 500

    if not event:
        return jsonify({"error": "Event not found"}), 404
    return jsonify(event), 200


@admin_bp.route("/events/<event_id>", methods=["DELETE"])
@login_required
def delete_event(event_id: str) -> Tuple[Response, int]:
    try:
        _, err, code = _event_for_user(event_id)
        if err:
            return err, code
        deleted = get_clients().store.delete_event(event_id)
    except Exception as e:
        logger.error(f"Database error deleting event {event_id}: {e}")
        return jsonify({"error": "Failed to delete event"}), 500

    if not deleted:
        return jsonify({"error": "Event not found or already deleted"}), 404
    return jsonify({"status": "deleted"}), 200


@admin_bp.route("/events/<event_id>/activate", methods=["POST"])
@login_required
def activate_event(event_id: str) -> Tuple[Response, int]:
    """Make this the only active event."""
    try:
        _, err, code = _event_for_user(event_id)
        if err:
            return err, code
        event = get_clients().store.set_active_event(event_id)
    except Exception as e:
        logger.error(f"Database error activating event {event_id}: {e}")
        return jsonify({"error": "Failed to activate event"}), 500

    if not event:
        return jsonify({"error": "Event not found"}), 404
    return jsonify(event), 200


@admin_bp.route("/events/<event_id>/deactivate", methods=["POST"])
@login_required
def deactivate_event(event_id: str) -> Tuple[Response, int]:
    try:
        _, err, code = _event_for_user(event_id)
        if err:
            return err, code
        event = get_clients().store.deactivate_event(event_id)
    except Exception as e:
        logger.error(f"Database error deactivating event {event_id}: {e}")
        return jsonify({"error": "Failed to deactivate event"}), 500

    if not event:
        return jsonify({"error": "Event not found"}), 404
    return jsonify(event), 200


# --- ACCOUNT ---
@admin_bp.route("/account", methods=["GET"])
@login_required
def account() -> Tuple[Response, int]:
    """The signed-in user's account page."""
    if not g.current_user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({
        "user": g.current_user,
        "nav": nav_items_for(g.current_user),
    }), 200


def validate_password_change(data: Dict[str, Any]) -> Dict[str, list]:
    """
    Check a change-password form.

    Returns:
        dict: field name -> list of messages. Empty when valid.
    """
    def text(key: str) -> str:
        value = data.get(key)
        return value if isinstance(value, str) else ""

    errors: Dict[str, list] = {}
    if not text("currentPassword"):
        errors["currentPassword"] = ["Current password is required."]
    if len(text("newPassword")) < PASSWORD_MIN_LENGTH:
        errors["newPassword"] = [f"New password must be at least {PASSWORD_MIN_LENGTH} characters."]
    elif text("newPassword") != text("confirmPassword"):
        errors["confirmPassword"] = ["New passwords do not match."]
    return errors


@admin_bp.route("/account/password", methods=["POST"])
@login_required
def change_password() -> Tuple[Response, int]:
    """
    Change the signed-in user's password.

    Expects JSON:
        { "currentPassword", "newPassword", "confirmPassword" }

    Returns:
        200: {"success": true, "message": ...}
        400: {"errors": {field: [messages]}}, including a wrong current password.
        404: No user record for the signed-in principal.
        500: Store error.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400

    errors = validate_password_change(data)
    if errors:
        return jsonify({"errors": errors}), 400

    if not g.current_user:
        return jsonify({"error": "User not found"}), 404

    store = get_clients().store
    try:
        user = store.get_user_by_email(g.current_user["email"], include_password=True)
        if not user or not verify_password(user.get("passwordHash"), data["currentPassword"]):
            return jsonify({"errors": {"currentPassword": ["Current password is incorrect."]}}), 400
        store.update_user(user["id"], {"passwordHash": hash_password(data["newPassword"])})
    except Exception as e:
        logger.error(f"Password change error for {g.principal!r}: {e}")
        return jsonify({"errors": {"_form": ["An unknown error occurred while changing the password."]}}), 500

    logger.info(f"Password changed for user {user['id']}")
    return jsonify({"success": True, "message": "Password updated successfully."}), 200
