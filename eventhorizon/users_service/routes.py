"""
User management. Administrator only: every route sits behind the role gate.

Provides routes for:
- Listing and fetching users
- Creating, updating and deleting users
- Generating demo organizers
- Purging every non-administrator
"""

import logging
import random
from typing import Any, Dict, Tuple

import psycopg2.errors
from flask import Blueprint, Response, g, jsonify

from eventhorizon.auth_service.gate import administrator_required
from eventhorizon.auth_service.utils import PASSWORD_MIN_LENGTH, hash_password
from eventhorizon.database.store import ADMINISTRATOR, ORGANIZER, VALID_ROLES
from eventhorizon.events_service.forms import is_valid_email
from eventhorizon.extensions import get_clients
from eventhorizon.payloads import NOT_AN_OBJECT, json_object

users_bp = Blueprint("users", __name__)

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 3
GENERATE_MAX = 50

DEMO_FIRST_NAMES = ["Leia", "Luke", "Han", "Anakin", "Padme", "Obi-Wan", "Yoda"]
DEMO_LAST_NAMES = ["Organa", "Skywalker", "Solo", "Vader", "Amidala", "Kenobi", "Jedi"]


def validate_user_payload(data: Dict[str, Any]):
    """
    Check the fields shared by create and update.

    Returns:
        tuple: (clean_data, errors). errors maps field name -> list of messages.
    """
    errors: Dict[str, list] = {}
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip()
    role = data.get("role")
    assigned = data.get("assignedEvents", [])

    if len(name) < NAME_MIN_LENGTH:
        errors["name"] = [f"Name must be at least {NAME_MIN_LENGTH} characters."]
    if not is_valid_email(email):
        errors["email"] = ["Invalid email address."]
    if role not in VALID_ROLES:
        errors["role"] = [f"Role must be one of: {', '.join(VALID_ROLES)}"]
    if not isinstance(assigned, list) or not all(isinstance(a, str) for a in assigned):
        errors["assignedEvents"] = ["assignedEvents must be a list of event ids."]

    clean = {"name": name, "email": email, "role": role, "assignedEvents": assigned}
    return clean, errors


@users_bp.route("/", methods=["GET"])
@administrator_required
def list_users() -> Tuple[Response, int]:
    try:
        users = get_clients().store.list_users()
    except Exception as e:
        logger.error(f"Error listing users: {e}")
        return jsonify({"error": "Failed to retrieve users"}), 500
    return jsonify(users), 200


@users_bp.route("/<user_id>", methods=["GET"])
@administrator_required
def get_user(user_id: str) -> Tuple[Response, int]:
    try:
        user = get_clients().store.get_user(user_id)
    except Exception as e:
        logger.error(f"Error getting user {user_id}: {e}")
        return jsonify({"error": "Could not retrieve user"}), 500
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user), 200


@users_bp.route("/", methods=["POST"])
@administrator_required
def create_user() -> Tuple[Response, int]:
    """
    Create a user.

    Expects JSON:
        { "name", "email", "password", "role": "Administrator" | "Organizer",
          "assignedEvents": [event ids] }

    Returns:
        201: The created user (no password).
        400: {"errors": {field: [messages]}}
        500: Store error.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    clean, errors = validate_user_payload(data)

    password = data.get("password") or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        errors["password"] = [f"Password must be at least {PASSWORD_MIN_LENGTH} characters."]
    if errors:
        return jsonify({"errors": errors}), 400

    clean["passwordHash"] = hash_password(password)

    try:
        user = get_clients().store.create_user(clean)
    except psycopg2.errors.UniqueViolation:
        return jsonify({"errors": {"email": ["This email address is already in use."]}}), 400
    except Exception as e:
        logger.error(f"User creation error: {e}")
        return jsonify({"errors": {"_form": ["An unknown error occurred while creating the user."]}}), 500

    logger.info(f"User {user['id']} ({user['role']}) created by {g.principal!r}")
    return jsonify(user), 201


@users_bp.route("/<user_id>", methods=["PUT"])
@administrator_required
def update_user(user_id: str) -> Tuple[Response, int]:
    """
    Update a user. The password only changes when "changePassword" is true.

    Returns:
        200: The updated user.
        400: {"errors": {field: [messages]}}
        404: User not found.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    clean, errors = validate_user_payload(data)

    if data.get("changePassword"):
        password = data.get("password") or ""
        if len(password) < PASSWORD_MIN_LENGTH:
            errors["password"] = [f"New password must be at least {PASSWORD_MIN_LENGTH} characters."]
        else:
            clean["passwordHash"] = hash_password(password)
    if errors:
        return jsonify({"errors": errors}), 400

    try:
        user = get_clients().store.update_user(user_id, clean)
    except psycopg2.errors.UniqueViolation:
        return jsonify({"errors": {"email": ["This email address is already in use."]}}), 400
    except Exception as e:
        logger.error(f"User update error: {e}")
        return jsonify({"errors": {"_form": ["An unknown error occurred while updating the user."]}}), 500

    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(user), 200


@users_bp.route("/<user_id>", methods=["DELETE"])
@administrator_required
def delete_user(user_id: str) -> Tuple[Response, int]:
    try:
        deleted = get_clients().store.delete_user(user_id)
    except Exception as e:
        logger.error(f"Delete user error: {e}")
        return jsonify({"success": False, "message": "Deletion failed"}), 500

    if not deleted:
        return jsonify({"success": False, "message": "User not found."}), 404
    return jsonify({"success": True, "message": "User deleted successfully."}), 200


@users_bp.route("/generate", methods=["POST"])
@administrator_required
def generate_users() -> Tuple[Response, int]:
    """
    Create `count` demo organizers (1-50) with random names, each assigned
    to up to two random events.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    count = data.get("count")
    if not isinstance(count, int) or isinstance(count, bool) or not (1 <= count <= GENERATE_MAX):
        return jsonify({"success": False, "message": f"Please provide a number between 1 and {GENERATE_MAX}."}), 400

    store = get_clients().store
    try:
        taken = {u["name"] for u in store.list_users()}
        event_ids = [e["id"] for e in store.list_events()]

        for _ in range(count):
            first, last = random.choice(DEMO_FIRST_NAMES), random.choice(DEMO_LAST_NAMES)
            name = f"{first} {last}"
            suffix = 1
            while name in taken:
                name = f"{first} {last} {suffix}"
                suffix += 1
            taken.add(name)

            store.create_user({
                "name": name,
                "email": f"{name.lower().replace(' ', '.')}@example.com",
                "role": ORGANIZER,
                "assignedEvents": random.sample(event_ids, random.randint(0, min(2, len(event_ids)))),
            })
    except Exception as e:
        logger.error(f"Generate users error: {e}")
        return jsonify({"success": False, "message": "Failed to generate users."}), 500

    return jsonify({"success": True, "message": f"{count} users generated."}), 201


@users_bp.route("/purge", methods=["POST"])
@administrator_required
def purge_users() -> Tuple[Response, int]:
    """Delete every user who is not an Administrator."""
    try:
        removed = get_clients().store.delete_users_except(ADMINISTRATOR)
    except Exception as e:
        logger.error(f"Purge users error: {e}")
        return jsonify({"success": False, "message": "Failed to purge users."}), 500

    if removed == 0:
        return jsonify({"success": True, "message": "No non-admin users to purge."}), 200
    return jsonify({"success": True, "message": f"{removed} users have been purged."}), 200
