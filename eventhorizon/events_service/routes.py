"""
Public events routes: list active events, show one event's page, register.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from eventhorizon.events_service.forms import FormSchemaError, parse_form_fields
from eventhorizon.events_service.registration import register_for_event
from eventhorizon.extensions import get_clients
from eventhorizon.payloads import NOT_AN_OBJECT, json_object

events_bp = Blueprint("events", __name__)

logger = logging.getLogger(__name__)


@events_bp.before_request
def before_request() -> None:
    logger.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logger.info(f"[Events] Response {response.status}")
    return response


def public_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Event as shown to attendees, with the empty value for every form field."""
    fields = parse_form_fields(event.get("formFields"))
    return {
        **event,
        "formDefaults": {f.name: f.default_value() for f in fields},
    }


@events_bp.route("/", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return every active event.

    Returns:
        200: List of event objects.
        500: Store error.
    """
    try:
        events = get_clients().store.list_active_events()
    except Exception as e:
        logger.error(f"Database error listing events: {e}")
        return jsonify({"error": "Failed to retrieve events"}), 500

    return jsonify(events), 200


@events_bp.route("/<slug>", methods=["GET"])
def get_event(slug: str) -> Tuple[Response, int]:
    """
    Get an active event by slug.

    Returns:
        200: Event object with formDefaults.
        404: No active event with that slug.
        500: Store error or a broken form definition.
    """
    try:
        event = get_clients().store.get_event_by_slug(slug)
    except Exception as e:
        logger.error(f"Database error getting event {slug}: {e}")
        return jsonify({"error": "Failed to retrieve event"}), 500

    if not event or not event["isActive"]:
        return jsonify({"error": "Event not found"}), 404

    try:
        return jsonify(public_event(event)), 200
    except FormSchemaError as e:
        logger.error(f"Event {event['id']} has an invalid form definition: {e}")
        return jsonify({"error": "Event form is misconfigured"}), 500


@events_bp.route("/<slug>/register", methods=["POST"])
def register(slug: str) -> Tuple[Response, int]:
    """
    Register an attendee for an active event.

    Expects a JSON object mapping form field names to values, plus "rodo"
    when the event asks for consent.

    Returns:
        201: {"success": true, "registration", "qrCode", "emailStatus"}
        400: {"success": false, "errors": {field: {code, message}}}
        404: No active event with that slug.
        500: Store error.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    clients = get_clients()

    try:
        event = clients.store.get_event_by_slug(slug)
    except Exception as e:
        logger.error(f"Database error getting event {slug}: {e}")
        return jsonify({"error": "Failed to retrieve event"}), 500

    if not event or not event["isActive"]:
        return jsonify({"error": "Event not found"}), 404

    try:
        result = register_for_event(clients.store, clients.mailer, event, data)
    except FormSchemaError as e:
        logger.error(f"Event {event['id']} has an invalid form definition: {e}")
        return jsonify({"error": "Event form is misconfigured"}), 500
    except Exception as e:
        logger.error(f"Registration failed: {e}")
        return jsonify({
            "success": False,
            "errors": {"_form": {"code": "server-error", "message": "An unexpected error occurred. Please try again."}},
        }), 500

    if not result["success"]:
        return jsonify(result), 400
    return jsonify(result), 201
