"""
Registrations and check-in routes for the admin area.

Registrations:
- List (optionally for one event), fetch, edit form data, delete
- Export as a "|"-separated CSV

Check-in:
- Check in by QR id (rejects a second check-in)
- Toggle a registration's check-in status
- Export registrations with their check-in status
"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, Response, g, jsonify, request

from eventhorizon.auth_service.gate import login_required, visible_events
from eventhorizon.events_service.forms import FormSchemaError, parse_form_fields, validate_submission
from eventhorizon.extensions import get_clients
from eventhorizon.payloads import NOT_AN_OBJECT, json_object

registrations_bp = Blueprint("registrations", __name__)

logger = logging.getLogger(__name__)

CSV_DELIMITER = "|"
EXPORT_FORMATS = ("plain", "excel")


def format_timestamp(value: Optional[str]) -> str:
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    return str(value)


def registrations_to_csv(
    registrations: List[Dict[str, Any]],
    headers: List[Tuple[str, str]],
    include_check_in: bool = False,
    export_format: str = "plain",
) -> str:
    """
    Render registrations as "|"-separated CSV.

    Args:
        registrations: Registration records.
        headers: (field name, label) pairs in form order.
        include_check_in: Append check-in status and time columns.
        export_format: "excel" prepends a "sep=|" line so Excel picks the delimiter.
    """
    output = StringIO()
    if export_format == "excel":
        output.write(f"sep={CSV_DELIMITER}\n")

    writer = csv.writer(output, delimiter=CSV_DELIMITER, lineterminator="\n")

    header_row = ["Registration Date"] + [label for _, label in headers]
    if include_check_in:
        header_row += ["Checked-In Status", "Check-In Time"]
    writer.writerow(header_row)

    for reg in registrations:
        row = [format_timestamp(reg.get("registrationDate"))]
        row += [format_cell(reg["formData"].get(key)) for key, _ in headers]
        if include_check_in:
            checked_in = reg.get("checkedIn")
            row.append("YES" if checked_in else "NO")
            row.append(format_timestamp(reg.get("checkInTime")) if checked_in else "N/A")
        writer.writerow(row)

    return output.getvalue()


def _event_for_user(event_id: str):
    event = get_clients().store.get_event(event_id)
    if not event or not visible_events(g.current_user, [event]):
        return None
    return event


def _export(event_id: str, include_check_in: bool):
    export_format = request.args.get("format", "plain")
    if export_format not in EXPORT_FORMATS:
        return jsonify({"success": False, "error": f"format must be one of: {', '.join(EXPORT_FORMATS)}"}), 400

    store = get_clients().store
    try:
        event = _event_for_user(event_id)
        if not event:
            return jsonify({"success": False, "error": "Event not found."}), 404
        registrations = store.list_registrations(event_id)
    except Exception as e:
        logger.error(f"Export error: {e}")
        return jsonify({"success": False, "error": "Failed to export data."}), 500

    if not registrations:
        return jsonify({"success": False, "error": "No registrations to export for this event."}), 404

    headers = [(f.get("name"), f.get("label") or f.get("name")) for f in event["formFields"]]
    csv_data = registrations_to_csv(registrations, headers, include_check_in, export_format)

    suffix = "checkin" if include_check_in else "registrations"
    filename = f"{event['slug'] or event['id']}-{suffix}.csv"
    return Response(
        csv_data,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    ), 200


# --- REGISTRATIONS ---
@registrations_bp.route("/registrations", methods=["GET"])
@login_required
def list_registrations() -> Tuple[Response, int]:
    """
    List registrations for one event (?eventId=) or for every event the
    user may manage.
    """
    event_id = request.args.get("eventId")
    store = get_clients().store

    try:
        if event_id:
            if not _event_for_user(event_id):
                return jsonify({"error": "Event not found"}), 404
            registrations = store.list_registrations(event_id)
        else:
            allowed = {e["id"] for e in visible_events(g.current_user, store.list_events())}
            registrations = [r for r in store.list_registrations() if r["eventId"] in allowed]
    except Exception as e:
        logger.error(f"Database error listing registrations: {e}")
        return jsonify({"error": "Failed to retrieve registrations"}), 500

    return jsonify(registrations), 200


@registrations_bp.route("/registrations/<event_id>/<registration_id>", methods=["GET"])
@login_required
def get_registration(event_id: str, registration_id: str) -> Tuple[Response, int]:
    try:
        if not _event_for_user(event_id):
            return jsonify({"error": "Event not found"}), 404
        registration = get_clients().store.get_registration(event_id, registration_id)
    except Exception as e:
        logger.error(f"Database error getting registration {registration_id}: {e}")
        return jsonify({"error": "Failed to retrieve registration"}), 500

    if not registration:
        return jsonify({"error": "Registration not found"}), 404
    return jsonify(registration), 200


@registrations_bp.route("/registrations/<event_id>/<registration_id>", methods=["PUT"])
@login_required
def update_registration(event_id: str, registration_id: str) -> Tuple[Response, int]:
    """
    Replace a registration's form data. The new data is validated against
    the event's form.

    Expects JSON: {"formData": {...}}

    Returns:
        200: {"success": true, "registration": ...}
        400: {"success": false, "errors": {...}}
        404: Event or registration not found.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    form_data = data.get("formData")
    if not isinstance(form_data, dict):
        return jsonify({"success": False, "message": "formData must be an object."}), 400

    store = get_clients().store
    try:
        event = _event_for_user(event_id)
        if not event:
            return jsonify({"success": False, "message": "Event not found."}), 404

        values, errors = validate_submission(parse_form_fields(event["formFields"]), form_data)
        if errors:
            return jsonify({
                "success": False,
                "errors": {name: error.to_dict() for name, error in errors.items()},
            }), 400

        # Keep fields outside the form (e.g. consent) as they were.
        existing = store.get_registration(event_id, registration_id)
        if not existing:
            return jsonify({"success": False, "message": "Registration not found."}), 404
        merged = {**existing["formData"], **values}

        registration = store.update_registration_form_data(event_id, registration_id, merged)
    except FormSchemaError as e:
        logger.error(f"Event {event_id} has an invalid form definition: {e}")
        return jsonify({"success": False, "message": "Event form is misconfigured."}), 500
    except Exception as e:
        logger.error(f"Update registration error: {e}")
        return jsonify({"success": False, "message": "An unknown server error occurred."}), 500

    if not registration:
        return jsonify({"success": False, "message": "Registration not found."}), 404
    return jsonify({"success": True, "registration": registration}), 200


@registrations_bp.route("/registrations/<event_id>/<registration_id>", methods=["DELETE"])
@login_required
def delete_registration(event_id: str, registration_id: str) -> Tuple[Response, int]:
    store = get_clients().store
    try:
        if not _event_for_user(event_id) or not store.get_registration(event_id, registration_id):
            return jsonify({"success": False, "message": "Registration not found."}), 404
        store.delete_registration(registration_id)
    except Exception as e:
        logger.error(f"Delete registration error: {e}")
        return jsonify({"success": False, "message": "Failed to delete registration."}), 500

    return jsonify({"success": True, "message": "Registration deleted successfully."}), 200


@registrations_bp.route("/registrations/<event_id>/export", methods=["GET"])
@login_required
def export_registrations(event_id: str):
    """Download an event's registrations. ?format=plain|excel"""
    return _export(event_id, include_check_in=False)


# --- CHECK-IN ---
@registrations_bp.route("/check-in/<event_id>", methods=["POST"])
@login_required
def check_in_by_qr(event_id: str) -> Tuple[Response, int]:
    """
    Check in the attendee holding a QR code.

    Expects JSON: {"qrId": "qr_..."}

    Returns:
        200: {"success": true, "message", "userName"}
        404: No registration for that QR code.
        409: Already checked in.
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    qr_id = data.get("qrId")
    if not qr_id:
        return jsonify({"success": False, "message": "qrId is required."}), 400

    store = get_clients().store
    try:
        if not _event_for_user(event_id):
            return jsonify({"success": False, "message": "Event not found."}), 404

        registration = store.find_registration_by_qr(event_id, qr_id)
        if not registration:
            return jsonify({"success": False, "message": "Registration not found."}), 404

        user_name = registration["formData"].get("full_name") or "N/A"
        if registration["checkedIn"]:
            return jsonify({
                "success": False,
                "message": f"User already checked in at {format_timestamp(registration['checkInTime'])}.",
                "userName": user_name,
            }), 409

        # A concurrent scan may have checked the attendee in since the lookup.
        if store.check_in(event_id, registration["id"]) is None:
            return jsonify({
                "success": False,
                "message": "User already checked in.",
                "userName": user_name,
            }), 409
    except Exception as e:
        logger.error(f"Check-in error: {e}")
        return jsonify({"success": False, "message": "An unknown server error occurred."}), 500

    logger.info(f"Registration {registration['id']} checked in by {g.principal!r}")
    return jsonify({"success": True, "message": "Check-in successful!", "userName": user_name}), 200


@registrations_bp.route("/check-in/<event_id>/<registration_id>", methods=["POST"])
@login_required
def toggle_check_in(event_id: str, registration_id: str) -> Tuple[Response, int]:
    """
    Set a registration's check-in status.

    Expects JSON: {"checkedIn": true | false}
    """
    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    checked_in = data.get("checkedIn")
    if not isinstance(checked_in, bool):
        return jsonify({"success": False, "message": "checkedIn must be true or false."}), 400

    try:
        if not _event_for_user(event_id):
            return jsonify({"success": False, "message": "Event not found."}), 404
        registration = get_clients().store.set_check_in(event_id, registration_id, checked_in)
    except Exception as e:
        logger.error(f"Toggle check-in error: {e}")
        return jsonify({"success": False, "message": "An unknown server error occurred."}), 500

    if not registration:
        return jsonify({"success": False, "message": "Registration not found."}), 404
    return jsonify({"success": True, "registration": registration}), 200


@registrations_bp.route("/check-in/<event_id>/export", methods=["GET"])
@login_required
def export_check_ins(event_id: str):
    """Download registrations with check-in status. ?format=plain|excel"""
    return _export(event_id, include_check_in=True)
