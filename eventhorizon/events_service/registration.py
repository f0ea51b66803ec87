"""
Attendee registration flow.

validate -> persist -> render QR code -> send confirmation (best effort).

A failed confirmation email never fails the registration: the error is
logged and reported back as emailStatus "failed".
"""

import logging
from typing import Any, Dict, Mapping

from eventhorizon.events_service.forms import (
    CHECKBOX_TRUE,
    MISSING_REQUIRED,
    FieldError,
    parse_form_fields,
    validate_submission,
)
from eventhorizon.notifications.qr import qr_code_data_url

logger = logging.getLogger(__name__)

CONSENT_FIELD = "rodo"

EMAIL_SENT = "sent"
EMAIL_FAILED = "failed"
EMAIL_SKIPPED = "skipped"


def _consent_error(event: Mapping[str, Any], submission: Mapping[str, Any]):
    if not (event.get("rodo") or "").strip():
        return None
    value = submission.get(CONSENT_FIELD)
    if value is True or (isinstance(value, str) and value.strip().lower() in CHECKBOX_TRUE):
        return None
    return FieldError(MISSING_REQUIRED, "You must agree to the terms and conditions.")


def _attendee_contact(form_data: Mapping[str, Any]):
    """Pick the attendee's email and name out of the submitted form data."""
    email = form_data.get("email") or ""
    name = form_data.get("full_name") or form_data.get("name") or ""
    return email, name


def send_confirmation_safely(mailer, to: str, name: str, event: Mapping[str, Any], qr_url: str) -> str:
    """
    Send the confirmation email and report the outcome instead of raising.

    Returns:
        str: "sent", "skipped" (no recipient or sending disabled) or "failed"
        (the mailer raised or reported failure).
    """
    if not to:
        logger.info(f"No attendee email for {event.get('name')}; confirmation not sent.")
        return EMAIL_SKIPPED
    if not getattr(mailer, "enabled", True):
        logger.info(f"Email sending is disabled; confirmation to {to} not sent.")
        return EMAIL_SKIPPED
    try:
        sent = mailer.send_confirmation(
            to=to,
            name=name,
            event_name=event["name"],
            event_date=event.get("date") or "",
            qr_code_data_url=qr_url,
        )
    except Exception as e:
        logger.error(f"Error sending confirmation email to {to}: {e}")
        return EMAIL_FAILED
    if not sent:
        logger.error(f"Confirmation email to {to} was not accepted.")
        return EMAIL_FAILED
    return EMAIL_SENT


def register_for_event(store, mailer, event: Dict[str, Any], submission: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a submission against the event's form and record the registration.

    Args:
        store: Document store used to persist the registration.
        mailer: Email client with send_confirmation().
        event (dict): The event record.
        submission (dict): Field name -> raw submitted value.

    Returns:
        dict: On failure {"success": False, "errors": {field: {code, message}}}.
              On success {"success": True, "registration": ..., "qrCode": data URL,
              "emailStatus": "sent" | "skipped" | "failed"}.

    Raises:
        FormSchemaError: The stored form definition is itself invalid.
    """
    fields = parse_form_fields(event.get("formFields"))
    values, errors = validate_submission(fields, submission)

    consent_error = _consent_error(event, submission)
    if consent_error:
        errors[CONSENT_FIELD] = consent_error
    elif (event.get("rodo") or "").strip():
        values[CONSENT_FIELD] = True

    if errors:
        return {
            "success": False,
            "errors": {name: error.to_dict() for name, error in errors.items()},
        }

    registration = store.create_registration(event, values)
    logger.info(f"Registration {registration['id']} created for event {event['id']}")

    qr_url = qr_code_data_url(registration["qrId"])
    to, name = _attendee_contact(values)
    email_status = send_confirmation_safely(mailer, to, name, event, qr_url)

    return {
        "success": True,
        "registration": registration,
        "qrCode": qr_url,
        "emailStatus": email_status,
    }
