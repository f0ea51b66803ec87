"""
Confirmation email delivery through a transactional email HTTP API.
"""

import logging
from html import escape as html_escape
from typing import Optional

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10


class EmailDeliveryError(Exception):
    """The email API rejected the message or could not be reached."""


class EmailClient:
    """
    Sends registration confirmations.

    Without an API key the client is disabled: sends are logged and skipped.
    """

    def __init__(self, api_key: Optional[str], sender: str, api_url: str):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        if not api_key:
            logger.warning("EMAIL_API_KEY is not set. Confirmation emails are disabled.")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send_confirmation(
        self, to: str, name: str, event_name: str, event_date: str, qr_code_data_url: str
    ) -> bool:
        """
        Send a registration confirmation carrying the attendee's QR code.

        Returns:
            bool: True if the API accepted the message, False if sending is disabled.

        Raises:
            EmailDeliveryError: The API call failed.
        """
        if not self.enabled:
            logger.info("Skipping email send due to missing email API configuration.")
            return False

        payload = {
            "from": f"{event_name} Team <{self.sender}>",
            "to": [to],
            "subject": f"Registration confirmed: {event_name}",
            "html": render_confirmation_html(name, event_name, event_date, qr_code_data_url),
        }

        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise EmailDeliveryError(f"Could not send confirmation email: {e}") from e

        logger.info(f"Confirmation email sent to {to} ({response.status_code})")
        return True


def render_confirmation_html(name: str, event_name: str, event_date: str, qr_code_data_url: str) -> str:
    safe_name = html_escape(name or "Participant")
    safe_event_name = html_escape(event_name)
    safe_event_date = html_escape(event_date or "")

    return f"""
    <div style="font-family: sans-serif; line-height: 1.6;">
        <h2>Hello {safe_name},</h2>
        <p>Thank you for registering for <strong>{safe_event_name}</strong>, taking place on {safe_event_date}.</p>
        <p>Below is your personal QR code. Please show it at the entrance.</p>
        <div style="text-align: center; margin: 20px 0;">
            <img src="{qr_code_data_url}" alt="Your QR code" style="border: 1px solid #ddd; padding: 10px; background: white;"/>
        </div>
        <p>See you there!</p>
        <p><em>The {safe_event_name} team</em></p>
    </div>
    """
