import json
import logging
import os
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify

# --- OPENAI IMPORTS ---
from openai import OpenAI

# --- GEMINI IMPORTS ---
from google import genai
from google.genai import types

from eventhorizon.auth_service.utils import verify_principal_from_request
from eventhorizon.payloads import NOT_AN_OBJECT, json_object

# --- BLUEPRINT SETUP ---
ai_blueprint = Blueprint("ai", __name__)

logger = logging.getLogger(__name__)

# --- API KEY RETRIEVAL ---
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")

OPENAI_MODEL = "gpt-4o-mini"
GEMINI_MODEL = "gemini-2.0-flash"

# --- CLIENT INITIALIZATION ---
openai_client = None
gemini_client = None
ACTIVE_AI_SERVICE = None

DESCRIPTION_FIELDS = ("eventName", "eventDetails", "targetAudience", "desiredTone")
EVENT_DETAILS_MIN_LENGTH = 10

# 1. Try to initialize OpenAI first
if OPENAI_API_KEY:
    try:
        openai_client = OpenAI(api_key=OPENAI_API_KEY)
        ACTIVE_AI_SERVICE = "openai"
        logger.info("Successfully initialized OpenAI client.")
    except Exception as e:
        openai_client = None
        logger.warning(f"OpenAI client initialization failed: {e}. Trying fallback.")

# 2. If OpenAI failed, try Gemini
if ACTIVE_AI_SERVICE is None and GEMINI_API_KEY:
    try:
        gemini_client = genai.Client(api_key=GEMINI_API_KEY)
        ACTIVE_AI_SERVICE = "gemini"
        logger.info("Successfully initialized Gemini client.")
    except Exception as e:
        gemini_client = None
        logger.warning(f"Gemini client initialization failed: {e}.")


# --- SYSTEM PROMPTS ---
DESCRIPTION_SYSTEM_PROMPT = """
You are an AI assistant helping an event organizer generate engaging event descriptions.

Based on the event details you are given, write a compelling description for the event.
Match the requested tone and speak to the target audience.

You MUST respond with a JSON object of the form {"description": "<the description>"}.
"""


def build_description_prompt(data: Dict[str, str]) -> str:
    return (
        f"Event Name: {data['eventName']}\n"
        f"Event Details: {data['eventDetails']}\n"
        f"Target Audience: {data['targetAudience']}\n"
        f"Desired Tone: {data['desiredTone']}\n"
    )


def validate_description_request(data: Dict[str, Any]):
    """Returns (clean_data, error_message)."""
    clean = {}
    for key in DESCRIPTION_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            return None, f"{key} is required."
        clean[key] = value.strip()
    if len(clean["eventDetails"]) < EVENT_DETAILS_MIN_LENGTH:
        return None, "Provide some details about the event."
    return clean, None


@ai_blueprint.route("/event-description", methods=["POST"])
def generate_event_description() -> Tuple[Response, int]:
    """
    Generate an event description for the admin event form.

    Expects JSON:
        { "eventName", "eventDetails", "targetAudience", "desiredTone" }

    Returns:
        200: {"description": "..."}
        400: Missing or empty input.
        401: Not signed in.
        500: AI service not configured, or AI error.
    """
    principal, err, code = verify_principal_from_request()
    if err:
        return err, code

    if ACTIVE_AI_SERVICE is None:
        return jsonify({"error": "AI service is not configured."}), 500

    data = json_object()
    if data is None:
        return jsonify({"error": NOT_AN_OBJECT}), 400
    clean, error = validate_description_request(data)
    if error:
        return jsonify({"error": error}), 400

    user_prompt = build_description_prompt(clean)

    try:
        if ACTIVE_AI_SERVICE == "openai":
            response = openai_client.chat.completions.create(
                model=OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": DESCRIPTION_SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.7,
                response_format={"type": "json_object"},
            )
            result = json.loads(response.choices[0].message.content)

        else:
            description_schema = types.Schema(
                type=types.Type.OBJECT,
                properties={"description": types.Schema(type=types.Type.STRING)},
                required=["description"],
            )
            response = gemini_client.models.generate_content(
                model=GEMINI_MODEL,
                contents=user_prompt,
                config=types.GenerateContentConfig(
                    system_instruction=DESCRIPTION_SYSTEM_PROMPT,
                    response_mime_type="application/json",
                    response_schema=description_schema,
                    temperature=0.7,
                ),
            )
            result = json.loads(response.text)

    except Exception as e:
        logger.error(f"Event description error: {e}")
        return jsonify({"error": "Could not generate description."}), 500

    description = result.get("description") if isinstance(result, dict) else None
    if not description:
        logger.error(f"AI returned no description: {result!r}")
        return jsonify({"error": "Could not generate description."}), 500

    logger.info(f"Generated description for {clean['eventName']!r} for {principal!r}")
    return jsonify({"description": description}), 200
