"""
Environment configuration.

Values are read from the process environment (and a local .env file).
Required values are only checked when a collaborator asks for them, so a
missing identifier fails at the first code path that needs it.
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load .env only once here
load_dotenv()

DEFAULT_EMAIL_API_URL = "https://api.resend.com/emails"
DEFAULT_EMAIL_FROM = "onboarding@resend.dev"
DEFAULT_SESSION_COOKIE = "eventhorizon_session"
IDENTITY_COOKIE_NAME = "__session"


class ConfigurationError(RuntimeError):
    """A required environment variable is not set."""


def require(name: str, value: Optional[str] = None) -> str:
    """
    Return a required configuration value.

    Args:
        name (str): Environment variable name (used in the error message).
        value (str, optional): Pre-loaded value. Read from the environment if omitted.

    Raises:
        ConfigurationError: If the value is missing or empty.
    """
    if value is None:
        value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"{name} is missing. Set it in .env")
    return value


class Settings:
    """Snapshot of the environment taken when the app is created."""

    def __init__(self, env: Optional[dict] = None):
        env = os.environ if env is None else env

        self.project_id: Optional[str] = env.get("PROJECT_ID")
        self.database_url: Optional[str] = env.get("DATABASE_URL")
        self.jwt_secret: Optional[str] = env.get("JWT_SECRET")
        self.session_secret: Optional[str] = env.get("SESSION_SECRET")
        self.session_cookie_name: str = env.get("SESSION_COOKIE_NAME", DEFAULT_SESSION_COOKIE)

        self.email_api_key: Optional[str] = env.get("EMAIL_API_KEY")
        self.email_from: str = env.get("EMAIL_FROM") or DEFAULT_EMAIL_FROM
        self.email_api_url: str = env.get("EMAIL_API_URL", DEFAULT_EMAIL_API_URL)

        self.token_expiration_minutes: int = int(env.get("TOKEN_EXPIRATION_MINUTES", 1440))  # Default 24 hours
        self.gateway_port: int = int(env.get("GATEWAY_PORT", 5050))

    def require_project_id(self) -> str:
        return require("PROJECT_ID", self.project_id)

    def require_database_url(self) -> str:
        return require("DATABASE_URL", self.database_url)

    def require_jwt_secret(self) -> str:
        return require("JWT_SECRET", self.jwt_secret)
