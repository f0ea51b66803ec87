"""
Shared authentication helpers.
Provides token creation and verification, password hashing, and resolution
of the current principal from the session, header or identity cookie.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Response, jsonify, request, session

from eventhorizon.config import IDENTITY_COOKIE_NAME, require
from eventhorizon.extensions import get_clients

ph = PasswordHasher()

SESSION_PRINCIPAL_KEY = "principal"
PASSWORD_MIN_LENGTH = 6


class Principal:
    """The authenticated identity for the current request."""

    def __init__(self, uid: str, email: Optional[str] = None):
        self.uid = uid
        self.email = email or None

    def to_dict(self) -> Dict[str, Any]:
        return {"uid": self.uid, "email": self.email}

    def __eq__(self, other):
        return isinstance(other, Principal) and (self.uid, self.email) == (other.uid, other.email)

    def __repr__(self):
        return f"Principal(uid={self.uid!r}, email={self.email!r})"


class AuthState:
    """
    What the identity layer knows about the current request.

    loading is True while the principal is still being resolved; callers
    must not act on `principal` until it is False.
    """

    def __init__(self, principal: Optional[Principal] = None, loading: bool = False):
        self.principal = principal
        self.loading = loading


class IdentityProvider:
    """
    Issues and verifies signed ID tokens scoped to one project.

    Tokens carry the user id in `sub`, the email (when known) in `email`,
    and the project identifier as audience.
    """

    ALGORITHM = "HS256"

    def __init__(self, secret: Optional[str], project_id: Optional[str], expiration_minutes: int = 1440):
        self.secret = require("JWT_SECRET", secret)
        self.project_id = require("PROJECT_ID", project_id)
        self.expiration_minutes = expiration_minutes

    def create_token(self, uid: str, email: Optional[str]) -> str:
        """
        Generates a new ID token for a user.

        Args:
            uid (str): The user id.
            email (str, optional): The user's email. Omitted from the token if empty.

        Returns:
            str: Encoded JWT string.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": uid,
            "aud": self.project_id,
            "iss": self.project_id,
            "exp": now + timedelta(minutes=self.expiration_minutes),
            "iat": now,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret, algorithm=self.ALGORITHM)

    def verify_token(self, token: str) -> Optional[Principal]:
        """
        Validate an ID token.

        Returns:
            Principal: The token's identity, or None if the token is invalid or expired.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.ALGORITHM],
                audience=self.project_id,
                issuer=self.project_id,
            )
        except jwt.PyJWTError:
            return None

        uid = payload.get("sub")
        if not uid:
            return None
        return Principal(uid, payload.get("email"))


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def _token_from_request() -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1]
    return request.cookies.get(IDENTITY_COOKIE_NAME)


def current_principal() -> Optional[Principal]:
    """
    Resolve the principal for the current request.

    Order: server-side session, then a Bearer token, then the identity cookie.
    """
    stored = session.get(SESSION_PRINCIPAL_KEY)
    if stored and stored.get("uid"):
        return Principal(stored["uid"], stored.get("email"))

    token = _token_from_request()
    if token:
        return get_clients().identity.verify_token(token)
    return None


def current_auth_state() -> AuthState:
    # Resolution is synchronous on the server, so the state is never loading here.
    return AuthState(principal=current_principal(), loading=False)


def start_session(principal: Principal) -> None:
    session.clear()
    session[SESSION_PRINCIPAL_KEY] = principal.to_dict()


def verify_principal_from_request() -> Tuple[Optional[Principal], Optional[Response], Optional[int]]:
    """
    Require an authenticated principal for a JSON endpoint.

    Returns:
        tuple: (principal, error_response, status_code)
               If successful, error_response and status_code are None.
    """
    principal = current_principal()
    if principal is None:
        if _token_from_request():
            return None, jsonify({"error": "invalid token"}), 401
        return None, jsonify({"error": "missing token"}), 401
    return principal, None, None
