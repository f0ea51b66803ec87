import pytest
import jwt

from eventhorizon.auth_service.utils import (
    IdentityProvider,
    Principal,
    hash_password,
    verify_password,
    verify_principal_from_request,
)
from eventhorizon.config import ConfigurationError


def test_create_token(identity):
    token = identity.create_token("usr_1", "jane@example.com")

    assert isinstance(token, str)

    # Decode to verify contents using the same secret
    payload = jwt.decode(token, "test_secret", algorithms=["HS256"], audience="test-project")
    assert payload["sub"] == "usr_1"
    assert payload["email"] == "jane@example.com"
    assert payload["iss"] == "test-project"
    assert "exp" in payload
    assert "iat" in payload


def test_create_token_without_email(identity):
    token = identity.create_token("usr_1", None)
    assert identity.verify_token(token) == Principal("usr_1", None)


def test_verify_token(identity):
    token = identity.create_token("usr_2", "a@b.com")
    assert identity.verify_token(token) == Principal("usr_2", "a@b.com")


def test_verify_token_invalid(identity):
    assert identity.verify_token("invalid.token.here") is None


def test_verify_token_other_project(identity):
    other = IdentityProvider("test_secret", "other-project")
    assert identity.verify_token(other.create_token("usr_1", "a@b.com")) is None


def test_verify_token_expired(identity):
    expired = IdentityProvider("test_secret", "test-project", expiration_minutes=-1)
    assert identity.verify_token(expired.create_token("usr_1", "a@b.com")) is None


@pytest.mark.parametrize("secret, project_id, missing", [
    (None, "test-project", "JWT_SECRET"),
    ("test_secret", None, "PROJECT_ID"),
    ("test_secret", "", "PROJECT_ID"),
])
def test_identity_provider_requires_configuration(mocker, secret, project_id, missing):
    mocker.patch.dict("os.environ", {}, clear=True)
    with pytest.raises(ConfigurationError, match=missing):
        IdentityProvider(secret, project_id)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password(hashed, "secret123") is True
    assert verify_password(hashed, "wrong") is False
    assert verify_password(None, "secret123") is False
    assert verify_password("not-a-hash", "secret123") is False


def test_verify_principal_from_request_valid(app, identity):
    token = identity.create_token("usr_1", "jane@example.com")

    with app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
        principal, err, code = verify_principal_from_request()
        assert principal == Principal("usr_1", "jane@example.com")
        assert err is None
        assert code is None


def test_verify_principal_from_request_identity_cookie(app, identity):
    token = identity.create_token("usr_1", "jane@example.com")

    with app.test_request_context(headers={"Cookie": f"__session={token}"}):
        principal, err, code = verify_principal_from_request()
        assert principal.uid == "usr_1"


def test_verify_principal_from_request_missing_token(app):
    with app.test_request_context():
        principal, err, code = verify_principal_from_request()
        assert principal is None
        assert code == 401
        assert err.json["error"] == "missing token"


def test_verify_principal_from_request_invalid_token(app):
    with app.test_request_context(headers={"Authorization": "Bearer invalid.token"}):
        principal, err, code = verify_principal_from_request()
        assert principal is None
        assert code == 401
        assert err.json["error"] == "invalid token"
