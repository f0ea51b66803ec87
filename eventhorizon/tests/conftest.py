import pytest
from unittest.mock import MagicMock

from eventhorizon.auth_service.utils import IdentityProvider, SESSION_PRINCIPAL_KEY
from eventhorizon.config import Settings
from eventhorizon.gateway.server import create_app

TEST_ENV = {
    "PROJECT_ID": "test-project",
    "JWT_SECRET": "test_secret",
    "SESSION_SECRET": "test_session_secret",
    "DATABASE_URL": "postgresql://localhost/test",
}

ADMIN = {
    "id": "usr_admin",
    "name": "Ada Admin",
    "email": "admin@example.com",
    "role": "Administrator",
    "assignedEvents": [],
}

ORGANIZER_USER = {
    "id": "usr_org",
    "name": "Olly Organizer",
    "email": "org@example.com",
    "role": "Organizer",
    "assignedEvents": ["evt_1"],
}


def make_event(**overrides):
    event = {
        "id": "evt_1",
        "name": "Tech Summit",
        "slug": "tech-summit",
        "date": "2025-06-01",
        "location": {"types": ["On-site"], "address": "Main Hall"},
        "description": "A day of talks.",
        "heroImage": {"src": "https://example.com/hero.png", "hint": "stage"},
        "formFields": [
            {"name": "full_name", "label": "Full name", "type": "text", "required": True},
            {"name": "email", "label": "Email", "type": "email", "required": True},
        ],
        "rodo": "",
        "isActive": True,
        "themeColor": None,
    }
    event.update(overrides)
    return event


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def identity():
    return IdentityProvider("test_secret", "test-project")


@pytest.fixture
def mailer():
    mock_mailer = MagicMock()
    mock_mailer.send_confirmation.return_value = True
    return mock_mailer


@pytest.fixture
def app(store, identity, mailer):
    app = create_app(Settings(env=TEST_ENV), store=store, identity=identity, mailer=mailer)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    """
    Put a principal in the session.
    """
    def _login(uid="usr_admin", email="admin@example.com"):
        with client.session_transaction() as sess:
            sess[SESSION_PRINCIPAL_KEY] = {"uid": uid, "email": email}
    return _login


@pytest.fixture
def mock_db(mocker):
    """
    Mocks the database connection and cursor used by the document store.
    """
    mock_conn = MagicMock()
    mock_cursor = MagicMock()

    # Setup the context managers for connection and cursor
    mock_conn.__enter__.return_value = mock_conn
    mock_conn.__exit__.return_value = None
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None

    mock_conn.cursor.return_value = mock_cursor

    mocker.patch("eventhorizon.database.store.get_db", return_value=mock_conn)

    return mock_conn, mock_cursor
