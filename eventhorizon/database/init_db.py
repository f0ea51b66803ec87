"""
Create the users, events and registrations tables.

Run once against a fresh database:

    python -m eventhorizon.database.init_db

Nested documents (location, hero image, form fields, assigned events,
submitted form data) live in JSONB columns.
"""

import sys

from eventhorizon.config import ConfigurationError, Settings
from eventhorizon.database.store import DocumentStore

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    email           TEXT NOT NULL,
    role            TEXT NOT NULL CHECK (role IN ('Administrator', 'Organizer')),
    assigned_events JSONB NOT NULL DEFAULT '[]'::jsonb,
    password_hash   TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS users_email_key ON users (lower(email));

CREATE TABLE IF NOT EXISTS events (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    slug        TEXT NOT NULL UNIQUE,
    date        TEXT NOT NULL,
    location    JSONB NOT NULL DEFAULT '{"types": []}'::jsonb,
    description TEXT NOT NULL DEFAULT '',
    hero_image  JSONB NOT NULL DEFAULT '{"src": "", "hint": ""}'::jsonb,
    form_fields JSONB NOT NULL DEFAULT '[]'::jsonb,
    rodo        TEXT NOT NULL DEFAULT '',
    is_active   BOOLEAN NOT NULL DEFAULT FALSE,
    theme_color TEXT
);

CREATE TABLE IF NOT EXISTS registrations (
    id                TEXT PRIMARY KEY,
    event_id          TEXT NOT NULL REFERENCES events (id) ON DELETE CASCADE,
    event_name        TEXT NOT NULL,
    form_data         JSONB NOT NULL DEFAULT '{}'::jsonb,
    qr_id             TEXT NOT NULL UNIQUE,
    registration_date TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    checked_in        BOOLEAN NOT NULL DEFAULT FALSE,
    check_in_time     TIMESTAMPTZ
);
CREATE INDEX IF NOT EXISTS registrations_event_idx ON registrations (event_id);
"""


def init_db(store: DocumentStore) -> None:
    """Apply SCHEMA_SQL. Every statement is idempotent."""
    with store.connect() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
            conn.commit()


if __name__ == "__main__":
    settings = Settings()
    try:
        store = DocumentStore(settings.database_url, settings.project_id)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("--- Creating tables ---")
    init_db(store)
    print("Schema is up to date.")
