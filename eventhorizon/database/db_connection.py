"""
PostgreSQL connection helper.
Provides get_db() for use by the document store.
"""

import logging

import psycopg2
from psycopg2.extras import DictCursor

logger = logging.getLogger(__name__)


def get_db(database_url: str, project_id: str):
    """
    Returns a new psycopg2 connection with dictionary-based row access.

    The project identifier is sent as the connection's application_name so
    sessions can be told apart on a shared server.

    Usage:
        with get_db(url, project_id) as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Returns:
        psycopg2.extensions.connection: A connection object with DictCursor factory.

    Raises:
        psycopg2.Error: If connection fails.
    """
    try:
        conn = psycopg2.connect(database_url, application_name=project_id)

        # Rows come back as dictionaries (e.g., {"id": "usr_...", "email": "..."})
        conn.cursor_factory = DictCursor
        return conn
    except Exception as e:
        logger.error(f"Error connecting to database: {e}")
        # Re-raise the exception so the caller knows the connection failed
        raise
