"""
Per-app collaborators.

The gateway builds the document store, identity provider and email client
once and registers them on the Flask app. Request handlers reach them through
get_clients() instead of importing module-level globals.
"""

from flask import Flask, current_app

EXTENSION_KEY = "eventhorizon"


class Clients:
    def __init__(self, store, identity, mailer):
        self.store = store
        self.identity = identity
        self.mailer = mailer


def init_clients(app: Flask, clients: Clients) -> None:
    app.extensions[EXTENSION_KEY] = clients


def get_clients() -> Clients:
    return current_app.extensions[EXTENSION_KEY]
