"""WSGI entry point for the group task service."""

import os

from app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))
