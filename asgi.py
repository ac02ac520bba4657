"""
asgi.py -- Process entry point for the credentials service.

This is the only place a module-level app is built. Everything importable
elsewhere (api.main.create_app) constructs apps on demand.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app

app = create_app()
