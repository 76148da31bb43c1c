"""
asgi.py -- Application assembly for the MeuBonsai.App identity API.

Server entry point. Keeps the import path the process manager points at
(`asgi:app`) stable while api/main.py owns the app itself.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
