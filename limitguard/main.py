"""ASGI entry point: ``uvicorn limitguard.main:app``."""

from .factory import create_app

app = create_app()
