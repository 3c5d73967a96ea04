"""
TaskFlow package.

The FastAPI application lives in `taskflow.main` (`taskflow.main:app` for
ASGI servers, `taskflow.main.create_app` for custom wiring).
"""

__version__ = "0.1.0"
