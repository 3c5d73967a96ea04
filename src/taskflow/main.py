from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import login_redirect_for
from .exceptions import LoginRequired, TaskFlowError, TaskValidationError
from .identity import IdentityProvider
from .logging_setup import setup_logging
from .record_store import RecordStore
from .routers import pages as pages_router
from .routers import tasks as tasks_router
from .session import SESSION_COOKIE
from .settings import Settings, get_settings
from .state import create_app_state

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "pages", "description": "Routes, authentication callback, session and preferences."},
    {"name": "tasks", "description": "Task list and task form operations for the signed-in user."},
]


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    identity: Optional[IdentityProvider] = None,
) -> FastAPI:
    """
    Build the TaskFlow application.

    Explicit `store` / `identity` collaborators replace the ones selected by
    settings, which is how tests run against in-memory backends.
    """
    settings = settings or get_settings()
    state = create_app_state(settings, store=store, identity=identity)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await state.aclose()

    app = FastAPI(
        title="TaskFlow",
        description="Task management application with hosted authentication and record storage.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.taskflow = state

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        # Browsers reject credentialed requests to a wildcard origin.
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def send_session_cookie(request: Request, call_next):
        # Sessions are started lazily by the routes that need one.
        response = await call_next(request)
        session = getattr(request.state, "browser_session", None)
        if session is not None and session.session_id != request.cookies.get(SESSION_COOKIE):
            response.set_cookie(
                SESSION_COOKIE,
                session.session_id,
                httponly=True,
                samesite="lax",
                secure=settings.secure_cookies,
            )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(TaskValidationError)
    async def task_validation_handler(request: Request, exc: TaskValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": "ValidationError", "message": str(exc)},
        )

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
        return RedirectResponse(login_redirect_for(exc.path), status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(TaskFlowError)
    async def taskflow_error_handler(request: Request, exc: TaskFlowError) -> JSONResponse:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": type(exc).__name__, "message": str(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        # Unmatched routes get the NotFound page; explicit 404s keep their detail.
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={
                    "error": "NotFound",
                    "message": "The page you are looking for doesn't exist or has been moved.",
                    "path": request.url.path,
                },
            )
        return await http_exception_handler(request, exc)

    # PUBLIC_INTERFACE
    @app.get("/health", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(pages_router.router)
    app.include_router(tasks_router.router)
    return app


_settings = get_settings()
setup_logging(_settings.log_level)
app = create_app(_settings)
