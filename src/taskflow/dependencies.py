from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status

from .exceptions import LoginRequired
from .session import SESSION_COOKIE, BrowserSession
from .state import AppState

DARK_MODE_COOKIE = "darkMode"


def get_app_state(request: Request) -> AppState:
    return request.app.state.taskflow


def current_path(request: Request) -> str:
    """Path plus query string, the way the browser shows it."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def find_browser_session(request: Request) -> Optional[BrowserSession]:
    """The caller's live session, without starting a new one."""
    session = getattr(request.state, "browser_session", None)
    if session is None:
        session = get_app_state(request).sessions.get(request.cookies.get(SESSION_COOKIE))
        if session is not None:
            request.state.browser_session = session
    return session


def get_browser_session(request: Request) -> BrowserSession:
    """
    The caller's session, started on first use. The session middleware sends
    the cookie for a session started during the request.
    """
    session = find_browser_session(request)
    if session is None:
        session = get_app_state(request).sessions.get_or_create(request.cookies.get(SESSION_COOKIE))
        request.state.browser_session = session
    return session


def _signed_in_user(request: Request) -> Optional[Dict[str, Any]]:
    session = find_browser_session(request)
    if session is None or not session.store.is_authenticated:
        return None
    return session.store.user


# PUBLIC_INTERFACE
def require_user(request: Request) -> Dict[str, Any]:
    """
    Page route guard. Unauthenticated visits raise LoginRequired, which the
    application turns into a redirect to /login carrying the attempted
    location, query string included.
    """
    user = _signed_in_user(request)
    if user is None:
        raise LoginRequired(current_path(request))
    return user


# PUBLIC_INTERFACE
def require_api_user(request: Request) -> Dict[str, Any]:
    """JSON API guard: answers 401 instead of redirecting."""
    user = _signed_in_user(request)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def dark_mode_from(request: Request, state: AppState) -> bool:
    """Read the persisted theme preference, falling back to the configured default."""
    saved = request.cookies.get(DARK_MODE_COOKIE)
    if saved is None:
        return state.settings.default_dark_mode
    return saved == "true"
