from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..auth import complete_authentication, safe_target
from ..dependencies import (
    DARK_MODE_COOKIE,
    current_path,
    dark_mode_from,
    get_app_state,
    get_browser_session,
    require_user,
)
from ..schemas import AuthCallbackIn, AuthCallbackOut, HomeView, ToastOut
from ..session import BrowserSession
from ..state import AppState

router = APIRouter(tags=["pages"])

# One year; the theme choice should outlive the browser session.
_DARK_MODE_MAX_AGE = 365 * 24 * 60 * 60


def _widget_config(state: AppState, page: str, redirect: Optional[str]) -> Dict[str, Any]:
    return {
        "page": page,
        "target": "#authentication",
        "project_id": state.settings.record_store_project_id,
        "view": page,
        "redirect": redirect,
    }


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=HomeView,
    summary="Home",
    description="Task list for the active tab plus form state. Requires an authenticated session.",
)
async def home(
    request: Request,
    tab: str = Query("all", description="'all' or 'completed'; other values show everything"),
    q: Optional[str] = Query(None, description="Substring search on task titles"),
    user: Dict[str, Any] = Depends(require_user),
    session: BrowserSession = Depends(get_browser_session),
    state: AppState = Depends(get_app_state),
) -> HomeView:
    await session.tasks.load(tab, q.strip() if q else None)
    return HomeView(
        user=user,
        dark_mode=dark_mode_from(request, state),
        tasks=session.tasks.snapshot(tab),
        form=session.form.state(),
    )


@router.get("/login", summary="Login page")
def login_page(redirect: Optional[str] = None, state: AppState = Depends(get_app_state)) -> Dict[str, Any]:
    return _widget_config(state, "login", redirect)


@router.get("/signup", summary="Signup page")
def signup_page(redirect: Optional[str] = None, state: AppState = Depends(get_app_state)) -> Dict[str, Any]:
    return _widget_config(state, "signup", redirect)


@router.get("/error", summary="Authentication error page")
def error_page(message: Optional[str] = None) -> Dict[str, Any]:
    return {"page": "error", "message": message or "An error occurred during authentication"}


# PUBLIC_INTERFACE
@router.get(
    "/callback",
    summary="Authentication callback",
    description="Resolve the widget token, update the session and redirect per the auth redirect policy.",
    responses={303: {"description": "Redirect to the navigation target"}},
)
async def callback_page(
    request: Request,
    token: Optional[str] = None,
    session: BrowserSession = Depends(get_browser_session),
    state: AppState = Depends(get_app_state),
):
    path = current_path(request)
    decision = await complete_authentication(state.identity, session.store, session.notifier, path, token)
    target = safe_target(decision.target)
    if target == path:
        # Redirecting to ourselves would loop; render the callback page instead.
        return {"page": "callback", "authenticated": session.store.is_authenticated, "navigate_to": target}
    return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)


# PUBLIC_INTERFACE
@router.post(
    "/auth/callback",
    response_model=AuthCallbackOut,
    summary="Authentication callback (script)",
    description="Same as /callback for single-page clients: returns the navigation target instead of redirecting.",
)
async def auth_callback(
    payload: AuthCallbackIn,
    session: BrowserSession = Depends(get_browser_session),
    state: AppState = Depends(get_app_state),
) -> AuthCallbackOut:
    decision = await complete_authentication(
        state.identity, session.store, session.notifier, payload.path, payload.token
    )
    return AuthCallbackOut(
        navigate_to=safe_target(decision.target),
        authenticated=session.store.is_authenticated,
        user=session.store.user,
    )


@router.post("/logout", summary="Logout", responses={303: {"description": "Redirect to /login"}})
def logout(
    session: BrowserSession = Depends(get_browser_session),
    state: AppState = Depends(get_app_state),
) -> RedirectResponse:
    session.store.clear_user()
    session.reset_view(state.task_service)
    session.notifier.info("You have been logged out successfully")
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/preferences/dark-mode", summary="Toggle dark mode")
def toggle_dark_mode(request: Request, state: AppState = Depends(get_app_state)) -> JSONResponse:
    dark_mode = not dark_mode_from(request, state)
    response = JSONResponse({"dark_mode": dark_mode})
    response.set_cookie(
        DARK_MODE_COOKIE,
        "true" if dark_mode else "false",
        max_age=_DARK_MODE_MAX_AGE,
        samesite="lax",
        secure=state.settings.secure_cookies,
    )
    return response


@router.get("/notifications", response_model=List[ToastOut], summary="Drain pending toasts")
def notifications(session: BrowserSession = Depends(get_browser_session)) -> List[ToastOut]:
    return [ToastOut(level=t.level, message=t.message) for t in session.notifier.drain()]
