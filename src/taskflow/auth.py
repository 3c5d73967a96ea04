"""Authentication redirect policy and route guard.

The policy is pure path/string logic evaluated once per authentication
callback: given where the browser is, the optional `redirect` query
parameter and whether the identity service produced a user, it decides where
to navigate and whether to store or clear the session user.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, quote, urlsplit

from .exceptions import IdentityProviderError
from .identity import AuthResult, IdentityProvider
from .notifications import Notifier
from .session import SessionStore

logger = logging.getLogger(__name__)

# Matched by substring anywhere in "path + query".
AUTH_PAGES = ("/login", "/signup", "/callback", "/error")

# A redirect target containing any of these would bounce back into the auth flow.
_AUTH_WORDS = ("error", "signup", "login", "callback")

AUTH_FAILED_MESSAGE = "Authentication failed. Please try again."


class SessionAction(str, enum.Enum):
    STORE_USER = "store_user"
    CLEAR_USER = "clear_user"


@dataclass(frozen=True)
class AuthRedirect:
    target: str
    action: SessionAction


def is_auth_page(current_path: str) -> bool:
    return any(page in current_path for page in AUTH_PAGES)


def redirect_param_from(current_path: str) -> Optional[str]:
    """Return the `redirect` query parameter of a path, or None when absent or empty."""
    query = urlsplit(current_path).query
    values = parse_qs(query, keep_blank_values=True).get("redirect")
    if not values or not values[0]:
        return None
    return values[0]


# PUBLIC_INTERFACE
def resolve_auth_redirect(
    current_path: str,
    redirect_param: Optional[str],
    user: Optional[Dict[str, Any]],
) -> AuthRedirect:
    """
    Decide where to navigate after the identity service reports back.

    Args:
        current_path: browser path including the query string.
        redirect_param: the `redirect` query parameter, if any.
        user: the authenticated profile, or None when authentication failed.

    Returns:
        AuthRedirect with the navigation target and the session action.
    """
    auth_page = is_auth_page(current_path)

    if user is not None:
        if redirect_param:
            target = redirect_param
        elif not auth_page:
            if "/login" in current_path or "/signup" in current_path:
                target = "/"
            else:
                target = current_path
        else:
            target = "/"
        return AuthRedirect(target=target, action=SessionAction.STORE_USER)

    if not auth_page:
        if "signup" in current_path:
            target = f"/signup?redirect={current_path}"
        else:
            target = f"/login?redirect={current_path}"
    elif redirect_param:
        if not any(word in redirect_param for word in _AUTH_WORDS):
            target = f"/login?redirect={redirect_param}"
        else:
            target = current_path
    else:
        # Already on an auth page with nowhere to go back to: stay put.
        target = current_path
    return AuthRedirect(target=target, action=SessionAction.CLEAR_USER)


# PUBLIC_INTERFACE
def login_redirect_for(path: str) -> str:
    """Route guard target for an unauthenticated visit to `path` (query string included)."""
    # Encoded so the attempted query survives as a single redirect value.
    return f"/login?redirect={quote(path, safe='/')}"


def safe_target(target: str) -> str:
    """Keep navigation on this site: anything but a local absolute path becomes '/'."""
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    return target


async def complete_authentication(
    identity: IdentityProvider,
    store: SessionStore,
    notifier: Notifier,
    current_path: str,
    token: Optional[str],
) -> AuthRedirect:
    """
    Run the identity check for `token`, apply the redirect policy and update
    the session accordingly. Identity service failures count as "no user".
    """
    try:
        result = await identity.authenticate(token)
    except IdentityProviderError:
        logger.exception("Authentication failed")
        notifier.error(AUTH_FAILED_MESSAGE)
        result = AuthResult()

    decision = resolve_auth_redirect(current_path, redirect_param_from(current_path), result.user)
    if decision.action is SessionAction.STORE_USER and result.user is not None:
        store.set_user(result.user)
        logger.info("User authenticated; navigating to %s", decision.target)
    else:
        store.clear_user()
        logger.info("User not authenticated; navigating to %s", decision.target)
    return decision
