"""Identity service clients.

The hosted identity widget authenticates the user in the browser and hands the
application a token. An IdentityProvider turns that token into an AuthResult:
a user profile on success, no user otherwise. Only infrastructure failures
raise IdentityProviderError; an anonymous visitor is a normal result.
"""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .exceptions import IdentityProviderError
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403


@dataclass(frozen=True)
class AuthResult:
    user: Optional[Dict[str, Any]] = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None


# PUBLIC_INTERFACE
class IdentityProvider(ABC):
    """Resolves a widget-issued token into an authentication result."""

    @abstractmethod
    async def authenticate(self, token: Optional[str]) -> AuthResult:
        """Return the user behind `token`, or an empty result when there is none."""

    async def aclose(self) -> None:
        """Release network resources, if any."""


class StaticIdentityProvider(IdentityProvider):
    """
    Accepts a fixed set of tokens. Used for local development and tests.
    """

    def __init__(self, users: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._users = dict(users or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticIdentityProvider":
        if not settings.static_auth_token:
            logger.warning("STATIC_AUTH_TOKEN is not set; every login attempt will be rejected")
            return cls()
        user = {"id": "local", "emailAddress": settings.static_auth_email}
        return cls({settings.static_auth_token: user})

    async def authenticate(self, token: Optional[str]) -> AuthResult:
        if not token:
            return AuthResult()
        for known, user in self._users.items():
            if hmac.compare_digest(known, token):
                return AuthResult(user=dict(user))
        return AuthResult()


class HttpIdentityProvider(IdentityProvider):
    """Validates tokens against the hosted identity service."""

    def __init__(
        self,
        base_url: str,
        project_id: Optional[str] = None,
        public_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._project_id = project_id
        self._public_key = public_key
        self._timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpIdentityProvider":
        if not settings.identity_url:
            raise ValueError("IDENTITY_URL is required when IDENTITY_BACKEND=remote")
        return cls(
            base_url=settings.identity_url,
            project_id=settings.record_store_project_id,
            public_key=settings.record_store_public_key,
            timeout=settings.http_timeout_seconds,
        )

    def __repr__(self) -> str:
        return f"HttpIdentityProvider(base_url='{self._base_url}', public_key='***redacted***')"

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers: Dict[str, str] = {}
            if self._project_id:
                headers["X-Project-Id"] = self._project_id
            if self._public_key:
                headers["X-Public-Key"] = self._public_key
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                headers=headers,
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def authenticate(self, token: Optional[str]) -> AuthResult:
        if not token:
            return AuthResult()
        try:
            response = await self._get_http_client().get(
                "/session", headers={"Authorization": f"Bearer {token}"}
            )
            if response.status_code in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
                logger.info("Identity service rejected the session token")
                return AuthResult()
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as error:
            logger.error("Identity service answered %s", error.response.status_code)
            raise IdentityProviderError(status_code=error.response.status_code) from error
        except httpx.HTTPError as error:
            logger.exception("Identity service unreachable")
            raise IdentityProviderError from error
        except ValueError as error:
            logger.exception("Identity service returned an unreadable body")
            raise IdentityProviderError from error

        user = payload.get("user") if isinstance(payload, dict) else None
        return AuthResult(user=user if isinstance(user, dict) else None)


# PUBLIC_INTERFACE
def get_identity_provider(settings: Optional[Settings] = None) -> IdentityProvider:
    """
    Factory to return the configured identity provider.
    - static: StaticIdentityProvider seeded from STATIC_AUTH_TOKEN
    - remote: HttpIdentityProvider (requires IDENTITY_URL)
    """
    if settings is None:
        settings = get_settings()
    if settings.identity_backend == "remote":
        return HttpIdentityProvider.from_settings(settings)
    return StaticIdentityProvider.from_settings(settings)
