from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .identity import IdentityProvider, get_identity_provider
from .record_store import RecordStore, get_record_store
from .services import TaskService
from .session import SessionRegistry
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Process-wide collaborators shared by every request."""

    settings: Settings
    store: RecordStore
    task_service: TaskService
    identity: IdentityProvider
    sessions: SessionRegistry

    async def aclose(self) -> None:
        await self.store.aclose()
        await self.identity.aclose()


def create_app_state(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    identity: Optional[IdentityProvider] = None,
) -> AppState:
    """Build application state; explicit collaborators override the configured ones."""
    settings = settings or get_settings()
    store = store or get_record_store(settings)
    identity = identity or get_identity_provider(settings)
    service = TaskService(store)
    logger.info(
        "Application state ready (persistence=%s, identity=%s)",
        settings.persistence_backend,
        settings.identity_backend,
    )
    return AppState(
        settings=settings,
        store=store,
        task_service=service,
        identity=identity,
        sessions=SessionRegistry(
            service,
            max_sessions=settings.session_max_count,
            idle_timeout=settings.session_idle_seconds,
        ),
    )
