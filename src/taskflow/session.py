from __future__ import annotations

import copy
import logging
import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, Optional

from .controllers import TaskFormController, TaskListController
from .notifications import Notifier
from .services import TaskService

logger = logging.getLogger(__name__)

SESSION_COOKIE = "taskflow_session"


@dataclass
class SessionStore:
    """Authenticated-user flag and profile for one browser."""

    is_authenticated: bool = False
    user: Optional[Dict[str, Any]] = None

    def set_user(self, user: Dict[str, Any]) -> None:
        # Detached copy; the identity client may reuse its payload object.
        self.user = copy.deepcopy(user)
        self.is_authenticated = True

    def clear_user(self) -> None:
        self.user = None
        self.is_authenticated = False


@dataclass
class BrowserSession:
    """Everything the application keeps for one browser between requests."""

    session_id: str
    store: SessionStore
    notifier: Notifier
    tasks: TaskListController
    form: TaskFormController
    last_seen: float = 0.0

    @classmethod
    def create(cls, session_id: str, service: TaskService) -> "BrowserSession":
        notifier = Notifier()
        tasks = TaskListController(service, notifier)
        return cls(
            session_id=session_id,
            store=SessionStore(),
            notifier=notifier,
            tasks=tasks,
            form=TaskFormController(tasks, notifier),
        )

    def reset_view(self, service: TaskService) -> None:
        """Drop cached tasks and form state, keeping pending toasts."""
        self.tasks = TaskListController(service, self.notifier)
        self.form = TaskFormController(self.tasks, self.notifier)


class SessionRegistry:
    """
    Thread-safe registry of browser sessions keyed by the session cookie.

    Sessions idle for longer than `idle_timeout` seconds expire. When
    `max_sessions` is reached the least recently used session is dropped.
    """

    def __init__(
        self,
        service: TaskService,
        max_sessions: int = 10000,
        idle_timeout: float = 86400.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = RLock()
        self._service = service
        self._max_sessions = max_sessions
        self._idle_timeout = idle_timeout
        self._clock = clock
        # Ordered by last use, oldest first.
        self._sessions: "OrderedDict[str, BrowserSession]" = OrderedDict()

    @staticmethod
    def new_id() -> str:
        return secrets.token_urlsafe(24)

    def _expired(self, session: BrowserSession, now: float) -> bool:
        return now - session.last_seen > self._idle_timeout

    def _evict(self, now: float) -> None:
        while self._sessions:
            sid, oldest = next(iter(self._sessions.items()))
            if not self._expired(oldest, now) and len(self._sessions) < self._max_sessions:
                break
            del self._sessions[sid]
            logger.debug("Dropped browser session %s...", sid[:6])

    def get(self, session_id: Optional[str]) -> Optional[BrowserSession]:
        """Return a live session and mark it used, or None."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            now = self._clock()
            if self._expired(session, now):
                del self._sessions[session_id]
                logger.debug("Browser session %s... expired", session_id[:6])
                return None
            session.last_seen = now
            self._sessions.move_to_end(session_id)
            return session

    def get_or_create(self, session_id: Optional[str]) -> BrowserSession:
        with self._lock:
            existing = self.get(session_id)
            if existing is not None:
                return existing
            now = self._clock()
            self._evict(now)
            # Unknown ids are never adopted; the browser gets a fresh one.
            sid = self.new_id()
            session = BrowserSession.create(sid, self._service)
            session.last_seen = now
            self._sessions[sid] = session
            logger.debug("Started browser session %s...", sid[:6])
            return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
