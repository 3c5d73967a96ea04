from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import RLock
from typing import Deque, List

# Oldest toasts are dropped once a browser stops polling.
_MAX_PENDING = 20


@dataclass(frozen=True)
class Toast:
    level: str  # success | error | info
    message: str


class Notifier:
    """Queue of transient notifications for one browser session."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._pending: Deque[Toast] = deque(maxlen=_MAX_PENDING)

    def _push(self, level: str, message: str) -> None:
        with self._lock:
            self._pending.append(Toast(level=level, message=message))

    def success(self, message: str) -> None:
        self._push("success", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def pending(self) -> List[Toast]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> List[Toast]:
        """Return and forget every queued toast, oldest first."""
        with self._lock:
            toasts = list(self._pending)
            self._pending.clear()
            return toasts
