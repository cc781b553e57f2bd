"""Shared runtime state for the server."""

from __future__ import annotations

import threading

from .events import EventBroadcaster
from .tasks import SessionManager

_session_lock = threading.Lock()
_session_manager: SessionManager | None = None

broadcaster = EventBroadcaster()


def get_session_manager() -> SessionManager:
    global _session_manager
    with _session_lock:
        if _session_manager is None:
            _session_manager = SessionManager(broadcaster)
        return _session_manager
