"""In-memory store of controller sessions, one per connected map."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from cachetools import TTLCache

from src.controller import ClusterController


logger = logging.getLogger(__name__)

SESSION_TTL = 30 * 60  # idle sessions expire after 30 minutes
MAX_SESSIONS = 512


class SessionStore:
    """
    TTL-bounded registry of :class:`ClusterController` instances.

    Controllers keep the dataset object they were last given, so a
    region change on a session never triggers an index rebuild.
    """

    def __init__(self, maxsize: int = MAX_SESSIONS, ttl: float = SESSION_TTL):
        self._sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def create(self, controller: ClusterController) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = controller
        logger.info("Created clustering session %s", session_id)
        return session_id

    def get(self, session_id: str) -> ClusterController:
        """Return the session's controller; raises ``KeyError`` when unknown or expired."""
        controller = self._sessions.get(session_id)
        if controller is None:
            raise KeyError(session_id)
        # Touch to refresh the TTL
        self._sessions[session_id] = controller
        return controller

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._sessions),
            "maxsize": self._sessions.maxsize,
            "ttl": self._sessions.ttl,
        }


sessions = SessionStore()
