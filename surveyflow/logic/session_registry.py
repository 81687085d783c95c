"""In-process registry of live form sessions.

Maps session ids to independent FormController instances for the HTTP
layer. Controllers share nothing; the registry only owns their lifecycle so
that closing a session (or shutting the app down) cancels its autosave timer.

Sessions untouched for longer than `idle_timeout` seconds are closed by
`sweep()`, which the HTTP layer runs before every session lookup.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Dict, Optional

from surveyflow.logic.errors import SessionNotFoundError
from surveyflow.logic.form_controller import FormController

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT_SECONDS = 1800.0


class SessionRegistry:
    def __init__(
        self,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if idle_timeout <= 0:
            raise ValueError("session idle timeout must be positive")
        self.idle_timeout = float(idle_timeout)
        self._clock = clock
        self._sessions: Dict[str, FormController] = {}
        self._responses: Dict[str, Optional[str]] = {}
        self._touched: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def new_session_id(self) -> str:
        return str(uuid.uuid4())

    def register(self, session_id: str, controller: FormController, response_id: Optional[str] = None) -> None:
        self._sessions[session_id] = controller
        self._responses[session_id] = response_id
        self._touched[session_id] = self._clock()
        logger.info(
            "session_registered session_id=%s survey_id=%s response_id=%s",
            session_id,
            controller.definition.id,
            response_id,
        )

    def get(self, session_id: str) -> FormController:
        """Return the controller and mark the session as recently used."""
        try:
            controller = self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"session {session_id!r} not found", session_id=session_id) from None
        self._touched[session_id] = self._clock()
        return controller

    def response_id_for(self, session_id: str) -> Optional[str]:
        self.get(session_id)
        return self._responses.get(session_id)

    async def close(self, session_id: str) -> None:
        controller = self.get(session_id)
        await controller.close()
        self._sessions.pop(session_id, None)
        self._responses.pop(session_id, None)
        self._touched.pop(session_id, None)
        logger.info("session_closed session_id=%s", session_id)

    async def sweep(self) -> list[str]:
        """Close every session idle for longer than the timeout; return their ids."""
        now = self._clock()
        expired = [sid for sid, at in self._touched.items() if now - at > self.idle_timeout]
        for session_id in expired:
            logger.info("session_expired session_id=%s idle_timeout=%s", session_id, self.idle_timeout)
            await self.close(session_id)
        return expired

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)


__all__ = ["SessionRegistry", "DEFAULT_IDLE_TIMEOUT_SECONDS"]
