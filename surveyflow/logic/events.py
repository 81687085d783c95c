"""Domain event constants and publisher.

Defines event type constants and a simple publish() callable used by the
form controller and the response repository.
"""

from __future__ import annotations

from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

RESPONSE_SAVED = "response.saved"
SURVEY_SUBMITTED = "survey.submitted"
AUTOSAVE_FAILED = "autosave.failed"
SESSION_CLOSED = "session.closed"

# In-memory buffer for domain events (test-only visibility)
EVENT_BUFFER: List[Dict[str, Any]] = []


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    """Publish a domain event.

    In this minimal implementation, we log the event for observability.
    """
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "RESPONSE_SAVED",
    "SURVEY_SUBMITTED",
    "AUTOSAVE_FAILED",
    "SESSION_CLOSED",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]
