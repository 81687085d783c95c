"""Pydantic models for session write payloads.

Declared apart from the route modules so the payload structure is not
coupled to the route implementation.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class AnswerUpsertModel(BaseModel):
    # Scalar, list (multi-select) or composite {main|options, custom}
    value: Any


class CustomInputModel(BaseModel):
    text: str


class SessionStartModel(BaseModel):
    response_id: Optional[str] = None
    respondent_key: Optional[str] = None


__all__ = ["AnswerUpsertModel", "CustomInputModel", "SessionStartModel"]
