"""Visibility-related reusable types."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class VisibilityDelta(BaseModel):
    now_visible: List[str] = Field(default_factory=list)
    now_hidden: List[str] = Field(default_factory=list)
    suppressed_answers: List[str] = Field(default_factory=list)


__all__ = ["VisibilityDelta"]
