"""Functional tests for session lifecycle in the registry."""

from __future__ import annotations

import pytest

from surveyflow.logic.errors import SessionNotFoundError
from surveyflow.logic.form_controller import FormController
from surveyflow.logic.session_registry import SessionRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _controller(definition, collaborators, **kwargs) -> FormController:
    return FormController(
        definition,
        on_submit=collaborators.on_submit,
        on_partial_save=collaborators.on_partial_save,
        **kwargs,
    )


def test_registry_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        SessionRegistry(idle_timeout=0)


@pytest.mark.anyio
async def test_idle_sessions_are_swept_and_closed(three_section_definition, collaborators):
    clock = FakeClock()
    registry = SessionRegistry(idle_timeout=60, clock=clock)
    idle = _controller(three_section_definition, collaborators, autosave_interval=0.01)
    active = _controller(three_section_definition, collaborators)
    idle.set_answer("role", "ceo")
    assert idle.start_autosave() is True
    registry.register("idle", idle)
    registry.register("active", active)

    clock.now += 45
    registry.get("active")
    clock.now += 30

    assert await registry.sweep() == ["idle"]
    assert "idle" not in registry
    assert "active" in registry
    assert idle.closed is True
    assert idle.autosave_running is False
    with pytest.raises(SessionNotFoundError):
        registry.get("idle")


@pytest.mark.anyio
async def test_close_all_empties_registry(three_section_definition, collaborators):
    registry = SessionRegistry()
    registry.register("a", _controller(three_section_definition, collaborators))
    registry.register("b", _controller(three_section_definition, collaborators))

    await registry.close_all()

    assert len(registry) == 0
