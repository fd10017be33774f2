"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

import pytest

from outline_workflow.config import WorkflowSettings
from outline_workflow.workflow.engine import WorkflowEngine
from outline_workflow.workflow.models import WorkflowDefinition
from outline_workflow.workflow.registry import WorkflowRegistry

NOW = datetime(2024, 1, 2, 12, 0, 0)

DEV_WORKFLOW: dict[str, Any] = {
    "id": "dev",
    "name": "Development",
    "stages": [
        {
            "id": "planning",
            "name": "Planning",
            "type": "normal",
            "canProceedTo": ["development"],
            "subStages": [
                {"id": "research", "name": "Research"},
                {"id": "draft", "name": "Draft"},
            ],
        },
        {"id": "development", "name": "Development", "canProceedTo": ["testing"]},
        {"id": "testing", "name": "Testing", "canProceedTo": ["done"]},
        {"id": "done", "name": "Done", "type": "terminal"},
    ],
}

CONTENT_WORKFLOW: dict[str, Any] = {
    "id": "content",
    "name": "Content",
    "stages": [
        {"id": "writing", "name": "Writing", "canProceedTo": ["review"]},
        {"id": "review", "name": "Review", "type": "cycle", "canProceedTo": ["publish"]},
        {"id": "publish", "name": "Publish", "type": "terminal"},
    ],
}


@pytest.fixture
def now() -> datetime:
    """The engine clock used by `make_engine`."""
    return NOW


@pytest.fixture
def definitions() -> list[WorkflowDefinition]:
    """Provide the sample workflow definitions."""
    return [
        WorkflowDefinition.model_validate(DEV_WORKFLOW),
        WorkflowDefinition.model_validate(CONTENT_WORKFLOW),
    ]


@pytest.fixture
def registry(definitions: list[WorkflowDefinition]) -> WorkflowRegistry:
    return WorkflowRegistry(definitions)


@pytest.fixture
def make_settings(
    definitions: list[WorkflowDefinition],
) -> Callable[..., WorkflowSettings]:
    """Build settings without reading `.env`, with overrides applied."""

    def _make(**overrides: Any) -> WorkflowSettings:
        overrides.setdefault("definitions", definitions)
        return WorkflowSettings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., WorkflowSettings]) -> WorkflowSettings:
    return make_settings()


@pytest.fixture
def make_engine(
    make_settings: Callable[..., WorkflowSettings],
) -> Callable[..., WorkflowEngine]:
    """Build an engine with a fixed clock."""

    def _make(**overrides: Any) -> WorkflowEngine:
        return WorkflowEngine(make_settings(**overrides), clock=lambda: NOW)

    return _make


@pytest.fixture
def engine(make_engine: Callable[..., WorkflowEngine]) -> WorkflowEngine:
    return make_engine()


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    """Undo handler changes made by `configure_logging`."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
