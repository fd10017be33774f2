"""Read-only lookup over the configured workflow definitions.

Lookups never raise for unknown ids: callers get ``None`` and treat the line
as outside any workflow.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .models import SubStage, WorkflowDefinition, WorkflowStage

logger = logging.getLogger(__name__)

_DEFINITIONS_ADAPTER = TypeAdapter(list[WorkflowDefinition])


class WorkflowConfigError(ValueError):
    pass


def load_definitions_file(path: Path) -> list[WorkflowDefinition]:
    """Load definitions from a JSON file.

    The file holds either a list of definitions or an object with a
    ``definitions`` list (the shape of an exported settings block).
    """

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise WorkflowConfigError(f"Cannot read workflow definitions: {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise WorkflowConfigError(f"Invalid JSON in workflow definitions: {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("definitions", [])
    try:
        return _DEFINITIONS_ADAPTER.validate_python(raw)
    except ValidationError as e:
        raise WorkflowConfigError(f"Invalid workflow definitions in {path}:\n{e}") from e


class WorkflowRegistry:
    def __init__(self, definitions: Iterable[WorkflowDefinition] = ()) -> None:
        by_id: dict[str, WorkflowDefinition] = {}
        for definition in definitions:
            if definition.id in by_id:
                logger.warning(
                    "Duplicate workflow definition ignored",
                    extra={"workflow_id": definition.id},
                )
                continue
            by_id[definition.id] = definition
        self._definitions = by_id

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._definitions

    @property
    def definitions(self) -> list[WorkflowDefinition]:
        return list(self._definitions.values())

    def resolve_definition(self, workflow_id: str) -> WorkflowDefinition | None:
        return self._definitions.get(workflow_id)

    @staticmethod
    def resolve_stage(definition: WorkflowDefinition, stage_id: str) -> WorkflowStage | None:
        for stage in definition.stages:
            if stage.id == stage_id:
                return stage
        return None

    @staticmethod
    def root_stage(definition: WorkflowDefinition) -> WorkflowStage | None:
        return definition.stages[0] if definition.stages else None

    @staticmethod
    def resolve_sub_stage(stage: WorkflowStage, sub_stage_id: str) -> SubStage | None:
        for sub_stage in stage.sub_stages:
            if sub_stage.id == sub_stage_id:
                return sub_stage
        return None

    def proceed_targets(
        self, definition: WorkflowDefinition, stage: WorkflowStage
    ) -> list[WorkflowStage]:
        """Resolvable ``canProceedTo`` targets, in configured order.

        Terminal stages have none regardless of configuration; dangling ids are
        skipped.
        """

        if stage.is_terminal:
            return []
        targets: list[WorkflowStage] = []
        for stage_id in stage.can_proceed_to:
            target = self.resolve_stage(definition, stage_id)
            if target is None:
                logger.debug(
                    "Dangling canProceedTo reference",
                    extra={"workflow_id": definition.id, "stage": stage.id, "target": stage_id},
                )
                continue
            targets.append(target)
        return targets

    @staticmethod
    def stage_after(definition: WorkflowDefinition, stage: WorkflowStage) -> WorkflowStage | None:
        """The stage following ``stage`` in definition order."""

        for index, candidate in enumerate(definition.stages):
            if candidate.id == stage.id:
                following = definition.stages[index + 1 : index + 2]
                return following[0] if following else None
        return None

    @staticmethod
    def sub_stage_after(stage: WorkflowStage, sub_stage: SubStage) -> SubStage | None:
        if sub_stage.next:
            return WorkflowRegistry.resolve_sub_stage(stage, sub_stage.next)
        ids = [s.id for s in stage.sub_stages]
        try:
            index = ids.index(sub_stage.id)
        except ValueError:
            return None
        return stage.sub_stages[index + 1] if index + 1 < len(stage.sub_stages) else None
