"""Outline Workflow.

Watches edits to plain-text outlines and advances tasks through user-defined
multi-stage workflows:
- configuration loaded from `.env` / environment
- structured logging
- a pure transition engine plus a small CLI host
"""

__version__ = "0.1.0"

from outline_workflow.config import WorkflowSettings
from outline_workflow.workflow.engine import WorkflowEngine

__all__ = ["__version__", "WorkflowEngine", "WorkflowSettings"]
