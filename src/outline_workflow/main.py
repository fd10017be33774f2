"""CLI entrypoint: a minimal file-based host for the workflow engine.

The engine itself never touches files; this module reads a document, simulates
the edit a user would make in an editor, and writes back the result.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from outline_workflow import __version__
from outline_workflow.config import WorkflowSettings
from outline_workflow.logging import configure_logging
from outline_workflow.workflow.document import Document
from outline_workflow.workflow.engine import WorkflowEngine
from outline_workflow.workflow.events import ChangedRange, DocumentChange, EditOrigin
from outline_workflow.workflow.extractor import (
    extract_task_line_info,
    is_last_stage_or_not_workflow,
    resolve_line,
)
from outline_workflow.workflow.registry import WorkflowConfigError
from outline_workflow.workflow.tokens import parse_task_prefix

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outline-workflow",
        description="Advance tasks through multi-stage workflows in plain-text outlines",
    )
    parser.add_argument(
        "--version", action="version", version=f"outline-workflow {__version__}"
    )
    parser.add_argument(
        "--definitions",
        default=None,
        help="JSON file with workflow definitions (overrides OUTLINE_WORKFLOW_DEFINITIONS_PATH)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("definitions", help="List the configured workflow definitions")

    inspect = subparsers.add_parser(
        "inspect", help="Print the workflow identity of every workflow line in a file"
    )
    inspect.add_argument("file", help="Outline document to read")

    complete = subparsers.add_parser(
        "complete",
        help="Mark the task on a line complete and apply the resulting workflow transition",
    )
    complete.add_argument("file", help="Outline document to read")
    complete.add_argument("--line", type=int, required=True, help="1-based line number")
    complete.add_argument(
        "--mark",
        default=None,
        help="Completed status mark to write (defaults to the first configured one)",
    )
    complete.add_argument(
        "--write",
        action="store_true",
        help="Write the result back to the file instead of printing it",
    )

    return parser


def toggle_change(text: str, line_number: int, mark: str) -> DocumentChange | None:
    """The change an editor raises when the user types ``mark`` into a checkbox."""

    document = Document(text)
    if not document.has_line(line_number):
        return None
    line = document.line(line_number)
    prefix = parse_task_prefix(line.text)
    if prefix is None:
        return None

    offset = line.start + prefix.mark_offset
    new_text = text[:offset] + mark + text[offset + 1 :]
    return DocumentChange(
        old_text=text,
        new_text=new_text,
        ranges=(ChangedRange(offset, offset + 1, offset, offset + len(mark), mark),),
        origin=EditOrigin.INPUT,
    )


def _cmd_definitions(engine: WorkflowEngine) -> int:
    for definition in engine.registry.definitions:
        print(f"{definition.id}: {definition.name or definition.id}")
        for stage in definition.stages:
            targets = ", ".join(stage.can_proceed_to) or "-"
            subs = ", ".join(s.id for s in stage.sub_stages)
            suffix = f" [{subs}]" if subs else ""
            print(f"  {stage.id} ({stage.type.value}) -> {targets}{suffix}")
    return 0


def _cmd_inspect(engine: WorkflowEngine, path: Path) -> int:
    document = Document(path.read_text(encoding="utf-8"))
    tab_size = engine.settings.tab_size
    for number in range(1, document.line_count + 1):
        info = extract_task_line_info(document.line(number).text, number, tab_size)
        if info is None:
            continue
        resolved = resolve_line(document, number, engine.registry, tab_size)
        print(
            json.dumps(
                {
                    "line": info.line_number,
                    "indent": info.indent_level,
                    "status": info.status_mark,
                    "workflow_type": info.workflow_type,
                    "current_stage": info.current_stage,
                    "sub_stage": info.sub_stage,
                    "workflow": resolved.definition.id if resolved else None,
                    "stage": resolved.stage.id if resolved and resolved.stage else None,
                    "last_stage": is_last_stage_or_not_workflow(
                        document, number, engine.registry, tab_size
                    ),
                },
                ensure_ascii=False,
            )
        )
    return 0


def _cmd_complete(engine: WorkflowEngine, path: Path, line: int, mark: str | None) -> str | None:
    text = path.read_text(encoding="utf-8")
    change = toggle_change(text, line, mark or engine.settings.completed_mark)
    if change is None:
        logger.error("Not a task line", extra={"path": str(path), "line_number": line})
        return None

    outgoing = engine.handle(change)
    if outgoing is None:
        logger.info("No workflow transition", extra={"line_number": line})
        return change.new_text
    return outgoing.apply(change.new_text)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = WorkflowSettings()
        if args.definitions:
            settings = settings.model_copy(update={"definitions_path": Path(args.definitions)})
        engine = WorkflowEngine(settings)
    except (ValidationError, WorkflowConfigError) as e:
        # Logging isn't configured yet.
        print("Configuration error:", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        if args.command == "definitions":
            return _cmd_definitions(engine)

        if args.command == "inspect":
            return _cmd_inspect(engine, Path(args.file))

        if args.command == "complete":
            path = Path(args.file)
            result = _cmd_complete(engine, path, args.line, args.mark)
            if result is None:
                return 2
            if args.write:
                path.write_text(result, encoding="utf-8")
                print(f"Updated {path}")
            else:
                sys.stdout.write(result)
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
