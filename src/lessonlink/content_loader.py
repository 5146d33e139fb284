"""Load declarative lesson content from bundled JSON resources."""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

from .associations import AssociationModel, LineAssociation
from .builder import build_step
from .models import BlockAction, BlockSpec, Chapter, CodeLineSpec, Lesson, Step

logger = logging.getLogger(__name__)

CONTENT_PACKAGE = "lessonlink.content.lessons"

REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "html-container": ("content",),
    "interactive-demo": ("content",),
    "image": ("src",),
    "video": ("src",),
    "code-block": ("content", "language"),
    "description": ("content",),
    "text": ("content",),
    "list": ("items",),
}
EVENT_TYPES = {"click", "hover", "doubleclick", "mouseenter", "mouseleave"}


def _as_dict(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be a JSON object.")
    return value


def _as_list(value: Any, where: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError(f"{where} must be a JSON array.")
    return value


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _code_line_from_dict(raw: dict[str, Any]) -> CodeLineSpec:
    return CodeLineSpec(
        id=_optional_str(raw.get("id")),
        display_block_id=_optional_str(raw.get("displayBlockId")),
        description_id=_optional_str(raw.get("descriptionId")),
    )


def _action_from_dict(block_id: str, raw: Any) -> BlockAction:
    raw = _as_dict(raw, f"Action of block '{block_id}'")
    event = str(raw.get("event", "click")).strip()
    if event not in EVENT_TYPES:
        raise ValueError(f"Block '{block_id}' has action with unknown event '{event}'.")
    targets = _as_list(raw.get("targets", []), f"Block '{block_id}' action targets")
    return BlockAction(
        event=event,
        action=str(raw.get("action", "")).strip(),
        targets=tuple(str(item) for item in targets if str(item).strip()),
    )


def _block_from_dict(step_id: str, raw: Any) -> BlockSpec:
    """Build a block from raw JSON content."""
    raw = _as_dict(raw, f"Block in step '{step_id}'")
    block_id = str(raw.get("id", "")).strip()
    if not block_id:
        raise ValueError(f"Step '{step_id}' has a block without an id.")
    block_type = str(raw.get("type", "")).strip()
    for required in REQUIRED_FIELDS.get(block_type, ()):
        if raw.get(required) in (None, "", []):
            raise ValueError(f"Block '{block_id}' ({block_type}) is missing required field '{required}'.")

    content = raw.get("content", "")
    return BlockSpec(
        id=block_id,
        type=block_type,
        content=content if isinstance(content, str) else json.dumps(content),
        language=str(raw.get("language", "")),
        associations=tuple(
            str(item).strip()
            for item in _as_list(raw.get("associations", []), f"Block '{block_id}' associations")
            if str(item).strip()
        ),
        code_lines=tuple(
            _code_line_from_dict(_as_dict(item, f"Code line of block '{block_id}'"))
            for item in _as_list(raw.get("codeLines", []), f"Block '{block_id}' codeLines")
        ),
        actions=tuple(
            _action_from_dict(block_id, item)
            for item in _as_list(raw.get("actions", []), f"Block '{block_id}' actions")
        ),
        src=str(raw.get("src", "")),
        alt=str(raw.get("alt", "")),
        caption=str(raw.get("caption", "")),
        items=tuple(str(item) for item in _as_list(raw.get("items", []), f"Block '{block_id}' items")),
        ordered=bool(raw.get("ordered", False)),
    )


def _step_from_dict(raw: Any) -> Step:
    raw = _as_dict(raw, "Small step")
    step_id = str(raw.get("smallStepId") or raw.get("id") or "").strip()
    if not step_id:
        raise ValueError("Small step is missing 'smallStepId'.")
    blocks = _as_dict(raw.get("blocks") or {}, f"Step '{step_id}' blocks")
    left_raw = _as_list(blocks.get("leftArea", []), f"Step '{step_id}' leftArea")
    right_raw = _as_list(blocks.get("rightArea", []), f"Step '{step_id}' rightArea")
    left = tuple(_block_from_dict(step_id, item) for item in left_raw)
    right = tuple(_block_from_dict(step_id, item) for item in right_raw)
    seen: set[str] = set()
    for block in (*left, *right):
        if block.id in seen:
            raise ValueError(f"Duplicate block id '{block.id}' in step '{step_id}'.")
        seen.add(block.id)
    return Step(
        id=step_id,
        title=str(raw.get("title", "")),
        description=str(raw.get("description", "")),
        left_area=left,
        right_area=right,
    )


def _chapter_from_dict(raw: Any) -> Chapter:
    raw = _as_dict(raw, "Big step")
    chapter_id = str(raw.get("bigStepId") or raw.get("id") or "").strip()
    if not chapter_id:
        raise ValueError("Big step is missing 'bigStepId'.")
    steps_raw = _as_list(raw.get("smallSteps", []), f"Big step '{chapter_id}' smallSteps")
    steps = tuple(_step_from_dict(item) for item in steps_raw)
    if not steps:
        raise ValueError(f"Big step '{chapter_id}' has no small steps.")
    return Chapter(
        id=chapter_id,
        title=str(raw.get("title", "")),
        description=str(raw.get("description", "")),
        steps=steps,
    )


def _lesson_from_dict(raw: dict[str, Any]) -> Lesson:
    """Build a lesson from raw JSON content."""
    lesson_id = str(raw.get("id") or raw.get("exampleId") or "").strip()
    if not lesson_id:
        raise ValueError("Lesson is missing 'id'.")
    metadata = _as_dict(raw.get("metadata") or {}, f"Lesson '{lesson_id}' metadata")
    chapters_raw = _as_list(raw.get("bigSteps", []), f"Lesson '{lesson_id}' bigSteps")
    chapters = tuple(_chapter_from_dict(item) for item in chapters_raw)
    if not chapters:
        raise ValueError(f"Lesson '{lesson_id}' has no big steps.")
    try:
        estimated_minutes = int(metadata.get("estimatedTime", 0) or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Lesson '{lesson_id}' has a non-numeric 'estimatedTime'.") from exc
    return Lesson(
        id=lesson_id,
        title=str(metadata.get("title") or lesson_id),
        description=str(metadata.get("description", "")),
        difficulty=str(metadata.get("difficulty", "beginner")),
        estimated_minutes=estimated_minutes,
        tags=tuple(str(tag) for tag in _as_list(metadata.get("tags", []), f"Lesson '{lesson_id}' tags")),
        chapters=chapters,
    )


def load_lessons() -> dict[str, Lesson]:
    """Load bundled lessons."""
    lessons: dict[str, Lesson] = {}
    for entry in resources.files(CONTENT_PACKAGE).iterdir():
        if entry.name.endswith(".json"):
            _add_lesson(lessons, json.loads(entry.read_text(encoding="utf-8-sig")))
    return lessons


def load_lessons_from_dir(path: Path) -> dict[str, Lesson]:
    """Load lessons from a directory of JSON files."""
    lessons: dict[str, Lesson] = {}
    for file_path in sorted(path.glob("*.json")):
        _add_lesson(lessons, json.loads(file_path.read_text(encoding="utf-8-sig")))
    return lessons


def _add_lesson(lessons: dict[str, Lesson], raw: Any) -> None:
    if not isinstance(raw, dict):
        raise ValueError("Lesson file root must be a JSON object.")
    lesson = _lesson_from_dict(raw)
    if lesson.id in lessons:
        raise ValueError(f"Duplicate lesson id: {lesson.id}")
    lessons[lesson.id] = lesson
    logger.debug("Loaded lesson '%s' with %d steps", lesson.id, lesson.step_count)


def check_step(step: Step) -> list[str]:
    """Return non-fatal link problems between the step's blocks, lines and descriptions."""
    render = build_step(step)
    model = AssociationModel()
    for item in render.blocks:
        model.set_block_associations(item.block_id, item.spec.associations if item.spec else ())
    issues: list[str] = []
    for line in render.lines:
        if model.has_line(line.line_id):
            issues.append(f"Duplicate line id '{line.line_id}'.")
        model.set_line_association(line.line_id, LineAssociation(line.display_target_id, line.description_id))
        if line.description_id is not None and line.description_id not in render.descriptions:
            issues.append(f"Line '{line.line_id}' references unknown description '{line.description_id}'.")
    issues.extend(model.consistency_issues())
    for item in render.blocks:
        for action in item.spec.actions if item.spec else ():
            for target in action.targets:
                if not model.has_block(target):
                    issues.append(f"Block '{item.block_id}' action '{action.action}' targets unknown block '{target}'.")
    return issues


def check_lesson(lesson: Lesson) -> dict[str, list[str]]:
    """Map step id to its link problems, for steps that have any."""
    report: dict[str, list[str]] = {}
    for chapter in lesson.chapters:
        for step in chapter.steps:
            issues = check_step(step)
            if issues:
                report[step.id] = issues
    return report
