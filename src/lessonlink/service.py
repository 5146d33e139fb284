"""Application service tying lessons, navigation, rendering and the interaction engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .builder import StepRender, build_step
from .content_loader import check_lesson, load_lessons, load_lessons_from_dir
from .engine import BlockInfo, EngineConfig, InteractionEngine
from .models import Lesson
from .navigation import StepCursor
from .presentation import PresentationSink, RecordingSink
from .progress import ProgressStore
from .scheduler import TaskScheduler

logger = logging.getLogger(__name__)

TARGET_KINDS = ("line", "block")


@dataclass(frozen=True)
class LessonSummary:
    """Lesson listing row."""

    lesson_id: str
    title: str
    difficulty: str
    chapter_count: int
    step_count: int
    last_position: tuple[int, int] | None


class LessonService:
    """Coordinates one lesson view: content, step cursor, engine and saved position."""

    def __init__(
        self,
        db_path: Path | str,
        content_dir: Path | None = None,
        sink: PresentationSink | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize service with database path and optional content directory."""
        self.lessons = load_lessons_from_dir(content_dir) if content_dir is not None else load_lessons()
        self.progress = ProgressStore(db_path)
        self.sink = sink if sink is not None else RecordingSink()
        self.scheduler = TaskScheduler()
        self.engine = InteractionEngine(self.sink, self.scheduler, config)
        self.cursor: StepCursor | None = None
        self.render: StepRender | None = None

    def list_lessons(self) -> list[LessonSummary]:
        """Return lessons sorted by title with their saved positions."""
        summaries: list[LessonSummary] = []
        for lesson in sorted(self.lessons.values(), key=lambda item: (item.title, item.id)):
            position = self.progress.get_position(lesson.id)
            summaries.append(
                LessonSummary(
                    lesson_id=lesson.id,
                    title=lesson.title,
                    difficulty=lesson.difficulty,
                    chapter_count=len(lesson.chapters),
                    step_count=lesson.step_count,
                    last_position=(position.chapter_index, position.step_index) if position else None,
                )
            )
        return summaries

    def check_lessons(self) -> dict[str, dict[str, list[str]]]:
        """Return link problems per lesson and step."""
        report: dict[str, dict[str, list[str]]] = {}
        for lesson_id, lesson in sorted(self.lessons.items()):
            issues = check_lesson(lesson)
            if issues:
                report[lesson_id] = issues
        return report

    def open_lesson(self, lesson_id: str) -> StepRender:
        """Open a lesson at its last viewed step and render it."""
        lesson = self.lessons.get(lesson_id)
        if lesson is None:
            raise KeyError(lesson_id)
        position = self.progress.get_position(lesson_id)
        if position is None:
            self.cursor = StepCursor(lesson)
        else:
            self.cursor = StepCursor(lesson, position.chapter_index, position.step_index)
        return self.display_step()

    @property
    def lesson(self) -> Lesson:
        return self._require_cursor().lesson

    def _require_cursor(self) -> StepCursor:
        if self.cursor is None:
            raise RuntimeError("No lesson is open.")
        return self.cursor

    def display_step(self) -> StepRender:
        """Render the current step, repopulate the engine and remember the position."""
        cursor = self._require_cursor()
        render = build_step(cursor.current_step)
        render.register_into(self.engine)
        self.render = render
        self.progress.save_position(cursor.lesson.id, cursor.chapter_index, cursor.step_index)
        logger.info(
            "Showing lesson '%s' chapter %d step %d",
            cursor.lesson.id,
            cursor.chapter_index + 1,
            cursor.step_index + 1,
        )
        return render

    def next_step(self) -> bool:
        if not self._require_cursor().next():
            return False
        self.display_step()
        return True

    def previous_step(self) -> bool:
        if not self._require_cursor().previous():
            return False
        self.display_step()
        return True

    def jump_to_chapter(self, chapter_index: int) -> bool:
        if not self._require_cursor().jump_to_chapter(chapter_index):
            return False
        self.display_step()
        return True

    def hover(self, kind: str, target_id: str) -> None:
        """Pointer entered a line or block."""
        if kind == "line":
            self.engine.line_hover_enter(target_id)
        elif kind == "block":
            self.engine.block_hover_enter(target_id)
            self.engine.run_block_actions(target_id, "mouseenter")
        else:
            raise ValueError(f"Unknown target kind '{kind}'.")

    def leave(self, kind: str, target_id: str) -> None:
        """Pointer left a line or block."""
        if kind == "line":
            self.engine.line_hover_leave(target_id)
        elif kind == "block":
            self.engine.block_hover_leave(target_id)
            self.engine.run_block_actions(target_id, "mouseleave")
        else:
            raise ValueError(f"Unknown target kind '{kind}'.")

    def click(self, kind: str, target_id: str) -> None:
        if kind == "line":
            self.engine.line_click(target_id)
        elif kind == "block":
            self.engine.block_click(target_id)
            self.engine.run_block_actions(target_id, "click")
        else:
            raise ValueError(f"Unknown target kind '{kind}'.")

    def double_click(self, block_id: str) -> int:
        """Run a block's doubleclick actions; the selection is left alone."""
        return self.engine.run_block_actions(block_id, "doubleclick")

    def focus_block(self, block_id: str) -> bool:
        return self.engine.focus_block(block_id)

    def block_info(self, block_id: str) -> BlockInfo | None:
        return self.engine.get_block_info(block_id)

    def advance(self, delta_ms: int) -> int:
        """Let presentation time pass; runs due animation callbacks."""
        return self.scheduler.advance(delta_ms)

    def close(self) -> None:
        """Close resources."""
        self.progress.close()

    def __del__(self) -> None:  # pragma: no cover
        """Best-effort cleanup for test/process teardown."""
        try:
            self.close()
        except Exception:
            pass
