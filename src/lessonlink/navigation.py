"""Cursor over the chapters and steps of one lesson."""

from __future__ import annotations

from .models import Chapter, Lesson, Step


class StepCursor:
    """Current (chapter, step) position with previous/next moves across chapters."""

    def __init__(self, lesson: Lesson, chapter_index: int = 0, step_index: int = 0) -> None:
        self.lesson = lesson
        self.chapter_index = 0
        self.step_index = 0
        self.move_to(chapter_index, step_index)

    def move_to(self, chapter_index: int, step_index: int) -> None:
        """Jump to a position, clamping indices into range."""
        last_chapter = len(self.lesson.chapters) - 1
        self.chapter_index = min(max(0, chapter_index), last_chapter)
        last_step = len(self.current_chapter.steps) - 1
        self.step_index = min(max(0, step_index), last_step)

    @property
    def current_chapter(self) -> Chapter:
        return self.lesson.chapters[self.chapter_index]

    @property
    def current_step(self) -> Step:
        return self.current_chapter.steps[self.step_index]

    @property
    def position(self) -> tuple[int, int]:
        return (self.chapter_index, self.step_index)

    @property
    def can_go_previous(self) -> bool:
        return not (self.chapter_index == 0 and self.step_index == 0)

    @property
    def can_go_next(self) -> bool:
        is_last_chapter = self.chapter_index == len(self.lesson.chapters) - 1
        is_last_step = self.step_index == len(self.current_chapter.steps) - 1
        return not (is_last_chapter and is_last_step)

    @property
    def step_label(self) -> str:
        return f"Step {self.step_index + 1}/{len(self.current_chapter.steps)}"

    def next(self) -> bool:
        """Advance one step, entering the next chapter at its first step. Returns whether it moved."""
        if self.step_index < len(self.current_chapter.steps) - 1:
            self.step_index += 1
            return True
        if self.chapter_index < len(self.lesson.chapters) - 1:
            self.chapter_index += 1
            self.step_index = 0
            return True
        return False

    def previous(self) -> bool:
        """Go back one step, entering the previous chapter at its last step."""
        if self.step_index > 0:
            self.step_index -= 1
            return True
        if self.chapter_index > 0:
            self.chapter_index -= 1
            self.step_index = len(self.current_chapter.steps) - 1
            return True
        return False

    def jump_to_chapter(self, chapter_index: int) -> bool:
        if not (0 <= chapter_index < len(self.lesson.chapters)):
            return False
        self.chapter_index = chapter_index
        self.step_index = 0
        return True
