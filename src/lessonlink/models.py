"""Core domain models for step-by-step linked lessons."""

from __future__ import annotations

from dataclasses import dataclass, field

CODE_BLOCK = "code-block"
DESCRIPTION_BLOCK = "description"


@dataclass(frozen=True)
class BlockAction:
    """Declarative reaction attached to a display block."""

    event: str
    action: str
    targets: tuple[str, ...] = ()


@dataclass(frozen=True)
class CodeLineSpec:
    """Per-line link configuration inside a code block."""

    id: str | None = None
    display_block_id: str | None = None
    description_id: str | None = None


@dataclass(frozen=True)
class BlockSpec:
    """One authored block of a step, in either pane."""

    id: str
    type: str
    content: str = ""
    language: str = ""
    associations: tuple[str, ...] = ()
    code_lines: tuple[CodeLineSpec, ...] = ()
    actions: tuple[BlockAction, ...] = ()
    src: str = ""
    alt: str = ""
    caption: str = ""
    items: tuple[str, ...] = ()
    ordered: bool = False


@dataclass(frozen=True)
class Step:
    """Small step: one screen with a display area and a code area."""

    id: str
    title: str
    description: str
    left_area: tuple[BlockSpec, ...]
    right_area: tuple[BlockSpec, ...]


@dataclass(frozen=True)
class Chapter:
    """Big step grouping consecutive small steps."""

    id: str
    title: str
    description: str
    steps: tuple[Step, ...]


@dataclass(frozen=True)
class Lesson:
    """Top-level lesson document."""

    id: str
    title: str
    description: str
    difficulty: str
    estimated_minutes: int
    tags: tuple[str, ...]
    chapters: tuple[Chapter, ...] = field(default_factory=tuple)

    @property
    def step_count(self) -> int:
        return sum(len(chapter.steps) for chapter in self.chapters)
