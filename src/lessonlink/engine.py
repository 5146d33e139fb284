"""Interaction engine linking display blocks, code lines and descriptions.

The engine owns three registries (blocks, code lines, description contents)
and the interaction state of the step currently on screen. Pointer events go
in; marker changes and description instructions go out to a presentation
sink. Unknown identities never raise: they degrade to "nothing happens".

Two interaction modes exist. While no line is selected, hovering a block or a
line highlights the linked elements transiently. Clicking pins a selection;
from then on block hover is ignored and line hover only gets a secondary
marker, until the selection is toggled off or replaced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .associations import AssociationModel, LineAssociation
from .models import BlockAction
from .presentation import (
    BLOCK_ACTION_HIGHLIGHT,
    BLOCK_HOVER,
    BLOCK_PERMANENT,
    DEFAULT_PLACEHOLDER,
    LINE_HOVER,
    LINE_HOVER_ON_SELECTED,
    LINE_SELECTED,
    PresentationSink,
)
from .scheduler import TaskScheduler

logger = logging.getLogger(__name__)

HOVER_EVENT_ALIASES = {"hover": "mouseenter"}


@dataclass(frozen=True)
class EngineConfig:
    """Timing and text settings for presentation effects."""

    animation_duration_ms: int = 300
    easing: str = "ease-in-out"
    show_delay_ms: int = 10
    blink_interval_ms: int = 200
    shake_ms: int = 500
    pulse_ms: int = 1000
    placeholder_text: str = DEFAULT_PLACEHOLDER


@dataclass(frozen=True)
class InteractionState:
    """Snapshot of selection and pinned highlights."""

    selected_line_id: str | None
    highlighted_line_ids: frozenset[str]
    highlighted_block_ids: frozenset[str]

    @property
    def is_idle(self) -> bool:
        return self.selected_line_id is None


@dataclass(frozen=True)
class BlockInfo:
    """Introspection view of one registered block."""

    id: str
    block_type: str
    associated_line_ids: tuple[str, ...]
    is_highlighted: bool
    is_visible: bool


@dataclass
class DragState:
    """Current drag gesture, if any."""

    is_dragging: bool = False
    dragged_block: str | None = None
    start_x: float = 0.0
    start_y: float = 0.0


@dataclass
class _BlockEntry:
    handle: Any
    block_type: str
    actions: tuple[BlockAction, ...]


@dataclass
class _LineEntry:
    handle: Any
    line_number: int


class InteractionEngine:
    """Hover/selection state machine for one lesson step at a time."""

    def __init__(
        self,
        sink: PresentationSink,
        scheduler: TaskScheduler | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.sink = sink
        self.scheduler = scheduler or TaskScheduler()
        self.config = config or EngineConfig()
        self.model = AssociationModel()
        self._blocks: dict[str, _BlockEntry] = {}
        self._lines: dict[str, _LineEntry] = {}
        self._descriptions: dict[str, str] = {}
        self._selected_line_id: str | None = None
        self._highlighted_lines: set[str] = set()
        self._highlighted_blocks: set[str] = set()
        self._line_markers: dict[str, set[str]] = {}
        self._block_markers: dict[str, set[str]] = {}
        self._line_hover: dict[str, tuple[str, str | None]] = {}
        self._block_hover: set[str] = set()
        self._hidden: set[str] = set()
        self._visibility_seq: dict[str, int] = {}
        self._draggable: set[str] = set()
        self._description_active = False
        self._description_text = self.config.placeholder_text
        self._epoch = 0
        self.drag_state = DragState()

    # -- registration -----------------------------------------------------

    def register_block(
        self,
        block_id: str,
        associated_line_ids: Iterable[str] = (),
        handle: Any = None,
        *,
        block_type: str = "",
        actions: Iterable[BlockAction] = (),
    ) -> None:
        """Register a display block; re-registering replaces the stored entry."""
        if not block_id:
            return
        entry = _BlockEntry(handle if handle is not None else block_id, block_type, tuple(actions))
        previous = self._blocks.get(block_id)
        self._blocks[block_id] = entry
        self.model.set_block_associations(block_id, associated_line_ids)
        if previous is not None and previous.handle is not entry.handle:
            for marker in self._block_markers.get(block_id, set()):
                self.sink.set_marker(entry.handle, marker, True)

    def register_code_line(
        self,
        line_id: str,
        association: LineAssociation | None = None,
        handle: Any = None,
        *,
        line_number: int = 0,
    ) -> None:
        """Register one code line and what it links to."""
        if not line_id:
            return
        entry = _LineEntry(handle if handle is not None else line_id, line_number)
        previous = self._lines.get(line_id)
        self._lines[line_id] = entry
        self.model.set_line_association(line_id, association)
        if previous is not None and previous.handle is not entry.handle:
            for marker in self._line_markers.get(line_id, set()):
                self.sink.set_marker(entry.handle, marker, True)

        target = association.display_target_id if association else None
        if target is None:
            return
        if target not in self._blocks:
            logger.warning("Line '%s' targets unregistered block '%s'", line_id, target)
        elif line_id not in self.model.get_associated_lines(target):
            logger.warning("Line '%s' targets block '%s' which does not list it", line_id, target)

    def register_description_content(self, description_id: str, content: str) -> None:
        self._descriptions[description_id] = content

    def reset(self) -> None:
        """Forget the current step: registries, interaction state and pending effects."""
        self.clear_all_selections()
        self._blocks.clear()
        self._lines.clear()
        self._descriptions.clear()
        self.model.clear()
        self._line_markers.clear()
        self._block_markers.clear()
        self._line_hover.clear()
        self._block_hover.clear()
        self._hidden.clear()
        self._visibility_seq.clear()
        self._draggable.clear()
        self.show_default_description()
        self.drag_state = DragState()
        self._epoch += 1
        logger.debug("Engine reset (epoch %d)", self._epoch)

    def association_issues(self) -> list[str]:
        """Report block/line declarations that do not agree with each other."""
        return self.model.consistency_issues()

    # -- queries ----------------------------------------------------------

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def state(self) -> InteractionState:
        return InteractionState(
            selected_line_id=self._selected_line_id,
            highlighted_line_ids=frozenset(self._highlighted_lines),
            highlighted_block_ids=frozenset(self._highlighted_blocks),
        )

    @property
    def selected_line_id(self) -> str | None:
        return self._selected_line_id

    @property
    def description_active(self) -> bool:
        return self._description_active

    @property
    def description_text(self) -> str:
        """Text currently in the description area: linked content or the placeholder."""
        return self._description_text

    def has_block(self, block_id: str) -> bool:
        return block_id in self._blocks

    def has_line(self, line_id: str) -> bool:
        return line_id in self._lines

    def get_description(self, description_id: str) -> str | None:
        return self._descriptions.get(description_id)

    def get_associated_lines(self, block_id: str) -> tuple[str, ...]:
        return self.model.get_associated_lines(block_id)

    def get_line_association(self, line_id: str) -> LineAssociation | None:
        return self.model.get_line_association(line_id)

    def line_markers(self, line_id: str) -> frozenset[str]:
        return frozenset(self._line_markers.get(line_id, set()))

    def block_markers(self, block_id: str) -> frozenset[str]:
        return frozenset(self._block_markers.get(block_id, set()))

    def get_block_info(self, block_id: str) -> BlockInfo | None:
        entry = self._blocks.get(block_id)
        if entry is None:
            return None
        return BlockInfo(
            id=block_id,
            block_type=entry.block_type,
            associated_line_ids=self.model.get_associated_lines(block_id),
            is_highlighted=block_id in self._highlighted_blocks,
            is_visible=block_id not in self._hidden,
        )

    # -- marker plumbing --------------------------------------------------

    def _mark_line(self, line_id: str, marker: str, enabled: bool) -> None:
        entry = self._lines.get(line_id)
        if entry is None:
            return
        current = self._line_markers.setdefault(line_id, set())
        if enabled == (marker in current):
            return
        if enabled:
            current.add(marker)
        else:
            current.discard(marker)
        self.sink.set_marker(entry.handle, marker, enabled)

    def _mark_block(self, block_id: str, marker: str, enabled: bool) -> None:
        entry = self._blocks.get(block_id)
        if entry is None:
            return
        current = self._block_markers.setdefault(block_id, set())
        if enabled == (marker in current):
            return
        if enabled:
            current.add(marker)
        else:
            current.discard(marker)
        self.sink.set_marker(entry.handle, marker, enabled)

    def _pin_line(self, line_id: str) -> None:
        if line_id not in self._lines:
            logger.debug("Skipping unregistered line '%s'", line_id)
            return
        self._mark_line(line_id, LINE_SELECTED, True)
        self._highlighted_lines.add(line_id)

    def _pin_block(self, block_id: str) -> None:
        if block_id not in self._blocks:
            logger.debug("Skipping unregistered block '%s'", block_id)
            return
        self._mark_block(block_id, BLOCK_PERMANENT, True)
        self._highlighted_blocks.add(block_id)

    # -- selection --------------------------------------------------------

    def clear_all_selections(self) -> None:
        """Drop every pinned highlight and the selected line. Safe to repeat."""
        for line_id in self._highlighted_lines:
            self._mark_line(line_id, LINE_SELECTED, False)
            self._mark_line(line_id, LINE_HOVER, False)
            self._mark_line(line_id, LINE_HOVER_ON_SELECTED, False)
        self._highlighted_lines.clear()
        self._selected_line_id = None

        for block_id in self._highlighted_blocks:
            self._mark_block(block_id, BLOCK_PERMANENT, False)
            self._mark_block(block_id, BLOCK_HOVER, False)
        self._highlighted_blocks.clear()

    def deselect(self) -> None:
        """Clear the selection and put the placeholder back in the description area."""
        self.clear_all_selections()
        self.show_default_description()

    def show_description_for_line(self, line_id: str) -> bool:
        """Show the description linked to a line, or the placeholder. Returns whether content was shown."""
        association = self.model.get_line_association(line_id)
        if association is None or association.description_id is None:
            self.show_default_description()
            return False
        content = self._descriptions.get(association.description_id)
        if content is None:
            logger.debug("Description '%s' for line '%s' is not registered", association.description_id, line_id)
            self.show_default_description()
            return False
        self.sink.show_description(content)
        self._description_active = True
        self._description_text = content
        return True

    def show_default_description(self) -> None:
        self.sink.show_placeholder(self.config.placeholder_text)
        self._description_active = False
        self._description_text = self.config.placeholder_text

    # -- block events -----------------------------------------------------

    def block_hover_enter(self, block_id: str) -> None:
        if self._selected_line_id is not None or block_id not in self._blocks:
            return
        for line_id in self.model.get_associated_lines(block_id):
            self._mark_line(line_id, LINE_HOVER, True)
        self._mark_block(block_id, BLOCK_HOVER, True)
        self._block_hover.add(block_id)

    def block_hover_leave(self, block_id: str) -> None:
        if self._selected_line_id is not None or block_id not in self._blocks:
            return
        self._block_hover.discard(block_id)
        for line_id in self.model.get_associated_lines(block_id):
            if line_id not in self._highlighted_lines:
                self._mark_line(line_id, LINE_HOVER, False)
        if block_id not in self._highlighted_blocks:
            self._mark_block(block_id, BLOCK_HOVER, False)

    def _drop_block_hover(self) -> None:
        """Undo idle block hovers; called when a click is about to pin a new state."""
        for block_id in list(self._block_hover):
            self.block_hover_leave(block_id)
        self._block_hover.clear()

    def handle_block_hover(self, block_id: str, is_hover: bool) -> None:
        if is_hover:
            self.block_hover_enter(block_id)
        else:
            self.block_hover_leave(block_id)

    def block_click(self, block_id: str) -> None:
        """Pin a block and all of its lines; the first registered line becomes the selection.

        Lines are taken in declaration order. If none of them is registered the
        block stays pinned with no selected line and the description is left as is.
        """
        if block_id not in self._blocks:
            logger.debug("Ignoring click on unregistered block '%s'", block_id)
            return
        self._drop_block_hover()
        self.clear_all_selections()

        line_ids = [line_id for line_id in self.model.get_associated_lines(block_id) if line_id in self._lines]
        for line_id in line_ids:
            self._pin_line(line_id)
        self._pin_block(block_id)

        if line_ids:
            self._selected_line_id = line_ids[0]
            self.show_description_for_line(line_ids[0])

    # -- line events ------------------------------------------------------

    def line_hover_enter(self, line_id: str) -> None:
        if line_id not in self._lines:
            return
        selected = self._selected_line_id
        if selected is not None:
            if line_id != selected:
                self._mark_line(line_id, LINE_HOVER_ON_SELECTED, True)
                self._line_hover[line_id] = (LINE_HOVER_ON_SELECTED, None)
            return

        self._mark_line(line_id, LINE_HOVER, True)
        association = self.model.get_line_association(line_id)
        target = association.display_target_id if association else None
        if target is not None and target in self._blocks and target not in self._highlighted_blocks:
            self._mark_block(target, BLOCK_HOVER, True)
        else:
            target = None
        self._line_hover[line_id] = (LINE_HOVER, target)

    def line_hover_leave(self, line_id: str) -> None:
        applied = self._line_hover.pop(line_id, None)
        if applied is None:
            return
        marker, target = applied
        self._mark_line(line_id, marker, False)
        if target is not None and target not in self._highlighted_blocks:
            self._mark_block(target, BLOCK_HOVER, False)

    def handle_line_hover(self, line_id: str, is_hover: bool) -> None:
        if is_hover:
            self.line_hover_enter(line_id)
        else:
            self.line_hover_leave(line_id)

    def line_click(self, line_id: str) -> None:
        """Select a line, or toggle the selection off when it is already selected."""
        if line_id not in self._lines:
            logger.debug("Ignoring click on unregistered line '%s'", line_id)
            return
        if self._selected_line_id == line_id:
            self.deselect()
            return

        self._drop_block_hover()
        self.clear_all_selections()
        self._selected_line_id = line_id
        self._pin_line(line_id)
        association = self.model.get_line_association(line_id)
        if association is not None and association.display_target_id is not None:
            self._pin_block(association.display_target_id)
        self.show_description_for_line(line_id)

    # -- auxiliary block operations ---------------------------------------

    def _entries(self, block_ids: str | Iterable[str]) -> list[tuple[str, _BlockEntry]]:
        ids = [block_ids] if isinstance(block_ids, str) else list(block_ids)
        return [(block_id, self._blocks[block_id]) for block_id in ids if block_id in self._blocks]

    def _defer(self, delay_ms: int, block_id: str, handle: Any, callback: Callable[[], None], label: str) -> None:
        """Schedule a presentation callback that dies with the step or the handle."""
        epoch = self._epoch

        def guarded() -> None:
            if epoch != self._epoch:
                return
            entry = self._blocks.get(block_id)
            if entry is None or entry.handle is not handle:
                return
            callback()

        self.scheduler.call_later(delay_ms, guarded, label=f"{label}:{block_id}")

    def _transition(self) -> str:
        return f"all {self.config.animation_duration_ms}ms {self.config.easing}"

    def _bump_visibility(self, block_id: str) -> int:
        """Start a new show/hide of a block; only the latest one may finish."""
        seq = self._visibility_seq.get(block_id, 0) + 1
        self._visibility_seq[block_id] = seq
        return seq

    def show_blocks(self, block_ids: str | Iterable[str], animation: str = "fade") -> None:
        for block_id, entry in self._entries(block_ids):
            handle = entry.handle
            self._hidden.discard(block_id)
            seq = self._bump_visibility(block_id)
            self.sink.set_visible(handle, True)
            self.sink.set_style(handle, transition=self._transition())
            if animation == "fade":
                self.sink.set_style(handle, opacity="0")
                final = {"opacity": "1"}
            elif animation == "slide":
                self.sink.set_style(handle, transform="translateY(-20px)", opacity="0")
                final = {"transform": "translateY(0)", "opacity": "1"}
            elif animation == "scale":
                self.sink.set_style(handle, transform="scale(0.8)", opacity="0")
                final = {"transform": "scale(1)", "opacity": "1"}
            else:
                logger.warning("Unknown show animation '%s'", animation)
                continue

            def settle(
                block_id: str = block_id, handle: Any = handle, seq: int = seq, final: dict[str, str] = final
            ) -> None:
                if self._visibility_seq.get(block_id) == seq:
                    self.sink.set_style(handle, **final)

            self._defer(self.config.show_delay_ms, block_id, handle, settle, "show")

    def hide_blocks(self, block_ids: str | Iterable[str], animation: str = "fade") -> None:
        for block_id, entry in self._entries(block_ids):
            handle = entry.handle
            self._hidden.add(block_id)
            seq = self._bump_visibility(block_id)
            self.sink.set_style(handle, transition=self._transition())
            if animation == "slide":
                self.sink.set_style(handle, transform="translateY(-20px)", opacity="0")
            elif animation == "scale":
                self.sink.set_style(handle, transform="scale(0.8)", opacity="0")
            else:
                self.sink.set_style(handle, opacity="0")

            def finish(block_id: str = block_id, handle: Any = handle, seq: int = seq) -> None:
                if self._visibility_seq.get(block_id) == seq:
                    self.sink.set_visible(handle, False)

            self._defer(self.config.animation_duration_ms, block_id, handle, finish, "hide")

    def toggle_blocks(self, block_ids: str | Iterable[str], animation: str = "fade") -> None:
        for block_id, _ in self._entries(block_ids):
            if block_id in self._hidden:
                self.show_blocks(block_id, animation)
            else:
                self.hide_blocks(block_id, animation)

    def enable_drag(self, block_ids: str | Iterable[str]) -> None:
        for block_id, entry in self._entries(block_ids):
            self._draggable.add(block_id)
            self.sink.set_draggable(entry.handle, True)
            self.sink.set_style(entry.handle, cursor="move")

    def disable_drag(self, block_ids: str | Iterable[str]) -> None:
        for block_id, entry in self._entries(block_ids):
            self._draggable.discard(block_id)
            self.sink.set_draggable(entry.handle, False)
            self.sink.set_style(entry.handle, cursor="default")

    def drag_start(self, block_id: str, x: float = 0.0, y: float = 0.0) -> bool:
        entry = self._blocks.get(block_id)
        if entry is None or block_id not in self._draggable:
            return False
        self.drag_state = DragState(is_dragging=True, dragged_block=block_id, start_x=x, start_y=y)
        self.sink.set_style(entry.handle, opacity="0.5")
        return True

    def drag_end(self) -> None:
        block_id = self.drag_state.dragged_block
        entry = self._blocks.get(block_id) if block_id else None
        if entry is not None:
            self.sink.set_style(entry.handle, opacity="1")
        self.drag_state = DragState()

    def blink(self, block_ids: str | Iterable[str], times: int = 3) -> None:
        for block_id, entry in self._entries(block_ids):
            self._blink_step(block_id, entry.handle, 0, max(0, times) * 2, "1")

    def _blink_step(self, block_id: str, handle: Any, count: int, total: int, opacity: str) -> None:
        def tick() -> None:
            if count + 1 >= total:
                self.sink.set_style(handle, opacity="1")
                return
            flipped = "1" if opacity == "0.3" else "0.3"
            self.sink.set_style(handle, opacity=flipped)
            self._blink_step(block_id, handle, count + 1, total, flipped)

        if total == 0:
            return
        self._defer(self.config.blink_interval_ms, block_id, handle, tick, "blink")

    def shake(self, block_ids: str | Iterable[str]) -> None:
        self._keyframe(block_ids, f"shake {self.config.shake_ms / 1000:g}s", self.config.shake_ms, "shake")

    def pulse(self, block_ids: str | Iterable[str]) -> None:
        self._keyframe(block_ids, f"pulse {self.config.pulse_ms / 1000:g}s", self.config.pulse_ms, "pulse")

    def _keyframe(self, block_ids: str | Iterable[str], animation: str, duration_ms: int, label: str) -> None:
        for block_id, entry in self._entries(block_ids):
            handle = entry.handle
            self.sink.set_style(handle, animation=animation)

            def finish(handle: Any = handle) -> None:
                self.sink.set_style(handle, animation="")

            self._defer(duration_ms, block_id, handle, finish, label)

    def scroll_to_block(self, block_id: str, smooth: bool = True) -> None:
        entry = self._blocks.get(block_id)
        if entry is not None:
            self.sink.scroll_into_view(entry.handle, smooth)

    def focus_block(self, block_id: str) -> bool:
        """Select a block the same way a click does, then bring it into view."""
        if block_id not in self._blocks:
            return False
        self.block_click(block_id)
        self.scroll_to_block(block_id)
        self.pulse(block_id)
        return True

    def run_block_actions(self, block_id: str, event: str) -> int:
        """Run the declarative actions a block attached to ``event``. Returns actions run."""
        entry = self._blocks.get(block_id)
        if entry is None:
            return 0
        event = HOVER_EVENT_ALIASES.get(event, event)
        ran = 0
        for action in entry.actions:
            if HOVER_EVENT_ALIASES.get(action.event, action.event) != event:
                continue
            if self._run_action(action):
                ran += 1
        return ran

    def _run_action(self, action: BlockAction) -> bool:
        targets = list(action.targets)
        if action.action == "toggleHighlight":
            for target in targets:
                enabled = BLOCK_ACTION_HIGHLIGHT not in self._block_markers.get(target, set())
                self._mark_block(target, BLOCK_ACTION_HIGHLIGHT, enabled)
        elif action.action == "highlight":
            for target in targets:
                self._mark_block(target, BLOCK_ACTION_HIGHLIGHT, True)
        elif action.action == "unhighlight":
            for target in targets:
                self._mark_block(target, BLOCK_ACTION_HIGHLIGHT, False)
        elif action.action == "show":
            self.show_blocks(targets)
        elif action.action == "hide":
            self.hide_blocks(targets)
        elif action.action == "toggle":
            self.toggle_blocks(targets)
        else:
            logger.warning("Unsupported block action '%s'", action.action)
            return False
        return True
