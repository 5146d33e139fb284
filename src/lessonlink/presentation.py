"""Visual state names and the presentation sink the engine drives."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

LINE_HOVER = "line-hover"
LINE_HOVER_ON_SELECTED = "line-hover-on-selected"
LINE_SELECTED = "line-selected"
BLOCK_HOVER = "highlight-hover"
BLOCK_PERMANENT = "highlight-permanent"
BLOCK_ACTION_HIGHLIGHT = "highlight"
DESCRIPTION_ACTIVE = "description-active"

DEFAULT_PLACEHOLDER = "Click a code line or display block to see its explanation."


class PresentationSink(Protocol):
    """Receives visual instructions; handles are opaque to the engine."""

    def set_marker(self, handle: Any, marker: str, enabled: bool) -> None: ...

    def show_description(self, content: str) -> None: ...

    def show_placeholder(self, text: str) -> None: ...

    def set_visible(self, handle: Any, visible: bool) -> None: ...

    def set_style(self, handle: Any, **style: str) -> None: ...

    def set_draggable(self, handle: Any, enabled: bool) -> None: ...

    def scroll_into_view(self, handle: Any, smooth: bool) -> None: ...


@dataclass(frozen=True)
class SinkEvent:
    """One instruction received by a recording sink."""

    kind: str
    handle: Any = None
    name: str = ""
    value: object = None


@dataclass
class RecordingSink:
    """Sink that keeps the resulting visual state in memory.

    Used by tests and the console view; ``events`` keeps the full instruction log.
    """

    events: list[SinkEvent] = field(default_factory=list)
    markers: dict[Any, set[str]] = field(default_factory=dict)
    styles: dict[Any, dict[str, str]] = field(default_factory=dict)
    hidden: set[Any] = field(default_factory=set)
    draggable: set[Any] = field(default_factory=set)
    description: str = DEFAULT_PLACEHOLDER
    description_active: bool = False
    listener: Callable[[SinkEvent], None] | None = None

    def _record(self, event: SinkEvent) -> None:
        self.events.append(event)
        if self.listener is not None:
            self.listener(event)

    def set_marker(self, handle: Any, marker: str, enabled: bool) -> None:
        current = self.markers.setdefault(handle, set())
        if enabled:
            current.add(marker)
        else:
            current.discard(marker)
        self._record(SinkEvent("marker", handle, marker, enabled))

    def show_description(self, content: str) -> None:
        self.description = content
        self.description_active = True
        self._record(SinkEvent("description", None, DESCRIPTION_ACTIVE, content))

    def show_placeholder(self, text: str) -> None:
        self.description = text
        self.description_active = False
        self._record(SinkEvent("placeholder", None, "", text))

    def set_visible(self, handle: Any, visible: bool) -> None:
        if visible:
            self.hidden.discard(handle)
        else:
            self.hidden.add(handle)
        self._record(SinkEvent("visible", handle, "", visible))

    def set_style(self, handle: Any, **style: str) -> None:
        self.styles.setdefault(handle, {}).update(style)
        self._record(SinkEvent("style", handle, ",".join(sorted(style)), dict(style)))

    def set_draggable(self, handle: Any, enabled: bool) -> None:
        if enabled:
            self.draggable.add(handle)
        else:
            self.draggable.discard(handle)
        self._record(SinkEvent("draggable", handle, "", enabled))

    def scroll_into_view(self, handle: Any, smooth: bool) -> None:
        self._record(SinkEvent("scroll", handle, "smooth" if smooth else "auto", smooth))

    def markers_of(self, handle: Any) -> frozenset[str]:
        return frozenset(self.markers.get(handle, set()))

    def marker_events(self) -> list[SinkEvent]:
        return [event for event in self.events if event.kind == "marker"]

    def clear_log(self) -> None:
        self.events.clear()
