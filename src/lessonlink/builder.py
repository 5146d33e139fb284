"""Turn an authored step into renderable items and engine registrations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .associations import LineAssociation
from .engine import InteractionEngine
from .models import CODE_BLOCK, DESCRIPTION_BLOCK, BlockSpec, Step

logger = logging.getLogger(__name__)

DISPLAY_AREA = "display"
CODE_AREA = "code"
DESCRIPTION_AREA_ID = "description-area"


@dataclass(eq=False)
class LineItem:
    """One rendered source line; also the opaque handle the engine stores."""

    line_id: str
    line_number: int
    text: str
    code_block_id: str
    display_target_id: str | None = None
    description_id: str | None = None


@dataclass(eq=False)
class RenderItem:
    """One rendered block in either pane."""

    block_id: str
    block_type: str
    area: str
    body: str = ""
    language: str = ""
    lines: tuple[LineItem, ...] = ()
    spec: BlockSpec | None = None


@dataclass
class StepRender:
    """Everything one step contributes to the screen and to the engine."""

    step: Step
    display_items: list[RenderItem] = field(default_factory=list)
    code_items: list[RenderItem] = field(default_factory=list)
    descriptions: dict[str, str] = field(default_factory=dict)

    @property
    def blocks(self) -> list[RenderItem]:
        """Display blocks that take part in linking, in render order."""
        return [item for item in self.display_items if item.block_type != CODE_BLOCK]

    @property
    def lines(self) -> list[LineItem]:
        """Every code line from every code block, in source order."""
        lines: list[LineItem] = []
        for item in [*self.display_items, *self.code_items]:
            lines.extend(item.lines)
        return lines

    def find_block(self, block_id: str) -> RenderItem | None:
        for item in [*self.display_items, *self.code_items]:
            if item.block_id == block_id:
                return item
        return None

    def register_into(self, engine: InteractionEngine) -> None:
        """Populate a fresh engine: reset, then blocks, lines and descriptions in that order."""
        engine.reset()
        for item in self.blocks:
            associations = item.spec.associations if item.spec is not None else ()
            actions = item.spec.actions if item.spec is not None else ()
            engine.register_block(item.block_id, associations, item, block_type=item.block_type, actions=actions)
        for line in self.lines:
            engine.register_code_line(
                line.line_id,
                LineAssociation(line.display_target_id, line.description_id),
                line,
                line_number=line.line_number,
            )
        for description_id, content in self.descriptions.items():
            engine.register_description_content(description_id, content)


def build_step(step: Step) -> StepRender:
    """Render both panes of a step.

    The code pane lists code blocks first, then the description area, then
    any other blocks. Description blocks are not rendered inline; their
    content is only reachable through the lines that point at them.
    """
    render = StepRender(step=step)
    for spec in step.left_area:
        render.display_items.append(_render_block(spec, DISPLAY_AREA))

    code_blocks = [spec for spec in step.right_area if spec.type == CODE_BLOCK]
    descriptions = [spec for spec in step.right_area if spec.type == DESCRIPTION_BLOCK]
    others = [spec for spec in step.right_area if spec.type not in {CODE_BLOCK, DESCRIPTION_BLOCK}]

    for spec in code_blocks:
        render.code_items.append(_render_block(spec, CODE_AREA))
    render.code_items.append(RenderItem(block_id=DESCRIPTION_AREA_ID, block_type=DESCRIPTION_BLOCK, area=CODE_AREA))
    for spec in descriptions:
        render.descriptions[spec.id] = spec.content
    for spec in others:
        render.code_items.append(_render_block(spec, CODE_AREA))
    return render


def _render_block(spec: BlockSpec, area: str) -> RenderItem:
    if spec.type == CODE_BLOCK:
        return RenderItem(
            block_id=spec.id,
            block_type=spec.type,
            area=area,
            language=spec.language,
            lines=split_code_lines(spec),
            spec=spec,
        )
    body = _body_text(spec)
    if body is None:
        logger.warning("Unknown block type '%s' for block '%s'", spec.type, spec.id)
        body = f"Unknown block type: {spec.type}"
    return RenderItem(block_id=spec.id, block_type=spec.type, area=area, body=body, spec=spec)


def split_code_lines(spec: BlockSpec) -> tuple[LineItem, ...]:
    """Split a code block into addressable lines, numbered from 1."""
    lines: list[LineItem] = []
    for index, text in enumerate(spec.content.split("\n")):
        number = index + 1
        config = spec.code_lines[index] if index < len(spec.code_lines) else None
        line_id = (config.id if config is not None and config.id else None) or f"{spec.id}_line_{number}"
        lines.append(
            LineItem(
                line_id=line_id,
                line_number=number,
                text=text,
                code_block_id=spec.id,
                display_target_id=config.display_block_id if config is not None else None,
                description_id=config.description_id if config is not None else None,
            )
        )
    return tuple(lines)


def _body_text(spec: BlockSpec) -> str | None:
    if spec.type in {"text", "html-container", "interactive-demo", DESCRIPTION_BLOCK}:
        return spec.content
    if spec.type == "image":
        label = f"[image {spec.src}]"
        text = spec.caption or spec.alt
        return f"{label} {text}" if text else label
    if spec.type == "video":
        return f"[video {spec.src}]"
    if spec.type == "list":
        if spec.ordered:
            return "\n".join(f"{idx}. {item}" for idx, item in enumerate(spec.items, start=1))
        return "\n".join(f"- {item}" for item in spec.items)
    return None
