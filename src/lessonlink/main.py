"""CLI entrypoint for the linked lesson viewer."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable
from pathlib import Path

from .builder import DESCRIPTION_AREA_ID, LineItem, RenderItem, StepRender
from .presentation import BLOCK_PERMANENT, LINE_SELECTED, RecordingSink, SinkEvent
from .service import TARGET_KINDS, LessonService

InputFn = Callable[[str], str]
PrintFn = Callable[[str], None]
MENU_QUIT_COMMANDS = {"q"}
MENU_BACK_COMMANDS = {"b"}
DEFAULT_DB_PATH = Path(".lessonlink") / "progress.db"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class QuitApp(Exception):
    """Signal immediate app exit from nested menu flows."""


class ConsoleSink(RecordingSink):
    """Recording sink that echoes every visual change as one text line."""

    def __init__(self, print_fn: PrintFn) -> None:
        super().__init__()
        self.print_fn = print_fn
        self.listener = self._echo

    def _echo(self, event: SinkEvent) -> None:
        if event.kind == "marker":
            sign = "+" if event.value else "-"
            self.print_fn(f"  {sign} {_handle_label(event.handle)}: {event.name}")
        elif event.kind == "description":
            self.print_fn(f"  description: {event.value}")
        elif event.kind == "visible":
            self.print_fn(f"  {_handle_label(event.handle)}: {'shown' if event.value else 'hidden'}")
        elif event.kind == "scroll":
            self.print_fn(f"  scrolled to {_handle_label(event.handle)}")


def _handle_label(handle: object) -> str:
    if isinstance(handle, LineItem):
        return f"line {handle.line_id}"
    if isinstance(handle, RenderItem):
        return f"block {handle.block_id}"
    return str(handle)


def _service(db_path: Path, content_dir: Path | None, print_fn: PrintFn) -> LessonService:
    """Create app service with console presentation."""
    return LessonService(db_path=db_path, content_dir=content_dir, sink=ConsoleSink(print_fn))


def run(argv: list[str] | None = None, input_fn: InputFn = input, print_fn: PrintFn = print) -> int:
    """Run the CLI application."""
    parser = argparse.ArgumentParser(prog="lessonlink", description="Linked code/display lesson viewer")
    parser.add_argument("command", nargs="?", default="play", choices=["play", "list", "check"])
    parser.add_argument("--db", type=Path, default=DEFAULT_DB_PATH, help="progress database path")
    parser.add_argument("--content-dir", type=Path, default=None, help="directory of lesson JSON files")
    parser.add_argument("--log-level", default="WARNING", choices=LOG_LEVELS)
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        service = _service(args.db, args.content_dir, print_fn)
    except (ValueError, OSError) as exc:
        print_fn(f"Could not load lessons: {exc}")
        return 1
    try:
        if args.command == "list":
            _list_flow(service, print_fn)
            return 0
        if args.command == "check":
            return _check_flow(service, print_fn)
        return play_shell(service, input_fn, print_fn)
    finally:
        service.close()


def _list_flow(service: LessonService, print_fn: PrintFn) -> None:
    """Print available lessons."""
    summaries = service.list_lessons()
    if not summaries:
        print_fn("No lessons found.")
        return
    id_width = max(len("Lesson"), max(len(item.lesson_id) for item in summaries))
    level_width = max(len("Level"), max(len(item.difficulty) for item in summaries))
    header = f"{'Lesson':<{id_width}} {'Level':<{level_width}} {'Steps':>5} {'Last':>6} Title"
    print_fn(header)
    print_fn("-" * len(header))
    for item in summaries:
        last = f"{item.last_position[0] + 1}.{item.last_position[1] + 1}" if item.last_position else "-"
        print_fn(
            f"{item.lesson_id:<{id_width}} {item.difficulty:<{level_width}} {item.step_count:>5} {last:>6} {item.title}"
        )


def _check_flow(service: LessonService, print_fn: PrintFn) -> int:
    """Report link problems; exit status 1 when any exist."""
    report = service.check_lessons()
    if not report:
        print_fn(f"All {len(service.lessons)} lessons have consistent links.")
        return 0
    for lesson_id, steps in report.items():
        print_fn(f"{lesson_id}:")
        for step_id, issues in steps.items():
            for issue in issues:
                print_fn(f"  [{step_id}] {issue}")
    return 1


def play_shell(service: LessonService, input_fn: InputFn = input, print_fn: PrintFn = print) -> int:
    """Run persistent menu-driven shell."""
    try:
        while True:
            lesson_id = _select_lesson(service, input_fn, print_fn)
            if lesson_id is None:
                return 0
            _lesson_flow(service, lesson_id, input_fn, print_fn)
    except QuitApp:
        return 0


def _select_lesson(service: LessonService, input_fn: InputFn, print_fn: PrintFn) -> str | None:
    """Pick a lesson by number."""
    while True:
        summaries = service.list_lessons()
        print_fn("\n=== Lessons ===")
        if not summaries:
            print_fn("No lessons found.")
            return None
        for idx, item in enumerate(summaries, start=1):
            print_fn(f"{idx}) {item.title} [{item.difficulty}, {item.step_count} steps]")
        print_fn("q) Quit")
        choice = input_fn("Select lesson: ").strip().lower()
        if choice in MENU_QUIT_COMMANDS:
            return None
        if choice.isdigit():
            index = int(choice) - 1
            if 0 <= index < len(summaries):
                return summaries[index].lesson_id
        print_fn("Invalid lesson selection.")


def _lesson_flow(service: LessonService, lesson_id: str, input_fn: InputFn, print_fn: PrintFn) -> None:
    """Show one lesson and dispatch pointer commands until the user leaves."""
    render = service.open_lesson(lesson_id)
    _print_step(service, render, print_fn)
    while True:
        raw = input_fn("Command (h for help): ").strip()
        if not raw:
            continue
        parts = raw.split()
        verb = parts[0].lower()
        if verb in MENU_BACK_COMMANDS:
            return
        if verb in MENU_QUIT_COMMANDS:
            raise QuitApp()
        if verb == "h":
            _print_help(print_fn)
        elif verb in {"hover", "leave", "click"}:
            if len(parts) != 3 or parts[1] not in TARGET_KINDS:
                print_fn(f"Usage: {verb} line|block ID")
                continue
            getattr(service, verb)(parts[1], parts[2])
        elif verb == "dblclick" and len(parts) == 2:
            if not service.engine.has_block(parts[1]):
                print_fn(f"Unknown block '{parts[1]}'.")
            elif service.double_click(parts[1]) == 0:
                print_fn("Nothing happens.")
        elif verb == "focus" and len(parts) == 2:
            if not service.focus_block(parts[1]):
                print_fn(f"Unknown block '{parts[1]}'.")
        elif verb == "info" and len(parts) == 2:
            _print_block_info(service, parts[1], print_fn)
        elif verb == "wait":
            delay = service.engine.config.animation_duration_ms
            if len(parts) == 2 and parts[1].isdigit():
                delay = int(parts[1])
            ran = service.advance(delay)
            print_fn(f"{delay}ms passed ({ran} effects ran).")
        elif verb in {"n", "p"}:
            moved = service.next_step() if verb == "n" else service.previous_step()
            if not moved:
                print_fn("No more steps in that direction.")
                continue
            _print_step(service, service.render, print_fn)
        elif verb == "c" and len(parts) == 2 and parts[1].isdigit():
            if not service.jump_to_chapter(int(parts[1]) - 1):
                print_fn("Invalid chapter.")
                continue
            _print_step(service, service.render, print_fn)
        elif verb == "show":
            _print_step(service, service.render, print_fn)
        else:
            print_fn("Invalid command.")


def _print_help(print_fn: PrintFn) -> None:
    print_fn("hover|leave|click line|block ID  pointer events")
    print_fn("dblclick ID                      double-click a block")
    print_fn("focus ID                         select and scroll to a block")
    print_fn("info ID                          block details")
    print_fn("wait [MS]                        let animations run")
    print_fn("n / p / c N                      next, previous step, jump to chapter N")
    print_fn("show                             redraw the step")
    print_fn("b) Back  q) Quit")


def _print_block_info(service: LessonService, block_id: str, print_fn: PrintFn) -> None:
    info = service.block_info(block_id)
    if info is None:
        print_fn(f"Unknown block '{block_id}'.")
        return
    lines = ", ".join(info.associated_line_ids) if info.associated_line_ids else "none"
    print_fn(f"{info.id} ({info.block_type or 'block'})")
    print_fn(f"- lines: {lines}")
    print_fn(f"- highlighted: {'yes' if info.is_highlighted else 'no'}")
    print_fn(f"- visible: {'yes' if info.is_visible else 'no'}")


def _print_step(service: LessonService, render: StepRender | None, print_fn: PrintFn) -> None:
    """Print both panes of the current step."""
    if render is None or service.cursor is None:
        return
    cursor = service.cursor
    print_fn(f"\n=== {cursor.lesson.title} ===")
    print_fn(f"Chapter {cursor.chapter_index + 1}: {cursor.current_chapter.title} | {cursor.step_label}")
    if render.step.title:
        print_fn(render.step.title)

    print_fn("\n-- Display --")
    if not render.display_items:
        print_fn("(nothing to display)")
    for item in render.display_items:
        _print_item(service, item, print_fn)

    print_fn("\n-- Code --")
    for item in render.code_items:
        if item.block_id == DESCRIPTION_AREA_ID:
            state = "active" if service.engine.description_active else "placeholder"
            print_fn(f"[description: {state}] {service.engine.description_text}")
            continue
        _print_item(service, item, print_fn)

    nav = []
    if cursor.can_go_previous:
        nav.append("p) Previous")
    if cursor.can_go_next:
        nav.append("n) Next")
    print_fn("  ".join([*nav, "b) Back", "q) Quit"]))


def _print_item(service: LessonService, item: RenderItem, print_fn: PrintFn) -> None:
    if item.lines:
        print_fn(f"<{item.block_id}> {item.language or 'text'}")
        width = max(len(line.line_id) for line in item.lines)
        for line in item.lines:
            flag = "*" if LINE_SELECTED in service.engine.line_markers(line.line_id) else " "
            print_fn(f"{flag}{line.line_number:>3} {line.line_id:<{width}} | {line.text}")
        return
    flag = "*" if BLOCK_PERMANENT in service.engine.block_markers(item.block_id) else " "
    print_fn(f"{flag}[{item.block_id}] ({item.block_type}) {item.body}")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
