import json
from pathlib import Path
from typing import Any

import lessonlink.main as main
from lessonlink.builder import LineItem, RenderItem


def _run(tmp_path: Path, argv: list[str], inputs: list[str] | None = None) -> tuple[int, list[str]]:
    feed = iter(inputs or [])
    outputs: list[str] = []
    code = main.run([*argv, "--db", str(tmp_path / "progress.db")], lambda _: next(feed), outputs.append)
    return code, outputs


def test_list_command_prints_table(tmp_path: Path) -> None:
    code, outputs = _run(tmp_path, ["list"])
    assert code == 0
    assert outputs[0].startswith("Lesson")
    assert any("html-button-basics" in line and "Build a Clickable Button" in line for line in outputs)


def test_check_command_passes_for_bundled_lessons(tmp_path: Path) -> None:
    code, outputs = _run(tmp_path, ["check"])
    assert code == 0
    assert outputs == ["All 1 lessons have consistent links."]


def test_check_command_reports_issues(tmp_path: Path) -> None:
    content = tmp_path / "content"
    content.mkdir()
    payload = {
        "id": "broken",
        "bigSteps": [
            {
                "bigStepId": "c",
                "smallSteps": [
                    {
                        "smallStepId": "s",
                        "blocks": {
                            "leftArea": [{"id": "demo", "type": "text", "content": "x", "associations": ["gone"]}],
                            "rightArea": [],
                        },
                    }
                ],
            }
        ],
    }
    (content / "broken.json").write_text(json.dumps(payload), encoding="utf-8")

    code, outputs = _run(tmp_path, ["check", "--content-dir", str(content)])
    assert code == 1
    assert outputs == ["broken:", "  [s] Block 'demo' lists unknown line 'gone'."]


def test_invalid_content_exits_with_error(tmp_path: Path) -> None:
    content = tmp_path / "bad"
    content.mkdir()
    (content / "bad.json").write_text("{not json", encoding="utf-8")

    code, outputs = _run(tmp_path, ["list", "--content-dir", str(content)])
    assert code == 1
    assert outputs[0].startswith("Could not load lessons:")


def test_run_enters_play_shell(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setattr(main, "play_shell", lambda *args: 0)
    assert _run(tmp_path, [])[0] == 0


def test_play_select_and_quit(tmp_path: Path) -> None:
    code, outputs = _run(tmp_path, ["play"], ["9", "q"])
    assert code == 0
    assert "1) Build a Clickable Button [beginner, 3 steps]" in outputs
    assert "Invalid lesson selection." in outputs


def test_play_click_line_echoes_markers_and_description(tmp_path: Path) -> None:
    code, outputs = _run(tmp_path, ["play"], ["1", "click line btn-open", "show", "q"])
    assert code == 0
    assert "  + line btn-open: line-selected" in outputs
    assert "  + block demo-button: highlight-permanent" in outputs
    assert "  description: The opening tag creates the button and gives it the primary class." in outputs
    assert any(line.startswith("*  1 btn-open") for line in outputs)
    assert any(line.startswith("*[demo-button]") for line in outputs)
    assert "[description: active] The opening tag creates the button and gives it the primary class." in outputs


def test_play_hover_and_leave_block(tmp_path: Path) -> None:
    inputs = ["1", "hover block demo-button", "leave block demo-button", "q"]
    _, outputs = _run(tmp_path, ["play"], inputs)
    assert "  + line btn-open: line-hover" in outputs
    assert "  + line btn-close: line-hover" in outputs
    assert "  - block demo-button: highlight-hover" in outputs


def test_play_command_errors(tmp_path: Path) -> None:
    inputs = ["1", "", "hover line", "focus ghost", "info ghost", "p", "c 9", "dance", "h", "b", "q"]
    code, outputs = _run(tmp_path, ["play"], inputs)
    assert code == 0
    assert "Usage: hover line|block ID" in outputs
    assert outputs.count("Unknown block 'ghost'.") == 2
    assert "No more steps in that direction." in outputs
    assert "Invalid chapter." in outputs
    assert "Invalid command." in outputs
    assert any(line.startswith("hover|leave|click") for line in outputs)
    assert outputs.count("\n=== Lessons ===") == 2


def test_play_focus_info_and_wait(tmp_path: Path) -> None:
    inputs = ["1", "focus demo-button", "info demo-button", "wait", "wait 1000", "q"]
    _, outputs = _run(tmp_path, ["play"], inputs)
    assert "  scrolled to block demo-button" in outputs
    assert "demo-button (html-container)" in outputs
    assert "- lines: btn-open, btn-close" in outputs
    assert "- highlighted: yes" in outputs
    assert "- visible: yes" in outputs
    assert "300ms passed (0 effects ran)." in outputs
    assert "1000ms passed (1 effects ran)." in outputs


def test_play_navigation_resumes_from_saved_step(tmp_path: Path) -> None:
    _run(tmp_path, ["play"], ["1", "n", "c 2", "q"])
    _, outputs = _run(tmp_path, ["play"], ["1", "q"])
    assert "Chapter 2: Behaviour | Step 1/1" in outputs
    assert "Counting clicks" in outputs


def test_handle_label() -> None:
    line = LineItem(line_id="l1", line_number=1, text="x", code_block_id="code")
    block = RenderItem(block_id="b1", block_type="text", area="display")
    assert main._handle_label(line) == "line l1"
    assert main._handle_label(block) == "block b1"
    assert main._handle_label("raw") == "raw"


def test_play_double_click(tmp_path: Path) -> None:
    inputs = ["1", "dblclick demo-label", "wait", "dblclick demo-button", "dblclick ghost", "q"]
    _, outputs = _run(tmp_path, ["play"], inputs)
    assert "  block demo-button: hidden" in outputs
    assert "Nothing happens." in outputs
    assert "Unknown block 'ghost'." in outputs
