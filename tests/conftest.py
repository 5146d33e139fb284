from __future__ import annotations

import shutil
import sys
from collections.abc import Iterator
from pathlib import Path
from uuid import uuid4

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from lessonlink.associations import LineAssociation  # noqa: E402
from lessonlink.engine import InteractionEngine  # noqa: E402
from lessonlink.presentation import RecordingSink  # noqa: E402


def _tmp_path_fixture() -> Iterator[Path]:
    """Provide per-test temporary directory path inside the workspace.

    Temporary files live under ``.tmp_pytest/`` in the project directory so
    SQLite files and lesson fixtures never depend on the system temp location.
    """
    base = ROOT / ".tmp_pytest"
    base.mkdir(parents=True, exist_ok=True)
    path = base / str(uuid4())
    path.mkdir(parents=True, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        try:
            next(base.iterdir())
        except StopIteration:
            base.rmdir()
        except FileNotFoundError:
            pass


tmp_path = pytest.fixture(name="tmp_path")(_tmp_path_fixture)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def engine(sink: RecordingSink) -> InteractionEngine:
    return InteractionEngine(sink)


@pytest.fixture
def linked_engine(engine: InteractionEngine) -> InteractionEngine:
    """Engine populated with two blocks, three linked lines and one description.

    b1 <- l1, l2 (l1 described by d1); b2 has no lines; l3 links nowhere.
    """
    engine.reset()
    engine.register_block("b1", ["l1", "l2"], block_type="html-container")
    engine.register_block("b2", [], block_type="text")
    engine.register_code_line("l1", LineAssociation(display_target_id="b1", description_id="d1"), line_number=1)
    engine.register_code_line("l2", LineAssociation(display_target_id="b1"), line_number=2)
    engine.register_code_line("l3", None, line_number=3)
    engine.register_description_content("d1", "explains b1")
    engine.sink.clear_log()
    return engine
