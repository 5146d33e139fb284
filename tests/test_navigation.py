from lessonlink.models import Chapter, Lesson, Step
from lessonlink.navigation import StepCursor


def _lesson() -> Lesson:
    def step(step_id: str) -> Step:
        return Step(id=step_id, title=step_id, description="", left_area=(), right_area=())

    return Lesson(
        id="nav",
        title="Nav",
        description="",
        difficulty="beginner",
        estimated_minutes=5,
        tags=(),
        chapters=(
            Chapter(id="c1", title="One", description="", steps=(step("a"), step("b"))),
            Chapter(id="c2", title="Two", description="", steps=(step("c"),)),
            Chapter(id="c3", title="Three", description="", steps=(step("d"), step("e"), step("f"))),
        ),
    )


def test_next_walks_across_chapters() -> None:
    cursor = StepCursor(_lesson())
    visited = [cursor.current_step.id]
    while cursor.next():
        visited.append(cursor.current_step.id)

    assert visited == ["a", "b", "c", "d", "e", "f"]
    assert cursor.can_go_next is False
    assert cursor.step_label == "Step 3/3"


def test_previous_enters_last_step_of_previous_chapter() -> None:
    cursor = StepCursor(_lesson(), 2, 0)
    assert cursor.previous() is True
    assert cursor.position == (1, 0)
    assert cursor.previous() is True
    assert cursor.position == (0, 1)
    assert cursor.current_step.id == "b"


def test_first_step_cannot_go_back() -> None:
    cursor = StepCursor(_lesson())
    assert cursor.can_go_previous is False
    assert cursor.previous() is False
    assert cursor.position == (0, 0)


def test_out_of_range_positions_are_clamped() -> None:
    cursor = StepCursor(_lesson(), 9, 9)
    assert cursor.position == (2, 2)
    cursor.move_to(-1, 5)
    assert cursor.position == (0, 1)


def test_jump_to_chapter() -> None:
    cursor = StepCursor(_lesson(), 0, 1)
    assert cursor.jump_to_chapter(2) is True
    assert cursor.position == (2, 0)
    assert cursor.current_chapter.title == "Three"
    assert cursor.jump_to_chapter(3) is False
    assert cursor.jump_to_chapter(-1) is False
    assert cursor.position == (2, 0)
