import lessonlink.__main__ as module_main
import lessonlink.main as main


def test_module_entrypoint_calls_main_entry(monkeypatch) -> None:
    called = {"value": 0}
    monkeypatch.setattr(module_main, "main_entry", lambda: called.__setitem__("value", 1))
    module_main.main()
    assert called["value"] == 1


def test_main_entry_exits_with_run_status(monkeypatch) -> None:
    monkeypatch.setattr(main, "run", lambda: 3)
    try:
        main.main_entry()
        raise AssertionError("Expected SystemExit.")
    except SystemExit as exc:
        assert exc.code == 3
