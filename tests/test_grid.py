import pytest

from tmux_launcher.errors import ErrorType, LayoutParseError, PaneCountMismatch
from tmux_launcher.grid import GridBuilder, pane_assignments, parse_grid, validate_pane_count
from tmux_launcher.spawn import GridSpec
from tmux_launcher.templates import PaneTemplate, SessionTemplate

MUTATING = {"new-session", "split-window", "select-layout", "send-keys", "kill-session"}


def make_template(layout="2x2", count=4, **kwargs):
    panes = tuple(PaneTemplate(command=f"cmd{i}", title=f"P{i}") for i in range(count))
    return SessionTemplate(name="Grid Test", layout=layout, panes=panes, working_dir="/work", **kwargs)


@pytest.mark.parametrize("text,expected", [
    ("2x2", GridSpec(2, 2)),
    ("4x2", GridSpec(4, 2)),
    ("3X1", GridSpec(3, 1)),
    (" 1 x 5 ", GridSpec(1, 5)),
])
def test_parse_grid(text, expected):
    assert parse_grid(text) == expected


@pytest.mark.parametrize("text", ["", "2", "2x", "x2", "axb", "2x2x2", "0x2", "2x0", "-1x3"])
def test_parse_grid_rejects_bad_layouts(text):
    with pytest.raises(LayoutParseError):
        parse_grid(text)


def test_pane_assignments_are_row_major():
    grid = GridSpec(3, 2)
    panes = [f"p{i}" for i in range(7)]
    assignments = pane_assignments(panes, grid)
    assert sorted(assignments) == list(range(6))
    for row in range(grid.rows):
        for col in range(grid.cols):
            assert assignments[row * grid.cols + col] == panes[row * grid.cols + col]


def test_validate_pane_count():
    validate_pane_count([1, 2, 3, 4, 5], GridSpec(2, 2))
    with pytest.raises(PaneCountMismatch):
        validate_pane_count([1, 2, 3], GridSpec(2, 2))


def test_create_session_builds_grid(spawner, runner, sleeps):
    result = GridBuilder(spawner).create_session(make_template())

    assert result.is_ok()
    assert result.value == "grid-test"
    assert runner.calls_to("new-session") == [["new-session", "-d", "-s", "grid-test", "-c", "/work"]]
    assert len(runner.calls_to("split-window")) == 3
    assert len(sleeps) == 3
    assert runner.calls_to("select-layout") == [["select-layout", "-t", "grid-test:0", "tiled"]]
    assert [c[2:4] for c in runner.calls_to("send-keys")] == [
        ["grid-test:0.0", "cmd0"],
        ["grid-test:0.1", "cmd1"],
        ["grid-test:0.2", "cmd2"],
        ["grid-test:0.3", "cmd3"],
    ]
    assert "attach-session" not in runner.subcommands()


def test_pane_working_dir_is_entered_first(spawner, runner):
    template = make_template(layout="2x1", count=2)
    template = SessionTemplate(
        name=template.name,
        layout=template.layout,
        panes=(PaneTemplate("ls", working_dir="/logs"), PaneTemplate("top")),
        working_dir="/work",
    )
    GridBuilder(spawner).create_session(template)
    sends = [c[2:4] for c in runner.calls_to("send-keys")]
    assert sends == [
        ["grid-test:0.0", "cd /logs"],
        ["grid-test:0.0", "ls"],
        ["grid-test:0.1", "top"],
    ]


def test_cwd_override_replaces_template_directory(spawner, runner):
    GridBuilder(spawner).create_session(make_template(), cwd_override="/elsewhere")
    assert runner.calls_to("new-session")[0][-1] == "/elsewhere"


def test_too_few_panes_fails_without_mutating(spawner, runner):
    result = GridBuilder(spawner).create_session(make_template(layout="4x2", count=4))
    assert result.is_err()
    assert result.error.error_type is ErrorType.VALIDATION_ERROR
    assert "requires 8" in result.error.message
    assert not MUTATING & set(runner.subcommands())


def test_bad_layout_fails_without_any_tmux_call(spawner, runner):
    result = GridBuilder(spawner).create_session(make_template(layout="grid"))
    assert result.is_err()
    assert result.error.error_type is ErrorType.PARSE_ERROR
    assert runner.calls == []


def test_layout_failure_kills_the_new_session(spawner, runner):
    runner.failures["select-layout"] = "bad layout"
    result = GridBuilder(spawner).create_session(make_template())

    assert result.is_err()
    assert "bad layout" in result.error.message
    assert runner.calls_to("kill-session") == [["kill-session", "-t", "grid-test"]]
    assert runner.calls_to("send-keys") == []


def test_failed_cleanup_still_reports_original_error(spawner, runner):
    runner.failures["split-window"] = "no space for new pane"
    runner.failures["kill-session"] = "session not found"
    result = GridBuilder(spawner).create_session(make_template())
    assert result.is_err()
    assert "no space for new pane" in result.error.message
