"""Tests for spawn orchestration against a recording fake tmux."""

from datetime import datetime

import pytest

from tmux_launcher.errors import ErrorType
from tmux_launcher.spawn import (
    SETTLE_DELAY,
    GridSpec,
    LaunchTuple,
    build_request,
    generate_session_name,
    layout_name,
    sanitize_session_name,
    suggest_layouts,
    to_launch_tuples,
)
from tmux_launcher.tree import Category, Command, LayoutPreset, PaneSpec, Profile, SpawnMode

THREE_ITEMS = [
    LaunchTuple("a", "echo a", "/tmp"),
    LaunchTuple("b", "echo b", ""),
    LaunchTuple("c", "echo c", ""),
]


def test_three_items_outside_tmux(spawner, runner, sleeps):
    result = spawner.spawn(THREE_ITEMS, LayoutPreset.TILED)

    assert result.is_ok()
    assert result.value == "a"
    assert runner.subcommands() == [
        "list-sessions",
        "new-session",
        "send-keys",
        "split-window",
        "split-window",
        "select-layout",
        "send-keys",
        "send-keys",
        "attach-session",
    ]
    assert runner.calls_to("new-session") == [["new-session", "-d", "-s", "a", "-c", "/tmp"]]
    assert [c[2] for c in runner.calls_to("split-window")] == ["a:0", "a:0"]
    assert runner.calls_to("select-layout") == [["select-layout", "-t", "a:0", "tiled"]]
    assert [c[2:4] for c in runner.calls_to("send-keys")] == [
        ["a:0.0", "echo a"],
        ["a:0.1", "echo b"],
        ["a:0.2", "echo c"],
    ]
    assert sleeps == [SETTLE_DELAY, SETTLE_DELAY]


def test_panes_without_cwd_use_first_item_directory(spawner, runner):
    spawner.spawn(THREE_ITEMS, LayoutPreset.TILED)
    assert all(c[-1] == "/tmp" for c in runner.calls_to("split-window"))


def test_cwd_override_wins(spawner, runner):
    spawner.spawn([LaunchTuple("x", "ls"), LaunchTuple("y", "ls")], cwd_override="/srv")
    assert runner.calls_to("new-session")[0][-1] == "/srv"
    assert runner.calls_to("split-window")[0][-1] == "/srv"


def test_no_attach_when_asked(spawner, runner):
    result = spawner.spawn(THREE_ITEMS, attach=False)
    assert result.is_ok()
    assert "attach-session" not in runner.subcommands()


def test_empty_commands_are_not_sent(spawner, runner):
    spawner.spawn([LaunchTuple("shell", "", "/tmp"), LaunchTuple("top", "htop", "")], attach=False)
    assert [c[2] for c in runner.calls_to("send-keys")] == ["shell:0.1"]


def test_inside_tmux_uses_current_window(inside_spawner, runner):
    result = inside_spawner.spawn(THREE_ITEMS, LayoutPreset.EVEN_HORIZONTAL)

    assert result.value == "work"
    assert "new-session" not in runner.subcommands()
    assert "attach-session" not in runner.subcommands()
    assert runner.calls_to("select-layout") == [["select-layout", "-t", "work:2", "even-horizontal"]]
    sends = runner.calls_to("send-keys")
    assert sends[0][2:4] == ["work:2.0", "cd /tmp && echo a"]
    assert sends[1][2:4] == ["work:2.1", "echo b"]
    assert runner.subcommands().index("send-keys") < runner.subcommands().index("split-window")


def test_failure_reports_step_and_keeps_created_panes(spawner, runner):
    runner.failures["select-layout"] = "invalid layout"
    result = spawner.spawn(THREE_ITEMS)

    assert result.is_err()
    assert result.error.error_type is ErrorType.EXTERNAL_TOOL_ERROR
    assert result.error.context["step"] == "apply layout tiled"
    assert "invalid layout" in result.error.message
    # Batch spawns leave what was built in place
    assert "kill-session" not in runner.subcommands()
    # Only pane 0 was reached before the layout step
    assert [c[2] for c in runner.calls_to("send-keys")] == ["a:0.0"]


def test_empty_spawn_is_an_error(spawner, runner):
    result = spawner.spawn([])
    assert result.is_err()
    assert runner.calls == []


def test_grid_spec_with_too_few_items_fails_before_tmux(spawner, runner):
    result = spawner.spawn(THREE_ITEMS, GridSpec(2, 2))
    assert result.is_err()
    assert result.error.context == {"supplied": 3, "required": 4}
    assert runner.calls == []


def test_grid_spec_applies_tiled(spawner, runner):
    items = THREE_ITEMS + [LaunchTuple("d", "echo d")]
    assert spawner.spawn(items, GridSpec(2, 2), attach=False).is_ok()
    assert runner.calls_to("select-layout")[0][-1] == "tiled"
    assert layout_name(GridSpec(4, 2)) == "tiled"


# =============================================================================
# Session naming
# =============================================================================


def test_sanitize_session_name():
    assert sanitize_session_name("My Cool App!") == "my-cool-app"
    assert sanitize_session_name("a_b.c") == "abc"


def test_generate_session_name_collision_adds_time_suffix():
    now = datetime(2024, 1, 1, 9, 5, 7)
    assert generate_session_name("My Cool App!", set(), now=now) == "my-cool-app"
    assert generate_session_name("My Cool App!", {"my-cool-app"}, now=now) == "my-cool-app-090507"


def test_generate_session_name_empty_slug_falls_back():
    assert generate_session_name("!!!", set()) == "launch"


def test_spawn_picks_unique_name(spawner, runner):
    runner.outputs["list-sessions"] = "a|1|0|1700000000\n"
    result = spawner.spawn(THREE_ITEMS, attach=False)
    assert result.value == "a-143005"


# =============================================================================
# Requests and single spawns
# =============================================================================


def test_to_launch_tuples_expands_profiles():
    profile = Profile("dev", "p/dev", panes=(PaneSpec("nvim", "~/src"), PaneSpec("make")))
    tuples = to_launch_tuples(profile)
    assert [t.name for t in tuples] == ["dev-pane-0", "dev-pane-1"]
    assert not tuples[0].cwd.startswith("~")
    assert tuples[1].cwd == ""


def test_to_launch_tuples_rejects_categories_and_unknowns():
    with pytest.raises(ValueError):
        to_launch_tuples(Category("c", "c"))
    with pytest.raises(TypeError):
        to_launch_tuples("item")


def test_build_request_keeps_item_order():
    request = build_request(
        [Command("one", "x/one", "1"), Profile("two", "x/two", panes=(PaneSpec("2a"), PaneSpec("2b")))],
        LayoutPreset.MAIN_VERTICAL,
    )
    assert [t.command for t in request.items] == ["1", "2a", "2b"]
    assert request.layout is LayoutPreset.MAIN_VERTICAL


def test_single_split_inside_tmux(inside_spawner, runner):
    item = Command("logs", "t/logs", "tail -f log", cwd="/var/log", spawn_mode=SpawnMode.TMUX_SPLIT_H)
    result = inside_spawner.spawn_single(item)
    assert result.is_ok()
    assert runner.calls == [["split-window", "-h", "-c", "/var/log", "sh", "-c", "tail -f log"]]


def test_single_new_window_inside_tmux(inside_spawner, runner):
    item = Command("top", "t/top", "htop", spawn_mode=SpawnMode.TMUX_WINDOW)
    inside_spawner.spawn_single(item)
    assert runner.calls == [["new-window", "-c", "/home/tester", "-n", "top", "sh", "-c", "htop"]]


def test_single_current_pane_inside_tmux(inside_spawner, runner):
    item = Command("ls", "t/ls", "ls -la", cwd="/tmp", spawn_mode=SpawnMode.CURRENT_PANE)
    inside_spawner.spawn_single(item)
    assert runner.calls == [["send-keys", "cd /tmp && ls -la", "C-m"]]


def test_single_outside_tmux_creates_session(spawner, runner):
    item = Command("top", "t/top", "htop", spawn_mode=SpawnMode.TMUX_SPLIT_V)
    result = spawner.spawn_single(item, attach=False)
    assert result.value == "top"
    assert "new-session" in runner.subcommands()
    assert "split-window" not in runner.subcommands()


def test_single_failure_returns_error(inside_spawner, runner):
    runner.failures["new-window"] = "no current client"
    result = inside_spawner.spawn_single(Command("top", "t/top", "htop"))
    assert result.is_err()
    assert "no current client" in result.error.message


def test_suggest_layouts_puts_best_first():
    assert suggest_layouts(1)[0].layout is LayoutPreset.MAIN_VERTICAL
    assert suggest_layouts(2)[0].layout is LayoutPreset.EVEN_HORIZONTAL
    assert suggest_layouts(4)[0].name == "Quad Split"
    assert all(len(suggest_layouts(n)) == 3 for n in range(2, 9))
