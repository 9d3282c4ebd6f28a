import os
from textwrap import dedent

from tmux_launcher.config_loader import (
    DEFAULT_CONFIG,
    build_tree,
    deep_merge,
    load_config_from_path,
    load_launch_tree,
    write_cd_target,
)
from tmux_launcher.errors import ErrorType
from tmux_launcher.tree import Category, Command, LayoutPreset, Profile, SpawnMode

SAMPLE = dedent("""
    [ui]
    adaptive = false

    [[projects]]
    name = "api"
    icon = "🚀"
    path = "~/code/api"

    [[projects.commands]]
    name = "server"
    command = "make run"
    spawn = "tmux-split-h"

    [[projects.profiles]]
    name = "dev"
    layout = "main-vertical"
    panes = [{ command = "nvim" }, { command = "make watch", cwd = "/srv" }]

    [[tools]]
    category = "Monitoring"
    [[tools.items]]
    name = "htop"
    command = "htop"
    spawn = "no-such-mode"

    [[ai]]
    name = "assistant"
    command = "aider"
""")


def write_config(tmp_path, text=SAMPLE):
    path = tmp_path / "config.toml"
    path.write_text(text)
    return path


def test_deep_merge_keeps_unset_defaults():
    merged = deep_merge(DEFAULT_CONFIG, {"ui": {"mouse": False}})
    assert merged["ui"]["mouse"] is False
    assert merged["ui"]["adaptive"] is True
    assert DEFAULT_CONFIG["ui"]["mouse"] is True


def test_load_config_merges_over_defaults(tmp_path):
    result = load_config_from_path(write_config(tmp_path))
    assert result.is_ok()
    assert result.value["ui"]["adaptive"] is False
    assert result.value["ui"]["show_title"] is True
    assert result.value["spawn"]["default_layout"] == "tiled"


def test_missing_file_is_file_not_found(tmp_path):
    result = load_config_from_path(tmp_path / "absent.toml")
    assert result.is_err()
    assert result.error.error_type is ErrorType.FILE_NOT_FOUND


def test_syntax_error_reports_line(tmp_path):
    path = write_config(tmp_path, "[ui]\nadaptive = \n")
    result = load_config_from_path(path)
    assert result.is_err()
    assert result.error.error_type is ErrorType.PARSE_ERROR
    assert result.error.context["line_number"] == 2
    assert "line 2" in result.error.message


def test_build_tree_sections_and_paths(tmp_path):
    config = load_config_from_path(write_config(tmp_path)).value
    roots = build_tree(config)

    assert [r.path for r in roots] == ["projects/api", "tools/Monitoring", "ai"]
    api = roots[0]
    assert isinstance(api, Category)
    assert api.cwd == os.path.expanduser("~/code/api")
    assert api.icon == "🚀"

    server, dev = api.children
    assert isinstance(server, Command)
    assert server.path == "projects/api/server"
    assert server.spawn_mode is SpawnMode.TMUX_SPLIT_H
    assert isinstance(dev, Profile)
    assert dev.layout is LayoutPreset.MAIN_VERTICAL
    assert [p.cwd for p in dev.panes] == ["", "/srv"]

    htop = roots[1].children[0]
    assert htop.spawn_mode is SpawnMode.TMUX_WINDOW
    assert roots[2].children[0].path == "ai/assistant"


def test_broken_config_degrades_to_empty_tree(tmp_path):
    path = write_config(tmp_path, "[[projects]\n")
    config, roots, error = load_launch_tree(path)
    assert roots == ()
    assert error is not None
    assert error.error_type is ErrorType.PARSE_ERROR
    assert config["ui"] == DEFAULT_CONFIG["ui"]


def test_load_launch_tree_ok(tmp_path):
    config, roots, error = load_launch_tree(write_config(tmp_path))
    assert error is None
    assert len(roots) == 3


def test_write_cd_target_writes_path_verbatim(tmp_path):
    target = tmp_path / "cd_target"
    write_cd_target("/srv/my project", target)
    assert target.read_text() == "/srv/my project"
