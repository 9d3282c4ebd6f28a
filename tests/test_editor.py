from types import SimpleNamespace

import pytest

from tmux_launcher import editor
from tmux_launcher.errors import ExternalToolError, NoEditorFoundError


def only_installed(*names):
    return lambda cmd: f"/usr/bin/{cmd}" if cmd in names else None


def test_editor_env_wins(monkeypatch):
    monkeypatch.setenv("EDITOR", "emacs -nw")
    monkeypatch.setattr(editor.shutil, "which", only_installed("emacs", "vim"))
    assert editor.find_editor() == ["emacs", "-nw"]


def test_uninstalled_editor_env_falls_through(monkeypatch):
    monkeypatch.setenv("EDITOR", "nosuch")
    monkeypatch.setattr(editor.shutil, "which", only_installed("nano", "vim"))
    assert editor.find_editor() == ["nano"]


def test_preference_order(monkeypatch):
    monkeypatch.delenv("EDITOR", raising=False)
    monkeypatch.setattr(editor.shutil, "which", only_installed("vi", "vim", "micro"))
    assert editor.find_editor() == ["micro"]


def test_vscode_is_last_resort(monkeypatch):
    monkeypatch.delenv("EDITOR", raising=False)
    monkeypatch.setattr(editor.shutil, "which", only_installed("code"))
    assert editor.find_editor() == ["code", "--wait"]


def test_no_editor(monkeypatch):
    monkeypatch.delenv("EDITOR", raising=False)
    monkeypatch.setattr(editor.shutil, "which", only_installed())
    with pytest.raises(NoEditorFoundError):
        editor.find_editor()


def test_open_in_editor_runs_in_foreground(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(editor, "find_editor", lambda: ["nano"])
    monkeypatch.setattr(editor.subprocess, "run",
                        lambda argv, check: calls.append(argv) or SimpleNamespace(returncode=0))
    editor.open_in_editor(tmp_path / "config.toml")
    assert calls == [["nano", str(tmp_path / "config.toml")]]


def test_open_in_editor_nonzero_exit(monkeypatch, tmp_path):
    monkeypatch.setattr(editor, "find_editor", lambda: ["vim"])
    monkeypatch.setattr(editor.subprocess, "run", lambda argv, check: SimpleNamespace(returncode=2))
    with pytest.raises(ExternalToolError, match="status 2"):
        editor.open_in_editor(tmp_path / "config.toml")
