"""
Launcher dashboard (curses).

App holds all UI state and is driven by update(msg), which mutates state
and returns effects. Effects do the tmux/editor/file work on worker
threads and each hands back exactly one message. Screen owns curses: it
paints App, turns keys, clicks and resizes into messages, and runs the
effects.
"""

from __future__ import annotations

import curses
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from loguru import logger

from . import config_loader
from . import templates as template_store
from .editor import open_in_editor
from .errors import Error, ErrorType, LauncherError, Result
from .grid import GridBuilder
from .layout import (
    BORDER_ROWS,
    CHROME_ROWS,
    LAUNCH_HEADER_ROWS,
    TITLE_ROWS,
    Breakpoint,
    Focus,
    PanelHeights,
    compute_panel_heights,
    dual_pane_layout,
    panel_at_row,
    select_breakpoint,
)
from .selection import SelectionSet
from .spawn import Spawner, build_request, suggest_layouts
from .textwidth import fit_to_width, strip_ansi
from .tree import (
    Category,
    Command,
    FlattenedRow,
    LayoutPreset,
    Profile,
    SpawnMode,
    count_visible,
    describe_item,
    find_item,
    flatten,
    render_tree_row,
)

# Box drawing characters
BOX_H = "─"
BOX_V = "│"
BOX_TL = "╭"
BOX_TR = "╮"
BOX_BL = "╰"
BOX_BR = "╯"

KEY_TAB = 9
KEY_ESC = 27
KEY_BACKSPACE_CODES = (curses.KEY_BACKSPACE, 127, 8)
KEY_ENTER_CODES = (10, 13, curses.KEY_ENTER)
KEY_UP_CODES = (curses.KEY_UP, ord("k"))
KEY_DOWN_CODES = (curses.KEY_DOWN, ord("j"))
KEY_LEFT_CODES = (curses.KEY_LEFT, ord("h"))
KEY_RIGHT_CODES = (curses.KEY_RIGHT, ord("l"))

BATCH_LAYOUTS = list(LayoutPreset)

LAUNCH_HELP = "↑↓ move  ←→ fold  space select  c clear  ⏎ launch  tab tree  i info  L layout  t templates  e edit  r sessions  q quit"
TEMPLATES_HELP = "↑↓ move  tab panel  ⏎ create/attach  d delete  R rename  x kill  s save  a adaptive  t launcher  r sessions  q quit"


class View(Enum):
    LAUNCH = "launch"
    TEMPLATES = "templates"


class TreePane(Enum):
    GLOBAL = "global"        # tools, scripts, ai
    PROJECTS = "projects"


# =============================================================================
# Messages and Effects
# =============================================================================


@dataclass(frozen=True)
class KeyPressed:
    key: int


@dataclass(frozen=True)
class MouseClicked:
    x: int
    y: int


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class ConfigLoaded:
    config: dict
    roots: tuple
    error: Error | None = None


@dataclass(frozen=True)
class SpawnFinished:
    result: Result
    label: str
    attach: bool = False     # attach to result.value once the UI exits


@dataclass(frozen=True)
class TemplatesLoaded:
    templates: tuple = ()
    error: Error | None = None


@dataclass(frozen=True)
class SessionsLoaded:
    sessions: tuple = ()
    error: Error | None = None


@dataclass(frozen=True)
class PaneCaptured:
    session: str
    lines: tuple = ()
    error: Error | None = None


@dataclass(frozen=True)
class SessionChanged:
    """A rename or kill finished. status is shown on success."""
    status: str
    error: Error | None = None


@dataclass(frozen=True)
class SessionSaved:
    session: str
    templates: tuple = ()
    error: Error | None = None


@dataclass(frozen=True)
class EditorClosed:
    error: Error | None = None


@dataclass(frozen=True)
class CdTargetWritten:
    path: str
    error: Error | None = None


@dataclass(frozen=True)
class EffectFailed:
    name: str
    error: Error


@dataclass(frozen=True)
class Effect:
    """Work to run off the reducer. run() returns exactly one message."""
    name: str
    run: Callable[[], object]
    foreground: bool = False  # needs the terminal (curses suspended)


def error_from_exception(exc: Exception) -> Error:
    if isinstance(exc, LauncherError):
        return exc.to_error()
    if isinstance(exc, ValueError):
        return Error(ErrorType.PARSE_ERROR, str(exc), original_exception=exc)
    return Error(ErrorType.PERMISSION_ERROR, str(exc), original_exception=exc)


def split_roots(roots) -> tuple[tuple, tuple]:
    """(global roots, project roots)."""
    projects = tuple(r for r in roots if r.path.startswith("projects/"))
    others = tuple(r for r in roots if not r.path.startswith("projects/"))
    return others, projects


def scroll_offset(cursor: int, visible: int) -> int:
    """First row to draw so that cursor stays inside a window of visible rows."""
    if visible <= 0:
        return 0
    return max(0, cursor - visible + 1)


# =============================================================================
# Tree State
# =============================================================================


class TreeState:
    """One navigable tree: roots, expanded paths and the cursor row."""

    def __init__(self, roots=()):
        self.roots = tuple(roots)
        self.expanded: dict[str, bool] = {}
        self.cursor = 0

    def set_roots(self, roots) -> None:
        """Replace the forest. The cursor follows its item if the item survived."""
        current = self.current()
        self.roots = tuple(roots)
        if current is not None and find_item(self.roots, current.path) is not None:
            self.reveal(current.path)
        self.clamp()

    def reveal(self, path: str) -> None:
        """Expand the categories above path and put the cursor on it."""
        parts = path.split("/")
        for i in range(1, len(parts)):
            ancestor = find_item(self.roots, "/".join(parts[:i]))
            if isinstance(ancestor, Category):
                self.expanded[ancestor.path] = True
        for i, row in enumerate(self.rows()):
            if row.item.path == path:
                self.cursor = i
                return

    def rows(self) -> list[FlattenedRow]:
        return flatten(self.roots, self.expanded)

    def clamp(self) -> None:
        count = count_visible(self.roots, self.expanded)
        self.cursor = max(0, min(self.cursor, count - 1))

    def current(self):
        rows = self.rows()
        if 0 <= self.cursor < len(rows):
            return rows[self.cursor].item
        return None

    def move(self, delta: int) -> None:
        self.cursor += delta
        self.clamp()

    def expand(self) -> None:
        item = self.current()
        if isinstance(item, Category) and item.children:
            self.expanded[item.path] = True

    def collapse(self) -> None:
        """Collapse the category under the cursor, or jump to the parent row."""
        rows = self.rows()
        if not rows:
            return
        row = rows[self.cursor]
        if isinstance(row.item, Category) and self.expanded.get(row.item.path):
            self.expanded[row.item.path] = False
            return
        for i in range(self.cursor - 1, -1, -1):
            if rows[i].depth < row.depth:
                self.cursor = i
                return

    def toggle_expanded(self) -> None:
        item = self.current()
        if isinstance(item, Category):
            self.expanded[item.path] = not self.expanded.get(item.path, False)
            self.clamp()


# =============================================================================
# App (state + reducer)
# =============================================================================


class App:
    """Launcher state machine. No curses calls in here."""

    def __init__(self, config: dict, roots=(), spawner: Spawner | None = None,
                 builder: GridBuilder | None = None, config_path: Path = None,
                 templates_path: Path = None, cd_target_path: Path = None,
                 config_error: Error | None = None, cwd: str | None = None):
        spawn_config = config.get("spawn", {})
        ui_config = config.get("ui", {})

        self.spawner = spawner or Spawner(settle_delay=spawn_config.get("settle_time", 0.01))
        self.builder = builder or GridBuilder(self.spawner)
        self.config_path = config_path or config_loader.CONFIG_PATH
        self.templates_path = templates_path or template_store.TEMPLATES_PATH
        self.cd_target_path = cd_target_path or config_loader.CD_TARGET_PATH
        self.inside = self.spawner.inside()
        self.cwd = cwd or os.getcwd()

        self.show_title = ui_config.get("show_title", True)
        self.show_status = ui_config.get("show_status", True)
        self.adaptive = ui_config.get("adaptive", True)
        self.batch_layout = LayoutPreset.parse(spawn_config.get("default_layout"))

        self.width = 80
        self.height = 24
        self.running = True
        self.view = View.LAUNCH

        # Launch view
        self.trees = {TreePane.GLOBAL: TreeState(), TreePane.PROJECTS: TreeState()}
        self.active_tree = TreePane.GLOBAL
        self.selection = SelectionSet()
        self.show_info = False    # mobile only: info panel instead of the tree

        # Templates view
        self.templates: tuple = ()
        self.templates_loaded = False
        self.template_cursor = 0
        self.preview_scroll = 0
        self.focus = Focus.LIST
        self.last_upper_focus = Focus.LIST

        self.sessions: tuple = ()
        self.session_cursor = 0
        self.captured_session: str | None = None
        self.captured_lines: tuple = ()
        self.preview_sessions = False

        # Text entry in the Sessions panel: "rename" or "kill_confirm"
        self.input_mode: str | None = None
        self.input_buffer = ""
        self.input_target = ""

        self.status = ""
        # Set when the UI exits: session to attach to, or a launch that
        # must run after curses has released the terminal
        self.pending_attach: str | None = None
        self.post_exit: Callable[[], Result] | None = None

        self.set_roots(roots)
        if config_error is not None:
            self.status = f"Config: {config_error.message.splitlines()[0]}"

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def set_roots(self, roots) -> None:
        global_roots, project_roots = split_roots(roots)
        self.trees[TreePane.GLOBAL].set_roots(global_roots)
        self.trees[TreePane.PROJECTS].set_roots(project_roots)
        surviving = [path for path in self.selection.paths() if find_item(roots, path) is not None]
        if len(surviving) != len(self.selection):
            self.selection = SelectionSet(surviving)
        if not self.tree.roots:
            other = TreePane.PROJECTS if self.active_tree == TreePane.GLOBAL else TreePane.GLOBAL
            if self.trees[other].roots:
                self.active_tree = other

    @property
    def tree(self) -> TreeState:
        return self.trees[self.active_tree]

    def current_item(self):
        return self.tree.current()

    def current_template(self):
        if 0 <= self.template_cursor < len(self.templates):
            return self.templates[self.template_cursor]
        return None

    def current_session(self):
        if 0 <= self.session_cursor < len(self.sessions):
            return self.sessions[self.session_cursor]
        return None

    def all_rows(self) -> list[list[FlattenedRow]]:
        return [self.trees[TreePane.GLOBAL].rows(), self.trees[TreePane.PROJECTS].rows()]

    def panel_heights(self) -> PanelHeights:
        return compute_panel_heights(
            self.height, self.focus, adaptive=self.adaptive,
            last_upper_focus=self.last_upper_focus, chrome_rows=CHROME_ROWS
        )

    def info_lines(self) -> list[str]:
        item = self.current_item()
        lines = describe_item(item) if item is not None else ["No items configured", "", "Press e to edit config"]
        if self.selection:
            lines.extend(["", f"Selected: {len(self.selection)} items", f"Batch layout: {self.batch_layout.value}"])
            for option in suggest_layouts(len(self.selection)):
                lines.append(f"  {option.name} ({option.layout.value}) - {option.description}")
        return lines

    def preview_lines(self) -> list[str]:
        if self.preview_sessions:
            return self.capture_lines()
        template = self.current_template()
        if template is None:
            return ["No templates"]
        lines = [template.name, ""]
        if template.description:
            lines.extend([template.description, ""])
        lines.append(f"Category: {template.category}")
        lines.append(f"Layout: {template.layout}")
        lines.append(f"Working Dir: {template.working_dir}")
        lines.extend(["", "Panes:"])
        for i, pane in enumerate(template.panes):
            title = f"{pane.title}: " if pane.title else ""
            lines.append(f"  {i}. {title}{pane.command}")
        return lines

    def capture_lines(self) -> list[str]:
        """Preview of the active pane of the session under the cursor."""
        session = self.current_session()
        if session is None:
            return ["No session selected"]
        header = [f"Session: {session.name}", ""]
        if self.captured_session != session.name:
            return header + ["Capturing..."]
        return header + list(self.captured_lines)

    def session_lines(self) -> list[str]:
        if not self.sessions:
            return ["No tmux sessions"]
        return [
            f"{s.name}  {s.windows} windows  {'attached' if s.attached else 'detached'}  {s.created}"
            for s in self.sessions
        ]

    def status_line(self) -> str:
        if self.input_mode == "rename":
            return f"Rename session '{self.input_target}': {self.input_buffer}_"
        if self.input_mode == "kill_confirm":
            return f"Kill session '{self.input_target}'? (y/n)"
        if self.status:
            return self.status
        parts = [f"layout {self.batch_layout.value}", f"{len(self.sessions)} sessions"]
        if self.selection:
            parts.insert(0, f"{len(self.selection)} selected")
        if self.view == View.TEMPLATES:
            parts.append("adaptive" if self.adaptive else "fixed")
        return "  ".join(parts)

    # -------------------------------------------------------------------------
    # Reducer
    # -------------------------------------------------------------------------

    def update(self, msg) -> list[Effect]:
        """Apply one message. Returns effects to run."""
        if isinstance(msg, KeyPressed):
            return self._on_key(msg.key)
        if isinstance(msg, MouseClicked):
            return self._on_click(msg.x, msg.y)
        if isinstance(msg, Resized):
            self.width, self.height = msg.width, msg.height
            return []
        if isinstance(msg, ConfigLoaded):
            self.set_roots(msg.roots)
            self.status = f"Config: {msg.error.message.splitlines()[0]}" if msg.error else "Config reloaded"
            return []
        if isinstance(msg, SpawnFinished):
            return self._on_spawn_finished(msg)
        if isinstance(msg, TemplatesLoaded):
            return self._on_templates_loaded(msg)
        if isinstance(msg, SessionsLoaded):
            return self._on_sessions_loaded(msg)
        if isinstance(msg, PaneCaptured):
            if msg.error:
                self.status = f"Error: {msg.error.message}"
                return []
            self.captured_session = msg.session
            self.captured_lines = msg.lines
            self.preview_scroll = 0
            return []
        if isinstance(msg, SessionChanged):
            if msg.error:
                self.status = f"Error: {msg.error.message}"
                return []
            self.status = msg.status
            return [self.load_sessions_effect()]
        if isinstance(msg, SessionSaved):
            if msg.error:
                self.status = f"Error: {msg.error.message}"
                return []
            self.templates = msg.templates
            self.templates_loaded = True
            self.status = f"Saved session '{msg.session}' as a template"
            return []
        if isinstance(msg, EditorClosed):
            if msg.error:
                self.status = f"Error: {msg.error.message}"
                return []
            return [self.reload_config_effect()]
        if isinstance(msg, CdTargetWritten):
            if msg.error:
                self.status = f"Error: {msg.error.message}"
                return []
            self.running = False
            return []
        if isinstance(msg, EffectFailed):
            self.status = f"Error: {msg.error.message}"
            return []
        raise TypeError(f"Unknown message: {type(msg).__name__}")

    def _on_key(self, key: int) -> list[Effect]:
        if self.input_mode is not None:
            return self._on_input_key(key)
        if key == ord("q"):
            self.running = False
            return []
        if key == ord("t"):
            return self._toggle_view()
        if key == ord("e"):
            return [self.edit_config_effect()]
        if key == ord("r"):
            self.status = "Refreshing sessions..."
            return [self.load_sessions_effect()]
        if key == ord("a"):
            self.adaptive = not self.adaptive
            self.status = f"Adaptive layout {'on' if self.adaptive else 'off'}"
            return []
        if key == ord("L"):
            index = (BATCH_LAYOUTS.index(self.batch_layout) + 1) % len(BATCH_LAYOUTS)
            self.batch_layout = BATCH_LAYOUTS[index]
            self.status = f"Batch layout: {self.batch_layout.value}"
            return []

        self.status = ""
        if self.view == View.TEMPLATES:
            return self._on_templates_key(key)
        return self._on_launch_key(key)

    def _toggle_view(self) -> list[Effect]:
        self.status = ""
        if self.view == View.TEMPLATES:
            self.view = View.LAUNCH
            return []
        self.view = View.TEMPLATES
        if not self.templates_loaded:
            return [self.load_templates_effect()]
        return []

    # -------------------------------------------------------------------------
    # Launch view
    # -------------------------------------------------------------------------

    def _on_launch_key(self, key: int) -> list[Effect]:
        tree = self.tree
        if key in KEY_UP_CODES:
            tree.move(-1)
        elif key in KEY_DOWN_CODES:
            tree.move(1)
        elif key in KEY_RIGHT_CODES:
            tree.expand()
        elif key in KEY_LEFT_CODES:
            tree.collapse()
        elif key == ord(" "):
            item = tree.current()
            if isinstance(item, Category):
                tree.toggle_expanded()
            elif item is not None:
                self.selection.toggle_item(item)
        elif key == ord("c"):
            self.selection.clear()
        elif key == KEY_TAB:
            self.active_tree = TreePane.PROJECTS if self.active_tree == TreePane.GLOBAL else TreePane.GLOBAL
        elif key == ord("i"):
            if select_breakpoint(self.width, self.height) == Breakpoint.MOBILE:
                self.show_info = not self.show_info
        elif key in KEY_ENTER_CODES:
            return self._on_enter()
        return []

    def _on_enter(self) -> list[Effect]:
        item = self.current_item()
        if item is None:
            return []

        if isinstance(item, Category) and item.cwd:
            return [self.write_cd_target_effect(item.cwd)]

        if self.selection:
            items = self.selection.gather(*self.all_rows())
            if items:
                return self._launch_batch(items, self.batch_layout, f"{len(items)} items")

        if isinstance(item, Command):
            return self._launch_command(item)
        if isinstance(item, Profile):
            return self._launch_batch([item], item.layout, item.name)

        self.tree.toggle_expanded()
        return []

    def _launch_batch(self, items, layout: LayoutPreset, label: str) -> list[Effect]:
        request = build_request(items, layout)
        spawner = self.spawner

        if self.inside:
            # Pane 0 is in this window; run once curses has let go of it
            self.post_exit = lambda: spawner.spawn_request(request)
            self.running = False
            return []

        self.status = f"Launching {label}..."
        return [Effect(
            "spawn",
            lambda: SpawnFinished(spawner.spawn_request(request, attach=False), label, attach=True)
        )]

    def _launch_command(self, item: Command) -> list[Effect]:
        spawner = self.spawner
        mode = item.spawn_mode

        if self.inside and mode in (SpawnMode.CURRENT_PANE, SpawnMode.TMUX_LAYOUT):
            self.post_exit = lambda: spawner.spawn_single(item)
            self.running = False
            return []

        attach = not self.inside and mode != SpawnMode.XTERM_WINDOW
        self.status = f"Launching {item.name}..."
        return [Effect(
            "spawn",
            lambda: SpawnFinished(spawner.spawn_single(item, attach=False), item.name, attach=attach)
        )]

    def _on_spawn_finished(self, msg: SpawnFinished) -> list[Effect]:
        if msg.result.is_err():
            self.status = f"Error: {msg.result.error.message}"
            return []

        self.selection.clear()
        if msg.attach:
            self.pending_attach = msg.result.value
            self.running = False
            return []

        self.status = f"Launched {msg.label}"
        return [self.load_sessions_effect()]

    # -------------------------------------------------------------------------
    # Templates view
    # -------------------------------------------------------------------------

    def _on_templates_key(self, key: int) -> list[Effect]:
        if key == KEY_TAB:
            return self._set_focus({
                Focus.LIST: Focus.PREVIEW,
                Focus.PREVIEW: Focus.COMMAND,
                Focus.COMMAND: Focus.LIST,
            }[self.focus])
        if key in KEY_UP_CODES:
            return self._scroll_focused(-1)
        if key in KEY_DOWN_CODES:
            return self._scroll_focused(1)
        if self.focus == Focus.COMMAND:
            return self._on_sessions_key(key)
        if key in KEY_ENTER_CODES:
            return self._create_from_template()
        if key == ord("d") and self.current_template() is not None:
            return [self.delete_template_effect(self.template_cursor)]
        return []

    def _set_focus(self, focus: Focus) -> list[Effect]:
        self.focus = focus
        if focus in (Focus.LIST, Focus.PREVIEW):
            self.last_upper_focus = focus
        # Preview follows whichever list was focused last
        if focus == Focus.LIST:
            self.preview_sessions = False
        elif focus == Focus.COMMAND and not self.preview_sessions:
            self.preview_sessions = True
            self.preview_scroll = 0
            return self._capture_current()
        return []

    def _scroll_focused(self, delta: int) -> list[Effect]:
        if self.focus == Focus.LIST:
            count = len(self.templates)
            self.template_cursor = max(0, min(count - 1, self.template_cursor + delta))
            self.preview_scroll = 0
        elif self.focus == Focus.PREVIEW:
            self.preview_scroll = max(0, min(len(self.preview_lines()) - 1, self.preview_scroll + delta))
        else:
            before = self.session_cursor
            self.session_cursor = max(0, min(len(self.sessions) - 1, self.session_cursor + delta))
            if self.session_cursor != before:
                return self._capture_current()
        return []

    # -------------------------------------------------------------------------
    # Sessions panel
    # -------------------------------------------------------------------------

    def _on_sessions_key(self, key: int) -> list[Effect]:
        session = self.current_session()
        if session is None:
            return []
        if key in KEY_ENTER_CODES:
            self.pending_attach = session.name
            self.running = False
        elif key == ord("R"):
            self.input_mode = "rename"
            self.input_buffer = session.name
            self.input_target = session.name
        elif key == ord("x"):
            self.input_mode = "kill_confirm"
            self.input_target = session.name
        elif key == ord("s"):
            self.status = f"Saving session '{session.name}'..."
            return [self.save_session_effect(session.name)]
        return []

    def _on_input_key(self, key: int) -> list[Effect]:
        """Keys while a rename prompt or kill confirmation is open."""
        target = self.input_target
        if self.input_mode == "kill_confirm":
            if key in (ord("y"), ord("Y")):
                self._end_input()
                self.status = f"Killing session '{target}'..."
                return [self.kill_session_effect(target)]
            if key in (ord("n"), ord("N"), KEY_ESC):
                self._end_input()
                self.status = "Kill cancelled"
            return []

        if key == KEY_ESC:
            self._end_input()
            self.status = "Rename cancelled"
        elif key in KEY_ENTER_CODES:
            new_name = self.input_buffer
            self._end_input()
            if not new_name or new_name == target:
                self.status = "Rename cancelled (no change)"
                return []
            self.status = f"Renaming '{target}' to '{new_name}'..."
            return [self.rename_session_effect(target, new_name)]
        elif key in KEY_BACKSPACE_CODES:
            self.input_buffer = self.input_buffer[:-1]
        elif key == ord(" "):
            # tmux session names conventionally use hyphens
            self.input_buffer += "-"
        elif 32 < key < 127:
            self.input_buffer += chr(key)
        return []

    def _end_input(self) -> None:
        self.input_mode = None
        self.input_buffer = ""
        self.input_target = ""

    def _capture_current(self) -> list[Effect]:
        session = self.current_session()
        if session is None:
            return []
        return [self.capture_session_effect(session.name)]

    def _on_sessions_loaded(self, msg: SessionsLoaded) -> list[Effect]:
        if msg.error:
            self.status = f"Error: {msg.error.message}"
            return []
        self.sessions = msg.sessions
        self.session_cursor = max(0, min(self.session_cursor, len(self.sessions) - 1))
        if self.preview_sessions:
            return self._capture_current()
        return []

    def _create_from_template(self) -> list[Effect]:
        template = self.current_template()
        if template is None:
            return []
        builder = self.builder
        self.status = f"Creating {template.name}..."
        return [Effect(
            "create_session",
            lambda: SpawnFinished(builder.create_session(template), template.name, attach=True)
        )]

    def _on_templates_loaded(self, msg: TemplatesLoaded) -> list[Effect]:
        if msg.error:
            self.status = f"Templates: {msg.error.message}"
            return []
        self.templates = msg.templates
        self.templates_loaded = True
        self.template_cursor = max(0, min(self.template_cursor, len(self.templates) - 1))
        self.preview_scroll = 0
        return []

    # -------------------------------------------------------------------------
    # Mouse
    # -------------------------------------------------------------------------

    def _on_click(self, x: int, y: int) -> list[Effect]:
        if self.input_mode is not None:
            return []
        if self.view == View.TEMPLATES:
            header = TITLE_ROWS if self.show_title else 0
            heights = self.panel_heights()
            panel = panel_at_row(y, heights, header_rows=header)
            if panel is None:
                return []
            effects = self._set_focus(panel)
            if panel == Focus.LIST:
                visible = heights.list
                row = y - header - 1
                index = scroll_offset(self.template_cursor, visible) + row
                if 0 <= row < visible and index < len(self.templates):
                    self.template_cursor = index
                    self.preview_scroll = 0
            elif panel == Focus.COMMAND:
                visible = heights.command
                row = y - header - heights.list - heights.preview - 2 * BORDER_ROWS - 1
                index = scroll_offset(self.session_cursor, visible) + row
                if 0 <= row < visible and index < len(self.sessions) and index != self.session_cursor:
                    self.session_cursor = index
                    return self._capture_current()
            return effects

        layout = dual_pane_layout(self.width, self.height, self.show_info)
        top = LAUNCH_HEADER_ROWS
        if not top <= y < top + layout.tree_height + BORDER_ROWS:
            return []

        if layout.breakpoint == Breakpoint.DESKTOP:
            self.active_tree = TreePane.GLOBAL if x < layout.left_width else TreePane.PROJECTS

        tree = self.tree
        row = y - top - 1
        index = scroll_offset(tree.cursor, layout.tree_height) + row
        if 0 <= row < layout.tree_height and index < len(tree.rows()):
            tree.cursor = index
        return []

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    def load_sessions_effect(self) -> Effect:
        tmux = self.spawner.tmux

        def run():
            try:
                return SessionsLoaded(tuple(tmux.list_sessions()))
            except LauncherError as e:
                return SessionsLoaded(error=e.to_error())
        return Effect("list_sessions", run)

    def capture_session_effect(self, name: str) -> Effect:
        tmux = self.spawner.tmux

        def run():
            try:
                panes = tmux.active_window_panes(name)
                pane = next((p for p in panes if p.active), panes[0] if panes else None)
                if pane is None:
                    return PaneCaptured(name, ("No panes",))
                text = tmux.capture_pane(pane.pane_id)
            except LauncherError as e:
                return PaneCaptured(name, error=e.to_error())
            # curses cannot draw the captured colors
            return PaneCaptured(name, tuple(strip_ansi(text).rstrip("\n").splitlines()))
        return Effect("capture_pane", run)

    def rename_session_effect(self, old_name: str, new_name: str) -> Effect:
        tmux = self.spawner.tmux

        def run():
            try:
                tmux.rename_session(old_name, new_name)
            except LauncherError as e:
                return SessionChanged("", error=e.to_error())
            return SessionChanged(f"Renamed '{old_name}' to '{new_name}'")
        return Effect("rename_session", run)

    def kill_session_effect(self, name: str) -> Effect:
        tmux = self.spawner.tmux

        def run():
            try:
                tmux.kill_session(name)
            except LauncherError as e:
                return SessionChanged("", error=e.to_error())
            return SessionChanged(f"Killed session '{name}'")
        return Effect("kill_session", run)

    def save_session_effect(self, name: str) -> Effect:
        tmux = self.spawner.tmux
        path = self.templates_path

        def run():
            try:
                panes = tmux.active_window_panes(name)
                if not panes:
                    return SessionSaved(name, error=Error(ErrorType.NOT_AVAILABLE, f"Session '{name}' has no panes"))
                template_store.add_template(template_store.template_from_panes(name, panes), path)
                return SessionSaved(name, tuple(template_store.load_templates(path)))
            except (LauncherError, OSError, ValueError) as e:
                return SessionSaved(name, error=error_from_exception(e))
        return Effect("save_session", run)

    def load_templates_effect(self) -> Effect:
        path = self.templates_path

        def run():
            try:
                return TemplatesLoaded(tuple(template_store.load_templates(path)))
            except (OSError, ValueError) as e:
                return TemplatesLoaded(error=error_from_exception(e))
        return Effect("load_templates", run)

    def delete_template_effect(self, index: int) -> Effect:
        path = self.templates_path

        def run():
            try:
                template_store.delete_template(index, path)
                return TemplatesLoaded(tuple(template_store.load_templates(path)))
            except (OSError, ValueError) as e:
                return TemplatesLoaded(error=error_from_exception(e))
        return Effect("delete_template", run)

    def reload_config_effect(self) -> Effect:
        path = self.config_path

        def run():
            config, roots, error = config_loader.load_launch_tree(path)
            return ConfigLoaded(config, roots, error)
        return Effect("reload_config", run)

    def edit_config_effect(self) -> Effect:
        path = self.config_path

        def run():
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                open_in_editor(path)
            except (LauncherError, OSError) as e:
                return EditorClosed(error=error_from_exception(e))
            return EditorClosed()
        return Effect("edit_config", run, foreground=True)

    def write_cd_target_effect(self, cwd: str) -> Effect:
        target_file = self.cd_target_path

        def run():
            try:
                config_loader.write_cd_target(cwd, target_file)
            except OSError as e:
                return CdTargetWritten(cwd, error=error_from_exception(e))
            return CdTargetWritten(cwd)
        return Effect("write_cd_target", run)


# =============================================================================
# Screen (curses)
# =============================================================================


class Screen:
    """Paints an App and feeds it input. Effects run on daemon threads."""

    def __init__(self, stdscr, app: App, mouse: bool = True):
        self.stdscr = stdscr
        self.app = app
        self.mouse = mouse
        self.inbox: queue.Queue = queue.Queue()

        curses.curs_set(0)
        self.stdscr.keypad(True)
        self.stdscr.timeout(100)
        self._init_colors()
        if mouse:
            curses.mousemask(curses.BUTTON1_CLICKED | curses.BUTTON1_PRESSED)

    def _init_colors(self):
        try:
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(1, curses.COLOR_CYAN, -1)      # Active border / title
            curses.init_pair(2, curses.COLOR_YELLOW, -1)    # Status
            curses.init_pair(3, curses.COLOR_BLUE, -1)      # Inactive border
        except curses.error:
            pass

    def run(self) -> None:
        """Main loop: draw, read input, apply finished effects."""
        height, width = self.stdscr.getmaxyx()
        self.dispatch(Resized(width, height))
        self.start(self.app.load_sessions_effect())

        while self.app.running:
            try:
                self.draw()
                self._read_input()
                self._drain()
            except KeyboardInterrupt:
                break

    def dispatch(self, msg) -> None:
        for effect in self.app.update(msg):
            self.start(effect)

    def start(self, effect: Effect) -> None:
        logger.debug("Effect started", operation="effect", effect=effect.name)
        if effect.foreground:
            curses.def_prog_mode()
            curses.endwin()
            try:
                self.inbox.put(self._run_effect(effect))
            finally:
                curses.reset_prog_mode()
                self.stdscr.clear()
            return
        threading.Thread(target=lambda: self.inbox.put(self._run_effect(effect)), daemon=True).start()

    def _run_effect(self, effect: Effect):
        try:
            return effect.run()
        except Exception as e:
            logger.exception(
                "Effect raised",
                operation="effect",
                status="failed",
                effect=effect.name
            )
            return EffectFailed(effect.name, error_from_exception(e))

    def _drain(self) -> None:
        while True:
            try:
                msg = self.inbox.get_nowait()
            except queue.Empty:
                return
            self.dispatch(msg)

    def _read_input(self) -> None:
        try:
            key = self.stdscr.getch()
        except curses.error:
            return
        if key == -1:
            return
        if key == curses.KEY_RESIZE:
            curses.update_lines_cols()
            height, width = self.stdscr.getmaxyx()
            self.stdscr.clear()
            self.dispatch(Resized(width, height))
            return
        if key == curses.KEY_MOUSE:
            try:
                _, x, y, _, _ = curses.getmouse()
            except curses.error:
                return
            self.dispatch(MouseClicked(x, y))
            return
        self.dispatch(KeyPressed(key))

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def _text(self, y: int, x: int, text: str, attr: int = 0, width: int | None = None):
        """Draw text padded/clipped to width cells, ignoring edge errors."""
        max_y, max_x = self.stdscr.getmaxyx()
        if y < 0 or y >= max_y or x < 0 or x >= max_x:
            return
        width = min(width if width is not None else max_x - x, max_x - x)
        if y == max_y - 1 and x + width >= max_x:
            width = max_x - x - 1
        if width <= 0:
            return
        try:
            self.stdscr.addstr(y, x, fit_to_width(text, width), attr)
        except curses.error:
            pass

    def _box(self, y: int, x: int, height: int, width: int, title: str, lines: list[str],
             active: bool = False, cursor: int | None = None, scroll: int = 0):
        if height < BORDER_ROWS + 1 or width < 4:
            return
        border = curses.color_pair(1 if active else 3)
        if active:
            border |= curses.A_BOLD
        label = f" {title} " if title else ""
        top = BOX_TL + BOX_H + label + BOX_H * max(0, width - 3 - len(label)) + BOX_TR
        self._text(y, x, top, border, width)

        inner = height - BORDER_ROWS
        for i in range(inner):
            row = y + 1 + i
            self._text(row, x, BOX_V, border, 1)
            index = scroll + i
            content = lines[index] if index < len(lines) else ""
            attr = curses.A_REVERSE if cursor is not None and index == cursor else 0
            self._text(row, x + 1, content, attr, width - 2)
            self._text(row, x + width - 1, BOX_V, border, 1)

        self._text(y + height - 1, x, BOX_BL + BOX_H * (width - 2) + BOX_BR, border, width)

    def draw(self) -> None:
        self.stdscr.erase()
        if self.app.view == View.TEMPLATES:
            self._draw_templates()
        else:
            self._draw_launch()
        self.stdscr.refresh()

    def _draw_footer(self, help_text: str) -> None:
        app = self.app
        height = app.height
        if app.show_status:
            attr = curses.color_pair(2)
            self._text(height - 2, 0, app.status_line(), attr)
        self._text(height - 1, 0, help_text, curses.A_DIM)

    def _tree_lines(self, tree: TreeState) -> list[str]:
        lines = []
        for i, row in enumerate(tree.rows()):
            lines.append(render_tree_row(
                row,
                is_cursor=i == tree.cursor,
                selected=row.item.path in self.app.selection,
                expanded=bool(tree.expanded.get(row.item.path)),
            ))
        return lines

    def _draw_launch(self) -> None:
        app = self.app
        layout = dual_pane_layout(app.width, app.height, app.show_info)

        if app.show_title:
            title = "tmux-launcher" + ("  [inside tmux]" if app.inside else "")
            self._text(0, 0, title, curses.color_pair(1) | curses.A_BOLD)
        self._text(1, 0, f"cwd: {app.cwd}", curses.A_DIM)

        top = LAUNCH_HEADER_ROWS
        box_height = layout.tree_height + BORDER_ROWS
        titles = {TreePane.GLOBAL: "Global", TreePane.PROJECTS: "Projects"}

        if layout.breakpoint == Breakpoint.DESKTOP:
            panes = [(TreePane.GLOBAL, 0, layout.left_width), (TreePane.PROJECTS, layout.left_width, layout.right_width)]
        else:
            panes = [(app.active_tree, 0, layout.left_width)]

        for pane, x, width in panes:
            tree = app.trees[pane]
            active = pane == app.active_tree
            self._box(top, x, box_height, width, titles[pane], self._tree_lines(tree),
                      active=active, cursor=tree.cursor if active else None,
                      scroll=scroll_offset(tree.cursor, layout.tree_height))

        if layout.info_height >= BORDER_ROWS + 1:
            info_top = top + box_height if layout.tree_height else top
            self._box(info_top, 0, layout.info_height, app.width, "Info", app.info_lines())

        self._draw_footer(LAUNCH_HELP)

    def _draw_templates(self) -> None:
        app = self.app
        heights = app.panel_heights()
        y = 0
        if app.show_title:
            self._text(0, 0, "tmux-launcher  templates", curses.color_pair(1) | curses.A_BOLD)
            y = TITLE_ROWS

        names = [f"{t.name}  ({t.layout}, {t.category})" for t in app.templates] or ["No templates"]

        panels = [
            (Focus.LIST, "Templates", names, app.template_cursor, scroll_offset(app.template_cursor, heights.list)),
            (Focus.PREVIEW, "Preview", app.preview_lines(), None, app.preview_scroll),
            (Focus.COMMAND, "Sessions", app.session_lines(),
             app.session_cursor if app.focus == Focus.COMMAND and app.sessions else None,
             scroll_offset(app.session_cursor, heights.command)),
        ]
        for (panel, title, lines, cursor, scroll), inner in zip(panels, heights):
            self._box(y, 0, inner + BORDER_ROWS, app.width, title, lines,
                      active=app.focus == panel, cursor=cursor, scroll=scroll)
            y += inner + BORDER_ROWS

        self._draw_footer(TEMPLATES_HELP)


def run_ui(stdscr, app: App, mouse: bool = True) -> App:
    """curses.wrapper target."""
    Screen(stdscr, app, mouse=mouse).run()
    return app
