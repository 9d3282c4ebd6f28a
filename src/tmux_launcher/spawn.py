"""
Spawn orchestration.

tmux renumbers panes as new ones are split off, so pane indices are never
tracked while panes are being created. Pane 0 is the exception: it exists
before any split, so its command is typed right away. The rest runs in
two phases:

1. create all remaining panes (one split per extra item, each followed by
   a short settle delay), then apply the layout once;
2. only then address those panes by their final index and type the commands.
"""

from __future__ import annotations

import os
import re
import shlex
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Union
from uuid import uuid4

from loguru import logger

from .errors import ExternalToolError, LauncherError, PaneCountMismatch, Result
from .logging_config import trace_id_var
from .tmux import TmuxClient, inside_tmux
from .tree import Category, Command, LaunchItem, LayoutPreset, Profile, SpawnMode

# Pause after each split-window; back-to-back splits upset tmux's layout engine
SETTLE_DELAY = 0.01

FALLBACK_SESSION_NAME = "launch"


# =============================================================================
# Spawn Requests
# =============================================================================


@dataclass(frozen=True)
class LaunchTuple:
    name: str
    command: str = ""
    cwd: str = ""


@dataclass(frozen=True)
class GridSpec:
    cols: int
    rows: int

    @property
    def pane_count(self) -> int:
        return self.cols * self.rows

    def __str__(self) -> str:
        return f"{self.cols}x{self.rows}"


LayoutSpec = Union[LayoutPreset, GridSpec]


@dataclass(frozen=True)
class SpawnRequest:
    items: tuple[LaunchTuple, ...]
    layout: LayoutSpec = LayoutPreset.TILED
    cwd_override: str | None = None


def expand_path(path: str) -> str:
    if not path:
        return ""
    return os.path.expanduser(path)


def to_launch_tuples(item: LaunchItem) -> list[LaunchTuple]:
    """Launch tuples for one tree item. Profiles expand to one tuple per pane."""
    if isinstance(item, Command):
        return [LaunchTuple(item.name, item.command, expand_path(item.cwd))]
    if isinstance(item, Profile):
        return [
            LaunchTuple(f"{item.name}-pane-{i}", pane.command, expand_path(pane.cwd))
            for i, pane in enumerate(item.panes)
        ]
    if isinstance(item, Category):
        raise ValueError(f"Category '{item.name}' cannot be launched")
    raise TypeError(f"Unknown launch item type: {type(item).__name__}")


def build_request(items: list[LaunchItem], layout: LayoutSpec, cwd_override: str | None = None) -> SpawnRequest:
    tuples = []
    for item in items:
        tuples.extend(to_launch_tuples(item))
    return SpawnRequest(items=tuple(tuples), layout=layout, cwd_override=cwd_override)


def layout_name(layout: LayoutSpec) -> str:
    """tmux select-layout argument. Grids map to the tiled preset."""
    if isinstance(layout, GridSpec):
        return LayoutPreset.TILED.value
    if isinstance(layout, LayoutPreset):
        return layout.value
    raise TypeError(f"Unknown layout spec: {layout!r}")


# =============================================================================
# Session Naming
# =============================================================================


def sanitize_session_name(name: str) -> str:
    """Lowercase, spaces to hyphens, keep only [a-z0-9-]."""
    cleaned = name.lower().replace(" ", "-")
    return re.sub(r"[^a-z0-9-]", "", cleaned)


def generate_session_name(base_name: str, existing: set[str], now: datetime | None = None) -> str:
    """
    Session name for base_name that does not clash with existing.

    The bare slug is used when free; otherwise an HHMMSS suffix is added.
    """
    slug = sanitize_session_name(base_name) or FALLBACK_SESSION_NAME
    if slug not in existing:
        return slug
    now = now or datetime.now()
    return f"{slug}-{now.strftime('%H%M%S')}"


# =============================================================================
# Spawner
# =============================================================================


class Spawner:
    """
    Runs spawn requests against tmux.

    All calls are synchronous; the UI runs spawn() on a worker thread
    and receives the single Result it returns.
    """

    def __init__(self, tmux: TmuxClient | None = None, sleep=time.sleep, clock=datetime.now,
                 inside=None, home: str | None = None, settle_delay: float = SETTLE_DELAY):
        self.tmux = tmux or TmuxClient()
        self._sleep = sleep
        self._clock = clock
        self._inside = inside if inside is not None else inside_tmux
        self._home = home
        self._settle_delay = settle_delay

    def inside(self) -> bool:
        return self._inside() if callable(self._inside) else bool(self._inside)

    def home(self) -> str:
        return self._home or os.path.expanduser("~")

    def settle(self) -> None:
        self._sleep(self._settle_delay)

    def unique_session_name(self, base_name: str) -> str:
        return generate_session_name(base_name, self.tmux.session_names(), now=self._clock())

    # -------------------------------------------------------------------------
    # Multi-pane spawn
    # -------------------------------------------------------------------------

    def spawn(self, items, layout: LayoutSpec = LayoutPreset.TILED, cwd_override: str | None = None,
              attach: bool = True) -> Result[str]:
        """
        Spawn items as panes of one window.

        Args:
            items: LaunchTuples in pane order
            layout: Preset, or a GridSpec (validated, then applied as tiled)
            cwd_override: Directory used for panes without their own cwd
            attach: Attach to a newly created session when done. The UI
                passes False and attaches itself after leaving curses.

        Returns:
            Result with the session name, or the first error (no rollback
            of panes that were already created)
        """
        op_trace_id = str(uuid4())
        token = trace_id_var.set(op_trace_id)
        start_time = time.perf_counter()
        try:
            session_name = self._spawn(list(items), layout, cwd_override, attach)
        except LauncherError as e:
            logger.error(
                "Spawn failed",
                operation="spawn",
                status="failed",
                trace_id=op_trace_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return Result.err(e.to_error())
        finally:
            trace_id_var.reset(token)

        logger.info(
            "Spawn complete",
            operation="spawn",
            status="success",
            trace_id=op_trace_id,
            session=session_name,
            metrics={
                "panes": len(items),
                "duration_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return Result.ok(session_name)

    def spawn_request(self, request: SpawnRequest, attach: bool = True) -> Result[str]:
        return self.spawn(request.items, request.layout, request.cwd_override, attach=attach)

    def _spawn(self, items: list[LaunchTuple], layout: LayoutSpec, cwd_override: str | None,
               attach: bool) -> str:
        if not items:
            raise LauncherError("No items to spawn")

        if isinstance(layout, GridSpec) and len(items) < layout.pane_count:
            raise PaneCountMismatch(
                f"{len(items)} panes supplied but layout {layout} needs {layout.pane_count}",
                supplied=len(items),
                required=layout.pane_count
            )

        base_dir = expand_path(cwd_override) or items[0].cwd or self.home()
        inside = self.inside()

        logger.info(
            "Spawning panes",
            operation="spawn",
            status="started",
            inside_tmux=inside,
            layout=layout_name(layout),
            metrics={"panes": len(items)}
        )

        # Phase 0: pane 0 exists as soon as the session or window does
        if inside:
            target = self.tmux.current_target()
            session_name = target.split(":", 1)[0]
        else:
            session_name = self.unique_session_name(items[0].name)
            self.tmux.new_session(session_name, items[0].cwd or base_dir)
            target = f"{session_name}:0"

        first = items[0]
        if first.command:
            keys = first.command
            if inside:
                # The existing pane started elsewhere
                keys = f"cd {shlex.quote(first.cwd or base_dir)} && {first.command}"
            self.tmux.send_keys(f"{target}.0", keys, step="send command to pane 0")

        # Phase 1: create every remaining pane, then lay them out once
        for i in range(1, len(items)):
            self.tmux.split_window(target, items[i].cwd or base_dir, step=f"create pane {i}")
            self.settle()

        self.tmux.select_layout(target, layout_name(layout))

        # Phase 2: indices of the split panes are final now
        for i in range(1, len(items)):
            if not items[i].command:
                continue
            self.tmux.send_keys(f"{target}.{i}", items[i].command, step=f"send command to pane {i}")

        if not inside and attach:
            self.tmux.attach(session_name)

        return session_name

    # -------------------------------------------------------------------------
    # Single-command spawn modes
    # -------------------------------------------------------------------------

    def spawn_single(self, item: Command, mode: SpawnMode | None = None, attach: bool = True) -> Result[str]:
        """Launch one command using its spawn mode (or an explicit one)."""
        mode = mode or item.spawn_mode
        cwd = expand_path(item.cwd) or self.home()
        launch = LaunchTuple(item.name, item.command, cwd)

        if mode == SpawnMode.XTERM_WINDOW:
            return self._spawn_xterm(launch)

        # Without a tmux client there is no window to split: use a new session
        if not self.inside() or mode == SpawnMode.TMUX_LAYOUT:
            return self.spawn([launch], LayoutPreset.TILED, attach=attach)

        try:
            if mode == SpawnMode.TMUX_SPLIT_H:
                self.tmux.split_window("", cwd, horizontal=True, command=item.command,
                                       step="split horizontal")
            elif mode == SpawnMode.TMUX_SPLIT_V:
                self.tmux.split_window("", cwd, horizontal=False, command=item.command,
                                       step="split vertical")
            elif mode == SpawnMode.CURRENT_PANE:
                self.tmux.send_keys("", f"cd {shlex.quote(cwd)} && {item.command}",
                                    step="run in current pane")
            else:
                self.tmux.new_window(cwd, item.name, item.command)
        except ExternalToolError as e:
            logger.error(
                "Single spawn failed",
                operation="spawn_single",
                status="failed",
                mode=mode.value,
                error=str(e)
            )
            return Result.err(e.to_error())

        logger.info(
            "Single spawn complete",
            operation="spawn_single",
            status="success",
            mode=mode.value,
            item=item.name
        )
        return Result.ok(item.name)

    def _spawn_xterm(self, launch: LaunchTuple) -> Result[str]:
        shell_cmd = f"cd {shlex.quote(launch.cwd)} && {launch.command}"
        try:
            subprocess.Popen(["xterm", "-e", "sh", "-c", shell_cmd])
        except OSError as e:
            err = ExternalToolError(f"failed to spawn xterm: {e}", step="spawn xterm",
                                    target=launch.name)
            return Result.err(err.to_error())
        return Result.ok(launch.name)


# =============================================================================
# Layout Suggestions
# =============================================================================


@dataclass(frozen=True)
class LayoutOption:
    layout: LayoutPreset
    name: str
    description: str


def suggest_layouts(count: int) -> list[LayoutOption]:
    """Layout choices for the spawn dialog, best first, for count panes."""
    if count <= 1:
        return [LayoutOption(LayoutPreset.MAIN_VERTICAL, "Single Pane", "Launch in current/new pane")]
    if count == 2:
        return [
            LayoutOption(LayoutPreset.EVEN_HORIZONTAL, "Side-by-Side", "Equal width columns"),
            LayoutOption(LayoutPreset.EVEN_VERTICAL, "Top-Bottom", "Equal height rows"),
            LayoutOption(LayoutPreset.MAIN_VERTICAL, "Main Left", "Large left, small right"),
        ]
    if count == 3:
        return [
            LayoutOption(LayoutPreset.MAIN_VERTICAL, "Main + Stack", "Large left, 2 stacked right"),
            LayoutOption(LayoutPreset.TILED, "Tiled", "Automatic grid (2+1)"),
            LayoutOption(LayoutPreset.EVEN_HORIZONTAL, "3 Columns", "Equal width columns"),
        ]
    if count == 4:
        return [
            LayoutOption(LayoutPreset.TILED, "Quad Split", "2x2 grid"),
            LayoutOption(LayoutPreset.MAIN_VERTICAL, "Main + Stack", "Large left, 3 stacked right"),
            LayoutOption(LayoutPreset.EVEN_HORIZONTAL, "4 Columns", "Equal width columns"),
        ]
    return [
        LayoutOption(LayoutPreset.TILED, "Tiled Grid", f"Auto-arrange {count} panes"),
        LayoutOption(LayoutPreset.MAIN_VERTICAL, "Main + Stack", f"1 large, {count - 1} stacked"),
        LayoutOption(LayoutPreset.EVEN_HORIZONTAL, "Columns", f"{count} equal columns"),
    ]
