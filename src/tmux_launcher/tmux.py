"""
tmux command-line wrapper.

Every call is one `tmux` subprocess. A non-zero exit is raised as
ExternalToolError carrying the step name, the target and tmux's stderr.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from .errors import ExternalToolError, ExternalToolTimeout

TMUX_BIN = "tmux"
TMUX_TIMEOUT = 10

# Output of list-sessions/list-panes when there is nothing to list
EMPTY_SERVER_MARKERS = ("no server running", "no sessions", "error connecting to")

SESSION_FORMAT = "#{session_name}|#{session_windows}|#{session_attached}|#{session_created}"
WINDOW_FORMAT = "#{window_index}|#{window_name}|#{window_panes}|#{window_active}"
PANE_FORMAT = (
    "#{pane_id}|#{pane_index}|#{pane_current_command}|#{pane_current_path}"
    "|#{pane_active}|#{pane_width}|#{pane_height}|#{pane_left}|#{pane_top}"
)


@dataclass(frozen=True)
class TmuxSession:
    name: str
    windows: int
    attached: bool
    created: str


@dataclass(frozen=True)
class TmuxWindow:
    index: int
    name: str
    panes: int
    active: bool


@dataclass(frozen=True)
class TmuxPane:
    pane_id: str
    index: int
    command: str
    path: str
    active: bool
    width: int
    height: int
    left: int = 0
    top: int = 0


def inside_tmux() -> bool:
    """True when this process runs inside a tmux client ($TMUX is set)."""
    return bool(os.environ.get("TMUX"))


def default_runner(args: list[str], interactive: bool = False) -> subprocess.CompletedProcess:
    """Run tmux. Interactive calls inherit the terminal and are not captured."""
    if interactive:
        return subprocess.run([TMUX_BIN, *args], check=False)
    return subprocess.run(
        [TMUX_BIN, *args],
        capture_output=True,
        text=True,
        timeout=TMUX_TIMEOUT,
        check=False,
    )


def _to_int(value: str, default: int = 0) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def format_created(unix_str: str) -> str:
    """Session creation timestamp to a short local time."""
    try:
        return datetime.fromtimestamp(int(unix_str)).strftime("%b %d %H:%M")
    except (ValueError, OverflowError, OSError):
        return unix_str


class TmuxClient:
    """Thin object over the tmux CLI; the runner is injectable for tests."""

    def __init__(self, runner=None):
        self._runner = runner or default_runner

    # -------------------------------------------------------------------------
    # Core invocation
    # -------------------------------------------------------------------------

    def run(self, step: str, *args: str, target: str = None, interactive: bool = False) -> str:
        """
        Run one tmux subcommand.

        Args:
            step: Human-readable step name used in errors and logs
            *args: tmux arguments (without the binary)
            target: Target the step operates on, for error context
            interactive: Hand the terminal to tmux (attach)

        Returns:
            Captured stdout ("" for interactive calls)

        Raises:
            ExternalToolError: tmux missing or exited non-zero
            ExternalToolTimeout: tmux did not answer within TMUX_TIMEOUT
        """
        argv = list(args)
        logger.debug(
            "tmux call",
            operation="tmux",
            step=step,
            target=target,
            argv=argv
        )

        try:
            if interactive:
                completed = self._runner(argv, interactive=True)
            else:
                completed = self._runner(argv)
        except FileNotFoundError as e:
            raise ExternalToolError(
                f"{step} failed: tmux is not installed", step=step, target=target
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolTimeout(
                f"{step} timed out after {TMUX_TIMEOUT}s", step=step, target=target
            ) from e
        except OSError as e:
            raise ExternalToolError(f"{step} failed: {e}", step=step, target=target) from e

        if completed.returncode != 0:
            stderr = "" if interactive else (completed.stderr or "").strip()
            logger.warning(
                "tmux call failed",
                operation="tmux",
                status="failed",
                step=step,
                target=target,
                returncode=completed.returncode,
                stderr=stderr
            )
            raise ExternalToolError(
                f"{step} failed" + (f" ({target})" if target else ""),
                step=step,
                target=target,
                stderr=stderr,
                returncode=completed.returncode,
            )

        if interactive:
            return ""
        return completed.stdout or ""

    # -------------------------------------------------------------------------
    # Session / pane creation
    # -------------------------------------------------------------------------

    def current_target(self) -> str:
        """session:window of the client this process runs in."""
        out = self.run(
            "get current window", "display-message", "-p", "#{session_name}:#{window_index}"
        )
        return out.strip()

    def new_session(self, name: str, cwd: str) -> None:
        self.run("create session", "new-session", "-d", "-s", name, "-c", cwd, target=name)

    def new_window(self, cwd: str, name: str, command: str) -> None:
        self.run("create window", "new-window", "-c", cwd, "-n", name, "sh", "-c", command, target=name)

    def split_window(self, target: str, cwd: str, horizontal: bool | None = None,
                     command: str | None = None, step: str = "split window") -> None:
        args = ["split-window", "-t", target] if target else ["split-window"]
        if horizontal is True:
            args.append("-h")
        elif horizontal is False:
            args.append("-v")
        args.extend(["-c", cwd])
        if command:
            args.extend(["sh", "-c", command])
        self.run(step, *args, target=target)

    def select_layout(self, target: str, layout: str) -> None:
        self.run(f"apply layout {layout}", "select-layout", "-t", target, layout, target=target)

    def send_keys(self, target: str, keys: str, step: str = "send keys") -> None:
        """Type keys into a pane followed by Enter (C-m)."""
        args = ["send-keys"]
        if target:
            args.extend(["-t", target])
        args.extend([keys, "C-m"])
        self.run(step, *args, target=target)

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def _list(self, step: str, *args: str, target: str = None) -> list[list[str]]:
        try:
            out = self.run(step, *args, target=target)
        except ExternalToolError as e:
            if any(marker in e.stderr for marker in EMPTY_SERVER_MARKERS):
                return []
            raise
        return [line.split("|") for line in out.splitlines() if line.strip()]

    def list_sessions(self) -> list[TmuxSession]:
        sessions = []
        for parts in self._list("list sessions", "list-sessions", "-F", SESSION_FORMAT):
            if len(parts) < 4:
                continue
            sessions.append(TmuxSession(
                name=parts[0],
                windows=_to_int(parts[1]),
                attached=_to_int(parts[2]) >= 1,
                created=format_created(parts[3]),
            ))
        return sessions

    def session_names(self) -> set[str]:
        return {s.name for s in self.list_sessions()}

    def list_windows(self, session: str) -> list[TmuxWindow]:
        windows = []
        for parts in self._list("list windows", "list-windows", "-t", session, "-F", WINDOW_FORMAT,
                                target=session):
            if len(parts) < 4:
                continue
            windows.append(TmuxWindow(
                index=_to_int(parts[0]),
                name=parts[1],
                panes=_to_int(parts[2]),
                active=parts[3] == "1",
            ))
        return windows

    def list_panes(self, session: str, window_index: int) -> list[TmuxPane]:
        target = f"{session}:{window_index}"
        panes = []
        for parts in self._list("list panes", "list-panes", "-t", target, "-F", PANE_FORMAT,
                                target=target):
            if len(parts) < 7:
                continue
            panes.append(TmuxPane(
                pane_id=parts[0],
                index=_to_int(parts[1]),
                command=parts[2],
                path=parts[3],
                active=parts[4] == "1",
                width=_to_int(parts[5]),
                height=_to_int(parts[6]),
                left=_to_int(parts[7]) if len(parts) > 7 else 0,
                top=_to_int(parts[8]) if len(parts) > 8 else 0,
            ))
        return panes

    def active_window_panes(self, session: str) -> list[TmuxPane]:
        """Panes of the session's active window (first window if none is flagged)."""
        windows = self.list_windows(session)
        if not windows:
            return []
        window = next((w for w in windows if w.active), windows[0])
        return self.list_panes(session, window.index)

    def capture_pane(self, pane_id: str) -> str:
        """Visible contents of a pane with ANSI colors (-e)."""
        return self.run("capture pane", "capture-pane", "-p", "-e", "-t", pane_id, target=pane_id)

    # -------------------------------------------------------------------------
    # Session control
    # -------------------------------------------------------------------------

    def attach(self, name: str) -> None:
        self.run("attach session", "attach-session", "-t", name, target=name, interactive=True)

    def switch_client(self, name: str) -> None:
        self.run("switch client", "switch-client", "-t", name, target=name)

    def attach_or_switch(self, name: str) -> None:
        if inside_tmux():
            self.switch_client(name)
        else:
            self.attach(name)

    def kill_session(self, name: str) -> None:
        self.run("kill session", "kill-session", "-t", name, target=name)

    def rename_session(self, old_name: str, new_name: str) -> None:
        self.run("rename session", "rename-session", "-t", old_name, new_name, target=old_name)
