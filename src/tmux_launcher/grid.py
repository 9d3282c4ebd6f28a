"""
Grid sessions from templates ("2x2", "4x2", ...).

The grid is validated before tmux is touched. Panes are created and laid
out with the tiled preset, then filled row-major: pane index = row*cols + col.
Unlike the batch spawn path, a failure after the session exists kills that
session so a retry starts clean.
"""

from __future__ import annotations

import re
import shlex
from uuid import uuid4

from loguru import logger

from .errors import ExternalToolError, LauncherError, LayoutParseError, PaneCountMismatch, Result
from .logging_config import trace_id_var
from .spawn import GridSpec, Spawner, expand_path, layout_name
from .templates import SessionTemplate

GRID_RE = re.compile(r"^\s*(-?\d+)\s*[xX×]\s*(-?\d+)\s*$")


def parse_grid(layout: str) -> GridSpec:
    """
    Parse "COLSxROWS".

    Raises:
        LayoutParseError: Malformed string or a non-positive dimension
    """
    match = GRID_RE.match(layout or "")
    if not match:
        raise LayoutParseError(
            f"layout must be in format 'COLSxROWS' (e.g. '2x2'), got '{layout}'",
            layout=layout
        )
    cols, rows = int(match.group(1)), int(match.group(2))
    if cols < 1 or rows < 1:
        raise LayoutParseError(f"invalid dimensions: {cols}x{rows}", layout=layout)
    return GridSpec(cols, rows)


def validate_pane_count(panes, grid: GridSpec) -> None:
    if len(panes) < grid.pane_count:
        raise PaneCountMismatch(
            f"template has {len(panes)} panes but layout {grid} requires {grid.pane_count}",
            supplied=len(panes),
            required=grid.pane_count
        )


def pane_assignments(panes, grid: GridSpec) -> dict[int, object]:
    """Final pane index -> pane spec, row-major. Extra specs are ignored."""
    assignments = {}
    for row in range(grid.rows):
        for col in range(grid.cols):
            index = row * grid.cols + col
            assignments[index] = panes[index]
    return assignments


class GridBuilder:
    """Creates a detached session from a SessionTemplate."""

    def __init__(self, spawner: Spawner | None = None):
        self.spawner = spawner or Spawner()
        self.tmux = self.spawner.tmux

    def create_session(self, template: SessionTemplate, cwd_override: str | None = None) -> Result[str]:
        """
        Build the template's grid in a new detached session.

        Returns:
            Result with the session name
        """
        op_trace_id = str(uuid4())
        token = trace_id_var.set(op_trace_id)
        try:
            name = self._create_session(template, cwd_override)
        except LauncherError as e:
            logger.error(
                "Template session failed",
                operation="create_session_from_template",
                status="failed",
                trace_id=op_trace_id,
                template=template.name,
                error=str(e),
                error_type=type(e).__name__
            )
            return Result.err(e.to_error())
        finally:
            trace_id_var.reset(token)

        logger.info(
            "Template session created",
            operation="create_session_from_template",
            status="success",
            trace_id=op_trace_id,
            template=template.name,
            session=name
        )
        return Result.ok(name)

    def _create_session(self, template: SessionTemplate, cwd_override: str | None) -> str:
        grid = parse_grid(template.layout)
        validate_pane_count(template.panes, grid)

        working_dir = expand_path(cwd_override) or expand_path(template.working_dir) or self.spawner.home()
        session_name = self.spawner.unique_session_name(template.name)

        self.tmux.new_session(session_name, working_dir)
        target = f"{session_name}:0"

        try:
            for i in range(1, grid.pane_count):
                self.tmux.split_window(target, working_dir, step=f"create pane {i}")
                self.spawner.settle()
            self.tmux.select_layout(target, layout_name(grid))
        except ExternalToolError:
            self._discard(session_name)
            raise

        for index, pane in sorted(pane_assignments(template.panes, grid).items()):
            pane_target = f"{target}.{index}"
            if pane.working_dir:
                self.tmux.send_keys(
                    pane_target,
                    f"cd {shlex.quote(expand_path(pane.working_dir))}",
                    step=f"change directory in pane {index}"
                )
            if pane.command:
                self.tmux.send_keys(pane_target, pane.command, step=f"send command to pane {index}")

        return session_name

    def _discard(self, session_name: str) -> None:
        try:
            self.tmux.kill_session(session_name)
        except ExternalToolError as e:
            logger.warning(
                "Could not remove half-built session",
                operation="create_session_from_template",
                status="cleanup_failed",
                session=session_name,
                error=str(e)
            )
