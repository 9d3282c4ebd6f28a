"""
Adaptive panel layout.

All row/column budgets for the dashboard come from here, and mouse
hit-testing reuses the same numbers, so a click can never land on a
different panel than the one that was drawn there.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# =============================================================================
# Responsive Breakpoints
# =============================================================================


class Breakpoint(Enum):
    MOBILE = "mobile"      # very short terminal (e.g. Termux with keyboard open)
    COMPACT = "compact"    # narrow / portrait terminal
    DESKTOP = "desktop"


MOBILE_MAX_HEIGHT = 12
COMPACT_MAX_WIDTH = 80


def select_breakpoint(width: int, height: int) -> Breakpoint:
    """Height is checked first: short terminals are MOBILE at any width."""
    if height <= MOBILE_MAX_HEIGHT:
        return Breakpoint.MOBILE
    if width < COMPACT_MAX_WIDTH:
        return Breakpoint.COMPACT
    return Breakpoint.DESKTOP


# =============================================================================
# Three-Panel Stack (list / preview / command)
# =============================================================================


class Focus(Enum):
    LIST = "list"
    PREVIEW = "preview"
    COMMAND = "command"


BORDER_ROWS = 2                      # top + bottom per panel
STACK_BORDER_ROWS = 3 * BORDER_ROWS
TITLE_ROWS = 1
STATUS_ROWS = 2                      # status line + help line
CHROME_ROWS = TITLE_ROWS + STATUS_ROWS

MIN_INNER_HEIGHT = 15
MIN_COMMAND_HEIGHT = 5
COMMAND_PERCENT = 20
FOCUSED_SHARE = 50                   # focused : unfocused = 50 : 30
UNFOCUSED_SHARE = 30


@dataclass(frozen=True)
class PanelHeights:
    """Inner (content) heights; each panel adds BORDER_ROWS when drawn."""
    list: int
    preview: int
    command: int

    def __iter__(self):
        return iter((self.list, self.preview, self.command))

    @property
    def total(self) -> int:
        return self.list + self.preview + self.command


def compute_panel_heights(
    total_height: int,
    focus: Focus,
    adaptive: bool = True,
    last_upper_focus: Focus = Focus.LIST,
    chrome_rows: int = 0,
) -> PanelHeights:
    """
    Split the vertical space between the list, preview and command panels.

    Args:
        total_height: Rows available to the stack plus chrome_rows
        focus: Panel that currently has focus
        adaptive: Grow the focused upper panel (50:30) instead of 50/50
        last_upper_focus: Upper panel that had focus before the command
            panel took it; sizing follows it while COMMAND is focused
        chrome_rows: Title/status rows included in total_height

    Returns:
        PanelHeights. Below MIN_INNER_HEIGHT inner rows the layout is a
        fixed (5, 5, 5) and does not conserve height.
    """
    inner = total_height - chrome_rows - STACK_BORDER_ROWS
    if inner < MIN_INNER_HEIGHT:
        return PanelHeights(5, 5, 5)

    command = max(MIN_COMMAND_HEIGHT, inner * COMMAND_PERCENT // 100)
    remaining = inner - command

    if not adaptive:
        list_height = remaining // 2
        return PanelHeights(list_height, remaining - list_height, command)

    sizing_focus = focus
    if focus == Focus.COMMAND:
        sizing_focus = last_upper_focus

    share = remaining * FOCUSED_SHARE // (FOCUSED_SHARE + UNFOCUSED_SHARE)
    if sizing_focus == Focus.PREVIEW:
        return PanelHeights(remaining - share, share, command)
    if sizing_focus == Focus.LIST:
        return PanelHeights(share, remaining - share, command)

    # No upper panel has ever been focused
    list_height = remaining // 2
    return PanelHeights(list_height, remaining - list_height, command)


def panel_at_row(row: int, heights: PanelHeights, header_rows: int = TITLE_ROWS) -> Focus | None:
    """
    Map a screen row to the panel drawn there.

    Panels are stacked top to bottom in list, preview, command order,
    each occupying its inner height plus BORDER_ROWS.
    """
    y = row - header_rows
    if y < 0:
        return None

    boundary = 0
    for panel, inner_height in zip((Focus.LIST, Focus.PREVIEW, Focus.COMMAND), heights):
        boundary += inner_height + BORDER_ROWS
        if y < boundary:
            return panel
    return None


# =============================================================================
# Dual-Tree Launch View
# =============================================================================

LAUNCH_HEADER_ROWS = 3               # title + cwd + blank
LAUNCH_FOOTER_ROWS = 2               # status + help


@dataclass(frozen=True)
class DualPaneLayout:
    breakpoint: Breakpoint
    left_width: int
    right_width: int                 # 0 when only one tree is shown
    tree_height: int
    info_height: int                 # 0 when the info panel is hidden


def dual_pane_layout(width: int, height: int, show_info: bool = False) -> DualPaneLayout:
    """
    Budgets for the launch view.

    Desktop: two trees side by side (50/50) over a shared info panel,
    trees 2/3 of the height. Compact: one tree over info (3/4 : 1/4).
    Mobile: tree only, or with show_info the info panel in its place.
    """
    content_height = max(0, height - LAUNCH_HEADER_ROWS - LAUNCH_FOOTER_ROWS - BORDER_ROWS)
    bp = select_breakpoint(width, height)

    if bp == Breakpoint.DESKTOP:
        left = width // 2
        tree_height = content_height * 2 // 3
        return DualPaneLayout(bp, left, width - left, tree_height, content_height - tree_height)

    if bp == Breakpoint.COMPACT:
        tree_height = content_height * 3 // 4
        return DualPaneLayout(bp, width, 0, tree_height, content_height - tree_height)

    if show_info:
        return DualPaneLayout(bp, width, 0, 0, content_height + BORDER_ROWS)
    return DualPaneLayout(bp, width, 0, content_height, 0)
