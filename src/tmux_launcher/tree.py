"""Launch item tree: item variants, flattening and row rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# =============================================================================
# Spawn Modes and Layout Presets
# =============================================================================


class SpawnMode(Enum):
    XTERM_WINDOW = "xterm-window"
    TMUX_WINDOW = "tmux-window"
    TMUX_SPLIT_H = "tmux-split-h"
    TMUX_SPLIT_V = "tmux-split-v"
    TMUX_LAYOUT = "tmux-layout"
    CURRENT_PANE = "current-pane"

    @classmethod
    def parse(cls, value: str | None) -> 'SpawnMode':
        """Config string to SpawnMode. Unknown or empty -> TMUX_WINDOW."""
        try:
            return cls(value)
        except ValueError:
            return cls.TMUX_WINDOW


class LayoutPreset(Enum):
    MAIN_VERTICAL = "main-vertical"
    MAIN_HORIZONTAL = "main-horizontal"
    TILED = "tiled"
    EVEN_HORIZONTAL = "even-horizontal"
    EVEN_VERTICAL = "even-vertical"

    @classmethod
    def parse(cls, value: str | None) -> 'LayoutPreset':
        """Config string to LayoutPreset. Unknown or empty -> TILED."""
        try:
            return cls(value)
        except ValueError:
            return cls.TILED


# =============================================================================
# Launch Items
# =============================================================================

# Status glyphs (no U+FE0F variation selectors, they break width math)
GLYPH_EXPANDED = "▼"
GLYPH_COLLAPSED = "▶"
GLYPH_SELECTED = "☑"
GLYPH_UNSELECTED = "☐"


@dataclass(frozen=True)
class PaneSpec:
    command: str = ""
    cwd: str = ""


@dataclass(frozen=True)
class Category:
    name: str
    path: str
    children: tuple = ()
    icon: str = ""
    cwd: str = ""


@dataclass(frozen=True)
class Command:
    name: str
    path: str
    command: str = ""
    cwd: str = ""
    spawn_mode: SpawnMode = SpawnMode.TMUX_WINDOW
    icon: str = ""


@dataclass(frozen=True)
class Profile:
    name: str
    path: str
    layout: LayoutPreset = LayoutPreset.TILED
    panes: tuple[PaneSpec, ...] = ()
    icon: str = ""


LaunchItem = Union[Category, Command, Profile]


def is_selectable(item: LaunchItem) -> bool:
    """Only leaves (commands and profiles) can be selected."""
    if isinstance(item, Category):
        return False
    if isinstance(item, (Command, Profile)):
        return True
    raise TypeError(f"Unknown launch item type: {type(item).__name__}")


def item_kind(item: LaunchItem) -> str:
    if isinstance(item, Category):
        return "Category"
    if isinstance(item, Command):
        return "Command"
    if isinstance(item, Profile):
        return "Profile"
    raise TypeError(f"Unknown launch item type: {type(item).__name__}")


# =============================================================================
# Flattening
# =============================================================================


@dataclass(frozen=True)
class FlattenedRow:
    item: LaunchItem
    depth: int
    is_last: bool
    parent_lasts: tuple[bool, ...] = field(default=())


def flatten(roots, expanded: dict[str, bool]) -> list[FlattenedRow]:
    """
    Flatten a forest into display rows (pre-order).

    A category's children are emitted right after it only when
    expanded[category.path] is true. Collapsed subtrees give one row.

    Args:
        roots: Top-level launch items
        expanded: Path -> expanded flag (missing means collapsed)

    Returns:
        Ordered list of FlattenedRow
    """
    rows: list[FlattenedRow] = []
    for i, item in enumerate(roots):
        _flatten_into(item, 0, i == len(roots) - 1, (), expanded, rows)
    return rows


def _flatten_into(item, depth, is_last, parent_lasts, expanded, rows):
    rows.append(FlattenedRow(item=item, depth=depth, is_last=is_last, parent_lasts=parent_lasts))

    if not isinstance(item, Category):
        return
    if not expanded.get(item.path) or not item.children:
        return

    child_lasts = parent_lasts + (is_last,)
    last_index = len(item.children) - 1
    for i, child in enumerate(item.children):
        _flatten_into(child, depth + 1, i == last_index, child_lasts, expanded, rows)


def count_visible(roots, expanded: dict[str, bool]) -> int:
    """Number of rows flatten() would produce, without building them."""
    total = 0
    stack = list(roots)
    while stack:
        item = stack.pop()
        total += 1
        if isinstance(item, Category) and expanded.get(item.path):
            stack.extend(item.children)
    return total


def find_item(roots, path: str) -> LaunchItem | None:
    stack = list(roots)
    while stack:
        item = stack.pop()
        if item.path == path:
            return item
        if isinstance(item, Category):
            stack.extend(item.children)
    return None


# =============================================================================
# Row Rendering
# =============================================================================


def render_tree_row(row: FlattenedRow, is_cursor: bool, selected: bool, expanded: bool) -> str:
    """Render one row with cursor marker, tree guides, checkbox and name."""
    parts = ["> " if is_cursor else "  "]

    # Guides for ancestor levels (the root level draws nothing)
    for level_is_last in row.parent_lasts[1:]:
        parts.append("  " if level_is_last else "│ ")

    if row.depth > 0:
        parts.append("└─" if row.is_last else "├─")

    item = row.item
    if isinstance(item, Category):
        parts.append((GLYPH_EXPANDED if expanded else GLYPH_COLLAPSED) + " ")
    elif isinstance(item, (Command, Profile)):
        parts.append((GLYPH_SELECTED if selected else GLYPH_UNSELECTED) + " ")
    else:
        raise TypeError(f"Unknown launch item type: {type(item).__name__}")

    if item.icon:
        parts.append(item.icon + " ")

    parts.append(item.name)

    if isinstance(item, Profile):
        parts.append(f" [{item.layout.value}]")

    return "".join(parts)


def describe_item(item: LaunchItem) -> list[str]:
    """Info-panel lines for the item under the cursor."""
    title = f"{item.icon} {item.name}" if item.icon else item.name
    lines = [title, "─" * (len(item.name) + 2), "", f"Type: {item_kind(item)}"]

    if isinstance(item, Category):
        lines.append(f"Children: {len(item.children)} items")
        if item.cwd:
            lines.extend(["", "Project Directory:", item.cwd, "", "Press Enter to cd into this project"])
    elif isinstance(item, Command):
        if item.command:
            lines.append(f"Command: {item.command}")
        if item.cwd:
            lines.append(f"Working Dir: {item.cwd}")
        lines.append(f"Spawn Mode: {item.spawn_mode.value}")
    elif isinstance(item, Profile):
        lines.append(f"Layout: {item.layout.value}")
        lines.append(f"Panes: {len(item.panes)}")
        if item.panes:
            lines.extend(["", "Pane Commands:"])
            for i, pane in enumerate(item.panes, 1):
                lines.append(f"  {i}. {pane.command}")
    else:
        raise TypeError(f"Unknown launch item type: {type(item).__name__}")

    return lines
