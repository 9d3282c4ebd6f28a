import pytest

from tmux_launcher.layout import (
    BORDER_ROWS,
    CHROME_ROWS,
    STACK_BORDER_ROWS,
    Breakpoint,
    Focus,
    PanelHeights,
    compute_panel_heights,
    dual_pane_layout,
    panel_at_row,
    select_breakpoint,
)


@pytest.mark.parametrize("width,height,expected", [
    (200, 10, Breakpoint.MOBILE),
    (60, 40, Breakpoint.COMPACT),
    (120, 40, Breakpoint.DESKTOP),
    (79, 13, Breakpoint.COMPACT),
    (80, 13, Breakpoint.DESKTOP),
    (40, 12, Breakpoint.MOBILE),
])
def test_select_breakpoint(width, height, expected):
    assert select_breakpoint(width, height) is expected


@pytest.mark.parametrize("total", [21, 22, 30, 47, 80, 200])
@pytest.mark.parametrize("focus", [Focus.LIST, Focus.PREVIEW, Focus.COMMAND])
@pytest.mark.parametrize("adaptive", [True, False])
def test_heights_conserve_rows(total, focus, adaptive):
    heights = compute_panel_heights(total, focus, adaptive=adaptive)
    assert heights.total + STACK_BORDER_ROWS == total
    assert heights.command >= 5


@pytest.mark.parametrize("total", [24, 25, 50, 120])
def test_heights_conserve_rows_with_chrome(total):
    heights = compute_panel_heights(total, Focus.PREVIEW, chrome_rows=CHROME_ROWS)
    assert heights.total + STACK_BORDER_ROWS + CHROME_ROWS == total


@pytest.mark.parametrize("total", [0, 10, 20])
def test_small_terminals_use_fixed_heights(total):
    assert compute_panel_heights(total, Focus.LIST) == PanelHeights(5, 5, 5)


def test_focused_upper_panel_is_larger():
    list_focus = compute_panel_heights(46, Focus.LIST)
    preview_focus = compute_panel_heights(46, Focus.PREVIEW)
    assert list_focus.list > list_focus.preview
    assert preview_focus.preview > preview_focus.list
    assert list_focus.command == preview_focus.command == 8


def test_command_focus_keeps_last_upper_sizing():
    by_preview = compute_panel_heights(46, Focus.COMMAND, last_upper_focus=Focus.PREVIEW)
    assert by_preview == compute_panel_heights(46, Focus.PREVIEW)


def test_non_adaptive_splits_evenly():
    heights = compute_panel_heights(46, Focus.LIST, adaptive=False)
    assert abs(heights.list - heights.preview) <= 1


def test_panel_at_row_matches_drawn_boxes():
    heights = PanelHeights(10, 6, 5)
    # Title on row 0; list box rows 1-12, preview 13-20, command 21-27
    assert panel_at_row(0, heights) is None
    assert panel_at_row(1, heights) is Focus.LIST
    assert panel_at_row(1 + 10 + BORDER_ROWS - 1, heights) is Focus.LIST
    assert panel_at_row(1 + 10 + BORDER_ROWS, heights) is Focus.PREVIEW
    assert panel_at_row(1 + 12 + 8, heights) is Focus.COMMAND
    assert panel_at_row(1 + 12 + 8 + 7, heights) is None


def test_dual_pane_layout_desktop_splits_width_and_height():
    layout = dual_pane_layout(120, 40)
    assert layout.breakpoint is Breakpoint.DESKTOP
    assert layout.left_width + layout.right_width == 120
    assert layout.left_width == 60
    content = 40 - 3 - 2 - BORDER_ROWS
    assert layout.tree_height == content * 2 // 3
    assert layout.tree_height + layout.info_height == content


def test_dual_pane_layout_compact_and_mobile():
    compact = dual_pane_layout(60, 40)
    assert compact.right_width == 0
    assert compact.tree_height == (40 - 7) * 3 // 4

    mobile = dual_pane_layout(200, 10)
    assert mobile.info_height == 0
    assert mobile.tree_height == 3


def test_mobile_info_replaces_tree():
    tree = dual_pane_layout(200, 10)
    info = dual_pane_layout(200, 10, show_info=True)
    assert info.tree_height == 0
    assert info.info_height == tree.tree_height + BORDER_ROWS
    # Ignored outside mobile
    assert dual_pane_layout(120, 40, show_info=True) == dual_pane_layout(120, 40)
