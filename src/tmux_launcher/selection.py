"""Multi-select state for launch items, independent of tree shape."""

from __future__ import annotations

from .tree import FlattenedRow, LaunchItem, is_selectable


class SelectionSet:
    """Set of selected item paths."""

    def __init__(self, paths=()):
        self._paths: set[str] = set(paths)

    def __contains__(self, path: str) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __bool__(self) -> bool:
        return bool(self._paths)

    def toggle(self, path: str) -> bool:
        """Flip membership of path. Returns the new state."""
        if path in self._paths:
            self._paths.discard(path)
            return False
        self._paths.add(path)
        return True

    def toggle_item(self, item: LaunchItem) -> bool:
        """Toggle a tree item. Categories are rejected (returns False, no change)."""
        if not is_selectable(item):
            return False
        return self.toggle(item.path)

    def clear(self) -> None:
        self._paths.clear()

    def paths(self) -> frozenset[str]:
        return frozenset(self._paths)

    def gather(self, *row_lists: list[FlattenedRow]) -> list[LaunchItem]:
        """
        Collect selected items in display order.

        Accepts several row lists so a dual-tree view can launch a
        selection that spans both trees. An item appearing in more
        than one list is returned once.
        """
        gathered = []
        seen = set()
        for rows in row_lists:
            for row in rows:
                path = row.item.path
                if path in self._paths and path not in seen:
                    seen.add(path)
                    gathered.append(row.item)
        return gathered
