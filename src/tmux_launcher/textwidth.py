"""Display-width helpers for exact-width panel lines."""

from __future__ import annotations

import re

from wcwidth import wcswidth, wcwidth

# CSI (ESC [ ... final byte) and OSC (ESC ] ... BEL/ST) sequences
ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[@-Z\\-_]")

# VS-15 / VS-16 occupy no cells
VARIATION_SELECTORS = ("\ufe0e", "\ufe0f")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


def _char_width(ch: str) -> int:
    if ch in VARIATION_SELECTORS:
        return 0
    w = wcwidth(ch)
    # Non-printable control characters report -1
    return w if w > 0 else 0


def visual_width(s: str) -> int:
    """Number of terminal cells s occupies, ignoring ANSI escapes."""
    stripped = strip_ansi(s)
    for vs in VARIATION_SELECTORS:
        stripped = stripped.replace(vs, "")
    width = wcswidth(stripped)
    if width >= 0:
        return width
    return sum(_char_width(ch) for ch in stripped)


def truncate(s: str, max_width: int) -> str:
    """
    Cut s to at most max_width cells.

    Escape sequences are copied whole and never counted, so styling that
    follows the cut (typically a reset) survives.
    """
    if max_width <= 0:
        return ""
    if visual_width(s) <= max_width:
        return s

    out = []
    width = 0
    full = False
    pos = 0
    for match in ANSI_RE.finditer(s):
        width, full = _take_text(s[pos:match.start()], out, width, max_width, full)
        out.append(match.group())
        pos = match.end()
    _take_text(s[pos:], out, width, max_width, full)
    return "".join(out)


def _take_text(text: str, out: list[str], width: int, max_width: int, full: bool) -> tuple[int, bool]:
    for ch in text:
        if full:
            break
        w = _char_width(ch)
        if width + w > max_width:
            full = True
            break
        out.append(ch)
        width += w
    return width, full


def pad_to_width(s: str, width: int) -> str:
    """Append spaces until s is exactly width cells wide (never truncates)."""
    current = visual_width(s)
    if current >= width:
        return s
    return s + " " * (width - current)


def fit_to_width(s: str, width: int) -> str:
    """Truncate then pad, so the result is exactly width cells."""
    return pad_to_width(truncate(s, width), width)
