"""Editor discovery and invocation."""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from pathlib import Path

from loguru import logger

from .errors import ExternalToolError, NoEditorFoundError

# Tried in order when $EDITOR is unset or not installed
PREFERRED_EDITORS = ["micro", "nano", "vim", "vi"]

# GUI fallback; --wait blocks until the file is closed
GUI_EDITOR = ["code", "--wait"]


def find_editor() -> list[str]:
    """
    Editor command (argv without the file) to use.

    Priority: $EDITOR > micro > nano > vim > vi > code --wait

    Raises:
        NoEditorFoundError: Nothing on the list is installed
    """
    env_editor = os.environ.get("EDITOR", "").strip()
    if env_editor:
        try:
            parts = shlex.split(env_editor)
        except ValueError:
            parts = env_editor.split()
        if parts and shutil.which(parts[0]):
            return parts
        logger.debug(
            "EDITOR not found on PATH",
            operation="find_editor",
            editor=env_editor
        )

    for editor in PREFERRED_EDITORS:
        if shutil.which(editor):
            return [editor]

    if shutil.which(GUI_EDITOR[0]):
        return list(GUI_EDITOR)

    raise NoEditorFoundError(
        "No editor found (set $EDITOR or install one of: " + ", ".join(PREFERRED_EDITORS) + ")"
    )


def open_in_editor(path: Path) -> None:
    """
    Open path in the foreground and wait for the editor to exit.

    Raises:
        NoEditorFoundError: No editor available
        ExternalToolError: Editor exited non-zero or could not start
    """
    argv = find_editor() + [str(path)]
    logger.info(
        "Opening editor",
        operation="open_in_editor",
        argv=argv
    )
    try:
        completed = subprocess.run(argv, check=False)
    except OSError as e:
        raise ExternalToolError(f"could not start {argv[0]}: {e}", step="open editor",
                                target=str(path)) from e
    if completed.returncode != 0:
        raise ExternalToolError(
            f"{argv[0]} exited with status {completed.returncode}",
            step="open editor",
            target=str(path),
            returncode=completed.returncode
        )
