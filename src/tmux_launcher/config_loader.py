"""Configuration loading (TOML) and launch tree construction."""

from __future__ import annotations

import os
import re
import time
import tomllib
from pathlib import Path

from loguru import logger

from .errors import ConfigLoadError, Error, ErrorType, Result
from .tree import Category, Command, LayoutPreset, PaneSpec, Profile, SpawnMode

# =============================================================================
# Paths
# =============================================================================

CONFIG_DIR = Path("~/.config/tmux-launcher").expanduser()
CONFIG_PATH = CONFIG_DIR / "config.toml"

# Read by the shell wrapper after exit to cd into the chosen project
CD_TARGET_PATH = Path("~/.tmux-launcher_cd_target").expanduser()

# Default configuration - safe values that work without user config
DEFAULT_CONFIG = {
    "ui": {
        "show_title": True,
        "show_status": True,
        "mouse": True,
        "adaptive": True,
    },
    "spawn": {
        "default_layout": "tiled",
        "settle_time": 0.01,
    },
    "projects": [],
    "tools": [],
    "scripts": [],
    "ai": [],
}


def expand_path(path: str | None) -> str:
    """Expand a leading ~ to the home directory."""
    if not path:
        return ""
    return os.path.expanduser(path)


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dictionary."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def extract_toml_error_context(error: tomllib.TOMLDecodeError, file_path: Path) -> dict:
    """
    Extract line context from TOML parse error.

    Returns:
        Dict with line_number, line_content and formatted_message
    """
    error_str = str(error)
    line_number = None
    line_content = None

    line_match = re.search(r'line\s+(\d+)', error_str, re.IGNORECASE)
    if line_match:
        line_number = int(line_match.group(1))

    if line_number and file_path.exists():
        try:
            with open(file_path, "r") as f:
                lines = f.readlines()
                if 0 < line_number <= len(lines):
                    line_content = lines[line_number - 1].rstrip()
        except OSError:
            pass

    if line_number:
        formatted = f"Error on line {line_number}"
        if line_content:
            display_line = line_content[:50] + "..." if len(line_content) > 50 else line_content
            formatted += f": {display_line}"
        formatted += f"\n\nDetails: {error_str}"
    else:
        formatted = f"TOML parse error: {error_str}"

    return {
        "line_number": line_number,
        "line_content": line_content,
        "formatted_message": formatted,
        "raw_error": error_str
    }


def load_config_from_path(config_path: Path) -> Result[dict]:
    """
    Load configuration from a TOML file merged over DEFAULT_CONFIG.

    Returns:
        Result[dict]: Ok with merged config, or Err with error details
    """
    start_time = time.perf_counter()

    if not config_path.exists():
        logger.warning(
            "Config file not found",
            operation="load_config_from_path",
            status="failed",
            config_path=str(config_path)
        )
        return Result.err(Error(
            error_type=ErrorType.FILE_NOT_FOUND,
            message=f"Config file not found: {config_path}",
            context={"config_path": str(config_path)}
        ))

    try:
        with open(config_path, "rb") as f:
            user_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        error_context = extract_toml_error_context(e, config_path)
        logger.error(
            "Invalid TOML syntax in configuration file",
            operation="load_config_from_path",
            status="failed",
            file=str(config_path),
            line_number=error_context["line_number"],
            line_content=error_context["line_content"],
            error=error_context["formatted_message"]
        )
        return Result.err(Error(
            error_type=ErrorType.PARSE_ERROR,
            message=error_context["formatted_message"],
            context={"config_path": str(config_path), "line_number": error_context["line_number"]},
            original_exception=e
        ))
    except OSError as e:
        logger.error(
            "Config file unreadable",
            operation="load_config_from_path",
            status="failed",
            config_path=str(config_path),
            error=str(e)
        )
        return Result.err(Error(
            error_type=ErrorType.PERMISSION_ERROR,
            message=f"Cannot read {config_path}: {e}",
            context={"config_path": str(config_path)},
            original_exception=e
        ))

    merged = deep_merge(DEFAULT_CONFIG, user_config)
    logger.debug(
        "Config loaded successfully",
        operation="load_config_from_path",
        status="success",
        config_path=str(config_path),
        metrics={
            "projects": len(merged.get("projects", [])),
            "duration_ms": int((time.perf_counter() - start_time) * 1000)
        }
    )
    return Result.ok(merged)


# =============================================================================
# Tree Construction
# =============================================================================


def _command(entry: dict, parent_path: str) -> Command:
    name = entry.get("name", "")
    return Command(
        name=name,
        path=f"{parent_path}/{name}",
        command=entry.get("command", ""),
        cwd=expand_path(entry.get("cwd")),
        spawn_mode=SpawnMode.parse(entry.get("spawn")),
        icon=entry.get("icon", ""),
    )


def _profile(entry: dict, parent_path: str) -> Profile:
    name = entry.get("name", "")
    return Profile(
        name=name,
        path=f"{parent_path}/{name}",
        layout=LayoutPreset.parse(entry.get("layout")),
        panes=tuple(
            PaneSpec(command=p.get("command", ""), cwd=expand_path(p.get("cwd")))
            for p in entry.get("panes", [])
        ),
        icon=entry.get("icon", ""),
    )


def build_tree(config: dict) -> tuple:
    """
    Convert a config dict into the launch item forest.

    Paths are "<section>/<category>/<item>", e.g. "projects/foo/build".
    """
    roots = []

    for project in config.get("projects", []):
        name = project.get("name", "")
        path = f"projects/{name}"
        children = [_command(c, path) for c in project.get("commands", [])]
        children += [_profile(p, path) for p in project.get("profiles", [])]
        roots.append(Category(
            name=name,
            path=path,
            children=tuple(children),
            icon=project.get("icon", ""),
            cwd=expand_path(project.get("path")),
        ))

    for section in ("tools", "scripts"):
        for category in config.get(section, []):
            name = category.get("category", "")
            path = f"{section}/{name}"
            roots.append(Category(
                name=name,
                path=path,
                children=tuple(_command(c, path) for c in category.get("items", [])),
                icon=category.get("icon", ""),
            ))

    ai_commands = config.get("ai", [])
    if ai_commands:
        roots.append(Category(
            name="AI",
            path="ai",
            children=tuple(_command(c, "ai") for c in ai_commands),
        ))

    return tuple(roots)


def load_launch_tree(config_path: Path = None) -> tuple[dict, tuple, Error | None]:
    """
    Load config and build the tree.

    A missing or broken config is not fatal: the defaults and an empty
    tree are returned together with the error for the status bar.
    """
    config_path = config_path or CONFIG_PATH
    result = load_config_from_path(config_path)
    if result.is_err():
        error = ConfigLoadError(result.error.message, config_path=str(config_path)).to_error()
        return dict(DEFAULT_CONFIG), (), error
    return result.value, build_tree(result.value), None


def write_cd_target(path: str, target_file: Path = None) -> None:
    """Write path verbatim for the shell wrapper to cd into after exit."""
    target_file = target_file or CD_TARGET_PATH
    target_file.write_text(path)
    logger.info(
        "CD target written",
        operation="write_cd_target",
        status="success",
        target=path
    )
