"""Session templates store (templates.json)."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from loguru import logger

from .config_loader import CONFIG_DIR

TEMPLATES_PATH = CONFIG_DIR / "templates.json"
DEFAULT_CATEGORY = "Uncategorized"
SAVED_CATEGORY = "Saved Sessions"


@dataclass(frozen=True)
class PaneTemplate:
    command: str = ""
    title: str = ""
    working_dir: str = ""


@dataclass(frozen=True)
class SessionTemplate:
    name: str
    layout: str
    panes: tuple[PaneTemplate, ...] = ()
    description: str = ""
    category: str = DEFAULT_CATEGORY
    working_dir: str = "~"

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionTemplate':
        panes = tuple(
            PaneTemplate(
                command=p.get("command", ""),
                title=p.get("title", ""),
                working_dir=p.get("working_dir", p.get("workingDir", "")),
            )
            for p in data.get("panes", [])
        )
        return cls(
            name=data.get("name", ""),
            layout=data.get("layout", ""),
            panes=panes,
            description=data.get("description", ""),
            category=data.get("category") or "",
            working_dir=data.get("working_dir", data.get("workingDir", "~")),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["panes"] = [
            {k: v for k, v in asdict(p).items() if v} for p in self.panes
        ]
        return data


def default_templates() -> list[SessionTemplate]:
    return [
        SessionTemplate(
            name="Simple Dev (2x2)",
            description="Basic development workspace with editor, terminal, git, and monitoring",
            category="Projects",
            working_dir="~",
            layout="2x2",
            panes=(
                PaneTemplate("nvim", "Editor"),
                PaneTemplate("bash", "Terminal"),
                PaneTemplate("lazygit", "Git"),
                PaneTemplate("btop", "Monitor"),
            ),
        ),
        SessionTemplate(
            name="Frontend Dev (2x2)",
            description="Frontend workspace with editor, dev server, tests, and git",
            category="Projects",
            working_dir="~",
            layout="2x2",
            panes=(
                PaneTemplate("nvim", "Editor"),
                PaneTemplate("npm run dev", "Dev Server"),
                PaneTemplate("npm test -- --watch", "Tests"),
                PaneTemplate("lazygit", "Git"),
            ),
        ),
        SessionTemplate(
            name="Full Stack (4x2)",
            description="Eight-pane development environment",
            category="Projects",
            working_dir="~",
            layout="4x2",
            panes=(
                PaneTemplate("nvim", "Editor"),
                PaneTemplate("npm run dev", "Dev Server"),
                PaneTemplate("lazygit", "Git"),
                PaneTemplate("npm test -- --watch", "Tests"),
                PaneTemplate("docker compose logs -f || bash", "Logs"),
                PaneTemplate("btop", "Monitor"),
                PaneTemplate("bash", "Terminal"),
                PaneTemplate("bash", "Scratch"),
            ),
        ),
        SessionTemplate(
            name="Monitoring Wall (4x2)",
            description="System monitoring dashboard with multiple tools",
            category="Tools",
            working_dir="~",
            layout="4x2",
            panes=(
                PaneTemplate("btop", "System Monitor"),
                PaneTemplate("watch -n 1 df -h", "Disk Usage"),
                PaneTemplate("watch -n 1 free -h", "Memory"),
                PaneTemplate("watch -n 1 'docker ps'", "Docker"),
                PaneTemplate("journalctl -f", "System Logs"),
                PaneTemplate("watch -n 1 'ss -tuln'", "Network"),
                PaneTemplate("watch -n 1 'systemctl --failed'", "Services"),
                PaneTemplate("bash", "Terminal"),
            ),
        ),
    ]


def atomic_write_file(path: Path, content: str) -> None:
    """
    Write file atomically using temp file -> fsync -> rename.

    Raises:
        OSError: If the write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(temp_fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except OSError:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def migrate_templates(templates: list[SessionTemplate]) -> tuple[list[SessionTemplate], bool]:
    """Give templates without a category the default one."""
    modified = False
    migrated = []
    for template in templates:
        if not template.category:
            template = replace(template, category=DEFAULT_CATEGORY)
            modified = True
        migrated.append(template)
    return migrated, modified


def save_templates(templates: list[SessionTemplate], path: Path = None) -> None:
    path = path or TEMPLATES_PATH
    content = json.dumps([t.to_dict() for t in templates], indent=2) + "\n"
    atomic_write_file(path, content)
    logger.debug(
        "Templates saved",
        operation="save_templates",
        status="success",
        path=str(path),
        metrics={"count": len(templates)}
    )


def load_templates(path: Path = None) -> list[SessionTemplate]:
    """
    Load templates, creating the file with defaults on first run.

    Raises:
        OSError: File unreadable or not writable
        ValueError: File is not valid JSON (json.JSONDecodeError)
    """
    path = path or TEMPLATES_PATH

    if not path.exists():
        templates = default_templates()
        save_templates(templates, path)
        logger.info(
            "Created default templates",
            operation="load_templates",
            status="first_run",
            path=str(path)
        )
        return templates

    with open(path) as f:
        data = json.load(f)

    templates = [SessionTemplate.from_dict(entry) for entry in data]
    templates, modified = migrate_templates(templates)
    if modified:
        save_templates(templates, path)

    return templates


def detect_grid_layout(panes) -> str:
    """
    COLSxROWS for panes that sit on a full grid of distinct left/top offsets.

    Anything else is saved as a single row, which the grid builder can
    always rebuild.
    """
    if not panes:
        return "1x1"
    cols = len({p.left for p in panes})
    rows = len({p.top for p in panes})
    if cols * rows == len(panes):
        return f"{cols}x{rows}"
    return f"{len(panes)}x1"


def template_from_panes(session_name: str, panes) -> SessionTemplate:
    """Template that recreates a running window: one pane per pane, row-major."""
    ordered = sorted(panes, key=lambda p: (p.top, p.left))
    working_dir = ordered[0].path if ordered else "~"
    return SessionTemplate(
        name=session_name,
        layout=detect_grid_layout(ordered),
        panes=tuple(
            PaneTemplate(
                command=p.command,
                working_dir=p.path if p.path != working_dir else "",
            )
            for p in ordered
        ),
        description=f"Saved from session '{session_name}'",
        category=SAVED_CATEGORY,
        working_dir=working_dir,
    )


def add_template(template: SessionTemplate, path: Path = None) -> None:
    templates = load_templates(path)
    templates.append(template)
    save_templates(templates, path)


def delete_template(index: int, path: Path = None) -> None:
    """Remove the template at index. Out-of-range indices are ignored."""
    templates = load_templates(path)
    if index < 0 or index >= len(templates):
        return
    del templates[index]
    save_templates(templates, path)


def templates_by_category(templates: list[SessionTemplate]) -> dict[str, list[tuple[int, SessionTemplate]]]:
    """Group (index, template) pairs by category, keeping file order."""
    groups: dict[str, list[tuple[int, SessionTemplate]]] = {}
    for i, template in enumerate(templates):
        groups.setdefault(template.category or DEFAULT_CATEGORY, []).append((i, template))
    return groups
