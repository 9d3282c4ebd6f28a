"""Command-line entry point."""

from __future__ import annotations

import argparse
import curses
import sys
from pathlib import Path
from uuid import uuid4

from loguru import logger

from . import __version__, config_loader
from . import templates as template_store
from .app import App, run_ui
from .errors import ErrorReport, ExternalToolError
from .grid import GridBuilder
from .logging_config import setup_logger
from .spawn import Spawner
from .tmux import TmuxClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tmux-launcher",
        description="Launch commands, profiles and templates into tmux panes"
    )
    parser.add_argument("--config", type=Path, default=None,
                        help=f"config file (default: {config_loader.CONFIG_PATH})")
    parser.add_argument("--templates", type=Path, default=None,
                        help=f"templates file (default: {template_store.TEMPLATES_PATH})")
    parser.add_argument("--template", metavar="NAME", default=None,
                        help="create a session from the named template and attach, without the UI")
    parser.add_argument("--cwd", metavar="DIR", default=None,
                        help="working directory for --template (overrides the template's)")
    parser.add_argument("--list-templates", action="store_true",
                        help="print the available templates and exit")
    parser.add_argument("--debug", action="store_true",
                        help="log DEBUG records to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def list_templates(templates_path: Path | None) -> int:
    try:
        templates = template_store.load_templates(templates_path)
    except (OSError, ValueError) as e:
        print(f"error: cannot load templates: {e}", file=sys.stderr)
        return 1

    for category, entries in template_store.templates_by_category(templates).items():
        print(f"{category}:")
        for _, template in entries:
            print(f"  {template.name:<28} {template.layout:<6} {template.description}")
    return 0


def run_template(name: str, cwd: str | None, templates_path: Path | None, settle_delay: float) -> int:
    try:
        templates = template_store.load_templates(templates_path)
    except (OSError, ValueError) as e:
        print(f"error: cannot load templates: {e}", file=sys.stderr)
        return 1

    matches = [t for t in templates if t.name == name]
    if not matches:
        print(f"error: no template named '{name}' (see --list-templates)", file=sys.stderr)
        return 1

    spawner = Spawner(settle_delay=settle_delay)
    result = GridBuilder(spawner).create_session(matches[0], cwd_override=cwd)
    if result.is_err():
        print(f"error: {result.error.message}", file=sys.stderr)
        return 1

    return attach(spawner.tmux, result.value)


def attach(tmux: TmuxClient, session_name: str) -> int:
    try:
        tmux.attach_or_switch(session_name)
    except ExternalToolError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


def run_launcher(config_path: Path | None, templates_path: Path | None) -> int:
    op_trace_id = str(uuid4())
    report = ErrorReport()

    config, roots, config_error = config_loader.load_launch_tree(config_path)
    if config_error is not None:
        report.add_warning(config_error)

    spawn_config = config.get("spawn", {})
    spawner = Spawner(settle_delay=spawn_config.get("settle_time", 0.01))
    app = App(
        config,
        roots,
        spawner=spawner,
        config_path=config_path,
        templates_path=templates_path,
        config_error=config_error,
    )

    curses.wrapper(run_ui, app, config.get("ui", {}).get("mouse", True))

    exit_code = 0
    if app.post_exit is not None:
        if not report.collect_result(app.post_exit()):
            print(f"error: {report.errors[-1].message}", file=sys.stderr)
            exit_code = 1
    elif app.pending_attach:
        exit_code = attach(spawner.tmux, app.pending_attach)

    report.log_summary(op_trace_id)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # The UI owns the terminal; only the non-interactive paths log to stderr
    interactive = not (args.list_templates or args.template)
    setup_logger(console=not interactive or args.debug, debug=args.debug)

    logger.debug(
        "Starting",
        operation="main",
        version=__version__,
        argv=argv if argv is not None else sys.argv[1:]
    )

    if args.list_templates:
        return list_templates(args.templates)

    if args.template:
        result = config_loader.load_config_from_path(args.config or config_loader.CONFIG_PATH)
        config = result.value if result.is_ok() else config_loader.DEFAULT_CONFIG
        settle_delay = config.get("spawn", {}).get("settle_time", 0.01)
        return run_template(args.template, args.cwd, args.templates, settle_delay)

    return run_launcher(args.config, args.templates)


def run() -> None:
    sys.exit(main())
