"""CLI entrypoint for trailwalk."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from trailwalk.browser import PlaywrightBrowser
from trailwalk.config import WalkConfig, load_config
from trailwalk.console import TerminalDisplay, format_trail, run_console
from trailwalk.controller import WalkController
from trailwalk.runner import WalkRunner
from trailwalk.storage import (
    LOG_FILE,
    LOG_FORMAT,
    RunContext,
    allocate_dump_dir,
    attach_log_file,
    create_run_context,
    status_payload,
    tail_lines,
)
from trailwalk.trail import Trail, TrailLoadError, load_trail

logger = logging.getLogger("trailwalk.cli")


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "walk":
        walk_command(args)
        return
    if args.command == "check-trail":
        check_trail_command(Path(args.file), delimiter=args.delimiter)
        return
    if args.command == "status":
        print(json.dumps(status_payload(Path(args.runs_dir)), indent=2, ensure_ascii=False))
        return
    if args.command == "logs":
        logs_command(args.tail, runs_dir=Path(args.runs_dir))
        return

    parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trailwalk", description="Walk a browser along a trail of pages.")
    subparsers = parser.add_subparsers(dest="command")

    walk_parser = subparsers.add_parser("walk", help="Walk a trail with the interactive console")
    walk_parser.add_argument("--config", type=Path, default=None, help="key = value properties file")
    walk_parser.add_argument("--trail", type=Path, default=None, help="Trail file (CSV)")
    walk_parser.add_argument("--sleep", type=float, default=None, help="Seconds to pause between pages")
    walk_parser.add_argument("--profile", type=str, default=None, help="Persistent browser profile directory")
    walk_parser.add_argument("--delimiter", type=str, default=None, help="Trail field delimiter")
    walk_parser.add_argument("--dump-screens", action="store_true", default=None)
    walk_parser.add_argument("--headless", action="store_true", default=None)
    walk_parser.add_argument("--autoplay", action="store_true", help="Start walking immediately")
    walk_parser.add_argument("--verbose", action="store_true", help="Log debug output to stderr")

    check_parser = subparsers.add_parser("check-trail", help="Load a trail file and list its items")
    check_parser.add_argument("file", type=str)
    check_parser.add_argument("--delimiter", type=str, default=",")

    status_parser = subparsers.add_parser("status", help="Show latest walk status")
    status_parser.add_argument("--runs-dir", type=str, default="runs")

    logs_parser = subparsers.add_parser("logs", help="Tail the latest walk log")
    logs_parser.add_argument("--tail", type=int, default=200)
    logs_parser.add_argument("--runs-dir", type=str, default="runs")
    return parser


def walk_command(args: argparse.Namespace) -> None:
    config = load_config(
        args.config,
        overrides={
            "trail_file": args.trail,
            "sleep_seconds": args.sleep,
            "profile": args.profile,
            "delimiter": args.delimiter,
            "dump_screens": args.dump_screens,
            "headless": args.headless,
        },
    )
    ctx = create_run_context(config.runs_dir)
    handlers = configure_logging(ctx, verbose=args.verbose)
    trail = _load_or_exit(config.trail_file, config.delimiter)
    logger.info("run %s: %d item(s) from %s", ctx.run_id, len(trail), config.trail_file)

    controller, display = build_controller(config, trail, ctx)
    print(f"run: {ctx.run_dir}")
    for line in format_trail(trail.labels(), -1):
        print(line)
    try:
        if args.autoplay:
            controller.start()
        run_console(controller)
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        controller.shutdown()
        for handler in handlers:
            logging.getLogger("trailwalk").removeHandler(handler)
            handler.close()
    if display.last_text:
        print(f"last status: {display.last_text}")


def build_controller(
    config: WalkConfig,
    trail: Trail,
    ctx: RunContext,
) -> tuple[WalkController, TerminalDisplay]:
    dump_dir = allocate_dump_dir(config.dump_root) if config.dump_screens else None
    if dump_dir is not None:
        logger.info("screen dumps go to %s", dump_dir)
    browser = PlaywrightBrowser(
        headless=config.headless,
        navigation_timeout_seconds=config.navigation_timeout_seconds,
    )
    runner = WalkRunner(trail, browser, profile=config.profile, dump_dir=dump_dir)
    display = TerminalDisplay(ctx)
    controller = WalkController(runner, sleep_seconds=config.sleep_seconds, display=display)
    display.controller = controller
    return controller, display


def configure_logging(ctx: RunContext, *, verbose: bool = False) -> list[logging.Handler]:
    file_handler = attach_log_file(ctx.walk_log, level=logging.DEBUG if verbose else logging.INFO)
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger("trailwalk").addHandler(stderr_handler)
    return [file_handler, stderr_handler]


def check_trail_command(path: Path, *, delimiter: str = ",") -> None:
    trail = _load_or_exit(path, delimiter)
    if not len(trail):
        print(f"{path}: no walkable items")
        return
    for idx, item in enumerate(trail, start=1):
        line = f"{idx:3d}. {item.label} -> {item.target_url}"
        if item.click_target is not None:
            line += f"  [click {item.click_target.to_selector()}]"
        print(line)


def logs_command(tail_count: int, *, runs_dir: Path = Path("runs")) -> None:
    payload = status_payload(runs_dir)
    if payload.get("status") == "no-runs":
        raise SystemExit("No runs available yet.")
    walk_log = Path(payload.get("walk_log") or Path(payload["run_dir"]) / LOG_FILE)
    print("\n".join(tail_lines(walk_log, tail_count)))


def _load_or_exit(path: Path, delimiter: str) -> Trail:
    if delimiter in ("\\t", "tab"):
        delimiter = "\t"
    if len(delimiter) != 1:
        raise SystemExit(f"Delimiter must be a single character, got {delimiter!r}")
    try:
        return load_trail(path, delimiter)
    except TrailLoadError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
