"""Line-oriented terminal control surface for a walk."""

from __future__ import annotations

import sys
from threading import Lock
from typing import Callable, TextIO

from trailwalk.controller import WalkController, WalkDisplay
from trailwalk.storage import RunContext, write_status

HELP_TEXT = (
    "commands: play | pause | stop | next | prev | goto <n> | list | status | help | quit"
)

_ALIASES = {
    "p": "play",
    "resume": "play",
    "start": "play",
    "n": "next",
    "forward": "next",
    "b": "prev",
    "back": "prev",
    "g": "goto",
    "l": "list",
    "s": "status",
    "q": "quit",
    "exit": "quit",
    "?": "help",
}


class TerminalDisplay(WalkDisplay):
    """Prints walk updates and mirrors them to the run's status file."""

    def __init__(self, ctx: RunContext | None = None, out: TextIO | None = None) -> None:
        self.ctx = ctx
        self.out = out or sys.stdout
        self.controller: WalkController | None = None
        self.last_text = ""
        self.playing = False
        self._lock = Lock()

    def on_status_text(self, text: str) -> None:
        with self._lock:
            self.last_text = text
            self._print(f"[walk] {text}")
        self._persist()

    def on_select_position(self, index: int) -> None:
        labels = self.controller.trail_labels() if self.controller else []
        label = labels[index] if 0 <= index < len(labels) else "-"
        with self._lock:
            self._print(f"[walk] at {index + 1}/{len(labels)}: {label}")
        self._persist()

    def on_play_state_changed(self, is_playing: bool) -> None:
        with self._lock:
            self.playing = is_playing
        self._persist()

    def _print(self, line: str) -> None:
        self.out.write(line + "\n")
        self.out.flush()

    def _persist(self) -> None:
        if self.ctx is None or self.controller is None:
            return
        write_status(
            run_id=self.ctx.run_id,
            run_dir=self.ctx.run_dir,
            status_text=self.last_text,
            run_state=self.controller.run_state.value,
            position=self.controller.current_position(),
            trail_length=len(self.controller.trail_labels()),
            status_path=self.ctx.status_path,
        )


def format_trail(labels: list[str], position: int) -> list[str]:
    lines = []
    for idx, label in enumerate(labels):
        marker = ">" if idx == position else " "
        lines.append(f"{marker} {idx + 1:3d}. {label}")
    return lines


def run_console(
    controller: WalkController,
    *,
    read_line: Callable[[], str] | None = None,
    out: TextIO | None = None,
) -> None:
    stream = out or sys.stdout
    reader = read_line or (lambda: input())

    def emit(line: str) -> None:
        stream.write(line + "\n")
        stream.flush()

    emit(HELP_TEXT)
    while True:
        try:
            raw = reader()
        except EOFError:
            break
        if not handle_command(controller, raw, emit):
            break


def handle_command(controller: WalkController, raw: str, emit: Callable[[str], None]) -> bool:
    """Apply one console command; False means the console should exit."""
    parts = raw.strip().split()
    if not parts:
        return True
    command = _ALIASES.get(parts[0].lower(), parts[0].lower())
    args = parts[1:]

    if command == "quit":
        return False
    if command == "play":
        if not controller.start():
            emit("already walking")
    elif command == "pause":
        controller.pause()
    elif command == "stop":
        controller.stop()
    elif command == "next":
        controller.step_forward()
    elif command == "prev":
        controller.step_back()
    elif command == "goto":
        if len(args) != 1 or not args[0].isdigit():
            emit("usage: goto <n>  (1-based trail position)")
        else:
            controller.step_to(int(args[0]) - 1)
    elif command == "list":
        for line in format_trail(controller.trail_labels(), controller.current_position()):
            emit(line)
    elif command == "status":
        emit(
            f"state={controller.run_state.value} status={controller.walk_status().value} "
            f"position={controller.current_position() + 1}/{len(controller.trail_labels())}"
        )
    elif command == "help":
        emit(HELP_TEXT)
    else:
        emit(f"unknown command: {parts[0]}")
    return True
