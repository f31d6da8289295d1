import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from trailwalk.console import TerminalDisplay, format_trail, handle_command, run_console
from trailwalk.storage import create_run_context
from trailwalk.walk_state import RunState, WalkStatus


def _controller() -> MagicMock:
    controller = MagicMock()
    controller.trail_labels.return_value = ["Home", "Docs", "About"]
    controller.current_position.return_value = 1
    controller.run_state = RunState.PAUSED
    controller.walk_status.return_value = WalkStatus.SUCCESSFUL_STEP
    controller.start.return_value = True
    return controller


class ConsoleCommandTests(unittest.TestCase):
    def test_commands_dispatch_to_controller(self) -> None:
        controller = _controller()
        out: list[str] = []
        for raw in ("play", "pause", "next", "prev", "goto 3", "stop"):
            self.assertTrue(handle_command(controller, raw, out.append))
        controller.start.assert_called_once_with()
        controller.pause.assert_called_once_with()
        controller.step_forward.assert_called_once_with()
        controller.step_back.assert_called_once_with()
        controller.step_to.assert_called_once_with(2)
        controller.stop.assert_called_once_with()
        self.assertEqual(out, [])

    def test_list_status_and_bad_input(self) -> None:
        controller = _controller()
        out: list[str] = []
        handle_command(controller, "list", out.append)
        self.assertEqual(out, ["    1. Home", ">   2. Docs", "    3. About"])
        out.clear()
        handle_command(controller, "status", out.append)
        self.assertEqual(out, ["state=paused status=successful_step position=2/3"])
        out.clear()
        handle_command(controller, "goto x", out.append)
        handle_command(controller, "dance", out.append)
        self.assertTrue(out[0].startswith("usage: goto"))
        self.assertEqual(out[1], "unknown command: dance")
        controller.step_to.assert_not_called()

    def test_quit_and_eof_end_the_console(self) -> None:
        controller = _controller()
        self.assertFalse(handle_command(controller, "quit", lambda _line: None))
        lines = iter(["next", "q", "next"])
        run_console(controller, read_line=lambda: next(lines), out=io.StringIO())
        controller.step_forward.assert_called_once_with()

        def eof() -> str:
            raise EOFError

        run_console(controller, read_line=eof, out=io.StringIO())

    def test_format_trail_marks_nothing_before_start(self) -> None:
        self.assertEqual(format_trail(["A"], -1), ["    1. A"])


class TerminalDisplayTests(unittest.TestCase):
    def test_updates_print_and_persist_status(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            ctx = create_run_context(Path(tmp) / "runs")
            out = io.StringIO()
            display = TerminalDisplay(ctx, out=out)
            display.controller = _controller()
            display.on_status_text("Walking")
            display.on_select_position(1)
            payload = json.loads(ctx.status_path.read_text(encoding="utf-8"))
        self.assertIn("[walk] Walking", out.getvalue())
        self.assertIn("[walk] at 2/3: Docs", out.getvalue())
        self.assertEqual(payload["status"], "Walking")
        self.assertEqual(payload["position"], 1)
        self.assertEqual(payload["trail_length"], 3)


if __name__ == "__main__":
    unittest.main()
