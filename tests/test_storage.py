import json
import logging
import tempfile
import unittest
from pathlib import Path

from trailwalk.storage import (
    allocate_dump_dir,
    attach_log_file,
    create_run_context,
    status_payload,
    tail_lines,
    write_status,
)


class StorageTests(unittest.TestCase):
    def test_run_context_and_status_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            runs = Path(tmp) / "runs"
            self.assertEqual(status_payload(runs), {"status": "no-runs"})
            ctx = create_run_context(runs)
            other = create_run_context(runs)
            self.assertNotEqual(ctx.run_dir, other.run_dir)
            self.assertTrue(ctx.run_dir.is_dir())
            write_status(
                run_id=ctx.run_id,
                run_dir=ctx.run_dir,
                status_text="Walking",
                run_state="running",
                position=2,
                trail_length=5,
                status_path=ctx.status_path,
            )
            payload = status_payload(runs)
            self.assertEqual(payload["status"], "Walking")
            self.assertEqual(payload["position"], 2)
            self.assertEqual(payload["walk_log"], str(ctx.walk_log))
            self.assertEqual(json.loads(ctx.status_path.read_text(encoding="utf-8"))["state"], "running")

    def test_dump_dirs_are_numbered(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "screens"
            first = allocate_dump_dir(root)
            second = allocate_dump_dir(root)
            self.assertEqual(first.name, "dump-0001")
            self.assertEqual(second.name, "dump-0002")
            (root / "dump-0003").mkdir()
            self.assertEqual(allocate_dump_dir(root).name, "dump-0004")

    def test_status_file_is_replaced_whole(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            ctx = create_run_context(Path(tmp) / "runs")
            for position in range(3):
                write_status(
                    run_id=ctx.run_id,
                    run_dir=ctx.run_dir,
                    status_text="Walking",
                    run_state="running",
                    position=position,
                    trail_length=3,
                    status_path=ctx.status_path,
                )
            self.assertEqual(status_payload(ctx.status_path.parent)["position"], 2)
            self.assertEqual(sorted(p.name for p in ctx.status_path.parent.iterdir() if p.is_file()), ["status.json"])

    def test_log_file_and_tail(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "walk.log"
            handler = attach_log_file(path)
            try:
                logging.getLogger("trailwalk.test").info("first")
                logging.getLogger("trailwalk.test").info("second")
            finally:
                logging.getLogger("trailwalk").removeHandler(handler)
                handler.close()
            lines = tail_lines(path, 1)
            self.assertEqual(len(lines), 1)
            self.assertTrue(lines[0].endswith("trailwalk.test: second"))
            self.assertEqual(tail_lines(Path(tmp) / "missing.log", 5), [])
            self.assertEqual(tail_lines(path, 0), [])
            self.assertEqual(len(tail_lines(path, 50)), 2)


if __name__ == "__main__":
    unittest.main()
