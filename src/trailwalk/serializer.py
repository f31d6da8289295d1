"""Single-worker execution queue for browser-affecting commands."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class _WorkItem:
    name: str
    fn: Callable[[], Any]
    done: threading.Event = field(default_factory=threading.Event)
    ok: bool = False


class CommandSerializer:
    """Runs submitted units one at a time on a dedicated worker thread.

    ``submit`` blocks until its unit has run and reports success as a bool.
    The browser backend is only ever touched from the worker thread.
    """

    def __init__(self, name: str = "trailwalk-browser") -> None:
        self._queue: queue.Queue[_WorkItem | None] = queue.Queue(maxsize=1)
        self._submit_lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._work, name=name, daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def in_worker(self) -> bool:
        return threading.current_thread() is self._thread

    def submit(self, name: str, fn: Callable[[], Any]) -> bool:
        if self.in_worker():
            # Nested submission from inside a running unit executes inline.
            return self._execute(_WorkItem(name, fn))
        item = _WorkItem(name, fn)
        with self._submit_lock:
            if self._closed:
                logger.warning("serializer closed; dropped %s", name)
                return False
            self._queue.put(item)
        item.done.wait()
        return item.ok

    def shutdown(self, timeout: float | None = 5.0) -> None:
        with self._submit_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)
        if not self.in_worker():
            self._thread.join(timeout)

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            try:
                self._execute(item)
            finally:
                item.done.set()

    @staticmethod
    def _execute(item: _WorkItem) -> bool:
        logger.debug("running %s", item.name)
        try:
            item.fn()
        except Exception:
            logger.exception("%s failed", item.name)
            item.ok = False
        else:
            item.ok = True
        return item.ok
