"""Position tracking over a loaded trail."""

from __future__ import annotations

from typing import Callable


class NavigationCursor:
    """Index of the last successfully visited trail item.

    Starts at -1 (nothing visited). ``at_start`` holds for -1 and 0 so the
    first item cannot be stepped back from interactively; recovery may still
    back out of item 0 with ``retreat(past_start=True)``.
    """

    def __init__(self, length: int) -> None:
        if length < 0:
            raise ValueError("trail length must be >= 0")
        self._length = length
        self._position = -1

    @property
    def length(self) -> int:
        return self._length

    @property
    def position(self) -> int:
        return self._position

    def at_start(self) -> bool:
        return self._position <= 0

    def at_end(self) -> bool:
        return self._position >= self._length - 1

    def next_index(self) -> int:
        return self._position + 1

    def advance(self) -> bool:
        if self.at_end():
            return False
        self._position += 1
        return True

    def retreat(self, *, past_start: bool = False) -> bool:
        floor = -1 if past_start else 0
        if self._position <= floor:
            return False
        self._position -= 1
        return True

    def seek(self, index: int, visit: Callable[[int], bool]) -> int:
        """Walk one hop at a time toward ``index``.

        ``visit`` is called with each intermediate index before the cursor
        moves onto it; a False return ends the seek where it is.
        """
        if not 0 <= index < self._length:
            raise IndexError(f"seek index {index} outside trail of length {self._length}")
        while self._position != index:
            step = 1 if index > self._position else -1
            target = self._position + step
            if not visit(target):
                break
            self._position = target
        return self._position
