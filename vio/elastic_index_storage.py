"""Slot storage handing out reusable indices, visited in insertion order."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class ElasticIndexStorage(Generic[T]):
    """Grows when full and shrinks back to its preferred size when emptied at the top."""

    def __init__(self, preferred_size: int = 10, factory: Callable[[], T] | None = None) -> None:
        if preferred_size <= 0:
            raise ValueError("preferred_size must be greater than 0")
        self._preferred_size = preferred_size
        self._factory = factory
        self._data: list[T | None] = []
        self._used: list[bool] = []
        self._processed: list[bool] = []
        self._queue: deque[int] = deque()
        self._resize(preferred_size)

    def activate(self) -> int:
        """Claim the lowest free slot and queue it; return its index."""
        idx = self._first_free()
        if idx is None:
            self._grow()
            idx = self._first_free()
            assert idx is not None
        self._used[idx] = True
        self._processed[idx] = False
        self._queue.append(idx)
        return idx

    def activate_with_value(self, value: T) -> int:
        idx = self.activate()
        self._data[idx] = value
        return idx

    def deactivate(self, index: int) -> None:
        if not 0 <= index < len(self._data):
            raise IndexError("Index out of range")
        self._data[index] = self._blank()
        self._used[index] = False
        rightmost = self._rightmost_used()
        if rightmost is None or rightmost < self._preferred_size:
            self._resize(self._preferred_size)

    def deactivate_current(self) -> None:
        if not self._queue:
            raise IndexError("No current item")
        self.deactivate(self._queue[0])

    def current_item_is_active(self) -> bool:
        return bool(self._queue) and self.is_active(self._queue[0])

    def current_item(self) -> T:
        if not self._queue:
            raise IndexError("No current item")
        if not self.is_active(self._queue[0]):
            raise IndexError("The current item is inactive")
        return self._data[self._queue[0]]  # type: ignore[return-value]

    def next(self) -> bool:
        """Advance to the next active queued item, marking it processed."""
        while self._queue:
            self._queue.popleft()
            if not self._queue:
                return False
            candidate = self._queue[0]
            if self.is_active(candidate):
                self._processed[candidate] = True
                return True
        return False

    def __getitem__(self, index: int) -> T:
        if not self.is_active(index):
            raise IndexError("Invalid index access")
        return self._data[index]  # type: ignore[return-value]

    def __setitem__(self, index: int, value: T) -> None:
        if not self.is_active(index):
            raise IndexError("Invalid index access")
        self._data[index] = value

    def is_active(self, index: int) -> bool:
        return 0 <= index < len(self._data) and self._used[index]

    def is_processed(self, index: int) -> bool:
        return 0 <= index < len(self._data) and self._processed[index]

    def __len__(self) -> int:
        return len(self._data)

    def _blank(self) -> T | None:
        """A fresh value for an empty slot."""
        return self._factory() if self._factory is not None else None

    def _first_free(self) -> int | None:
        for idx, used in enumerate(self._used):
            if not used:
                return idx
        return None

    def _rightmost_used(self) -> int | None:
        for idx in reversed(range(len(self._used))):
            if self._used[idx]:
                return idx
        return None

    def _resize(self, new_size: int) -> None:
        current = len(self._data)
        if new_size < current:
            del self._data[new_size:]
            del self._used[new_size:]
            del self._processed[new_size:]
        else:
            extra = new_size - current
            self._data.extend(self._blank() for _ in range(extra))
            self._used.extend([False] * extra)
            self._processed.extend([False] * extra)

    def _grow(self) -> None:
        size = len(self._data)
        self._resize(2 if size < 2 else size * 3 // 2)