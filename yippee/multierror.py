"""Accumulation of errors raised by concurrent workers."""

from __future__ import annotations

import threading


class MultiError(Exception):
    """An exception collecting several errors, safe to fill from many threads."""

    def __init__(self) -> None:
        super().__init__()
        self.errors: list[BaseException] = []
        self._lock = threading.Lock()

    def __str__(self) -> str:
        return "\n".join(str(error) for error in self.errors)

    def add(self, error: BaseException | None) -> None:
        """Record ``error``; ``None`` is ignored."""
        if error is None:
            return
        with self._lock:
            self.errors.append(error)

    def raise_if_errors(self) -> None:
        """Raise this exception if at least one error was recorded."""
        if self.errors:
            raise self