"""Server that runs a set of listeners."""

from __future__ import annotations

import threading

from dbpack.proto import Listener

__all__ = ["Server"]


class Server:
    """Holds listeners and starts each in its own thread."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def start(self) -> list[threading.Thread]:
        """Start every listener in a daemon thread; return the threads."""
        threads = [
            threading.Thread(target=listener.listen, daemon=True)
            for listener in self._listeners
        ]
        for thread in threads:
            thread.start()
        return threads

    def listeners(self) -> tuple[Listener, ...]:
        return tuple(self._listeners)