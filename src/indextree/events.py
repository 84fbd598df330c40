"""Minimal synchronous event emitter shared by the root and the helpers."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

Listener = Callable[..., Any]


class EventEmitter:
    """Named events with ordered listeners.

    Listeners run synchronously in subscription order; exceptions propagate to
    the emitter's caller.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Listener) -> None:
        try:
            self._listeners.get(event, []).remove(listener)
        except ValueError:
            pass

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, [])):
            listener(*args)
