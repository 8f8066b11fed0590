"""Observable single-owner state cells.

Views re-derive their output by subscribing to cells; nothing is re-executed
implicitly.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar


T = TypeVar("T")

Subscriber = Callable[[T], None]


class StateCell(Generic[T]):
    def __init__(self, initial: T, *, name: str = "cell") -> None:
        self.name = name
        self._value = initial
        self._subscribers: list[Subscriber[T]] = []

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> bool:
        """Store value and notify subscribers; return False when unchanged."""
        if not self._assign(value):
            return False
        self._notify()
        return True

    def subscribe(self, callback: Subscriber[T]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _assign(self, value: T) -> bool:
        if value == self._value:
            return False
        self._value = value
        return True

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self._value)


def commit(*updates: tuple[StateCell[Any], Any]) -> None:
    """Assign every cell first, then notify, so no subscriber sees a partial update."""
    changed = [cell for cell, value in updates if cell._assign(value)]
    for cell in changed:
        cell._notify()
