from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Subscription:
    """Handle returned by every `subscribe`; `close()` detaches exactly once."""

    def __init__(self, detach: Callable[[], None]) -> None:
        self._detach: Callable[[], None] | None = detach

    @property
    def closed(self) -> bool:
        return self._detach is None

    def close(self) -> None:
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class EventChannel(Generic[T]):
    """Synchronous fan-out of one event type to its listeners."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        self._listeners.append(listener)

        def _detach() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return Subscription(_detach)

    def emit(self, event: T) -> None:
        # Copy so a listener may unsubscribe while being notified.
        for listener in list(self._listeners):
            listener(event)

    def __len__(self) -> int:
        return len(self._listeners)
