from __future__ import annotations

from typing import Callable

from creative_studio.editor.events import EventChannel, Subscription
from creative_studio.editor.layers import LayerStore, TextLayer


class SelectionModel:
    """Zero-or-one active layer, the one the property panel edits."""

    def __init__(self, layers: LayerStore) -> None:
        self._layers = layers
        self._active_id: str | None = None
        self._changes: EventChannel[str | None] = EventChannel("selection")

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active_layer(self) -> TextLayer | None:
        return self._layers.get(self._active_id)

    def on_change(self, callback: Callable[[str | None], None]) -> Subscription:
        return self._changes.subscribe(callback)

    def select(self, layer_id: str) -> bool:
        if layer_id not in self._layers:
            return False
        self._set(layer_id)
        return True

    def clear(self) -> None:
        self._set(None)

    def forget(self, layer_id: str) -> None:
        if self._active_id == layer_id:
            self._set(None)

    def _set(self, layer_id: str | None) -> None:
        if layer_id == self._active_id:
            return
        self._active_id = layer_id
        self._changes.emit(layer_id)
