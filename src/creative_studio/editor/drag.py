"""Pointer-driven layer dragging.

Idle -> Dragging on pointer-down over a layer; the grab offset (pointer minus
layer anchor, in frame fractions) is fixed for the whole session so the layer
never jumps to the pointer. Moves and releases are taken from the window-level
pointer stream, so a drag that leaves the canvas still ends on release.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from creative_studio.editor.events import EventChannel, Subscription
from creative_studio.editor.geometry import GeometryEngine
from creative_studio.editor.layers import LayerStore, clamp
from creative_studio.editor.selection import SelectionModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointerEvent:
    client_x: float = 0.0
    client_y: float = 0.0


class PointerEvents:
    """Window-level pointer stream. Hosts forward raw move/up events here."""

    def __init__(self) -> None:
        self.moves: EventChannel[PointerEvent] = EventChannel("pointermove")
        self.ups: EventChannel[PointerEvent] = EventChannel("pointerup")

    def move(self, client_x: float, client_y: float) -> None:
        self.moves.emit(PointerEvent(client_x, client_y))

    def up(self, client_x: float = 0.0, client_y: float = 0.0) -> None:
        self.ups.emit(PointerEvent(client_x, client_y))


@dataclass(frozen=True)
class DragSession:
    layer_id: str
    offset_x: float
    offset_y: float


class DragController:
    def __init__(self, layers: LayerStore, geometry: GeometryEngine, selection: SelectionModel) -> None:
        self._layers = layers
        self._geometry = geometry
        self._selection = selection
        self._session: DragSession | None = None
        self._subscriptions: list[Subscription] = []

    @property
    def session(self) -> DragSession | None:
        return self._session

    @property
    def is_dragging(self) -> bool:
        return self._session is not None

    def attach(self, events: PointerEvents) -> None:
        self._subscriptions.append(events.moves.subscribe(lambda e: self.pointer_move(e.client_x, e.client_y)))
        self._subscriptions.append(events.ups.subscribe(lambda e: self.pointer_up()))

    def close(self) -> None:
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.close()
        self._session = None

    def __enter__(self) -> DragController:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def pointer_down_on_layer(self, layer_id: str, client_x: float, client_y: float) -> bool:
        layer = self._layers.get(layer_id)
        if layer is None:
            return False
        pointer = self._geometry.to_normalized(client_x, client_y)
        if pointer is None:
            return False
        self._session = DragSession(
            layer_id=layer_id,
            offset_x=pointer[0] - layer.x,
            offset_y=pointer[1] - layer.y,
        )
        self._selection.select(layer_id)
        return True

    def pointer_down_on_canvas(self) -> None:
        # Empty area: deselect, no drag.
        self._selection.clear()

    def pointer_move(self, client_x: float, client_y: float) -> bool:
        session = self._session
        if session is None:
            return False
        pointer = self._geometry.to_normalized(client_x, client_y)
        if pointer is None:
            return False
        x = clamp(pointer[0] - session.offset_x, 0.0, 1.0)
        y = clamp(pointer[1] - session.offset_y, 0.0, 1.0)
        return self._layers.move_to(session.layer_id, x, y)

    def pointer_up(self) -> None:
        if self._session is not None:
            logger.debug("Drag of %s ended", self._session.layer_id)
        self._session = None
