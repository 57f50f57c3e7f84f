"""Design space <-> rendered pixels.

Layer positions and widths are fractions of the frame and are applied as-is.
Design-space pixel attributes (font size, padding, shadow) are multiplied by
the current scale before drawing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from creative_studio.catalog import Template
from creative_studio.editor.events import EventChannel, Subscription
from creative_studio.editor.layers import TextLayer, clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderFrame:
    rendered_width: float
    rendered_height: float
    # Viewport origin of the canvas, used to map client pointer coordinates.
    left: float = 0.0
    top: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.rendered_width <= 0 or self.rendered_height <= 0


@dataclass(frozen=True)
class Scale:
    x: float
    y: float


@dataclass(frozen=True)
class LayerStyle:
    """A text layer projected onto the rendered frame, all values in rendered px."""

    center_x: float
    center_y: float
    box_width: float
    font_size: float
    padding_x: float
    padding_y: float
    letter_spacing_px: float
    line_height: float
    shadow_offset: float
    shadow_blur: float
    shadow_alpha: float
    background_rgba: tuple[int, int, int, float]


class SurfaceObserver(Protocol):
    """Capability: report the size of a rendered surface whenever it changes."""

    def observe(self, callback: Callable[[RenderFrame], None]) -> Subscription: ...


class SurfaceSizeFeed:
    """Push-based SurfaceObserver; the host calls `notify` from its resize hook."""

    def __init__(self) -> None:
        self._channel: EventChannel[RenderFrame] = EventChannel("surface-size")

    def observe(self, callback: Callable[[RenderFrame], None]) -> Subscription:
        return self._channel.subscribe(callback)

    def notify(self, width: float, height: float, left: float = 0.0, top: float = 0.0) -> None:
        self._channel.emit(RenderFrame(width, height, left, top))


def hex_to_rgba(hex_color: str, alpha: float) -> tuple[int, int, int, float]:
    a = clamp(float(alpha), 0.0, 1.0)
    s = (hex_color or "").strip().lstrip("#")
    if len(s) == 3:
        s = "".join(c * 2 for c in s)
    if len(s) != 6:
        return (0, 0, 0, a)
    try:
        value = int(s, 16)
    except ValueError:
        return (0, 0, 0, a)
    return ((value >> 16) & 255, (value >> 8) & 255, value & 255, a)


class GeometryEngine:
    def __init__(self, template: Template, frame: RenderFrame | None = None) -> None:
        self._template = template
        self._frame = frame or RenderFrame(template.design_width, template.design_height)
        self._scale = self._compute_scale()
        self._changes: EventChannel[Scale] = EventChannel("scale")

    @property
    def template(self) -> Template:
        return self._template

    @property
    def frame(self) -> RenderFrame:
        return self._frame

    @property
    def scale(self) -> Scale:
        return self._scale

    @property
    def design_size(self) -> tuple[int, int]:
        return self._template.size

    def on_scale_change(self, callback: Callable[[Scale], None]) -> Subscription:
        return self._changes.subscribe(callback)

    def bind(self, observer: SurfaceObserver) -> Subscription:
        return observer.observe(lambda frame: self.resize(frame.rendered_width, frame.rendered_height, frame.left, frame.top))

    def set_template(self, template: Template) -> None:
        if template == self._template:
            return
        self._template = template
        self._recompute()

    def resize(self, width: float, height: float, left: float = 0.0, top: float = 0.0) -> bool:
        """Apply a size notification. Repeats of the current frame are ignored."""
        frame = RenderFrame(float(width), float(height), float(left), float(top))
        if frame == self._frame:
            return False
        size_changed = (frame.rendered_width, frame.rendered_height) != (
            self._frame.rendered_width,
            self._frame.rendered_height,
        )
        self._frame = frame
        if size_changed:
            self._recompute()
        return True

    def to_normalized(self, client_x: float, client_y: float) -> tuple[float, float] | None:
        """Client pointer coordinates -> fractions of the frame (unclamped)."""
        f = self._frame
        if f.is_empty:
            return None
        return ((client_x - f.left) / f.rendered_width, (client_y - f.top) / f.rendered_height)

    def to_pixels(self, nx: float, ny: float) -> tuple[float, float]:
        return (nx * self._frame.rendered_width, ny * self._frame.rendered_height)

    def project(self, layer: TextLayer) -> LayerStyle:
        sx, sy = self._scale.x, self._scale.y
        font_size = layer.font_size * sx
        padding = layer.padding * sx
        cx, cy = self.to_pixels(layer.x, layer.y)
        return LayerStyle(
            center_x=cx,
            center_y=cy,
            box_width=layer.width * self._frame.rendered_width,
            font_size=font_size,
            padding_x=padding,
            padding_y=padding * 0.6,
            letter_spacing_px=layer.letter_spacing * font_size,
            line_height=layer.line_height,
            shadow_offset=8 * layer.shadow * sy,
            shadow_blur=24 * layer.shadow * sy,
            shadow_alpha=0.35 * layer.shadow,
            background_rgba=hex_to_rgba(layer.background_color, layer.background_opacity),
        )

    def _compute_scale(self) -> Scale:
        return Scale(
            x=self._frame.rendered_width / self._template.design_width,
            y=self._frame.rendered_height / self._template.design_height,
        )

    def _recompute(self) -> None:
        scale = self._compute_scale()
        if scale == self._scale:
            return
        self._scale = scale
        logger.debug("Scale now %.4f x %.4f for %s", scale.x, scale.y, self._template.id)
        self._changes.emit(scale)
