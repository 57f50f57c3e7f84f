"""Text layer model and the ordered layer store.

Layers live in an arena keyed by id; stacking order is a separate list of ids,
so a drag step replaces one arena entry without copying the collection.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Iterator, Mapping

from creative_studio.catalog import DEFAULT_TEXT_STYLE

logger = logging.getLogger(__name__)

FONT_WEIGHTS: dict[str, int] = {"regular": 400, "semibold": 600, "bold": 700}
FONT_STYLES = ("normal", "italic")
TEXT_ALIGNS = ("left", "center", "right")

# Fractions of the design frame (or plain 0..1 intensities).
UNIT_FIELDS = frozenset({"x", "y", "width", "background_opacity", "shadow"})
# Lower bounds for design-space / multiplier fields.
MIN_VALUES = {"font_size": 1.0, "padding": 0.0, "line_height": 0.1}

DEFAULT_NAME = "Text"


@dataclass(frozen=True)
class TextLayer:
    id: str
    name: str
    text: str
    x: float  # anchor (box centre), fraction of design width
    y: float  # anchor (box centre), fraction of design height
    width: float  # fraction of design width
    font_size: float  # design-space px
    color: str
    font_family: str
    font_weight: str  # regular|semibold|bold
    font_style: str  # normal|italic
    text_align: str  # left|center|right
    uppercase: bool
    background_color: str
    background_opacity: float
    padding: float  # design-space px
    letter_spacing: float  # em
    line_height: float  # multiplier
    shadow: float  # 0..1 intensity

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    @property
    def css_font_weight(self) -> int:
        return FONT_WEIGHTS[self.font_weight]

    @property
    def display_text(self) -> str:
        return self.text.upper() if self.uppercase else self.text

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TextLayer:
        """Build a layer from loose wire data; bad values fall back to defaults."""
        values: dict[str, Any] = {"id": str(data.get("id") or new_layer_id()), "name": DEFAULT_NAME, "x": 0.5, "y": 0.5}
        values.update(DEFAULT_TEXT_STYLE)
        for name in LAYER_FIELDS:
            if name == "id" or name not in data:
                continue
            coerced = coerce_field(name, data[name])
            if coerced is not _REJECTED:
                values[name] = coerced
        return cls(**values)


LAYER_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(TextLayer))

_REJECTED = object()


def new_layer_id() -> str:
    return uuid.uuid4().hex


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return None


def coerce_field(name: str, value: Any) -> Any:
    """Return `value` coerced into the field's domain, or `_REJECTED`.

    Numeric fields are clamped here, at the point of mutation, so no caller
    can push a layer outside its invariants.
    """
    if name in UNIT_FIELDS:
        num = _as_float(value)
        return _REJECTED if num is None else clamp(num, 0.0, 1.0)
    if name in MIN_VALUES:
        num = _as_float(value)
        return _REJECTED if num is None else max(num, MIN_VALUES[name])
    if name == "letter_spacing":
        num = _as_float(value)
        return _REJECTED if num is None else num
    if name == "font_weight":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            num = _as_float(value)
            by_css = {css: key for key, css in FONT_WEIGHTS.items()}
            return _REJECTED if num is None else by_css.get(int(num), _REJECTED)
        value = str(value).strip().lower()
        return value if value in FONT_WEIGHTS else _REJECTED
    if name == "font_style":
        value = str(value).strip().lower()
        return value if value in FONT_STYLES else _REJECTED
    if name == "text_align":
        value = str(value).strip().lower()
        return value if value in TEXT_ALIGNS else _REJECTED
    if name == "uppercase":
        flag = _as_bool(value)
        return _REJECTED if flag is None else flag
    if name == "name":
        return str(value or "").strip() or DEFAULT_NAME
    if name in ("text", "color", "background_color", "font_family"):
        return _REJECTED if value is None else str(value)
    return _REJECTED


class LayerStore:
    def __init__(self) -> None:
        self._arena: dict[str, TextLayer] = {}
        self._order: list[str] = []

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._arena

    def __iter__(self) -> Iterator[TextLayer]:
        return (self._arena[i] for i in self._order)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(self._order)

    @property
    def layers(self) -> tuple[TextLayer, ...]:
        """Layers in stacking order (index 0 renders at the bottom)."""
        return tuple(self)

    def get(self, layer_id: str | None) -> TextLayer | None:
        return self._arena.get(layer_id or "")

    def index_of(self, layer_id: str) -> int:
        try:
            return self._order.index(layer_id)
        except ValueError:
            return -1

    def add(self, defaults: Mapping[str, Any] | None = None, name: str | None = None) -> str:
        layer_id = new_layer_id()
        while layer_id in self._arena:
            layer_id = new_layer_id()

        data: dict[str, Any] = dict(DEFAULT_TEXT_STYLE)
        if defaults:
            data.update(defaults)
        data.update(
            id=layer_id,
            name=name or f"{DEFAULT_NAME} {len(self._order) + 1}",
            x=0.5,
            y=0.5,
        )
        self._arena[layer_id] = TextLayer.from_dict(data)
        self._order.append(layer_id)
        return layer_id

    def update(self, layer_id: str, field: str, value: Any) -> bool:
        """Replace one field of one layer. Returns False when nothing changed hands."""
        if field == "id":
            raise ValueError("layer id is immutable")
        if field not in LAYER_FIELDS:
            raise ValueError(f"unknown layer field: {field!r}")
        layer = self._arena.get(layer_id)
        if layer is None:
            return False
        coerced = coerce_field(field, value)
        if coerced is _REJECTED:
            logger.debug("Ignoring %s=%r for layer %s", field, value, layer_id)
            return False
        self._arena[layer_id] = replace(layer, **{field: coerced})
        return True

    def move_to(self, layer_id: str, x: float, y: float) -> bool:
        layer = self._arena.get(layer_id)
        if layer is None:
            return False
        nx, ny = coerce_field("x", x), coerce_field("y", y)
        if nx is _REJECTED or ny is _REJECTED:
            return False
        self._arena[layer_id] = replace(layer, x=nx, y=ny)
        return True

    def remove(self, layer_id: str) -> bool:
        if self._arena.pop(layer_id, None) is None:
            return False
        self._order.remove(layer_id)
        return True

    def bring_forward(self, layer_id: str) -> bool:
        idx = self.index_of(layer_id)
        if idx == -1 or idx == len(self._order) - 1:
            return False
        self._swap(idx, idx + 1)
        return True

    def send_backward(self, layer_id: str) -> bool:
        idx = self.index_of(layer_id)
        if idx <= 0:
            return False
        self._swap(idx, idx - 1)
        return True

    def clear(self) -> None:
        self._arena.clear()
        self._order.clear()

    def _swap(self, a: int, b: int) -> None:
        self._order[a], self._order[b] = self._order[b], self._order[a]
