from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from creative_studio.catalog import Template
from creative_studio.config import settings
from creative_studio.editor.geometry import GeometryEngine, LayerStyle, RenderFrame, hex_to_rgba
from creative_studio.editor.layers import TextLayer
from creative_studio.errors import RenderError

logger = logging.getLogger(__name__)

EMPTY_CANVAS_RGB = (31, 41, 55)


@dataclass(frozen=True)
class Composition:
    """Everything needed to flatten a creative: frame, background, layers bottom-up."""

    template: Template
    frame_width: float
    frame_height: float
    layers: tuple[TextLayer, ...] = field(default_factory=tuple)
    background: str | None = None  # data: URL (local path only when the rasterizer allows it)

    def output_size(self, pixel_multiplier: float) -> tuple[int, int]:
        return (
            max(1, int(round(self.frame_width * pixel_multiplier))),
            max(1, int(round(self.frame_height * pixel_multiplier))),
        )


class Rasterizer(Protocol):
    def render(self, composition: Composition, pixel_multiplier: float, cache_bust: bool = False) -> bytes: ...


class PillowRasterizer:
    """Flattens a Composition into PNG bytes with Pillow."""

    def __init__(self, font_dirs: list[str] | None = None, allow_local_paths: bool = False) -> None:
        self.font_dirs = tuple(font_dirs if font_dirs is not None else settings.font_dirs)
        # Only data: URLs unless the caller owns the filesystem references.
        self.allow_local_paths = allow_local_paths
        # Last decoded background only.
        self._cached_background: tuple[str, Image.Image] | None = None

    def render(self, composition: Composition, pixel_multiplier: float, cache_bust: bool = False) -> bytes:
        if pixel_multiplier <= 0:
            raise RenderError("pixel multiplier must be positive")
        try:
            image = self._render(composition, pixel_multiplier, cache_bust)
            buf = BytesIO()
            image.save(buf, format="PNG")
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"Could not render the composition: {exc}") from exc
        return buf.getvalue()

    def _render(self, composition: Composition, pixel_multiplier: float, cache_bust: bool) -> Image.Image:
        size = composition.output_size(pixel_multiplier)
        if composition.background:
            bg = self._load_background(composition.background, cache_bust)
            base = _resize_cover(bg, size).convert("RGBA")
        else:
            base = Image.new("RGBA", size, EMPTY_CANVAS_RGB + (255,))

        # Project layers onto the output raster exactly as the editor projects them on screen.
        geometry = GeometryEngine(composition.template, RenderFrame(size[0], size[1]))
        for layer in composition.layers:
            style = geometry.project(layer)
            base = self._draw_layer(base, layer, style)
        return base.convert("RGB")

    def _load_background(self, ref: str, cache_bust: bool) -> Image.Image:
        cached = self._cached_background
        if cache_bust:
            self._cached_background = None
        elif cached is not None and cached[0] == ref:
            return cached[1]
        img = _open_image_ref(ref, self.allow_local_paths)
        if not cache_bust:
            self._cached_background = (ref, img)
        return img

    def _draw_layer(self, base: Image.Image, layer: TextLayer, style: LayerStyle) -> Image.Image:
        font = _load_font(
            max(1, int(round(style.font_size))),
            layer.font_family,
            layer.font_weight,
            layer.font_style == "italic",
            self.font_dirs,
        )
        box_w = max(1.0, style.box_width)
        content_w = max(1.0, box_w - 2 * style.padding_x)
        lines = _wrap_to_width(layer.display_text, font, content_w, style.letter_spacing_px)
        line_px = style.font_size * style.line_height
        box_h = len(lines) * line_px + 2 * style.padding_y

        left = style.center_x - box_w / 2
        top = style.center_y - box_h / 2

        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        r, g, b, a = style.background_rgba
        if a > 0:
            ImageDraw.Draw(overlay).rectangle(
                [(left, top), (left + box_w, top + box_h)],
                fill=(r, g, b, int(round(a * 255))),
            )
        base = Image.alpha_composite(base, overlay)

        text_origin = (left + style.padding_x, top + style.padding_y)
        if style.shadow_alpha > 0:
            shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
            _draw_lines(
                ImageDraw.Draw(shadow),
                lines,
                (text_origin[0], text_origin[1] + style.shadow_offset),
                content_w,
                line_px,
                layer.text_align,
                font,
                style,
                fill=(0, 0, 0, int(round(style.shadow_alpha * 255))),
            )
            if style.shadow_blur > 0:
                # CSS blur radius is roughly two standard deviations.
                shadow = shadow.filter(ImageFilter.GaussianBlur(radius=style.shadow_blur / 2))
            base = Image.alpha_composite(base, shadow)

        text_layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        cr, cg, cb, _ = hex_to_rgba(layer.color, 1.0)
        _draw_lines(
            ImageDraw.Draw(text_layer),
            lines,
            text_origin,
            content_w,
            line_px,
            layer.text_align,
            font,
            style,
            fill=(cr, cg, cb, 255),
        )
        return Image.alpha_composite(base, text_layer)


def _open_image_ref(ref: str, allow_local_paths: bool = False) -> Image.Image:
    if ref.startswith("data:"):
        header, _, payload = ref.partition(",")
        if ";base64" not in header:
            raise RenderError("background data URL must be base64 encoded")
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise RenderError("background data URL is not valid base64") from exc
    elif allow_local_paths and "://" not in ref:
        raw = Path(ref).read_bytes()
    else:
        raise RenderError("background must be a base64 data URL")
    img = Image.open(BytesIO(raw))
    img.load()
    return img.convert("RGB")


def _resize_cover(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """
    Resize to cover the target canvas (no stretching), then center-crop.
    """
    tw, th = size
    iw, ih = img.size
    if iw <= 0 or ih <= 0:
        return img.resize(size, Image.Resampling.LANCZOS)

    scale = max(tw / iw, th / ih)
    nw, nh = max(tw, int(round(iw * scale))), max(th, int(round(ih * scale)))
    resized = img.resize((nw, nh), Image.Resampling.LANCZOS)

    left = max(0, (nw - tw) // 2)
    top = max(0, (nh - th) // 2)
    return resized.crop((left, top, left + tw, top + th))


_WEIGHT_SUFFIXES = {"regular": "Regular", "semibold": "SemiBold", "bold": "Bold"}

_SYSTEM_FONT_DIRS = (
    "/usr/share/fonts/truetype",
    "/usr/share/fonts",
    "/Library/Fonts",
    "/System/Library/Fonts/Supplemental",
    "C:\\Windows\\Fonts",
)

_FALLBACK_FONTS = {
    (False, False): "DejaVuSans.ttf",
    (True, False): "DejaVuSans-Bold.ttf",
    (False, True): "DejaVuSans-Oblique.ttf",
    (True, True): "DejaVuSans-BoldOblique.ttf",
}


def _font_filenames(family: str, weight: str, italic: bool) -> list[str]:
    stem = family.replace(" ", "")
    suffix = _WEIGHT_SUFFIXES.get(weight, "Regular")
    names: list[str] = []
    if italic:
        names.append(f"{stem}-{suffix}Italic.ttf" if suffix != "Regular" else f"{stem}-Italic.ttf")
    names.append(f"{stem}-{suffix}.ttf")
    names.append(f"{stem}-Regular.ttf")
    names.append(f"{stem}.ttf")
    names.append(_FALLBACK_FONTS[(weight != "regular", italic)])
    names.append("DejaVuSans.ttf")
    return names


@lru_cache(maxsize=128)
def _resolve_font_path(family: str, weight: str, italic: bool, font_dirs: tuple[str, ...]) -> str | None:
    dirs = [Path(d) for d in (*font_dirs, *_SYSTEM_FONT_DIRS)]
    for name in _font_filenames(family, weight, italic):
        for d in dirs:
            if not d.is_dir():
                continue
            direct = d / name
            if direct.exists():
                return str(direct)
            # System dirs nest fonts one level deep (e.g. truetype/dejavu/).
            for nested in d.glob(f"*/{name}"):
                return str(nested)
    return None


@lru_cache(maxsize=256)
def _load_font(
    size: int,
    family: str,
    weight: str,
    italic: bool,
    font_dirs: tuple[str, ...],
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """
    Prefer a TTF matching family/weight/style, then DejaVu. If nothing is
    installed fall back to Pillow's built-in scalable font.
    """
    path = _resolve_font_path(family, weight, italic, font_dirs)
    if path:
        try:
            return ImageFont.truetype(path, size=size)
        except OSError:
            logger.warning("Could not load font %s; using default", path)
    return ImageFont.load_default(size=size)


def _text_width(text: str, font, letter_spacing: float) -> float:
    if not text:
        return 0.0
    if not letter_spacing:
        return float(font.getlength(text))
    return sum(float(font.getlength(ch)) + letter_spacing for ch in text)


def _wrap_to_width(text: str, font, max_w: float, letter_spacing: float = 0.0) -> list[str]:
    lines: list[str] = []
    for paragraph in (text or "").split("\n"):
        words = [w for w in paragraph.split() if w]
        if not words:
            lines.append("")
            continue
        cur = words[0]
        for w in words[1:]:
            trial = f"{cur} {w}"
            if _text_width(trial, font, letter_spacing) <= max_w:
                cur = trial
            else:
                lines.append(cur)
                cur = w
        lines.append(cur)
    return lines or [""]


def _draw_lines(
    draw: ImageDraw.ImageDraw,
    lines: list[str],
    origin: tuple[float, float],
    content_w: float,
    line_px: float,
    align: str,
    font,
    style: LayerStyle,
    fill: tuple[int, int, int, int],
) -> None:
    x0, y0 = origin
    # Half-leading: glyphs sit centred in their line box.
    lead = (line_px - style.font_size) / 2
    for i, line in enumerate(lines):
        if not line:
            continue
        lw = _text_width(line, font, style.letter_spacing_px)
        if align == "right":
            x = x0 + content_w - lw
        elif align == "center":
            x = x0 + (content_w - lw) / 2
        else:
            x = x0
        y = y0 + i * line_px + lead
        if not style.letter_spacing_px:
            draw.text((x, y), line, font=font, fill=fill)
            continue
        for ch in line:
            draw.text((x, y), ch, font=font, fill=fill)
            x += float(font.getlength(ch)) + style.letter_spacing_px
