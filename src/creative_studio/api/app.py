from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from creative_studio.assembly.render import Composition, PillowRasterizer, Rasterizer
from creative_studio.catalog import FONT_OPTIONS, catalog
from creative_studio.config import settings
from creative_studio.editor.layers import TextLayer, new_layer_id
from creative_studio.errors import CreativeStudioError, ExportFailure, RenderError, UnexpectedError, ValidationError
from creative_studio.providers.base import ImageProvider
from creative_studio.providers.gemini_provider import GeminiProvider
from creative_studio.providers.pollinations_provider import PollinationsProvider

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="creative_studio")

rasterizer = PillowRasterizer()

MAX_EXPORT_MULTIPLIER = 4.0


def get_provider() -> ImageProvider:
    if settings.provider == "gemini":
        if not settings.gemini_api_key:
            raise UnexpectedError("CREATIVE_GEMINI_API_KEY is not set")
        return GeminiProvider(api_key=settings.gemini_api_key)
    return PollinationsProvider()


def get_rasterizer() -> Rasterizer:
    return rasterizer


@app.exception_handler(CreativeStudioError)
async def _studio_error_handler(request: Request, exc: CreativeStudioError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _parse_float(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    # 0 and NaN count as "not given".
    if not math.isfinite(out) or out == 0:
        return default
    return out


def _resolve_dimension(value: Any) -> int:
    size = _parse_float(value, settings.generate_default_size)
    size = min(max(size, settings.generate_min_size), settings.generate_max_size)
    return int(round(size))


async def _read_json_object(request: Request, message: str) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(message) from exc
    if not isinstance(body, dict):
        raise ValidationError(message)
    return body


@app.get("/api/templates")
def list_templates():
    return {"default": catalog.default.id, "templates": [t.to_dict() for t in catalog]}


@app.get("/api/fonts")
def list_fonts():
    return {"fonts": list(FONT_OPTIONS)}


@app.post("/api/generate")
async def generate_background(request: Request, provider: ImageProvider = Depends(get_provider)):
    """Generate a background image and return it as `{"image": <data URL>}`.

    A body that is not a JSON object, or a prompt that is missing, not a
    string or only whitespace, is treated as no prompt: 400 "Prompt is
    required." and the provider is never called.
    """
    body = await _read_json_object(request, "Prompt is required.")
    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Prompt is required.")

    width = _resolve_dimension(body.get("width"))
    height = _resolve_dimension(body.get("height"))

    try:
        image = await provider.generate(prompt=prompt, width=width, height=height)
        data_url = image.to_data_url()
    except CreativeStudioError:
        raise
    except Exception as exc:
        logger.exception("Error generating image (provider=%s, %dx%d)", getattr(provider, "name", "?"), width, height)
        raise UnexpectedError() from exc

    logger.info("Generated %dx%d background via %s (seed=%s)", width, height, image.provider, image.seed)
    return {"image": data_url}


def _layers_from_payload(payload: Any) -> tuple[TextLayer, ...]:
    if payload is None:
        return ()
    if not isinstance(payload, list):
        raise ValidationError("layers must be a JSON list")
    out: list[TextLayer] = []
    seen: set[str] = set()
    for item in payload:
        if not isinstance(item, dict):
            continue
        layer = TextLayer.from_dict(item)
        if layer.id in seen:
            layer = TextLayer.from_dict({**item, "id": new_layer_id()})
        seen.add(layer.id)
        out.append(layer)
    return tuple(out)


@app.post("/api/export")
async def export_composition(request: Request, renderer: Rasterizer = Depends(get_rasterizer)):
    """Flatten a composition at the template's design resolution times `multiplier`."""
    body = await _read_json_object(request, "Composition must be a JSON object.")
    template = catalog.lookup(body.get("template_id"))
    layers = _layers_from_payload(body.get("layers"))
    # Only inline images; never fetch URLs or read server paths on a client's behalf.
    background = body.get("background") or None
    if background is not None and not (isinstance(background, str) and background.startswith("data:")):
        raise ValidationError("background must be a data: URL")
    multiplier = _parse_float(body.get("multiplier"), settings.export_pixel_ratio)
    multiplier = min(max(multiplier, 1.0), MAX_EXPORT_MULTIPLIER)

    composition = Composition(
        template=template,
        frame_width=template.design_width,
        frame_height=template.design_height,
        layers=layers,
        background=background or None,
    )
    try:
        png = await asyncio.to_thread(renderer.render, composition, multiplier, True)
    except RenderError as exc:
        logger.warning("Export render failed for %s: %s", template.id, exc)
        raise ExportFailure() from exc

    headers = {"Content-Disposition": f'attachment; filename="{settings.export_filename}"'}
    return Response(content=png, media_type="image/png", headers=headers)
