from __future__ import annotations

import asyncio
import logging
from io import BytesIO

from PIL import Image

from creative_studio.config import settings
from creative_studio.errors import UpstreamUnavailable
from creative_studio.providers.base import GeneratedImage

logger = logging.getLogger(__name__)

# Aspect ratios Imagen accepts, as width/height.
SUPPORTED_RATIOS: dict[str, float] = {
    "1:1": 1.0,
    "3:4": 3 / 4,
    "4:3": 4 / 3,
    "9:16": 9 / 16,
    "16:9": 16 / 9,
}


def closest_aspect_ratio(width: int, height: int) -> str:
    if width <= 0 or height <= 0:
        return "1:1"
    r = width / height
    return min(SUPPORTED_RATIOS, key=lambda key: abs(SUPPORTED_RATIOS[key] - r))


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self._genai = genai
        self.client = genai.Client(api_key=api_key)

    async def generate(self, prompt: str, width: int, height: int) -> GeneratedImage:
        """
        Imagen text-to-image. Imagen picks its own pixel size, so we ask for the
        closest aspect ratio and resize to the requested dimensions.
        """
        from google.genai import types  # type: ignore

        model = settings.gemini_image_model
        aspect_ratio = closest_aspect_ratio(width, height)
        enriched = f"{prompt}\nNo text. No logos. No watermarks."

        try:
            resp = await asyncio.to_thread(
                self.client.models.generate_images,
                model=model,
                prompt=enriched,
                config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio=aspect_ratio),
            )
        except Exception as exc:
            logger.warning("Gemini image request failed: %s", exc)
            raise UpstreamUnavailable() from exc

        for gi in getattr(resp, "generated_images", []) or []:
            img_bytes = getattr(getattr(gi, "image", None), "image_bytes", None)
            if not img_bytes:
                continue
            image = Image.open(BytesIO(img_bytes)).convert("RGB")
            if image.size != (width, height):
                image = image.resize((width, height), Image.Resampling.LANCZOS)
            buf = BytesIO()
            image.save(buf, format="PNG")
            return GeneratedImage(
                content=buf.getvalue(),
                media_type="image/png",
                prompt_used=enriched,
                provider=self.name,
                model=model,
                seed=None,
                raw_metadata={"aspect_ratio": aspect_ratio},
            )

        raise UpstreamUnavailable("The image model returned no image.")
