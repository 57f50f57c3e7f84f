from __future__ import annotations

import logging
import random
from urllib.parse import quote

import httpx

from creative_studio.config import settings
from creative_studio.errors import UpstreamUnavailable
from creative_studio.providers.base import GeneratedImage

logger = logging.getLogger(__name__)


class PollinationsProvider:
    """Text-to-image over plain HTTPS; the prompt goes in the URL path."""

    name = "pollinations"

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.base_url = (base_url or settings.pollinations_url).rstrip("/")
        self._client = client
        self._rng = rng or random.Random()

    def build_url(self, prompt: str) -> str:
        return f"{self.base_url}/{quote(prompt, safe='')}"

    async def generate(self, prompt: str, width: int, height: int) -> GeneratedImage:
        seed = self._rng.randint(0, 99999)
        params = {"width": width, "height": height, "nologo": "true", "seed": seed}
        url = self.build_url(prompt)
        try:
            if self._client is not None:
                resp = await self._client.get(url, params=params, headers={"Accept": "image/jpeg"})
            else:
                async with httpx.AsyncClient(timeout=settings.provider_timeout_s) as client:
                    resp = await client.get(url, params=params, headers={"Accept": "image/jpeg"})
        except httpx.HTTPError as exc:
            logger.warning("Image provider request failed: %s", exc)
            raise UpstreamUnavailable() from exc

        if not resp.is_success:
            logger.warning("Image provider returned HTTP %s", resp.status_code)
            raise UpstreamUnavailable()

        media_type = resp.headers.get("content-type", "").split(";")[0].strip()
        if not media_type.startswith("image/"):
            media_type = "image/jpeg"

        return GeneratedImage(
            content=resp.content,
            media_type=media_type,
            prompt_used=prompt,
            provider=self.name,
            model="pollinations",
            seed=seed,
            raw_metadata={"width": width, "height": height},
        )
