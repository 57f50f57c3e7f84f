from __future__ import annotations

import logging

import httpx

from creative_studio.config import settings
from creative_studio.errors import UnexpectedError, UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Could not generate the image. Please try again."


class BackgroundClient:
    """Asks the generation proxy for a background image and returns it as a data URL."""

    def __init__(self, endpoint: str | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.endpoint = endpoint or settings.generate_endpoint
        self._client = client

    async def generate(self, prompt: str, width: int, height: int) -> str:
        if not (prompt or "").strip():
            raise ValidationError("Describe what you want to generate before continuing.")

        payload = {"prompt": prompt, "width": width, "height": height}
        try:
            if self._client is not None:
                resp = await self._client.post(self.endpoint, json=payload)
            else:
                async with httpx.AsyncClient(timeout=settings.provider_timeout_s) as client:
                    resp = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Generation request failed: %s", exc)
            raise UpstreamUnavailable(RETRY_MESSAGE) from exc

        if not resp.is_success:
            logger.warning("Generation endpoint returned HTTP %s", resp.status_code)
            raise UpstreamUnavailable(_error_from(resp) or RETRY_MESSAGE)

        try:
            image = resp.json()["image"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UnexpectedError("Unexpected response from the image service.") from exc
        if not isinstance(image, str) or not image.startswith("data:"):
            raise UnexpectedError("Unexpected response from the image service.")
        return image


def _error_from(resp: httpx.Response) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return None
