from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class GeneratedImage:
    content: bytes
    media_type: str
    prompt_used: str
    provider: str
    model: str
    seed: int | None
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"


class ImageProvider(Protocol):
    name: str

    async def generate(self, prompt: str, width: int, height: int) -> GeneratedImage: ...
