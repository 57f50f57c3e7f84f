from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from creative_studio.assembly.render import Composition, PillowRasterizer, Rasterizer
from creative_studio.config import settings
from creative_studio.errors import ExportFailure

logger = logging.getLogger(__name__)


class DownloadSink(Protocol):
    def save(self, filename: str, content: bytes) -> str: ...


class DirectoryDownloadSink:
    """Writes exports into a directory. The file appears only once fully written."""

    def __init__(self, directory: Path | str | None = None) -> None:
        self.directory = Path(directory or settings.export_dir).resolve()

    def save(self, filename: str, content: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / os.path.basename(filename)
        fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return str(target)


@dataclass(frozen=True)
class ExportResult:
    filename: str
    location: str
    size: tuple[int, int]
    byte_count: int


class ExportCoordinator:
    def __init__(
        self,
        rasterizer: Rasterizer | None = None,
        sink: DownloadSink | None = None,
        pixel_ratio: float | None = None,
        filename: str | None = None,
    ) -> None:
        self.rasterizer = rasterizer or PillowRasterizer()
        self.sink = sink or DirectoryDownloadSink()
        self.pixel_ratio = pixel_ratio or settings.export_pixel_ratio
        self.filename = filename or settings.export_filename

    async def export(self, composition: Composition) -> ExportResult:
        """Flatten `composition` and hand the PNG to the sink.

        Raises ExportFailure (with a user-facing message) if rendering or saving
        fails; nothing reaches the sink in that case.
        """
        try:
            # cache_bust: re-sample the background instead of reusing a stale decode.
            png = await asyncio.to_thread(
                self.rasterizer.render, composition, self.pixel_ratio, True
            )
        except Exception as exc:
            logger.warning("Export render failed: %s", exc)
            raise ExportFailure() from exc

        try:
            location = self.sink.save(self.filename, png)
        except OSError as exc:
            logger.warning("Export save failed: %s", exc)
            raise ExportFailure() from exc

        result = ExportResult(
            filename=self.filename,
            location=location,
            size=composition.output_size(self.pixel_ratio),
            byte_count=len(png),
        )
        logger.info("Exported %s (%dx%d, %d bytes)", location, result.size[0], result.size[1], result.byte_count)
        return result
