import asyncio

import pytest

from creative_studio.assembly.render import Composition
from creative_studio.catalog import catalog
from creative_studio.errors import ExportFailure, RenderError
from creative_studio.export import DirectoryDownloadSink, ExportCoordinator

FEED = catalog.lookup("facebook-feed")


class RecordingRasterizer:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def render(self, composition, pixel_multiplier, cache_bust=False):
        self.calls.append((composition, pixel_multiplier, cache_bust))
        if self.fail:
            raise RenderError("boom")
        return b"\x89PNG fake"


class RecordingSink:
    def __init__(self):
        self.saved = []

    def save(self, filename, content):
        self.saved.append((filename, content))
        return f"/downloads/{filename}"


def test_export_renders_at_double_resolution_with_cache_bust():
    rasterizer, sink = RecordingRasterizer(), RecordingSink()
    coordinator = ExportCoordinator(rasterizer=rasterizer, sink=sink, pixel_ratio=2.0, filename="creative-ad.png")
    comp = Composition(template=FEED, frame_width=600, frame_height=314)

    result = asyncio.run(coordinator.export(comp))

    assert rasterizer.calls == [(comp, 2.0, True)]
    assert sink.saved == [("creative-ad.png", b"\x89PNG fake")]
    assert result.size == (1200, 628)
    assert result.location == "/downloads/creative-ad.png"


def test_export_failure_produces_no_download():
    sink = RecordingSink()
    coordinator = ExportCoordinator(rasterizer=RecordingRasterizer(fail=True), sink=sink)
    comp = Composition(template=FEED, frame_width=600, frame_height=314)

    with pytest.raises(ExportFailure) as info:
        asyncio.run(coordinator.export(comp))

    assert sink.saved == []
    assert info.value.message


def test_directory_sink_writes_complete_file(tmp_path):
    sink = DirectoryDownloadSink(tmp_path)
    location = sink.save("creative-ad.png", b"data")
    assert (tmp_path / "creative-ad.png").read_bytes() == b"data"
    assert location.endswith("creative-ad.png")
    assert not list(tmp_path.glob("*.part"))


def test_directory_sink_strips_directories_from_name(tmp_path):
    sink = DirectoryDownloadSink(tmp_path)
    sink.save("../../escape.png", b"x")
    assert (tmp_path / "escape.png").exists()
