import base64
from io import BytesIO

import pytest
from PIL import Image

from creative_studio.assembly.render import Composition, PillowRasterizer
from creative_studio.catalog import catalog
from creative_studio.editor.layers import TextLayer
from creative_studio.errors import RenderError

SQUARE = catalog.lookup("google-display-square")


def _png_data_url(color, size=(40, 20)) -> str:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def _open(png: bytes) -> Image.Image:
    return Image.open(BytesIO(png)).convert("RGB")


def test_output_size_is_frame_times_multiplier():
    comp = Composition(template=SQUARE, frame_width=150, frame_height=100)
    img = _open(PillowRasterizer(font_dirs=[]).render(comp, 2))
    assert img.size == (300, 200)


def test_background_covers_canvas():
    comp = Composition(template=SQUARE, frame_width=100, frame_height=100, background=_png_data_url((255, 0, 0)))
    img = _open(PillowRasterizer(font_dirs=[]).render(comp, 1))
    assert img.getpixel((0, 0)) == (255, 0, 0)
    assert img.getpixel((99, 99)) == (255, 0, 0)


def test_layer_box_is_drawn_at_its_anchor():
    layer = TextLayer.from_dict(
        {"text": "", "x": 0.5, "y": 0.5, "width": 0.4, "background_color": "#0000ff", "background_opacity": 1, "shadow": 0}
    )
    comp = Composition(
        template=SQUARE,
        frame_width=200,
        frame_height=200,
        layers=(layer,),
        background=_png_data_url((255, 255, 255)),
    )
    rasterizer = PillowRasterizer(font_dirs=[])
    img = _open(rasterizer.render(comp, 1))
    assert img.getpixel((100, 100)) == (0, 0, 255)
    assert img.getpixel((5, 5)) == (255, 255, 255)

    moved = Composition(
        template=SQUARE,
        frame_width=200,
        frame_height=200,
        layers=(TextLayer.from_dict({**layer.to_dict(), "x": 0.1}),),
        background=comp.background,
    )
    img = _open(rasterizer.render(moved, 1))
    assert img.getpixel((100, 100)) == (255, 255, 255)
    assert img.getpixel((20, 100)) == (0, 0, 255)


def test_text_layers_render_without_error():
    layers = tuple(
        TextLayer.from_dict(
            {
                "text": "Big summer sale on everything in store",
                "uppercase": True,
                "letter_spacing": 0.1,
                "text_align": align,
                "y": 0.2 + i * 0.3,
            }
        )
        for i, align in enumerate(("left", "center", "right"))
    )
    comp = Composition(template=SQUARE, frame_width=300, frame_height=300, layers=layers)
    img = _open(PillowRasterizer(font_dirs=[]).render(comp, 1))
    assert img.size == (300, 300)


def test_cache_bust_resamples_background(tmp_path):
    path = tmp_path / "bg.png"
    Image.new("RGB", (10, 10), (255, 0, 0)).save(path)
    comp = Composition(template=SQUARE, frame_width=10, frame_height=10, background=str(path))
    rasterizer = PillowRasterizer(font_dirs=[], allow_local_paths=True)
    assert _open(rasterizer.render(comp, 1)).getpixel((5, 5)) == (255, 0, 0)

    Image.new("RGB", (10, 10), (0, 255, 0)).save(path)
    assert _open(rasterizer.render(comp, 1)).getpixel((5, 5)) == (255, 0, 0)
    assert _open(rasterizer.render(comp, 1, cache_bust=True)).getpixel((5, 5)) == (0, 255, 0)


def test_bad_background_raises_render_error():
    comp = Composition(template=SQUARE, frame_width=10, frame_height=10, background="data:image/png;base64,@@@")
    with pytest.raises(RenderError):
        PillowRasterizer(font_dirs=[]).render(comp, 1)


def test_non_positive_multiplier_rejected():
    comp = Composition(template=SQUARE, frame_width=10, frame_height=10)
    with pytest.raises(RenderError):
        PillowRasterizer(font_dirs=[]).render(comp, 0)


@pytest.mark.parametrize("ref", ["/etc/hostname", "http://169.254.169.254/latest/meta-data/", "file:///etc/passwd"])
def test_only_data_urls_are_read_by_default(ref):
    comp = Composition(template=SQUARE, frame_width=10, frame_height=10, background=ref)
    with pytest.raises(RenderError):
        PillowRasterizer(font_dirs=[]).render(comp, 1)


def test_remote_refs_rejected_even_with_local_paths_allowed():
    comp = Composition(template=SQUARE, frame_width=10, frame_height=10, background="https://example.com/bg.png")
    with pytest.raises(RenderError):
        PillowRasterizer(font_dirs=[], allow_local_paths=True).render(comp, 1)


def test_background_cache_holds_at_most_one_image():
    rasterizer = PillowRasterizer(font_dirs=[])
    for shade in range(5):
        comp = Composition(template=SQUARE, frame_width=10, frame_height=10, background=_png_data_url((shade, 0, 0)))
        rasterizer.render(comp, 1, cache_bust=True)
    assert rasterizer._cached_background is None

    for shade in range(5):
        comp = Composition(template=SQUARE, frame_width=10, frame_height=10, background=_png_data_url((0, shade, 0)))
        rasterizer.render(comp, 1)
    assert rasterizer._cached_background[0] == _png_data_url((0, 4, 0))
