from creative_studio.catalog import TEMPLATES, TemplateCatalog, catalog
from creative_studio.editor.layers import LayerStore
from creative_studio.editor.selection import SelectionModel


def test_select_existing_layer():
    layers = LayerStore()
    selection = SelectionModel(layers)
    layer_id = layers.add()
    assert selection.select(layer_id)
    assert selection.active_id == layer_id
    assert selection.active_layer.id == layer_id


def test_select_unknown_id_keeps_previous():
    layers = LayerStore()
    selection = SelectionModel(layers)
    layer_id = layers.add()
    selection.select(layer_id)
    assert selection.select("missing") is False
    assert selection.active_id == layer_id


def test_forget_only_clears_matching_selection():
    layers = LayerStore()
    selection = SelectionModel(layers)
    a, b = layers.add(), layers.add()
    selection.select(a)
    selection.forget(b)
    assert selection.active_id == a
    selection.forget(a)
    assert selection.active_id is None


def test_change_listener_fires_once_per_change():
    layers = LayerStore()
    selection = SelectionModel(layers)
    seen = []
    sub = selection.on_change(seen.append)
    layer_id = layers.add()
    selection.select(layer_id)
    selection.select(layer_id)
    selection.clear()
    sub.close()
    selection.select(layer_id)
    assert seen == [layer_id, None]


def test_catalog_lookup_falls_back_to_default():
    assert len(catalog) >= 4
    assert catalog.lookup("facebook-story").design_height == 1920
    assert catalog.lookup("nope") is catalog.default
    assert catalog.lookup(None) is catalog.default
    assert catalog.get("nope") is None


def test_catalog_has_landscape_square_and_vertical_formats():
    shapes = {
        "landscape" if t.design_width > t.design_height else "vertical" if t.design_width < t.design_height else "square"
        for t in TEMPLATES
    }
    assert shapes == {"landscape", "vertical", "square"}
    assert TemplateCatalog().default.id == "facebook-feed"
